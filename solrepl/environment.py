"""
REPL environment for solrepl.

A ``ReplEnvironment`` owns one session: the pinned compiler version, the
ordered snippets accepted so far, and the cache id assigned the first time
the session is persisted.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path

from packaging.version import Version

from .config import ReplConfig
from .errors import CacheIdAlreadySetError, FragmentParseError, ParseError
from .parser import SolidityParser, SourceParser
from .session_cache import LoadedSession, SessionCache
from .snippet import SolSnippet
from .synthesis import render_contract_source
from .toolchain import default_solc_version, parse_solc_version

logger = logging.getLogger(__name__)


class ReplEnvironment:
    """
    A solrepl session.

    Snippets are append-only: they can be submitted but never removed or
    reordered, since their order decides the synthesized source.
    """

    def __init__(
        self,
        solc_version: str | Version | None = None,
        *,
        parser: SourceParser | None = None,
        cache: SessionCache | None = None,
        config: ReplConfig | None = None,
    ):
        """
        Create an empty session.

        Args:
            solc_version: Compiler version (default: configured or global solc version)
            parser: Parser for submitted snippets (default: SolidityParser)
            cache: Snapshot store (default: built from config)
            config: Settings used for defaults (default: ReplConfig.load())

        Raises:
            VersionError: If ``solc_version`` is not MAJOR.MINOR.PATCH
        """
        if solc_version is None or cache is None:
            config = config or ReplConfig.load()

        if solc_version is None:
            self._solc_version = default_solc_version(config.solc_version)
        else:
            self._solc_version = parse_solc_version(solc_version)

        self.parser = parser or SolidityParser()
        self.cache = cache or SessionCache(config.resolved_cache_dir, prefix=config.snapshot_prefix)
        self._session: list[SolSnippet] = []
        self._cache_id: int | None = None

    @classmethod
    def _from_loaded(
        cls,
        loaded: LoadedSession,
        parser: SourceParser,
        cache: SessionCache,
    ) -> "ReplEnvironment":
        env = cls(loaded.solc_version, parser=parser, cache=cache)
        env._session = list(loaded.session)
        env._cache_id = loaded.id
        return env

    @classmethod
    def restore(
        cls,
        name: str | int,
        *,
        parser: SourceParser | None = None,
        cache: SessionCache | None = None,
        config: ReplConfig | None = None,
    ) -> "ReplEnvironment":
        """
        Rebuild an environment from a stored snapshot.

        Args:
            name: Snapshot file name, or a session id

        Raises:
            FileNotFoundError: If the snapshot does not exist
            SnapshotCorruptError: If the snapshot is invalid
            ParseError: If a stored snippet no longer parses
        """
        parser = parser or SolidityParser()
        cache = cache or _cache_from_config(config)
        loaded = cache.read(name, parser)
        logger.debug(f"Restored session from {loaded.path}")
        return cls._from_loaded(loaded, parser, cache)

    @classmethod
    def restore_latest(
        cls,
        *,
        parser: SourceParser | None = None,
        cache: SessionCache | None = None,
        config: ReplConfig | None = None,
    ) -> "ReplEnvironment":
        """
        Rebuild an environment from the most recently modified snapshot.

        Raises:
            CacheEmptyError: If the cache holds no snapshots
        """
        parser = parser or SolidityParser()
        cache = cache or _cache_from_config(config)
        loaded = cache.read_latest(parser)
        logger.debug(f"Restored latest session from {loaded.path}")
        return cls._from_loaded(loaded, parser, cache)

    @property
    def solc_version(self) -> Version:
        return self._solc_version

    @property
    def session(self) -> tuple[SolSnippet, ...]:
        """Accepted snippets in submission order."""
        return tuple(self._session)

    @property
    def cache_id(self) -> int | None:
        return self._cache_id

    def assign_cache_id(self, cache_id: int) -> None:
        """
        Set the snapshot identity. Only the first assignment is allowed.

        Raises:
            CacheIdAlreadySetError: If an id is already assigned
        """
        if self._cache_id is not None:
            raise CacheIdAlreadySetError(f"Cache id already set to {self._cache_id}")
        self._cache_id = cache_id

    def submit(self, source: str) -> SolSnippet:
        """
        Parse a snippet and append it to the session.

        Raises:
            FragmentParseError: If the parser rejects the snippet; the session is unchanged
        """
        try:
            snippet = SolSnippet.parse(source, self.parser, self._solc_version)
        except ParseError as e:
            raise FragmentParseError(source, e) from e

        self._session.append(snippet)
        logger.debug(f"Accepted snippet #{len(self._session)} ({snippet.category.value})")
        return snippet

    def submit_all(self, sources: Iterable[str]) -> list[SolSnippet]:
        """Submit snippets in order, stopping at the first rejected one."""
        return [self.submit(source) for source in sources]

    def contract_source(self) -> str:
        """Render the full, flattened source code for the current session."""
        return render_contract_source(self._session, self._solc_version)

    def persist(self) -> Path:
        """
        Write the session to the cache.

        Returns:
            Path of the snapshot file
        """
        return self.cache.write(self)

    def __len__(self) -> int:
        return len(self._session)

    def __repr__(self) -> str:
        return (
            f"ReplEnvironment(solc_version={self._solc_version}, "
            f"snippets={len(self._session)}, cache_id={self._cache_id})"
        )


def _cache_from_config(config: ReplConfig | None) -> SessionCache:
    config = config or ReplConfig.load()
    return SessionCache(config.resolved_cache_dir, prefix=config.snapshot_prefix)


__all__ = ["ReplEnvironment"]
