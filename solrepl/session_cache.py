"""
Session cache for solrepl.

Stores one JSON snapshot per session in a flat directory
(default: ~/.cache/solrepl/), named ``<prefix>-<id>.json``.

There is no locking: two processes sharing a cache directory can allocate the
same id, and the later write wins.
"""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, NamedTuple

from packaging.version import Version
from pydantic import ValidationError

from .errors import CacheEmptyError, SnapshotCorruptError
from .parser import SolidityParser, SourceParser
from .snapshot_schema import SessionSnapshot, SnapshotRecord
from .snippet import SolSnippet
from .toolchain import parse_solc_version

if TYPE_CHECKING:
    from .environment import ReplEnvironment

logger = logging.getLogger(__name__)

DEFAULT_CACHE_DIR = Path.home() / ".cache" / "solrepl"
DEFAULT_PREFIX = "solrepl"


class CachedSession(NamedTuple):
    """A snapshot file and its last modification time."""

    modified: datetime
    name: str


@dataclass
class LoadedSession:
    """Session state read back from a snapshot, with trees re-parsed."""

    solc_version: Version
    session: list[SolSnippet]
    id: int | None
    path: Path


class SessionCache:
    """
    Filesystem-backed store for session snapshots.

    The directory is created on demand by every operation.
    """

    def __init__(self, cache_dir: Path | str | None = None, prefix: str = DEFAULT_PREFIX):
        """
        Initialize session cache.

        Args:
            cache_dir: Snapshot directory (default: ~/.cache/solrepl)
            prefix: Snapshot file name prefix
        """
        self.cache_dir = Path(cache_dir).expanduser() if cache_dir is not None else DEFAULT_CACHE_DIR
        self.prefix = prefix

    def create_cache_dir(self) -> Path:
        """Create the cache directory if it does not exist."""
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        return self.cache_dir

    def session_file_name(self, session_id: int) -> str:
        return f"{self.prefix}-{session_id}.json"

    def session_path(self, session_id: int) -> Path:
        """Get snapshot path for a session id."""
        return self.cache_dir / self.session_file_name(session_id)

    def is_snapshot_name(self, name: str) -> bool:
        return name.startswith(f"{self.prefix}-") and name.endswith(".json")

    def parse_session_id(self, name: str) -> int:
        """
        Extract the numeric id embedded in a snapshot file name.

        Raises:
            SnapshotCorruptError: If the name does not embed an integer
        """
        stem = name.removesuffix(".json").removeprefix(f"{self.prefix}-")
        if not (stem.isascii() and stem.isdigit()):
            raise SnapshotCorruptError(f"Snapshot name has no numeric id: {name}")
        return int(stem)

    # =========================================================================
    # Directory listing
    # =========================================================================

    def _snapshot_entries(self) -> list[tuple[int, str, Path]]:
        """(mtime_ns, name, path) for every snapshot file."""
        self.create_cache_dir()
        entries = []
        with os.scandir(self.cache_dir) as it:
            for entry in it:
                if not entry.is_file() or not self.is_snapshot_name(entry.name):
                    continue
                entries.append((entry.stat().st_mtime_ns, entry.name, Path(entry.path)))
        return entries

    def list_sessions(self) -> list[CachedSession]:
        """
        List every stored snapshot with its modification time.

        Returns:
            CachedSession tuples, newest first

        Raises:
            OSError: If the cache directory cannot be read
        """
        entries = sorted(self._snapshot_entries(), reverse=True)
        return [CachedSession(datetime.fromtimestamp(mtime / 1e9), name) for mtime, name, _ in entries]

    def latest_session(self) -> Path:
        """
        Path of the most recently modified snapshot.

        Raises:
            CacheEmptyError: If no snapshots exist
        """
        entries = self._snapshot_entries()
        if not entries:
            raise CacheEmptyError(f"No cached sessions in {self.cache_dir}")
        _, _, path = max(entries)
        return path

    def next_session_id(self) -> int:
        """
        Allocate the id for a new snapshot.

        Returns 0 for an empty cache, otherwise one more than the id of the most
        recently modified snapshot (ties broken by file name).

        Raises:
            SnapshotCorruptError: If the newest snapshot name has no numeric id
        """
        entries = self._snapshot_entries()
        if not entries:
            return 0
        _, name, _ = max(entries)
        return self.parse_session_id(name) + 1

    # =========================================================================
    # Read / write
    # =========================================================================

    def write(self, env: "ReplEnvironment") -> Path:
        """
        Persist an environment's session.

        An environment that was already persisted overwrites its own snapshot.
        Otherwise a new id is allocated, and assigned to it only once the
        snapshot is on disk.

        Returns:
            Path to the written snapshot
        """
        self.create_cache_dir()

        session_id = env.cache_id if env.cache_id is not None else self.next_session_id()

        snapshot = SessionSnapshot(
            solc_version=str(env.solc_version),
            session=[SnapshotRecord(source_unit=s.raw, raw=s.raw) for s in env.session],
            id=session_id,
        )
        path = self.session_path(session_id)
        self._write_snapshot_json(path, snapshot)

        if env.cache_id is None:
            env.assign_cache_id(session_id)

        logger.debug(f"Wrote {len(snapshot.session)} snippet(s) to {path}")
        return path

    def _write_snapshot_json(self, target_path: Path, snapshot: SessionSnapshot) -> None:
        """
        Atomically write a snapshot file.

        Uses write-to-temp-then-rename pattern to prevent corruption.
        """
        fd, temp_path = tempfile.mkstemp(
            suffix=".tmp",
            prefix=f".{self.prefix}_",
            dir=target_path.parent,
        )
        try:
            with os.fdopen(fd, "w") as f:
                f.write(snapshot.model_dump_json(indent=2))
            os.replace(temp_path, target_path)
        except Exception:
            try:
                os.unlink(temp_path)
            except FileNotFoundError:
                pass
            raise

    def resolve(self, name: str | int) -> Path:
        """Snapshot path for a file name, or for a bare id."""
        if isinstance(name, int) or (name.isascii() and name.isdigit()):
            return self.session_path(int(name))
        return self.cache_dir / name

    def read(self, name: str | int, parser: SourceParser | None = None) -> LoadedSession:
        """
        Load a snapshot and re-parse every stored snippet.

        Args:
            name: Snapshot file name in the cache directory, or a session id
            parser: Parser used to rebuild declaration trees

        Raises:
            FileNotFoundError: If the snapshot does not exist
            SnapshotCorruptError: If the file is not a valid snapshot
            ParseError: If a stored snippet no longer parses
        """
        return self.read_path(self.resolve(name), parser)

    def read_latest(self, parser: SourceParser | None = None) -> LoadedSession:
        """Load the most recently modified snapshot."""
        return self.read_path(self.latest_session(), parser)

    def read_path(self, path: Path, parser: SourceParser | None = None) -> LoadedSession:
        parser = parser or SolidityParser()

        try:
            snapshot = SessionSnapshot.model_validate_json(path.read_bytes())
        except ValidationError as e:
            raise SnapshotCorruptError(f"Invalid snapshot {path}: {e}") from e

        solc_version = parse_solc_version(snapshot.solc_version)
        session = []
        for position, record in enumerate(snapshot.session):
            if record.source_unit != record.raw:
                raise SnapshotCorruptError(f"Snapshot {path} record {position}: source_unit and raw differ")
            session.append(SolSnippet.parse(record.raw, parser, solc_version))

        logger.debug(f"Loaded {len(session)} snippet(s) from {path}")
        return LoadedSession(solc_version=solc_version, session=session, id=snapshot.id, path=path)

    # =========================================================================
    # Maintenance
    # =========================================================================

    def clear(self) -> int:
        """
        Delete every entry directly under the cache directory.

        WARNING: deleted sessions cannot be recovered.

        Returns:
            Number of entries removed

        Raises:
            OSError: The first failure, which aborts the purge
        """
        self.create_cache_dir()
        removed = 0
        for entry in sorted(self.cache_dir.iterdir()):
            if entry.is_dir() and not entry.is_symlink():
                shutil.rmtree(entry)
            else:
                entry.unlink()
            removed += 1
        logger.debug(f"Removed {removed} entr{'y' if removed == 1 else 'ies'} from {self.cache_dir}")
        return removed


__all__ = [
    "CachedSession",
    "DEFAULT_CACHE_DIR",
    "DEFAULT_PREFIX",
    "LoadedSession",
    "SessionCache",
]
