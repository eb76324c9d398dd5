"""Exception hierarchy for solrepl."""

from __future__ import annotations


class SolReplError(Exception):
    """Base class for all solrepl errors."""


class ParseError(SolReplError, ValueError):
    """Source text could not be parsed into top-level declarations."""

    def __init__(self, message: str, offset: int | None = None):
        self.offset = offset
        if offset is not None:
            message = f"{message} (at offset {offset})"
        super().__init__(message)


class FragmentParseError(ParseError):
    """A submitted fragment was rejected by the parser."""

    def __init__(self, source: str, cause: ParseError):
        super().__init__(f"Rejected fragment: {cause}")
        self.source = source
        self.cause = cause
        self.offset = cause.offset


class VersionError(SolReplError, ValueError):
    """A Solidity version string is not a MAJOR.MINOR.PATCH semantic version."""


class SnapshotCorruptError(SolReplError):
    """A stored snapshot is not valid, or its file name has no numeric id."""


class CacheEmptyError(SolReplError, LookupError):
    """The latest snapshot was requested but the cache holds none."""


class CacheIdAlreadySetError(SolReplError):
    """An environment's cache id can only be assigned once."""


__all__ = [
    "SolReplError",
    "ParseError",
    "FragmentParseError",
    "VersionError",
    "SnapshotCorruptError",
    "CacheEmptyError",
    "CacheIdAlreadySetError",
]
