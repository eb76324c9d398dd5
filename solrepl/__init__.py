"""solrepl: incremental Solidity sessions.

Snippets are submitted one at a time, classified by their leading top-level
declaration, and flattened into a single ``REPL`` contract. Sessions can be
snapshotted to a per-user cache directory and restored later.
"""

__version__ = "0.1.0"

from .config import ReplConfig
from .environment import ReplEnvironment
from .errors import (
    CacheEmptyError,
    CacheIdAlreadySetError,
    FragmentParseError,
    ParseError,
    SnapshotCorruptError,
    SolReplError,
    VersionError,
)
from .parser import PartKind, SolidityParser, SourceParser, SourceUnit, SourceUnitPart
from .session_cache import CachedSession, SessionCache
from .snippet import SnippetCategory, SolSnippet, classify
from .synthesis import render_contract_source

__all__ = [
    # Session
    "ReplEnvironment",
    "SolSnippet",
    "SnippetCategory",
    "classify",
    "render_contract_source",
    # Parsing
    "PartKind",
    "SolidityParser",
    "SourceParser",
    "SourceUnit",
    "SourceUnitPart",
    # Persistence
    "CachedSession",
    "SessionCache",
    # Config
    "ReplConfig",
    # Errors
    "SolReplError",
    "ParseError",
    "FragmentParseError",
    "VersionError",
    "SnapshotCorruptError",
    "CacheEmptyError",
    "CacheIdAlreadySetError",
]
