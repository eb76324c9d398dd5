"""
Session fragments and their placement categories.

A ``SolSnippet`` pairs the parsed top-level declarations of one submission
with its exact text. ``classify`` decides where synthesis places a snippet by
looking only at its leading declaration.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from packaging.version import Version

from .parser import PartKind, SourceParser, SourceUnit


class SnippetCategory(str, Enum):
    """Where a snippet lands in the synthesized contract."""

    PRAGMA = "pragma"  # candidate for the program-wide pragma line
    IMPORT = "import"  # contributes to the import block
    TOP_LEVEL = "top_level"  # contract body
    FALLBACK = "fallback"  # fallback function body
    EXCLUDED = "excluded"


_CATEGORY_BY_KIND: dict[PartKind, SnippetCategory] = {
    PartKind.PRAGMA: SnippetCategory.PRAGMA,
    PartKind.IMPORT: SnippetCategory.IMPORT,
    PartKind.CONTRACT: SnippetCategory.EXCLUDED,
    PartKind.ENUM: SnippetCategory.TOP_LEVEL,
    PartKind.STRUCT: SnippetCategory.TOP_LEVEL,
    PartKind.EVENT: SnippetCategory.TOP_LEVEL,
    PartKind.ERROR: SnippetCategory.TOP_LEVEL,
    PartKind.FUNCTION: SnippetCategory.TOP_LEVEL,
    PartKind.TYPE: SnippetCategory.TOP_LEVEL,
    PartKind.USING: SnippetCategory.TOP_LEVEL,
    PartKind.VARIABLE: SnippetCategory.FALLBACK,
    PartKind.STRAY_SEMICOLON: SnippetCategory.EXCLUDED,
}


@dataclass(frozen=True)
class SolSnippet:
    """A parsed snippet of Solidity code and the raw text it was parsed from."""

    source_unit: SourceUnit
    raw: str

    @classmethod
    def parse(cls, raw: str, parser: SourceParser, solc_version: Version | None = None) -> "SolSnippet":
        """Parse ``raw`` with ``parser``; raises ``ParseError`` on failure."""
        return cls(source_unit=parser.parse(raw, solc_version), raw=raw)

    @property
    def category(self) -> SnippetCategory:
        return classify(self)

    def import_paths(self) -> list[str]:
        return self.source_unit.import_paths()

    def __str__(self) -> str:
        return self.raw


def classify(snippet: SolSnippet) -> SnippetCategory:
    """
    Placement category of a snippet, decided by its first declaration only.

    Later declarations never change the outcome: a snippet that opens with a
    contract definition is excluded even if an event follows it. Snippets with
    no declarations at all (comments only) are excluded.
    """
    first = snippet.source_unit.first
    if first is None:
        return SnippetCategory.EXCLUDED
    return _CATEGORY_BY_KIND[first.kind]


__all__ = ["SnippetCategory", "SolSnippet", "classify"]
