"""
Contract source synthesis.

Flattens an ordered session of snippets into one Solidity source file built
around a single ``REPL`` contract.
"""

from __future__ import annotations

from collections.abc import Iterable

from packaging.version import Version

from .snippet import SnippetCategory, SolSnippet

CONTRACT_NAME = "REPL"
LICENSE_MARKER = "// SPDX-License-Identifier: UNLICENSED"

_TEMPLATE = """{license}
{pragma}

// Imports
{imports}

/// @title {name}
/// @notice Auto-generated by solrepl
contract {name} {{
    {body}

    fallback() external {{
        {fallback}
    }}
}}
"""


def default_pragma(solc_version: Version | str) -> str:
    """Pragma line pinned to an exact compiler version."""
    return f"pragma solidity {solc_version};"


def render_import(path: str) -> str:
    """
    Plain import of a path.

    Aliases and symbol lists of the original directive are not carried over,
    so `import * as X from "x.sol";` renders as `import "x.sol";` and code that
    refers to `X.foo` will not compile.
    """
    return f'import "{path}";'


def render_contract_source(snippets: Iterable[SolSnippet], solc_version: Version | str) -> str:
    """
    Render the full source for a session.

    Args:
        snippets: Session snippets in submission order
        solc_version: Used for the pragma line when no snippet supplies one

    Returns:
        The flattened source. The output depends on the snippets and the
        version only, so rendering an unchanged session twice is byte-identical.

    Snippets are placed by their leading declaration. A snippet that starts
    with a variable declaration is placed entirely in the fallback body, so
    an event defined after it in the same snippet will not compile.
    """
    snippets = list(snippets)

    # NOTE: the first pragma wins, later ones are dropped
    pragma = next(
        (s.raw for s in snippets if s.category is SnippetCategory.PRAGMA),
        default_pragma(solc_version),
    )

    # Every import in every snippet counts, not only leading ones
    imports = "\n".join(render_import(path) for s in snippets for path in s.import_paths())

    body = "\n\n".join(s.raw for s in snippets if s.category is SnippetCategory.TOP_LEVEL)
    fallback = "\n".join(s.raw for s in snippets if s.category is SnippetCategory.FALLBACK)

    return _TEMPLATE.format(
        license=LICENSE_MARKER,
        pragma=pragma,
        imports=imports,
        name=CONTRACT_NAME,
        body=body,
        fallback=fallback,
    )


__all__ = [
    "CONTRACT_NAME",
    "LICENSE_MARKER",
    "default_pragma",
    "render_contract_source",
    "render_import",
]
