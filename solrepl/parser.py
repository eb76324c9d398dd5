"""
Top-level Solidity declaration parser.

The session model only needs to know which top-level declarations a fragment
contains, where each one starts and ends, and which paths its import
directives name. Function bodies, expressions and types are never inspected
beyond bracket balancing.

Any object implementing ``SourceParser`` can be injected into an environment;
``SolidityParser`` is the default.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Protocol, runtime_checkable

from packaging.version import Version

from .errors import ParseError


class PartKind(str, Enum):
    """Kind of a top-level declaration."""

    PRAGMA = "pragma"
    IMPORT = "import"
    CONTRACT = "contract"
    ENUM = "enum"
    STRUCT = "struct"
    EVENT = "event"
    ERROR = "error"
    FUNCTION = "function"
    VARIABLE = "variable"
    TYPE = "type"
    USING = "using"
    STRAY_SEMICOLON = "stray_semicolon"


class CommentKind(str, Enum):
    """Kind of a source comment."""

    LINE = "line"
    BLOCK = "block"
    DOC_LINE = "doc_line"
    DOC_BLOCK = "doc_block"


@dataclass(frozen=True)
class Comment:
    """A comment with its offsets into the parsed text."""

    kind: CommentKind
    text: str
    start: int
    end: int


@dataclass(frozen=True)
class SourceUnitPart:
    """One top-level declaration, located by half-open offsets [start, end)."""

    kind: PartKind
    start: int
    end: int
    name: str | None = None
    path: str | None = None  # import directives only


@dataclass(frozen=True)
class SourceUnit:
    """Parsed top-level declarations plus every comment, in source order."""

    parts: tuple[SourceUnitPart, ...] = ()
    comments: tuple[Comment, ...] = ()

    @property
    def first(self) -> SourceUnitPart | None:
        """The leading declaration, if any."""
        return self.parts[0] if self.parts else None

    def import_paths(self) -> list[str]:
        """Paths of every import directive, in source order."""
        return [p.path for p in self.parts if p.kind is PartKind.IMPORT and p.path is not None]


@runtime_checkable
class SourceParser(Protocol):
    """Turns raw text into a ``SourceUnit`` or raises ``ParseError``."""

    def parse(self, source: str, solc_version: Version | None = None) -> SourceUnit:
        ...


# =============================================================================
# Tokenizer
# =============================================================================


@dataclass(frozen=True)
class _Token:
    kind: str  # "ident", "number", "string", "punct"
    value: str
    start: int
    end: int


_IDENT = re.compile(r"[A-Za-z_$][A-Za-z0-9_$]*")
_NUMBER = re.compile(r"0[xX][0-9A-Fa-f_]*|[0-9][0-9_]*(?:\.[0-9][0-9_]*)?(?:[eE]-?[0-9_]+)?")
_WHITESPACE = re.compile(r"\s+")
_PUNCTUATION = set("{}()[];,.=<>!+-*/%&|^~?:")

_OPENERS = {"(": ")", "[": "]", "{": "}"}
_CLOSERS = {")", "]", "}"}


def _tokenize(source: str) -> tuple[list[_Token], list[Comment]]:
    tokens: list[_Token] = []
    comments: list[Comment] = []
    pos = 0
    length = len(source)

    while pos < length:
        ws = _WHITESPACE.match(source, pos)
        if ws:
            pos = ws.end()
            continue

        if source.startswith("//", pos):
            end = source.find("\n", pos)
            end = length if end == -1 else end
            text = source[pos:end]
            is_doc = text.startswith("///") and not text.startswith("////")
            kind = CommentKind.DOC_LINE if is_doc else CommentKind.LINE
            comments.append(Comment(kind, text, pos, end))
            pos = end
            continue

        if source.startswith("/*", pos):
            close = source.find("*/", pos + 2)
            if close == -1:
                raise ParseError("unterminated block comment", pos)
            end = close + 2
            text = source[pos:end]
            is_doc = text.startswith("/**") and text != "/**/"
            kind = CommentKind.DOC_BLOCK if is_doc else CommentKind.BLOCK
            comments.append(Comment(kind, text, pos, end))
            pos = end
            continue

        char = source[pos]

        if char in ("'", '"'):
            end = _scan_string(source, pos)
            tokens.append(_Token("string", source[pos + 1 : end - 1], pos, end))
            pos = end
            continue

        ident = _IDENT.match(source, pos)
        if ident:
            tokens.append(_Token("ident", ident.group(), pos, ident.end()))
            pos = ident.end()
            continue

        number = _NUMBER.match(source, pos)
        if number:
            tokens.append(_Token("number", number.group(), pos, number.end()))
            pos = number.end()
            continue

        if char in _PUNCTUATION:
            tokens.append(_Token("punct", char, pos, pos + 1))
            pos += 1
            continue

        raise ParseError(f"unexpected character {char!r}", pos)

    return tokens, comments


def _scan_string(source: str, start: int) -> int:
    """Return the offset just past the closing quote of the literal at ``start``."""
    quote = source[start]
    pos = start + 1
    while pos < len(source):
        char = source[pos]
        if char == "\\":
            pos += 2
            continue
        if char == "\n":
            break
        if char == quote:
            return pos + 1
        pos += 1
    raise ParseError("unterminated string literal", start)


# =============================================================================
# Parser
# =============================================================================

# Constructs that are only valid inside a contract or a function body.
_NON_TOP_LEVEL = frozenset(
    {
        "constructor",
        "modifier",
        "fallback",
        "receive",
        "if",
        "else",
        "for",
        "while",
        "do",
        "return",
        "emit",
        "revert",
        "delete",
        "new",
        "unchecked",
        "assembly",
        "try",
        "catch",
        "break",
        "continue",
        "throw",
        "type",
    }
)

_CONTRACT_KEYWORDS = frozenset({"contract", "interface", "library"})


class SolidityParser:
    """
    Default ``SourceParser``.

    Recognizes pragma and import directives, contract/interface/library
    definitions, enums, structs, events, errors, free functions, user-defined
    value types, using directives, constant variable declarations and stray
    semicolons. Anything else at the top level is a parse failure, as is an
    unterminated string, comment or bracket.

    The version hint is accepted for interface compatibility; the grammar
    recognized here does not vary across 0.x releases.
    """

    def parse(self, source: str, solc_version: Version | None = None) -> SourceUnit:
        tokens, comments = _tokenize(source)
        parts: list[SourceUnitPart] = []
        index = 0
        while index < len(tokens):
            part, index = self._parse_part(source, tokens, index)
            parts.append(part)
        return SourceUnit(parts=tuple(parts), comments=tuple(comments))

    def _parse_part(self, source: str, tokens: list[_Token], index: int) -> tuple[SourceUnitPart, int]:
        token = tokens[index]

        if token.kind == "punct" and token.value == ";":
            return SourceUnitPart(PartKind.STRAY_SEMICOLON, token.start, token.end), index + 1

        if token.kind != "ident":
            raise ParseError(f"expected a top-level declaration, found {token.value!r}", token.start)

        keyword = token.value

        if keyword == "pragma":
            end = _find_semicolon(source, tokens, index + 1)
            if end == index + 1:
                raise ParseError("empty pragma directive", token.start)
            name = tokens[index + 1].value
            return SourceUnitPart(PartKind.PRAGMA, token.start, tokens[end].end, name=name), end + 1

        if keyword == "import":
            end = _find_semicolon(source, tokens, index + 1)
            path = next((t.value for t in tokens[index + 1 : end] if t.kind == "string"), None)
            if path is None:
                raise ParseError("import directive without a path", token.start)
            return SourceUnitPart(PartKind.IMPORT, token.start, tokens[end].end, path=path), end + 1

        if keyword == "abstract":
            following = _peek(tokens, index + 1)
            if following is None or following.value != "contract":
                raise ParseError("expected 'contract' after 'abstract'", token.start)
            return self._parse_contract(source, tokens, index, index + 1)

        if keyword in _CONTRACT_KEYWORDS:
            return self._parse_contract(source, tokens, index, index)

        if keyword in ("enum", "struct"):
            name = _expect_ident(source, tokens, index + 1, keyword)
            brace = index + 2
            if _peek(tokens, brace) is None or tokens[brace].value != "{":
                raise ParseError(f"expected '{{' after {keyword} name", _offset(source, tokens, brace))
            close = _find_block_end(source, tokens, brace)
            kind = PartKind.ENUM if keyword == "enum" else PartKind.STRUCT
            return SourceUnitPart(kind, token.start, tokens[close].end, name=name), close + 1

        if keyword in ("event", "error"):
            name = _expect_ident(source, tokens, index + 1, keyword)
            end = _find_semicolon(source, tokens, index + 2)
            kind = PartKind.EVENT if keyword == "event" else PartKind.ERROR
            return SourceUnitPart(kind, token.start, tokens[end].end, name=name), end + 1

        if keyword == "function":
            return self._parse_function(source, tokens, index)

        if keyword == "type" and _peek(tokens, index + 1) is not None and tokens[index + 1].kind == "ident":
            name = tokens[index + 1].value
            end = _find_semicolon(source, tokens, index + 2)
            return SourceUnitPart(PartKind.TYPE, token.start, tokens[end].end, name=name), end + 1

        if keyword == "using":
            end = _find_semicolon(source, tokens, index + 1)
            return SourceUnitPart(PartKind.USING, token.start, tokens[end].end), end + 1

        if keyword in _NON_TOP_LEVEL:
            raise ParseError(f"'{keyword}' is not allowed at the top level", token.start)

        return self._parse_variable(source, tokens, index)

    def _parse_contract(
        self, source: str, tokens: list[_Token], start: int, keyword_index: int
    ) -> tuple[SourceUnitPart, int]:
        keyword = tokens[keyword_index].value
        name = _expect_ident(source, tokens, keyword_index + 1, keyword)

        # Skip the inheritance list up to the body.
        brace = _find_at_depth_zero(source, tokens, keyword_index + 2, stop={"{"}, forbid={";"})
        close = _find_block_end(source, tokens, brace)
        return SourceUnitPart(PartKind.CONTRACT, tokens[start].start, tokens[close].end, name=name), close + 1

    def _parse_function(self, source: str, tokens: list[_Token], index: int) -> tuple[SourceUnitPart, int]:
        name_token = _peek(tokens, index + 1)
        name = name_token.value if name_token is not None and name_token.kind == "ident" else None

        body_index = index + 2 if name is not None else index + 1
        if _peek(tokens, body_index) is None or tokens[body_index].value != "(":
            raise ParseError("expected '(' in function definition", _offset(source, tokens, body_index))

        end = _find_at_depth_zero(source, tokens, body_index, stop={"{", ";"})
        if tokens[end].value == "{":
            end = _find_block_end(source, tokens, end)
        return SourceUnitPart(PartKind.FUNCTION, tokens[index].start, tokens[end].end, name=name), end + 1

    def _parse_variable(self, source: str, tokens: list[_Token], index: int) -> tuple[SourceUnitPart, int]:
        end = _find_semicolon(source, tokens, index)

        # The declaration head is everything before the initializer.
        head: list[_Token] = []
        depth = 0
        for tok in tokens[index:end]:
            if tok.kind == "punct" and tok.value in _OPENERS:
                depth += 1
            elif tok.kind == "punct" and tok.value in _CLOSERS:
                depth -= 1
            elif depth == 0 and tok.kind == "punct" and tok.value == "=":
                break
            head.append(tok)

        last = head[-1] if head else None
        if len(head) < 2 or last is None or last.kind != "ident" or last.value in _NON_TOP_LEVEL:
            raise ParseError("expected a top-level declaration", tokens[index].start)

        return SourceUnitPart(PartKind.VARIABLE, tokens[index].start, tokens[end].end, name=last.value), end + 1


# =============================================================================
# Token scanning helpers
# =============================================================================


def _peek(tokens: list[_Token], index: int) -> _Token | None:
    return tokens[index] if index < len(tokens) else None


def _offset(source: str, tokens: list[_Token], index: int) -> int:
    tok = _peek(tokens, index)
    return tok.start if tok is not None else len(source)


def _expect_ident(source: str, tokens: list[_Token], index: int, what: str) -> str:
    tok = _peek(tokens, index)
    if tok is None or tok.kind != "ident":
        raise ParseError(f"expected a name after '{what}'", _offset(source, tokens, index))
    return tok.value


def _find_at_depth_zero(
    source: str,
    tokens: list[_Token],
    index: int,
    stop: set[str],
    forbid: set[str] | frozenset[str] = frozenset(),
) -> int:
    """Index of the first ``stop`` punctuation outside any brackets."""
    stack: list[str] = []
    for i in range(index, len(tokens)):
        tok = tokens[i]
        if tok.kind != "punct":
            continue
        if not stack and tok.value in stop:
            return i
        if not stack and tok.value in forbid:
            raise ParseError(f"unexpected {tok.value!r}", tok.start)
        if tok.value in _OPENERS:
            stack.append(_OPENERS[tok.value])
        elif tok.value in _CLOSERS:
            if not stack or stack.pop() != tok.value:
                raise ParseError(f"unbalanced {tok.value!r}", tok.start)
    expected = " or ".join(repr(s) for s in sorted(stop))
    raise ParseError(f"expected {expected}", len(source))


def _find_semicolon(source: str, tokens: list[_Token], index: int) -> int:
    return _find_at_depth_zero(source, tokens, index, stop={";"})


def _find_block_end(source: str, tokens: list[_Token], index: int) -> int:
    """Index of the ``}`` matching the ``{`` at ``index``."""
    stack: list[str] = []
    for i in range(index, len(tokens)):
        tok = tokens[i]
        if tok.kind != "punct":
            continue
        if tok.value in _OPENERS:
            stack.append(_OPENERS[tok.value])
        elif tok.value in _CLOSERS:
            if not stack or stack.pop() != tok.value:
                raise ParseError(f"unbalanced {tok.value!r}", tok.start)
            if not stack:
                return i
    raise ParseError("unterminated block", tokens[index].start)


__all__ = [
    "Comment",
    "CommentKind",
    "PartKind",
    "SolidityParser",
    "SourceParser",
    "SourceUnit",
    "SourceUnitPart",
]
