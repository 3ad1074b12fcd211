"""
Static checks for SQL statements before they are bound and executed.

Hard failures (``InvalidStatement``):
- the statement is not a string;
- a quoted literal, quoted identifier or block comment is never closed.

Quoting rules are per dialect: MySQL honours backslash escapes, backtick
identifiers and ``#`` comments; PostgreSQL treats backslashes as literal
(outside ``E'...'``), understands ``$tag$`` dollar quoting and nested block
comments. Without a dialect only the standard SQL forms are recognised.

Advisories (logged and returned, never raised) for call sites that look
injection-prone:
- ``${`` anywhere in the statement (template-literal interpolation);
- a quote followed by ``+`` and a word character (string concatenation).

The advisories are pattern-based and will both miss real injection vectors and
flag safe statements.

Usage::

    warnings = validate_statement("SELECT * FROM t WHERE name = '${x}'", "mysql")
    # [{"kind": "template_literal", "message": "..."}]
"""

import logging
import re
from dataclasses import dataclass
from typing import Any

from boilerplate.db.dialects import DialectEnum, get_dialect
from boilerplate.db.errors import InvalidStatement

logger = logging.getLogger(__name__)

_CONCATENATION = re.compile(r"['\"`][^'\"`]*\+[^\n]*\w")

# $$ or $tag$ where the tag is an identifier that does not start with a digit
_DOLLAR_TAG = re.compile(r"\$(?:[^\W\d]\w*)?\$")


@dataclass(frozen=True)
class _Lexicon:
    """Which quoting and comment forms a dialect understands."""

    quotes: tuple[str, ...] = ("'", '"')
    backslash_quotes: tuple[str, ...] = ()
    hash_comments: bool = False
    dollar_quotes: bool = False
    escape_strings: bool = False
    nested_comments: bool = False
    strict_dash_comments: bool = False


_ANSI = _Lexicon()

_LEXICONS = {
    # backslash escapes in '...' and "..." (unless NO_BACKSLASH_ESCAPES),
    # `#` comments and "-- " followed by whitespace
    DialectEnum.MYSQL: _Lexicon(
        quotes=("'", '"', "`"),
        backslash_quotes=("'", '"'),
        hash_comments=True,
        strict_dash_comments=True,
    ),
    # standard_conforming_strings: backslashes are literal except in E'...'
    DialectEnum.POSTGRES: _Lexicon(
        dollar_quotes=True,
        escape_strings=True,
        nested_comments=True,
    ),
}


def _lexicon(dialect: DialectEnum | str | None) -> _Lexicon:
    if dialect is None:
        return _ANSI
    return _LEXICONS[get_dialect(dialect).name]


def _is_word(ch: str) -> bool:
    return bool(ch) and (ch.isalnum() or ch in "_$")


def _close_quote(sql: str, i: int, quote: str, backslash: bool) -> int:
    """Return the index just past the closing *quote*, or -1."""
    length = len(sql)
    while i < length:
        c = sql[i]
        if c == quote:
            if i + 1 < length and sql[i + 1] == quote:
                i += 2
                continue
            return i + 1
        if backslash and c == "\\":
            i += 2
            continue
        i += 1
    return -1


def _close_block_comment(sql: str, i: int, nested: bool) -> int:
    """Return the index just past the matching ``*/``, or -1."""
    depth = 1
    length = len(sql)
    while i < length:
        if sql.startswith("*/", i):
            depth -= 1
            i += 2
            if depth == 0:
                return i
            continue
        if nested and sql.startswith("/*", i):
            depth += 1
            i += 2
            continue
        i += 1
    return -1


def _find_unterminated(sql: str, lexicon: _Lexicon = _ANSI) -> str | None:
    """Return a description of the first unterminated construct, or None."""
    i = 0
    length = len(sql)

    while i < length:
        ch = sql[i]
        prev = sql[i - 1] if i else ""

        if ch in lexicon.quotes:
            backslash = ch in lexicon.backslash_quotes or (
                lexicon.escape_strings
                and ch == "'"
                and prev in ("e", "E")
                and not (i >= 2 and _is_word(sql[i - 2]))
            )
            end = _close_quote(sql, i + 1, ch, backslash)
            if end == -1:
                return f"unterminated {ch} quote starting at position {i}"
            i = end
            continue

        if lexicon.dollar_quotes and ch == "$" and not _is_word(prev):
            m = _DOLLAR_TAG.match(sql, i)
            if m:
                tag = m.group(0)
                end = sql.find(tag, m.end())
                if end == -1:
                    return f"unterminated {tag} quote starting at position {i}"
                i = end + len(tag)
                continue

        if ch == "-" and sql.startswith("--", i):
            after = sql[i + 2 : i + 3]
            if not lexicon.strict_dash_comments or not after or after.isspace():
                end = sql.find("\n", i)
                i = length if end == -1 else end + 1
                continue

        if ch == "#" and lexicon.hash_comments:
            end = sql.find("\n", i)
            i = length if end == -1 else end + 1
            continue

        if ch == "/" and sql.startswith("/*", i):
            end = _close_block_comment(sql, i + 2, lexicon.nested_comments)
            if end == -1:
                return f"unterminated block comment starting at position {i}"
            i = end
            continue

        i += 1

    return None


def validate_statement(
    statement: Any, dialect: DialectEnum | str | None = None
) -> list[dict[str, Any]]:
    """Validate *statement* and return advisory warnings.

    Raises ``InvalidStatement`` for non-string input or malformed quoting.
    Quoting and comment rules follow *dialect*; without one only standard
    SQL forms are recognised. An empty list means no advisory was raised.
    """
    if not isinstance(statement, str):
        raise InvalidStatement("All statements must be strings.")

    problem = _find_unterminated(statement, _lexicon(dialect))
    if problem is not None:
        raise InvalidStatement(f"Invalid SQL statement: {problem}")

    warnings: list[dict[str, Any]] = []
    if "${" in statement:
        warnings.append(
            {
                "kind": "template_literal",
                "message": "Potential SQL injection risk detected (template literal)",
            }
        )
    if _CONCATENATION.search(statement):
        warnings.append(
            {
                "kind": "string_concatenation",
                "message": "Potential SQL injection risk detected (string concatenation)",
            }
        )

    for w in warnings:
        logger.warning("%s in statement: %s", w["message"], statement)
    return warnings
