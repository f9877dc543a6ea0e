"""Argument list extraction and tokenizing."""
from __future__ import annotations

import re
from typing import List, Optional, Sequence, Tuple

from pg_procedure_updater.core.errors import HeaderFormatError
from pg_procedure_updater.core.models import ArgumentInfo, ArgumentTokens, DdlObjectKind
from pg_procedure_updater.core.scanner import comment_start, line_text
from pg_procedure_updater.core.splitter import find_closing_parenthesis, split_arguments

# Direction, name, type (possibly several words) and an optional default clause
ARGUMENT_MATCHER = re.compile(
    r"^(?:(?P<direction>INOUT|OUT|IN|VARIADIC)\s+)?"
    r"(?P<name>\S+)\s+"
    r"(?P<type>.+?)\s*"
    r"(?P<default>(?:\bDEFAULT\b|=).*)?$",
    re.IGNORECASE | re.DOTALL,
)

RETURNS_MATCHER = re.compile(r"\bRETURNS\b", re.IGNORECASE)

_DEFAULT_KEYWORD = re.compile(r"^DEFAULT\s+", re.IGNORECASE)
_REDUNDANT_TEXT_CAST = re.compile(r"('(?:[^']|'')*')::text\b", re.IGNORECASE)


def tokenize_argument(definition: str) -> Optional[ArgumentTokens]:
    """Split one argument definition into direction, name, type and default.

    Returns None when the text does not look like ``[direction] name type [default]``.
    """
    text = definition.strip()
    if not text:
        return None

    match = ARGUMENT_MATCHER.match(text)
    if not match:
        return None

    direction = match.group("direction")
    return ArgumentTokens(
        direction=direction.upper() if direction else None,
        name=match.group("name"),
        type=match.group("type").strip(),
        default=(match.group("default") or "").strip(),
    )


def normalize_default(default: str) -> str:
    """Rewrite ``DEFAULT x`` as ``= x`` and drop ``::text`` casts on string literals."""
    text = _DEFAULT_KEYWORD.sub("= ", default.strip())
    return _REDUNDANT_TEXT_CAST.sub(r"\1", text)


def format_argument(tokens: ArgumentTokens, name: Optional[str] = None) -> str:
    parts: List[str] = []
    if tokens.direction and tokens.direction != "IN":
        parts.append(tokens.direction)

    parts.append(name or tokens.name)
    parts.append(tokens.type)

    if tokens.default:
        parts.append(normalize_default(tokens.default))

    return " ".join(parts)


def split_header(kind: DdlObjectKind, header_text: str, source_description: str) -> Tuple[str, str]:
    """Return the text inside the argument list parentheses and the text after them."""
    returns_match = RETURNS_MATCHER.search(header_text)
    if kind is DdlObjectKind.FUNCTION and returns_match is None:
        raise HeaderFormatError(
            f"Header found, but 'RETURNS' not found and thus unable to parse the arguments "
            f"for {source_description}: {header_text}"
        )

    open_index = header_text.find("(")
    if open_index < 0 or (kind is DdlObjectKind.FUNCTION and open_index > returns_match.start()):
        raise HeaderFormatError(
            f"Header found, but '(' not found and thus cannot parse the arguments "
            f"for {source_description}: {header_text}"
        )

    close_index = find_closing_parenthesis(header_text, open_index)
    if close_index < 0:
        close_index = header_text.rfind(")")
        if close_index < open_index:
            raise HeaderFormatError(
                f"Header found, but ')' not found and thus cannot parse the arguments "
                f"for {source_description}: {header_text}"
            )

    text_after_arguments = header_text[close_index + 1:].strip()
    if kind is DdlObjectKind.FUNCTION and not RETURNS_MATCHER.search(text_after_arguments):
        raise HeaderFormatError(
            f"Header found, but 'RETURNS' does not follow the argument list "
            f"for {source_description}: {header_text}"
        )

    return header_text[open_index + 1:close_index], text_after_arguments


def parse_arguments(argument_text: str, header_lines: Sequence[str] = ()) -> List[ArgumentInfo]:
    """Split an argument list and attach each argument's trailing comment."""
    if not argument_text.strip():
        return []

    arguments = [ArgumentInfo(segment) for segment in split_arguments(argument_text)]
    attach_comments(arguments, header_lines)
    return arguments


def attach_comments(arguments: Sequence[ArgumentInfo], header_lines: Sequence[str]) -> None:
    for argument in arguments:
        tokens = tokenize_argument(argument.definition)
        if tokens is None:
            continue

        name_with_space = f"{tokens.name} ".lower()
        for header_line in header_lines:
            text = line_text(header_line)
            if name_with_space not in text.lower():
                continue

            comment_index = comment_start(text)
            if comment_index >= 0:
                argument.comment = text[comment_index:].strip()
            break
