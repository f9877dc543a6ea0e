"""Comma splitting that respects quoted literals and nested parentheses."""
from __future__ import annotations

from typing import List, Tuple

# NUL never appears in a SQL script, so the placeholder cannot collide with source text
COMMA_PLACEHOLDER = "\x00LITERAL_COMMA\x00"


def quoted_regions(text: str) -> List[Tuple[int, int]]:
    """Return (open, close) index pairs of the single-quoted literals in ``text``.

    Quotes are paired left to right. A doubled quote inside an open literal is
    an escaped quote and does not close it. An empty literal ('') is skipped,
    and an unmatched quote ends the search, leaving the rest of the text
    unquoted.
    """
    regions: List[Tuple[int, int]] = []
    start = 0

    while True:
        open_index = text.find("'", start)
        if open_index < 0:
            break

        close_index = _closing_quote(text, open_index)
        if close_index < 0:
            break

        if close_index == open_index + 1:
            start = close_index + 1
            continue

        regions.append((open_index, close_index))
        start = close_index + 1

    return regions


def _closing_quote(text: str, open_index: int) -> int:
    index = open_index + 1
    while True:
        quote_index = text.find("'", index)
        if quote_index < 0:
            return -1

        if quote_index == open_index + 1:
            return quote_index

        if quote_index + 1 < len(text) and text[quote_index + 1] == "'":
            index = quote_index + 2
            continue

        return quote_index


def _literal_mask(text: str) -> List[bool]:
    mask = [False] * len(text)
    for open_index, close_index in quoted_regions(text):
        for i in range(open_index, close_index + 1):
            mask[i] = True
    return mask


def protect_commas(text: str) -> str:
    """Replace commas inside literals or nested parentheses with the placeholder."""
    mask = _literal_mask(text)
    protected: List[str] = []
    depth = 0

    for index, char in enumerate(text):
        if mask[index]:
            protected.append(COMMA_PLACEHOLDER if char == "," else char)
            continue

        if char == "(":
            depth += 1
        elif char == ")" and depth > 0:
            depth -= 1
        elif char == "," and depth > 0:
            protected.append(COMMA_PLACEHOLDER)
            continue

        protected.append(char)

    return "".join(protected)


def split_arguments(text: str) -> List[str]:
    """Split a comma-delimited list, keeping commas that belong to literals.

    >>> split_arguments("_a int = 'x,y', _b int")
    ["_a int = 'x,y'", '_b int']
    """
    return [
        segment.replace(COMMA_PLACEHOLDER, ",").strip()
        for segment in protect_commas(text).split(",")
    ]


def find_closing_parenthesis(text: str, open_index: int) -> int:
    """Index of the parenthesis closing the one at ``open_index``, or -1."""
    mask = _literal_mask(text)
    depth = 0

    for index in range(open_index, len(text)):
        if mask[index]:
            continue
        char = text[index]
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
            if depth == 0:
                return index

    return -1
