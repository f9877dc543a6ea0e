"""Line-level scanning of CREATE OR REPLACE PROCEDURE/FUNCTION statements.

Scanning works one line at a time on a :class:`LineStream`. Lines are kept
exactly as read (line endings included) so that objects which are not
rewritten can be copied to the output unchanged.
"""
from __future__ import annotations

import re
from typing import Iterable, Iterator, Optional, Tuple

from pg_procedure_updater.core.errors import UnterminatedObjectError
from pg_procedure_updater.core.models import DdlObjectKind, ScannedObject
from pg_procedure_updater.core.splitter import quoted_regions

OBJECT_NAME_MATCHER = re.compile(
    r"CREATE\s+OR\s+REPLACE\s+(?P<object_type>PROCEDURE|FUNCTION)\s*(?P<object_name>[^\s(]+)",
    re.IGNORECASE,
)

# $$, $_$ or $body$, either after "AS " or at the start of the line
DOLLAR_MATCHER = re.compile(r"(\bAS +|^ *)(?P<delimiter>\$[^$]*\$)", re.IGNORECASE)

CREATE_OR_REPLACE = "CREATE OR REPLACE"


class LineStream:
    """Iterator over raw lines that tracks the current line number."""

    def __init__(self, lines: Iterable[str]) -> None:
        self._lines: Iterator[str] = iter(lines)
        self.line_number = 0

    def __iter__(self) -> "LineStream":
        return self

    def __next__(self) -> str:
        line = next(self._lines)
        self.line_number += 1
        return line

    def read_line(self) -> Optional[str]:
        try:
            return next(self)
        except StopIteration:
            return None


def line_text(line: str) -> str:
    return line.rstrip("\r\n")


def line_ending(line: str, default: str = "\n") -> str:
    if line.endswith("\r\n"):
        return "\r\n"
    if line.endswith("\n"):
        return "\n"
    if line.endswith("\r"):
        return "\r"
    return default


def is_blank(line: str) -> bool:
    return not line.strip()


def comment_start(text: str) -> int:
    """Index of the ``--`` that starts a line comment, or -1.

    A ``--`` inside a quoted literal, such as ``_sep text = '--'``, is not a comment.
    """
    regions = quoted_regions(text)
    index = text.find("--")
    while index >= 0:
        enclosing = next((end for start, end in regions if start < index <= end), None)
        if enclosing is None:
            return index
        index = text.find("--", enclosing + 1)
    return -1


def remove_comment(line: str) -> str:
    """Strip a trailing ``--`` comment and surrounding whitespace."""
    text = line_text(line)
    comment_index = comment_start(text)
    if comment_index >= 0:
        text = text[:comment_index]
    return text.strip()


def starts_object(line: str) -> bool:
    return line.strip().upper().startswith(CREATE_OR_REPLACE)


def parse_object_start(line: str) -> Optional[Tuple[DdlObjectKind, str]]:
    """Return the kind and schema-qualified name declared on a CREATE OR REPLACE line."""
    match = OBJECT_NAME_MATCHER.search(remove_comment(line))
    if not match:
        return None
    return DdlObjectKind.parse(match.group("object_type")), match.group("object_name").strip()


def scan_header(
    stream: LineStream,
    first_line: str,
    kind: DdlObjectKind,
    qualified_name: str,
    source_description: str,
) -> Tuple[ScannedObject, bool]:
    """Read header lines up to and including the line with the opening body delimiter.

    ``first_line`` is the CREATE OR REPLACE line, already consumed from the
    stream. Returns the scanned header and whether the body delimiter also
    closes on that same line (a single-line object).
    """
    start_line = stream.line_number
    header_lines = [first_line]
    header_parts = [remove_comment(first_line)]
    match = DOLLAR_MATCHER.search(header_parts[0])

    while match is None:
        line = stream.read_line()
        if line is None:
            raise UnterminatedObjectError(
                f"Did not find the body delimiter for {source_description}",
                source_description,
                stream.line_number,
            )

        header_lines.append(line)
        if is_blank(line):
            continue

        if OBJECT_NAME_MATCHER.search(line):
            raise UnterminatedObjectError(
                f"Found the next object before finding the body delimiter for {source_description}: "
                f"{line_text(line).strip()}",
                source_description,
                stream.line_number,
            )

        # Comments are left out of the header text since they can contain misleading keywords
        stripped = remove_comment(line)
        if stripped:
            header_parts.append(stripped)
        match = DOLLAR_MATCHER.search(stripped)

    delimiter = match.group("delimiter")
    scanned = ScannedObject(
        kind=kind,
        qualified_name=qualified_name,
        header_lines=header_lines,
        header_text=" ".join(header_parts),
        body_delimiter=delimiter,
        start_line=start_line,
    )

    closing_line = header_parts[-1]
    body_closed = delimiter in closing_line[match.end():]
    return scanned, body_closed


def scan_body(stream: LineStream, scanned: ScannedObject, source_description: str) -> None:
    """Append body lines to ``scanned`` until the body delimiter recurs."""
    delimiter = scanned.body_delimiter

    while True:
        line = stream.read_line()
        if line is None:
            raise UnterminatedObjectError(
                f"Did not find closing body delimiter {delimiter} for {source_description}",
                source_description,
                stream.line_number,
            )

        if is_blank(line):
            scanned.body_lines.append(line)
            continue

        if delimiter in line:
            scanned.body_lines.append(line)
            return

        if OBJECT_NAME_MATCHER.search(line):
            raise UnterminatedObjectError(
                f"Found the next object before finding closing body delimiter {delimiter} "
                f"for {source_description}: {line_text(line).strip()}",
                source_description,
                stream.line_number,
            )

        scanned.body_lines.append(line)


def scan_object(
    stream: LineStream,
    first_line: str,
    kind: DdlObjectKind,
    qualified_name: str,
    source_description: str,
) -> ScannedObject:
    """Read one complete object: header, then body unless it closed on the header line."""
    scanned, body_closed = scan_header(stream, first_line, kind, qualified_name, source_description)
    if not body_closed:
        scan_body(stream, scanned, source_description)
    return scanned
