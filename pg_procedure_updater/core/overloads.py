"""Locate and parse the matching overload of an object inside its replacement file."""
from __future__ import annotations

from pathlib import Path
from typing import Optional, Sequence

from pg_procedure_updater.core.arguments import parse_arguments, split_header
from pg_procedure_updater.core.errors import HeaderFormatError, UnterminatedObjectError
from pg_procedure_updater.core.events import EventReporter
from pg_procedure_updater.core.header_clauses import header_clauses
from pg_procedure_updater.core.models import DdlObjectKind, OverloadIndex, ParsedObject, ScannedObject
from pg_procedure_updater.core.scanner import (
    LineStream,
    is_blank,
    line_text,
    parse_object_start,
    scan_object,
    starts_object,
)
from pg_procedure_updater.utils.sql_files import object_key, read_script_lines


def same_object_name(first: str, second: str) -> bool:
    return object_key(first) == object_key(second)


class OverloadResolver:
    """Finds the N-th definition of an object in a replacement file.

    Every lookup starts from the beginning of the file with its own
    :class:`OverloadIndex`; nothing is cached between lookups.
    """

    def __init__(self, reporter: EventReporter, encoding: str = "utf-8", indent: str = "    ") -> None:
        self.reporter = reporter
        self.encoding = encoding
        self.indent = indent

    def resolve(
        self,
        path: Path,
        kind: DdlObjectKind,
        qualified_name: str,
        occurrence: int = 1,
    ) -> Optional[ParsedObject]:
        try:
            lines, _encoding = read_script_lines(path, self.encoding)
        except OSError as ex:
            self.reporter.warning(f"Unable to read {path}: {ex}", object_name=qualified_name, file=str(path))
            return None
        return self.resolve_lines(lines, kind, qualified_name, occurrence, path)

    def resolve_lines(
        self,
        lines: Sequence[str],
        kind: DdlObjectKind,
        qualified_name: str,
        occurrence: int = 1,
        path: Optional[Path] = None,
    ) -> Optional[ParsedObject]:
        file_label = str(path) if path else "<replacement>"
        source_description = f"file {file_label}"
        stream = LineStream(lines)
        overloads = OverloadIndex()

        for line in stream:
            if is_blank(line) or not starts_object(line):
                continue

            declared = parse_object_start(line)
            if declared is None:
                self._warn(
                    f'Unable to parse out the {kind.label} name from line "{line_text(line).strip()}" in file {file_label}',
                    qualified_name, file_label,
                )
                return None

            found_kind, found_name = declared

            if not same_object_name(found_name, qualified_name):
                self._warn(
                    f"{kind.label.capitalize()} name in .sql file did not match the expected name ({qualified_name}): "
                    f'see "{line_text(line).strip()}" in file {file_label}',
                    qualified_name, file_label,
                )
                return None

            if found_kind is not kind:
                self._warn(
                    f"Object type in .sql file did not match the expected type ({kind.label}): "
                    f'see "{line_text(line).strip()}" in file {file_label}',
                    qualified_name, file_label,
                )
                return None

            found_occurrence = overloads.register(found_name)

            try:
                scanned = scan_object(stream, line, found_kind, found_name, source_description)
            except UnterminatedObjectError as ex:
                self._warn(str(ex), qualified_name, file_label)
                return None

            if found_occurrence < occurrence:
                self.reporter.debug(f"Looking for overload {occurrence} of {kind.label} {qualified_name}")
                continue

            return self._parse(scanned, source_description, path)

        found = overloads.total()
        if found == 0:
            self._warn(f'Did not find "CREATE OR REPLACE" in file {file_label}', qualified_name, file_label)
        else:
            self._warn(
                f"Found overload {found} but not overload {occurrence} in file {file_label}",
                qualified_name, file_label,
            )
        return None

    def _parse(self, scanned: ScannedObject, source_description: str, path: Optional[Path]) -> Optional[ParsedObject]:
        try:
            argument_text, text_after_arguments = split_header(scanned.kind, scanned.header_text, source_description)
            clauses = header_clauses(
                scanned.kind,
                text_after_arguments,
                scanned.body_delimiter,
                source_description,
                self.reporter,
                self.indent,
            )
        except HeaderFormatError as ex:
            self._warn(str(ex), scanned.qualified_name, str(path) if path else None)
            return None

        return ParsedObject(
            kind=scanned.kind,
            qualified_name=scanned.qualified_name,
            arguments=parse_arguments(argument_text, scanned.header_lines),
            header_clauses=clauses,
            body_lines=scanned.body_lines,
            body_delimiter=scanned.body_delimiter,
            source_file=path,
        )

    def _warn(self, message: str, object_name: str, file: Optional[str]) -> None:
        self.reporter.warning(message, object_name=object_name, file=file)
