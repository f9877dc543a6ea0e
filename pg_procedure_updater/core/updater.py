"""Rewrites the procedures and functions in a SQL script using per-object .sql files.

The script is read once, top to bottom. Lines outside of CREATE OR REPLACE
PROCEDURE/FUNCTION statements are copied as-is. For each statement with a
matching .sql file, the argument list, header clauses and body are replaced
with the ones from that file, keeping the script's argument name casing.
"""
from __future__ import annotations

from pathlib import Path
from typing import Iterable, List, Optional, Protocol, Tuple

from pg_procedure_updater.core.arguments import parse_arguments, split_header
from pg_procedure_updater.core.comparator import SignatureComparator
from pg_procedure_updater.core.diff_generator import DiffGenerator
from pg_procedure_updater.core.emitter import render_object
from pg_procedure_updater.core.errors import HeaderFormatError, ProcedureUpdateError, UnterminatedObjectError
from pg_procedure_updater.core.events import EventCallback, EventReporter
from pg_procedure_updater.core.models import STATUS, DdlObjectKind, ObjectOutcome, OverloadIndex, UpdateResult
from pg_procedure_updater.core.options import UpdaterOptions
from pg_procedure_updater.core.overloads import OverloadResolver
from pg_procedure_updater.core.reconciler import ArgumentReconciler
from pg_procedure_updater.core.scanner import (
    LineStream,
    is_blank,
    line_ending,
    line_text,
    parse_object_start,
    scan_object,
    starts_object,
)
from pg_procedure_updater.utils.logger import get_logger
from pg_procedure_updater.utils.sql_files import ScriptFolder, read_script_lines, replacement_file_name

logger = get_logger(__name__)


class ReplacementLocator(Protocol):
    def find(self, qualified_name: str) -> Optional[Path]:
        ...


def format_update_status(objects_updated: int, objects_processed: int, processing_complete: bool = False) -> str:
    counts = f"{' ' if objects_updated < 99 else ''}{objects_updated} / {objects_processed}"
    verb = "were" if processing_complete else "have been"
    return f"{counts:<9} procedures or functions {verb} updated using .sql files"


class ProcedureListUpdater:
    def __init__(
        self,
        options: UpdaterOptions,
        locator: Optional[ReplacementLocator] = None,
        event_callback: Optional[EventCallback] = None,
    ) -> None:
        self.options = options
        self.locator = locator
        self.reporter = EventReporter(event_callback)
        self.resolver = OverloadResolver(self.reporter, options.encoding, options.argument_indent)
        self.reconciler = ArgumentReconciler(self.reporter, options.return_code_arguments)

    def process_file(self) -> UpdateResult:
        """Update the input file and write the result next to it.

        The output file is only written once the whole script was processed;
        a malformed object in the script returns a failed result instead.
        """
        try:
            self.options.validate()
        except ValueError as ex:
            self.reporter.error(str(ex))
            return self._failed()

        input_path = Path(self.options.input_file_path)
        if not input_path.is_file():
            self.reporter.error(f"Input file not found: {input_path.resolve()}")
            return self._failed()

        if self.locator is None:
            try:
                self.locator = ScriptFolder(self.options.sql_files_directory, self.options.recurse)
            except ValueError as ex:
                self.reporter.error(str(ex))
                return self._failed()

        output_path = self.options.resolved_output_path()
        self.reporter.info(f"Reading {input_path}")
        self.reporter.info(f"Writing {output_path}")

        try:
            lines, script_encoding = read_script_lines(input_path, self.options.encoding)
            result = self.update_lines(lines)
        except UnterminatedObjectError as ex:
            self.reporter.error(f"{ex}; aborting", object_name=ex.source_description, file=str(input_path))
            return self._failed()
        except ProcedureUpdateError as ex:
            self.reporter.error(str(ex), file=str(input_path))
            return self._failed()
        except OSError as ex:
            self.reporter.error(f"Error reading {input_path}: {ex}", file=str(input_path))
            return self._failed()

        # Written back in the encoding the script was read with so untouched lines keep their bytes
        try:
            output_path.parent.mkdir(parents=True, exist_ok=True)
            with output_path.open("w", encoding=script_encoding, newline="") as f:
                f.writelines(result.output_lines)
        except UnicodeEncodeError as ex:
            self.reporter.error(
                f"Updated text cannot be written as {script_encoding}, the encoding of {input_path}: {ex}",
                file=str(output_path),
            )
            return self._failed()
        except OSError as ex:
            self.reporter.error(f"Error writing {output_path}: {ex}", file=str(output_path))
            return self._failed()

        result.output_path = output_path
        self.reporter.info(f"Processed {result.lines_read} lines in the input file")
        self.reporter.info(format_update_status(result.objects_updated, result.objects_processed, processing_complete=True))
        return result

    def update_lines(self, lines: Iterable[str]) -> UpdateResult:
        """Process a whole script given as lines (line endings included).

        Raises UnterminatedObjectError when a matched object's header or body
        is not terminated.
        """
        stream = LineStream(lines)
        output: List[str] = []
        outcomes: List[ObjectOutcome] = []
        overloads = OverloadIndex()

        for line in stream:
            if is_blank(line) or not starts_object(line):
                output.append(line)
                continue

            declared = parse_object_start(line)
            if declared is None:
                self.reporter.info(
                    f"Unable to parse out the procedure or function name from {line_text(line).strip()}",
                    line=line_text(line),
                )
                output.append(line)
                continue

            kind, name = declared
            occurrence = overloads.register(name)

            replacement_file = self.locator.find(name) if self.locator else None
            if replacement_file is None:
                self.reporter.warning(
                    f"DDL file not found in the SQL files directory: {replacement_file_name(name)}",
                    object_name=name,
                )
                outcomes.append(ObjectOutcome(kind, name, occurrence, STATUS["NO_REPLACEMENT"], stream.line_number))
                output.append(line)
                continue

            outcome, object_lines = self._update_object(stream, line, kind, name, occurrence, replacement_file)
            outcomes.append(outcome)
            output.extend(object_lines)

            if len(outcomes) % 25 == 0:
                updated = sum(1 for o in outcomes if o.status == STATUS["UPDATED"])
                processed = sum(1 for o in outcomes if o.status != STATUS["NO_REPLACEMENT"])
                logger.info(format_update_status(updated, processed))

        return UpdateResult(
            success=True,
            lines_read=stream.line_number,
            outcomes=outcomes,
            events=self.reporter.events,
            output_lines=output,
        )

    def _update_object(
        self,
        stream: LineStream,
        first_line: str,
        kind: DdlObjectKind,
        name: str,
        occurrence: int,
        replacement_file: Path,
    ) -> Tuple[ObjectOutcome, List[str]]:
        description = f"{kind.label} {name}"
        start_line = stream.line_number

        scanned = scan_object(stream, first_line, kind, name, description)
        original_lines = scanned.raw_lines()

        def passed_through(status: str, message: str) -> Tuple[ObjectOutcome, List[str]]:
            outcome = ObjectOutcome(kind, name, occurrence, status, start_line, replacement_file, message=message)
            return outcome, original_lines

        try:
            argument_text, _text_after_arguments = split_header(kind, scanned.header_text, description)
        except HeaderFormatError as ex:
            self.reporter.warning(str(ex), object_name=name, line=scanned.header_text)
            return passed_through(STATUS["SOURCE_UNPARSED"], str(ex))

        source_arguments = parse_arguments(argument_text, scanned.header_lines)
        name_map = self.reconciler.build_map(kind, name, source_arguments)

        if self.options.verbose:
            logger.info(f"Reading file {replacement_file.name}")

        events_before = len(self.reporter.events)
        replacement = self.resolver.resolve(replacement_file, kind, name, occurrence)
        if replacement is None:
            new_events = self.reporter.events[events_before:]
            message = new_events[-1].message if new_events else f"Unable to use {replacement_file}"
            return passed_through(STATUS["REPLACEMENT_FAILED"], message)

        arguments = self.reconciler.reconcile(kind, name, replacement.arguments, name_map)
        rendered = render_object(
            name,
            replacement,
            arguments,
            indent=self.options.argument_indent,
            newline=line_ending(first_line),
            emit_argument_comments=self.options.emit_argument_comments,
        )

        diff = DiffGenerator(original_lines, rendered)
        if self.options.verbose:
            for diff_line in diff.unified(name):
                logger.debug(diff_line)

        outcome = ObjectOutcome(
            kind,
            name,
            occurrence,
            STATUS["UPDATED"],
            start_line,
            replacement_file,
            changed_lines=diff.changed_line_count(),
            argument_diff=SignatureComparator(source_arguments, replacement.arguments).compare(),
        )
        return outcome, rendered

    def _failed(self) -> UpdateResult:
        return UpdateResult(success=False, events=self.reporter.events)
