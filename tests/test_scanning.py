import os
import sys

# Ensure project root is on sys.path so "pg_procedure_updater" package is importable
CURRENT_DIR = os.path.dirname(__file__)
PROJECT_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

import pytest

from pg_procedure_updater.core.errors import HeaderFormatError, UnterminatedObjectError
from pg_procedure_updater.core.events import EventReporter, Severity
from pg_procedure_updater.core.header_clauses import (
    header_clauses,
    split_language_and_body_clauses,
    split_returns_table,
)
from pg_procedure_updater.core.models import ArgumentInfo, DdlObjectKind
from pg_procedure_updater.core.overloads import OverloadResolver, same_object_name
from pg_procedure_updater.core.reconciler import ArgumentReconciler
from pg_procedure_updater.core.scanner import LineStream, comment_start, parse_object_start, remove_comment, scan_object


def _scan(text):
    stream = LineStream(text.splitlines(keepends=True))
    first_line = next(stream)
    kind, name = parse_object_start(first_line)
    return stream, scan_object(stream, first_line, kind, name, f"{kind.label} {name}")


OVERLOADED = """\
-- Two overloads in one file
CREATE OR REPLACE FUNCTION public.lookup(_id int) RETURNS text LANGUAGE sql AS $$
    SELECT 'by id';
$$;

CREATE OR REPLACE FUNCTION public.lookup(_name text) RETURNS text LANGUAGE sql AS $$
    SELECT 'by name';
$$;
"""


def test_parse_object_start_reads_kind_and_name():
    assert parse_object_start("create or replace procedure public.do_work(") == (
        DdlObjectKind.PROCEDURE,
        "public.do_work",
    )
    assert parse_object_start("CREATE OR REPLACE FUNCTION sw.get_value ()  -- comment") == (
        DdlObjectKind.FUNCTION,
        "sw.get_value",
    )
    assert parse_object_start("CREATE OR REPLACE VIEW v AS SELECT 1;") is None


def test_scan_object_splits_header_and_body():
    text = (
        "CREATE OR REPLACE PROCEDURE public.p (\n"
        "    IN _a int,   -- first\n"
        "\n"
        "    INOUT _b text\n"
        ")\n"
        "LANGUAGE plpgsql\n"
        "AS $body$\n"
        "BEGIN\n"
        "\n"
        "    _b := 'x';\n"
        "END\n"
        "$body$;\n"
        "-- after\n"
    )
    stream, scanned = _scan(text)

    assert scanned.body_delimiter == "$body$"
    assert len(scanned.header_lines) == 7
    assert "-- first" not in scanned.header_text
    assert scanned.header_text.startswith("CREATE OR REPLACE PROCEDURE public.p ( IN _a int,")
    assert scanned.header_text.endswith("LANGUAGE plpgsql AS $body$")
    # Blank body lines are kept as-is
    assert scanned.body_lines == ["BEGIN\n", "\n", "    _b := 'x';\n", "END\n", "$body$;\n"]
    assert "".join(scanned.raw_lines()) + "-- after\n" == text
    assert stream.read_line() == "-- after\n"


def test_single_line_object_closes_on_its_header_line():
    stream, scanned = _scan(
        "CREATE OR REPLACE FUNCTION public.f(_x int = 1) RETURNS int LANGUAGE plpgsql AS $$ BEGIN RETURN _x; END $$;\n"
        "SELECT 1;\n"
    )
    assert scanned.body_delimiter == "$$"
    assert scanned.body_lines == []
    assert stream.read_line() == "SELECT 1;\n"


def test_next_object_before_header_delimiter_is_fatal():
    with pytest.raises(UnterminatedObjectError) as excinfo:
        _scan(
            "CREATE OR REPLACE PROCEDURE public.p (IN _a int)\n"
            "LANGUAGE plpgsql\n"
            "CREATE OR REPLACE PROCEDURE public.q () LANGUAGE plpgsql AS $$\n"
        )
    assert "public.p" in str(excinfo.value)
    assert excinfo.value.line_number == 3


def test_next_object_before_closing_delimiter_is_fatal():
    with pytest.raises(UnterminatedObjectError):
        _scan(
            "CREATE OR REPLACE PROCEDURE public.p () LANGUAGE plpgsql AS $body$\n"
            "BEGIN\n"
            "CREATE OR REPLACE PROCEDURE public.q () LANGUAGE plpgsql AS $$\n"
            "$$;\n"
        )


def test_missing_closing_delimiter_is_fatal():
    with pytest.raises(UnterminatedObjectError) as excinfo:
        _scan("CREATE OR REPLACE FUNCTION public.g() RETURNS int LANGUAGE sql AS $$\nSELECT 1;\n")
    assert "Did not find closing body delimiter $$" in str(excinfo.value)


def test_dash_pairs_inside_literals_are_not_comments():
    assert comment_start("_sep text = '--', _b int -- note") == 25
    assert comment_start("SELECT 'a--b'") == -1
    assert remove_comment("IN _sep text = '--')  -- trailing") == "IN _sep text = '--')"


def test_default_with_dashes_keeps_header_delimiter():
    stream, scanned = _scan(
        "CREATE OR REPLACE FUNCTION public.f(_sep text = '--') RETURNS text LANGUAGE sql AS $$\n"
        "SELECT _sep;\n"
        "$$;\n"
        "CREATE OR REPLACE FUNCTION public.g() RETURNS int LANGUAGE sql AS $$\n"
    )
    assert scanned.body_delimiter == "$$"
    assert scanned.header_text.endswith("LANGUAGE sql AS $$")
    assert scanned.body_lines == ["SELECT _sep;\n", "$$;\n"]
    assert stream.read_line().startswith("CREATE OR REPLACE FUNCTION public.g()")


def test_returns_table_columns_are_split_in_order():
    columns, remainder = split_returns_table("RETURNS TABLE(a int, b text) LANGUAGE sql AS $$", "function t")
    assert columns == ["a int", "b text"]
    assert remainder == "LANGUAGE sql AS $$"


def test_returns_table_clauses_are_rendered_one_column_per_line():
    clauses = header_clauses(
        DdlObjectKind.FUNCTION,
        "RETURNS TABLE (id int, code public.citext, amount numeric(10,2)) LANGUAGE sql STABLE AS $$",
        "$$",
        "function t",
    )
    assert clauses == [
        "RETURNS TABLE (",
        "    id int,",
        "    code citext,",
        "    amount numeric(10,2)",
        ")",
        "LANGUAGE sql STABLE",
        "AS $$",
    ]


def test_returns_table_without_closing_parenthesis_fails():
    with pytest.raises(HeaderFormatError):
        header_clauses(DdlObjectKind.FUNCTION, "RETURNS TABLE (id int LANGUAGE sql AS $$", "$$", "function t")


def test_function_return_type_clause():
    clauses = header_clauses(
        DdlObjectKind.FUNCTION,
        "RETURNS timestamp without time zone LANGUAGE plpgsql AS $_$",
        "$_$",
        "function ts",
    )
    assert clauses == ["RETURNS timestamp without time zone", "LANGUAGE plpgsql", "AS $_$"]

    clauses = header_clauses(DdlObjectKind.FUNCTION, "RETURNS SETOF record AS $$", "$$", "function s")
    assert clauses == ["RETURNS SETOF record", "AS $$"]


def test_procedure_clauses_split_into_three_segments():
    clauses = split_language_and_body_clauses("SECURITY DEFINER LANGUAGE plpgsql AS $$", "$$", "procedure p")
    assert clauses == ["SECURITY DEFINER", "LANGUAGE plpgsql", "AS $$"]

    assert split_language_and_body_clauses("LANGUAGE plpgsql AS $$", "$$", "procedure p") == [
        "LANGUAGE plpgsql",
        "AS $$",
    ]


def test_procedure_clauses_without_delimiter_warn_and_keep_text():
    reporter = EventReporter()
    clauses = split_language_and_body_clauses("LANGUAGE plpgsql", "$$", "procedure p", reporter)

    assert clauses == ["LANGUAGE plpgsql"]
    assert len(reporter.of_severity(Severity.WARNING)) == 1


def test_same_object_name_ignores_public_schema_and_case():
    assert same_object_name("public.Get_Value", "get_value")
    assert not same_object_name("sw.get_value", "get_value")


class TestOverloadResolver:
    def setup_method(self):
        self.reporter = EventReporter()
        self.resolver = OverloadResolver(self.reporter)
        self.lines = OVERLOADED.splitlines(keepends=True)

    def test_second_occurrence_returns_second_definition(self):
        parsed = self.resolver.resolve_lines(self.lines, DdlObjectKind.FUNCTION, "public.lookup", 2)

        assert parsed is not None
        assert [a.definition for a in parsed.arguments] == ["_name text"]
        assert parsed.body_lines[0] == "    SELECT 'by name';\n"
        assert parsed.header_clauses == ["RETURNS text", "LANGUAGE sql", "AS $$"]

    def test_first_occurrence_is_default(self):
        parsed = self.resolver.resolve_lines(self.lines, DdlObjectKind.FUNCTION, "lookup")
        assert [a.definition for a in parsed.arguments] == ["_id int"]

    def test_overload_count_spans_schema_qualified_and_bare_names(self):
        lines = (
            "CREATE OR REPLACE FUNCTION f(_a int) RETURNS int LANGUAGE sql AS $$ SELECT 1 $$;\n"
            "CREATE OR REPLACE FUNCTION public.f(_a text) RETURNS int LANGUAGE sql AS $$ SELECT 2 $$;\n"
        ).splitlines(keepends=True)

        parsed = self.resolver.resolve_lines(lines, DdlObjectKind.FUNCTION, "public.f", 2)

        assert parsed is not None
        assert [a.definition for a in parsed.arguments] == ["_a text"]

    def test_missing_overload_reports_found_count(self):
        parsed = self.resolver.resolve_lines(self.lines, DdlObjectKind.FUNCTION, "public.lookup", 3)

        assert parsed is None
        messages = [e.message for e in self.reporter.of_severity(Severity.WARNING)]
        assert any("Found overload 2 but not overload 3" in m for m in messages)

    def test_name_mismatch_fails_lookup(self):
        assert self.resolver.resolve_lines(self.lines, DdlObjectKind.FUNCTION, "public.other") is None
        assert "did not match the expected name" in self.reporter.events[-1].message

    def test_kind_mismatch_fails_lookup(self):
        assert self.resolver.resolve_lines(self.lines, DdlObjectKind.PROCEDURE, "public.lookup") is None
        assert "did not match the expected type" in self.reporter.events[-1].message

    def test_file_without_objects(self):
        assert self.resolver.resolve_lines(["-- nothing here\n"], DdlObjectKind.FUNCTION, "public.lookup") is None
        assert 'Did not find "CREATE OR REPLACE"' in self.reporter.events[-1].message


class TestArgumentReconciler:
    def setup_method(self):
        self.reporter = EventReporter()
        self.reconciler = ArgumentReconciler(self.reporter)

    def _reconcile(self, kind, source, replacement):
        name_map = self.reconciler.build_map(kind, "public.p", [ArgumentInfo(a) for a in source])
        return self.reconciler.reconcile(kind, "public.p", [ArgumentInfo(a) for a in replacement], name_map)

    def test_source_casing_wins(self):
        arguments = self._reconcile(DdlObjectKind.FUNCTION, ["_itemID int = 1"], ["_ITEMID bigint DEFAULT 5"])
        assert [a.text for a in arguments] == ["_itemID bigint = 5"]
        assert self.reporter.events == []

    def test_new_argument_is_reported_as_info(self):
        arguments = self._reconcile(DdlObjectKind.FUNCTION, ["_a int"], ["_a int", "_extra text"])

        assert [a.text for a in arguments] == ["_a int", "_extra text"]
        infos = self.reporter.of_severity(Severity.INFO)
        assert len(infos) == 1
        assert "does not have argument _extra" in infos[0].message

    def test_return_code_argument_is_not_reported(self):
        arguments = self._reconcile(DdlObjectKind.PROCEDURE, ["IN _a int"], ["IN _a int", "INOUT _RETURNCODE text = ''"])
        assert [a.text for a in arguments] == ["_a int", "INOUT _returnCode text = ''"]
        assert self.reporter.events == []

    def test_empty_argument_is_skipped_with_warning(self):
        arguments = self._reconcile(DdlObjectKind.PROCEDURE, ["IN _a int"], ["IN _a int", "", "INOUT _b text"])

        assert [a.text for a in arguments] == ["_a int", "INOUT _b text"]
        warnings = self.reporter.of_severity(Severity.WARNING)
        assert len(warnings) == 1
        assert "Argument 2 is empty" in warnings[0].message

    def test_trailing_comma_in_source_is_hinted(self):
        self.reconciler.build_map(DdlObjectKind.PROCEDURE, "public.p", [ArgumentInfo("IN _a int"), ArgumentInfo("")])
        assert "trailing comma" in self.reporter.events[-1].message

    def test_malformed_argument_is_written_raw(self):
        arguments = self._reconcile(DdlObjectKind.FUNCTION, ["_a int"], ["_a int", "oops"])

        assert arguments[1].text == "oops"
        assert len(self.reporter.of_severity(Severity.WARNING)) == 1

    def test_procedure_argument_without_direction_warns(self):
        arguments = self._reconcile(DdlObjectKind.PROCEDURE, ["IN _a int"], ["_a int"])
        assert [a.text for a in arguments] == ["_a int"]
        assert "did not have a direction" in self.reporter.events[-1].message

    def test_duplicate_source_argument_keeps_first_casing(self):
        name_map = self.reconciler.build_map(
            DdlObjectKind.FUNCTION, "public.p", [ArgumentInfo("_Value int"), ArgumentInfo("_VALUE text")]
        )
        assert name_map.preferred_name("_value") == "_Value"
        assert self.reporter.of_severity(Severity.INFO)
