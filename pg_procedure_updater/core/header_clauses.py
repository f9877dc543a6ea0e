"""Split the header text that follows the argument list into emission-ready clauses.

For a procedure the text is split into the options before LANGUAGE, the
LANGUAGE clause and the ``AS <delimiter>`` clause. A function first has its
return type extracted; a ``RETURNS TABLE (...)`` column list is expanded to
one column per line.
"""
from __future__ import annotations

import re
from typing import List, Optional, Tuple

from pg_procedure_updater.core.errors import HeaderFormatError
from pg_procedure_updater.core.events import EventReporter
from pg_procedure_updater.core.models import DdlObjectKind
from pg_procedure_updater.core.splitter import find_closing_parenthesis, split_arguments

# Example matches:
#   RETURNS integer
#   RETURNS SETOF public.pg_stat_statements
#   RETURNS timestamp without time zone
#   RETURNS numeric(10,2)
RETURNS_MATCHER = re.compile(
    r"\bRETURNS\s+(?P<return_type>(?:SETOF\s+)?(?:"
    r"timestamp(?:\s*\(\d+\))?\s+with(?:out)?\s+time\s+zone"
    r"|time(?:\s*\(\d+\))?\s+with(?:out)?\s+time\s+zone"
    r"|character\s+varying(?:\s*\(\d+\))?"
    r"|bit\s+varying(?:\s*\(\d+\))?"
    r"|double\s+precision"
    r"|[^\s(]+(?:\([^)]*\))?"
    r"))\s*(?P<language_and_options>.*)",
    re.IGNORECASE | re.DOTALL,
)

RETURNS_TABLE_MATCHER = re.compile(r"\bRETURNS\s+TABLE\s*\(", re.IGNORECASE)

LANGUAGE_MATCHER = re.compile(r"\bLANGUAGE\b", re.IGNORECASE)


def split_language_and_body_clauses(
    text: str,
    body_delimiter: str,
    source_description: str,
    reporter: Optional[EventReporter] = None,
) -> List[str]:
    as_match = re.search(r"\bAS\s+" + re.escape(body_delimiter), text, re.IGNORECASE)
    language_match = LANGUAGE_MATCHER.search(text)

    clauses: List[str] = []

    if as_match and language_match and language_match.start() < as_match.start():
        options = text[:language_match.start()].strip()
        if options:
            clauses.append(options)
        clauses.append(text[language_match.start():as_match.start()].strip())
        clauses.append(text[as_match.start():].strip())
        return clauses

    if as_match:
        options = text[:as_match.start()].strip()
        if options:
            clauses.append(options)
        clauses.append(text[as_match.start():].strip())
        return clauses

    if reporter:
        reporter.warning(
            f'Did not find "LANGUAGE" and "AS {body_delimiter}" in the header text after the arguments '
            f"for {source_description}",
            line=text,
        )

    clauses.append(text.strip())
    return clauses


def split_returns_table(text: str, source_description: str) -> Tuple[List[str], str]:
    """Return the columns of a ``RETURNS TABLE (...)`` clause and the text that follows it."""
    table_match = RETURNS_TABLE_MATCHER.search(text)
    if not table_match:
        raise HeaderFormatError(f"'RETURNS TABLE' not found for {source_description}: {text}")

    open_index = table_match.end() - 1
    close_index = find_closing_parenthesis(text, open_index)
    if close_index < 0:
        raise HeaderFormatError(
            f"Header found, but unable to determine the column list for the table returned by "
            f"{source_description}: {text}"
        )

    columns = [column for column in split_arguments(text[open_index + 1:close_index]) if column]
    if not columns:
        raise HeaderFormatError(f"The table returned by {source_description} does not define any columns")

    return columns, text[close_index + 1:].strip()


def header_clauses(
    kind: DdlObjectKind,
    text_after_arguments: str,
    body_delimiter: str,
    source_description: str,
    reporter: Optional[EventReporter] = None,
    indent: str = "    ",
) -> List[str]:
    """Clauses to write after the argument list, in order."""
    if kind is not DdlObjectKind.FUNCTION:
        return split_language_and_body_clauses(text_after_arguments, body_delimiter, source_description, reporter)

    if RETURNS_TABLE_MATCHER.search(text_after_arguments):
        columns, remainder = split_returns_table(text_after_arguments, source_description)

        clauses = ["RETURNS TABLE ("]
        index_end = len(columns) - 1
        for i, column in enumerate(columns):
            column_name_and_type = column.replace("public.citext", "citext")
            clauses.append(f"{indent}{column_name_and_type}{',' if i < index_end else ''}")
        clauses.append(")")

        clauses.extend(split_language_and_body_clauses(remainder, body_delimiter, source_description, reporter))
        return clauses

    returns_match = RETURNS_MATCHER.search(text_after_arguments)
    if not returns_match:
        raise HeaderFormatError(f"Header found, but unable to determine the return type of {source_description}")

    return_type = " ".join(returns_match.group("return_type").split())
    clauses = [f"RETURNS {return_type}"]
    clauses.extend(
        split_language_and_body_clauses(
            returns_match.group("language_and_options"), body_delimiter, source_description, reporter
        )
    )
    return clauses
