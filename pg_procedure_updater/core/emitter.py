from __future__ import annotations

from typing import List, Sequence

from pg_procedure_updater.core.models import ParsedObject
from pg_procedure_updater.core.reconciler import ReconciledArgument
from pg_procedure_updater.core.scanner import line_text


def render_object(
    qualified_name: str,
    replacement: ParsedObject,
    arguments: Sequence[ReconciledArgument],
    indent: str = "    ",
    newline: str = "\n",
    emit_argument_comments: bool = False,
) -> List[str]:
    """Render the rewritten object as output lines, each ending in ``newline``.

    The name is the one used in the source script; everything after the
    argument names comes from the replacement.
    """
    lines: List[str] = [
        f"CREATE OR REPLACE {replacement.kind.value} {qualified_name} {'(' if arguments else '()'}"
    ]

    index_end = len(arguments) - 1
    for i, argument in enumerate(arguments):
        text = f"{indent}{argument.text}{',' if i < index_end else ''}"
        if emit_argument_comments and argument.comment:
            text = f"{text}  {argument.comment}"
        lines.append(text)

    if arguments:
        lines.append(")")

    lines.extend(replacement.header_clauses)

    rendered = [f"{line}{newline}" for line in lines]
    rendered.extend(f"{line_text(body_line)}{newline}" for body_line in replacement.body_lines)
    return rendered
