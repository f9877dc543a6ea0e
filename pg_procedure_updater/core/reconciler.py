"""Merge argument casing from the source script into the replacement's arguments."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence

from pg_procedure_updater.core.arguments import format_argument, tokenize_argument
from pg_procedure_updater.core.events import EventReporter
from pg_procedure_updater.core.models import ArgumentInfo, DdlObjectKind

DEFAULT_RETURN_CODE_ARGUMENTS = ("_returnCode",)


@dataclass
class ReconciliationMap:
    """Source argument names keyed by lowercase name, plus their trailing comments."""

    casing: Dict[str, str] = field(default_factory=dict)
    comments: Dict[str, str] = field(default_factory=dict)

    def preferred_name(self, name: str) -> Optional[str]:
        return self.casing.get(name.lower())

    def __contains__(self, name: str) -> bool:
        return name.lower() in self.casing


@dataclass
class ReconciledArgument:
    text: str
    comment: str = ""


class ArgumentReconciler:
    def __init__(self, reporter: EventReporter, return_code_arguments: Iterable[str] = DEFAULT_RETURN_CODE_ARGUMENTS) -> None:
        self.reporter = reporter
        self._return_code_arguments = {name.lower(): name for name in return_code_arguments}

    def build_map(
        self,
        kind: DdlObjectKind,
        qualified_name: str,
        source_arguments: Sequence[ArgumentInfo],
    ) -> ReconciliationMap:
        name_map = ReconciliationMap()
        argument_count = len(source_arguments)

        for number, argument in enumerate(source_arguments, start=1):
            if not argument.definition.strip():
                hint = "; likely the final argument has a trailing comma" if number == argument_count else ""
                self.reporter.warning(
                    f"Argument {number} is empty for {kind.label} {qualified_name}{hint}",
                    object_name=qualified_name,
                )
                continue

            tokens = tokenize_argument(argument.definition)
            if tokens is None:
                self.reporter.warning(
                    f"Argument for {kind.label} {qualified_name} did not match the expected format: {argument}",
                    object_name=qualified_name,
                    line=argument.definition,
                )
                continue

            if tokens.name in name_map:
                self.reporter.info(
                    f"Argument name map for {kind.label} {qualified_name} already has argument {argument}; skipping",
                    object_name=qualified_name,
                )
                continue

            name_map.casing[tokens.name.lower()] = tokens.name
            if argument.comment:
                name_map.comments[tokens.name.lower()] = argument.comment

        return name_map

    def reconcile(
        self,
        kind: DdlObjectKind,
        qualified_name: str,
        replacement_arguments: Sequence[ArgumentInfo],
        name_map: ReconciliationMap,
    ) -> List[ReconciledArgument]:
        """Render the replacement's arguments using the source's argument names.

        Types, defaults and directions always come from the replacement.
        """
        reconciled: List[ReconciledArgument] = []

        for number, argument in enumerate(replacement_arguments, start=1):
            if not argument.definition.strip():
                self.reporter.warning(
                    f"Argument {number} is empty for {kind.label} {qualified_name}",
                    object_name=qualified_name,
                )
                continue

            tokens = tokenize_argument(argument.definition)
            if tokens is None:
                self.reporter.warning(
                    f"Argument for {kind.label} {qualified_name} did not match the expected format: {argument}",
                    object_name=qualified_name,
                    line=argument.definition,
                )
                reconciled.append(ReconciledArgument(argument.definition, argument.comment))
                continue

            if tokens.direction is None and kind is not DdlObjectKind.FUNCTION:
                self.reporter.warning(
                    f"Argument for {kind.label} {qualified_name} did not have a direction: {argument}",
                    object_name=qualified_name,
                )

            key = tokens.name.lower()
            name_to_use = name_map.preferred_name(tokens.name)

            if name_to_use is None and key in self._return_code_arguments:
                name_to_use = self._return_code_arguments[key]
            elif name_to_use is None:
                self.reporter.info(
                    f"Source file does not have argument {tokens.name} for {kind.label} {qualified_name}",
                    object_name=qualified_name,
                )
                name_to_use = tokens.name

            comment = name_map.comments.get(key) or argument.comment
            reconciled.append(ReconciledArgument(format_argument(tokens, name_to_use), comment))

        return reconciled
