from __future__ import annotations

from typing import Any, Dict, Iterable, Sequence

from deepdiff import DeepDiff

from pg_procedure_updater.core.arguments import normalize_default, tokenize_argument
from pg_procedure_updater.core.models import STATUS, ArgumentInfo, ObjectOutcome


def argument_signature(arguments: Sequence[ArgumentInfo]) -> Dict[str, Dict[str, Any]]:
    """Comparable view of an argument list, keyed by lowercase argument name."""
    signature: Dict[str, Dict[str, Any]] = {}
    for position, argument in enumerate(arguments, start=1):
        tokens = tokenize_argument(argument.definition)
        if tokens is None:
            continue
        signature.setdefault(tokens.name.lower(), {
            "position": position,
            "direction": tokens.direction or "IN",
            "type": " ".join(tokens.type.lower().split()),
            "default": normalize_default(tokens.default),
        })
    return signature


class SignatureComparator:
    """Reports how a replacement changes an object's arguments."""

    def __init__(self, source_arguments: Sequence[ArgumentInfo], replacement_arguments: Sequence[ArgumentInfo]) -> None:
        self.source = argument_signature(source_arguments)
        self.replacement = argument_signature(replacement_arguments)

    def compare(self) -> str:
        """DeepDiff of the two signatures as JSON; empty when they are equivalent."""
        diff = DeepDiff(self.source, self.replacement)
        return diff.to_json() if diff else ""

    def is_identical(self) -> bool:
        return not self.compare()


def summarize(outcomes: Iterable[ObjectOutcome]) -> Dict[str, int]:
    summary = {status: 0 for status in STATUS.values()}
    for outcome in outcomes:
        summary[outcome.status] += 1
    return summary
