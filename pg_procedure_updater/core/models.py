"""Data model shared by the scanners, the resolver and the orchestrator."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

from pg_procedure_updater.core.events import UpdateEvent
from pg_procedure_updater.utils.sql_files import object_key


class DdlObjectKind(Enum):
    PROCEDURE = "PROCEDURE"
    FUNCTION = "FUNCTION"

    @classmethod
    def parse(cls, text: str) -> "DdlObjectKind":
        return cls(text.strip().upper())

    @property
    def label(self) -> str:
        return self.value.lower()


@dataclass
class ArgumentInfo:
    """One formal parameter as written: direction, name, type and default.

    Only ``comment`` is filled in after parsing; ``definition`` is never
    rewritten.
    """

    definition: str
    comment: str = ""

    def __str__(self) -> str:
        return self.definition


@dataclass(frozen=True)
class ArgumentTokens:
    direction: Optional[str]
    name: str
    type: str
    default: str = ""


@dataclass
class ScannedObject:
    """Raw lines of one CREATE OR REPLACE statement as found in a stream."""

    kind: DdlObjectKind
    qualified_name: str
    header_lines: List[str]
    header_text: str
    body_delimiter: str
    body_lines: List[str] = field(default_factory=list)
    start_line: int = 0

    def raw_lines(self) -> List[str]:
        return self.header_lines + self.body_lines


@dataclass
class ParsedObject:
    kind: DdlObjectKind
    qualified_name: str
    arguments: List[ArgumentInfo]
    header_clauses: List[str]
    body_lines: List[str]
    body_delimiter: str
    source_file: Optional[Path] = None


class OverloadIndex:
    """Count of how often each object has been seen.

    Names are compared case-insensitively and without the public schema
    prefix, the same way replacement files are matched to objects.
    """

    def __init__(self) -> None:
        self._counts: Dict[str, int] = {}

    def register(self, name: str) -> int:
        key = object_key(name)
        self._counts[key] = self._counts.get(key, 0) + 1
        return self._counts[key]

    def count(self, name: str) -> int:
        return self._counts.get(object_key(name), 0)

    def total(self) -> int:
        return sum(self._counts.values())


STATUS = {
    "UPDATED": "UPDATED",
    "NO_REPLACEMENT": "NO_REPLACEMENT",
    "REPLACEMENT_FAILED": "REPLACEMENT_FAILED",
    "SOURCE_UNPARSED": "SOURCE_UNPARSED",
}


@dataclass
class ObjectOutcome:
    kind: DdlObjectKind
    name: str
    occurrence: int
    status: str
    line_number: int
    replacement_file: Optional[Path] = None
    changed_lines: int = 0
    argument_diff: str = ""
    message: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.kind.label,
            "name": self.name,
            "occurrence": self.occurrence,
            "status": self.status,
            "line": self.line_number,
            "replacement_file": str(self.replacement_file) if self.replacement_file else "",
            "changed_lines": self.changed_lines,
            "argument_diff": self.argument_diff,
            "message": self.message,
        }


@dataclass
class UpdateResult:
    success: bool
    output_path: Optional[Path] = None
    lines_read: int = 0
    outcomes: List[ObjectOutcome] = field(default_factory=list)
    events: List[UpdateEvent] = field(default_factory=list)
    output_lines: List[str] = field(default_factory=list)

    @property
    def objects_processed(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.status != STATUS["NO_REPLACEMENT"])

    @property
    def objects_updated(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.status == STATUS["UPDATED"])

    @property
    def output_text(self) -> str:
        return "".join(self.output_lines)
