from __future__ import annotations

import difflib
from typing import Dict, List, Sequence, Tuple

from pg_procedure_updater.core.scanner import line_text


class DiffGenerator:
    """Line diff between an object as found in the script and as rewritten."""

    def __init__(self, original_lines: Sequence[str], updated_lines: Sequence[str]) -> None:
        self.original = [line_text(line) for line in original_lines]
        self.updated = [line_text(line) for line in updated_lines]

    def side_by_side(self) -> List[Tuple[str, str, str]]:
        """Return (original_line, updated_line, tag) tuples.

        tag: 'same', 'removed' (original only), 'added' (updated only), 'changed'
        """
        matcher = difflib.SequenceMatcher(a=self.original, b=self.updated, autojunk=False)
        output: List[Tuple[str, str, str]] = []
        for opcode, a0, a1, b0, b1 in matcher.get_opcodes():
            if opcode == "equal":
                output.extend((self.original[i], self.updated[j], "same") for i, j in zip(range(a0, a1), range(b0, b1)))
            elif opcode == "insert":
                output.extend(("", self.updated[j], "added") for j in range(b0, b1))
            elif opcode == "delete":
                output.extend((self.original[i], "", "removed") for i in range(a0, a1))
            else:
                for k in range(max(a1 - a0, b1 - b0)):
                    left = self.original[a0 + k] if a0 + k < a1 else ""
                    right = self.updated[b0 + k] if b0 + k < b1 else ""
                    output.append((left, right, "changed"))
        return output

    def tag_counts(self) -> Dict[str, int]:
        counts = {"same": 0, "added": 0, "removed": 0, "changed": 0}
        for _left, _right, tag in self.side_by_side():
            counts[tag] += 1
        return counts

    def changed_line_count(self) -> int:
        counts = self.tag_counts()
        return counts["added"] + counts["removed"] + counts["changed"]

    def unified(self, name: str) -> List[str]:
        return list(difflib.unified_diff(self.original, self.updated, f"{name} (original)", f"{name} (updated)", lineterm=""))
