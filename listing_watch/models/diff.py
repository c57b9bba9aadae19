"""
Structural diff models for comparing record collections.
"""

import json
from dataclasses import dataclass, field
from html import escape
from typing import List, Tuple

from .record import RECORD_FIELDS, Record

ADDED_STYLE = "color:green;"
REMOVED_STYLE = "color:red;"
CHANGED_STYLE = "color:darkorange;"


@dataclass(frozen=True)
class RecordChange:
    """A record present in both collections with differing fields."""

    before: Record
    after: Record

    @property
    def fields(self) -> List[Tuple[str, str, str]]:
        """(field, before, after) for every field that differs."""
        return [
            (name, getattr(self.before, name), getattr(self.after, name))
            for name in RECORD_FIELDS
            if getattr(self.before, name) != getattr(self.after, name)
        ]

    @property
    def label(self) -> str:
        return self.after.url or self.before.url or self.after.title


@dataclass
class DiffResult:
    """Additions, removals and field-level changes between two collections."""

    added: List[Record] = field(default_factory=list)
    removed: List[Record] = field(default_factory=list)
    changed: List[RecordChange] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.added or self.removed or self.changed)

    def __bool__(self) -> bool:
        return not self.is_empty

    def summary(self) -> str:
        """One-line count of each kind of change."""
        return (
            f"{len(self.added)} added, {len(self.removed)} removed, "
            f"{len(self.changed)} changed"
        )

    def _lines(self) -> List[Tuple[str, str]]:
        lines = []
        for record in self.added:
            lines.append(("+", "+ " + _record_json(record)))
        for record in self.removed:
            lines.append(("-", "- " + _record_json(record)))
        for change in self.changed:
            lines.append(("~", f"~ {change.label}"))
            for name, before, after in change.fields:
                lines.append(
                    ("~", f"    {name}: {json.dumps(before)} -> {json.dumps(after)}")
                )
        return lines

    def to_text(self) -> str:
        """Render the diff as plain text, one change per line."""
        return "\n".join(line for _, line in self._lines())

    def to_html(self) -> str:
        """Render the diff as escaped, colour-coded markup for a <pre> block."""
        styles = {"+": ADDED_STYLE, "-": REMOVED_STYLE, "~": CHANGED_STYLE}
        return "\n".join(
            f'<span style="{styles[kind]}">{escape(line)}</span>'
            for kind, line in self._lines()
        )


def _record_json(record: Record) -> str:
    return json.dumps(record.to_dict(), ensure_ascii=False)
