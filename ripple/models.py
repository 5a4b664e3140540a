"""Core data models shared by change classification, resolution, and closure."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Dict, List, Optional, Tuple, Union


class Status(IntEnum):
    """State of a file or unit relative to a base revision.

    The integer value is the severity ranking used for ordering.
    """

    UNKNOWN = 0
    UNCHANGED = 1
    MODIFIED = 2
    DELETED = 3

    @property
    def code(self) -> str:
        return _STATUS_CODES[self]

    def __str__(self) -> str:
        return self.code


_STATUS_CODES = {
    Status.UNKNOWN: "?",
    Status.UNCHANGED: "-",
    Status.MODIFIED: "M",
    Status.DELETED: "D",
}


@dataclass(frozen=True)
class PathEntry:
    status: Status
    path: str

    def sort_key(self) -> Tuple[int, str]:
        return (int(self.status), self.path)

    def to_dict(self) -> Dict[str, str]:
        return {"status": self.status.code, "path": self.path}


def sort_entries(entries) -> List[PathEntry]:
    """Return entries ordered by (status severity, path)."""
    return sorted(entries, key=PathEntry.sort_key)


@dataclass
class FileChanges:
    """Repository-relative paths changed since a base revision."""

    deleted: List[str] = field(default_factory=list)
    modified: List[str] = field(default_factory=list)


@dataclass
class UnitDeps:
    """Forward dependencies of a single unit, split by where they are imported."""

    imports: List[str] = field(default_factory=list)
    test_imports: List[str] = field(default_factory=list)
    external_test_imports: List[str] = field(default_factory=list)

    def merged(self) -> List[str]:
        return [*self.imports, *self.test_imports, *self.external_test_imports]


@dataclass(frozen=True)
class Resolved:
    unit_id: str


@dataclass(frozen=True)
class Skipped:
    reason: str


Resolution = Union[Resolved, Skipped]


@dataclass
class Diff:
    """Files and units changed since a base revision.

    Recursive diffs also include every unit that depends on changed code.
    """

    files: List[PathEntry] = field(default_factory=list)
    units: List[PathEntry] = field(default_factory=list)
    recursive: bool = False
    skipped: List[Tuple[str, str]] = field(default_factory=list, repr=False, compare=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "files": [entry.to_dict() for entry in self.files],
            "units": [entry.to_dict() for entry in self.units],
        }

    def unit_ids(self, status: Optional[Status] = None) -> List[str]:
        return [u.path for u in self.units if status is None or u.status == status]

    def __str__(self) -> str:
        if not self.files and not self.units:
            return "No changes."

        lines: List[str] = []
        if not self.files:
            lines.append("No modified or deleted files.")
        else:
            lines.append(f"{len(self.files)} modified or deleted files:")
            lines.extend(f"\t{entry.status}\t{entry.path}" for entry in self.files)

        if not self.units:
            lines.append("No affected units.")
        else:
            lines.append(f"{len(self.units)} modified or deleted units:")
            lines.extend(f"\t{entry.status}\t{entry.path}" for entry in self.units)
        return "\n".join(lines).strip()
