"""Map changed files to the build units that own them."""

from __future__ import annotations

import os
import posixpath
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Sequence, Tuple

from .errors import RippleError
from .models import PathEntry, Skipped, Status, sort_entries

DEFAULT_FIXTURE_DIRS = ("testdata",)


@dataclass
class UnitResolution:
    units: List[PathEntry] = field(default_factory=list)
    skipped: List[Tuple[str, str]] = field(default_factory=list)


def containing_dir(path: str, fixture_dirs: Sequence[str] = DEFAULT_FIXTURE_DIRS) -> str:
    """Return the directory whose unit owns ``path``.

    Anything inside a fixture directory belongs to the fixture directory's
    parent. The repository root is ``"."``.
    """
    parts = [p for p in posixpath.dirname(path).split("/") if p not in ("", ".")]
    for idx, part in enumerate(parts):
        if part in fixture_dirs:
            parts = parts[:idx]
            break
    return "/".join(parts) or "."


def changed_dirs(paths: Iterable[str], fixture_dirs: Sequence[str] = DEFAULT_FIXTURE_DIRS) -> List[str]:
    return sorted({containing_dir(p, fixture_dirs) for p in paths})


def resolve_units(
    files: Iterable[PathEntry],
    root: Path,
    backend,
    fixture_dirs: Sequence[str] = DEFAULT_FIXTURE_DIRS,
) -> UnitResolution:
    """Resolve every directory touched by ``files`` to at most one unit.

    Directories that no longer exist become DELETED units named by their
    absolute path. Directories the backend does not recognize are skipped and
    reported in ``skipped`` as ``(directory, reason)`` pairs.
    """
    units: Dict[str, PathEntry] = {}
    skipped: List[Tuple[str, str]] = []

    for directory in changed_dirs((f.path for f in files), fixture_dirs):
        absolute = root / directory
        if not absolute.exists():
            unit_id = os.path.normpath(str(absolute))
            units[unit_id] = PathEntry(Status.DELETED, unit_id)
            continue

        try:
            resolution = backend.resolve_unit(directory)
        except (RippleError, OSError) as exc:
            resolution = Skipped(str(exc))

        if isinstance(resolution, Skipped):
            skipped.append((directory, resolution.reason))
            continue

        unit_id = backend.root_unit() if directory == "." else resolution.unit_id
        if unit_id not in units:
            units[unit_id] = PathEntry(Status.MODIFIED, unit_id)

    return UnitResolution(units=sort_entries(units.values()), skipped=skipped)
