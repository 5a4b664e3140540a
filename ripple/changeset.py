"""Classify a raw file-change list into status-tagged file entries."""

from __future__ import annotations

from .models import Diff, FileChanges, PathEntry, Status, sort_entries


def classify_changes(changes: FileChanges) -> Diff:
    """Build a Diff whose ``files`` hold every changed path, sorted.

    A path reported as both deleted and modified keeps only its deleted entry.
    """
    deleted = set(changes.deleted)
    entries = [PathEntry(Status.DELETED, path) for path in deleted]
    entries.extend(
        PathEntry(Status.MODIFIED, path)
        for path in set(changes.modified)
        if path not in deleted
    )
    return Diff(files=sort_entries(entries))
