"""Transitive impact of changed units over the reverse dependency index."""

from __future__ import annotations

from collections import deque
from typing import Dict, Iterable, List, Mapping

from .graph import dependents
from .models import PathEntry, Status, sort_entries


def impact_closure(units: Iterable[PathEntry], graph: Mapping[str, List[str]]) -> List[PathEntry]:
    """Return ``units`` plus every unit that transitively depends on them.

    Seeds keep their status. Units reached only through the graph are
    MODIFIED; a unit already present is raised to MODIFIED if it ranks lower
    and is never lowered, so DELETED seeds stay DELETED.
    """
    statuses: Dict[str, Status] = {}
    queue = deque()
    for entry in units:
        if entry.path not in statuses:
            queue.append(entry.path)
        statuses[entry.path] = max(statuses.get(entry.path, Status.UNKNOWN), entry.status)

    while queue:
        current = queue.popleft()
        for dependent in dependents(graph, current):
            status = statuses.get(dependent)
            if status is None:
                statuses[dependent] = Status.MODIFIED
                queue.append(dependent)
            elif status < Status.MODIFIED:
                statuses[dependent] = Status.MODIFIED

    return sort_entries(PathEntry(status, unit_id) for unit_id, status in statuses.items())
