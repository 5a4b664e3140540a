"""Reverse dependency index: for each unit, the units that depend on it."""

from __future__ import annotations

from typing import Dict, List, Mapping

from .models import UnitDeps

DependencyGraph = Dict[str, List[str]]


def build_reverse_index(table: Mapping[str, UnitDeps]) -> DependencyGraph:
    """Invert a forward dependency table.

    Imports, test imports and external test imports are merged; the three
    kinds are indistinguishable afterwards. Dependents are listed in table
    order without duplicates or self-edges.
    """
    reverse: DependencyGraph = {}
    seen: Dict[str, set] = {}
    for unit_id, deps in table.items():
        for dep in deps.merged():
            if dep == unit_id:
                continue
            members = seen.setdefault(dep, set())
            if unit_id in members:
                continue
            members.add(unit_id)
            reverse.setdefault(dep, []).append(unit_id)
    return reverse


def dependents(graph: Mapping[str, List[str]], unit_id: str) -> List[str]:
    return list(graph.get(unit_id, ()))
