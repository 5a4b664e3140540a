"""Output formats for diffs and dependency graphs."""

from __future__ import annotations

import json
from typing import List, Mapping

from rich.table import Table

from .models import Diff


def to_json(diff: Diff) -> str:
    return json.dumps(diff.to_dict())


def to_text(diff: Diff) -> str:
    return str(diff)


def graph_to_json(graph: Mapping[str, List[str]]) -> str:
    return json.dumps({unit: sorted(deps) for unit, deps in sorted(graph.items())}, indent=2)


def graph_table(graph: Mapping[str, List[str]]) -> Table:
    """Reverse dependency index as a two-column table."""
    table = Table(title="Reverse dependencies", show_header=True, show_lines=False)
    table.add_column("Unit", style="cyan")
    table.add_column("Depended on by")
    for unit, deps in sorted(graph.items()):
        table.add_row(unit, "\n".join(sorted(deps)))
    return table
