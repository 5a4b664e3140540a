"""Run a backend's test command for a selection of units."""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass, field
from typing import List, Optional

from .errors import CollaboratorUnavailable
from .models import Diff, Status

logger = logging.getLogger(__name__)

COVER_MODES = ("set", "count", "atomic")


@dataclass
class TestOptions:
    __test__ = False

    verbose: bool = False
    run: Optional[str] = None
    list_pattern: Optional[str] = None
    race: bool = False
    cover: bool = False
    covermode: Optional[str] = None
    bench: Optional[str] = None
    extra_args: List[str] = field(default_factory=list)


def select_units(diff: Diff) -> List[str]:
    """Units worth testing: modified ones. Deleted units have nothing left to run."""
    return diff.unit_ids(Status.MODIFIED)


def run_tests(backend, units: List[str], options: TestOptions) -> Optional[int]:
    """Run tests for ``units`` in the repository root.

    Returns:
        The test command's exit status, or ``None`` when there was nothing
        to test.
    """
    targets = backend.test_targets(units)
    if not targets:
        logger.debug("no test targets for units %s", units)
        return None

    cmd = backend.test_command(targets, options)
    logger.debug("running %s in %s", cmd, backend.root)
    try:
        proc = subprocess.run(cmd, cwd=str(backend.root))
    except OSError as exc:
        raise CollaboratorUnavailable(f"can't run {cmd[0]}: {exc}") from exc
    return proc.returncode
