"""Abstract interface every build-metadata backend implements."""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List, Sequence

from ..config import RippleConfig
from ..models import Resolution, UnitDeps
from ..runner import TestOptions


class Backend(ABC):
    """Answers build-unit questions about one repository.

    Directories are always repository-relative POSIX paths, with ``"."``
    naming the repository root.
    """

    name = "base"

    def __init__(self, root: Path, config: RippleConfig) -> None:
        self.root = root
        self.config = config

    @abstractmethod
    def root_unit(self) -> str:
        """Identifier of the unit living at the repository root."""

    @abstractmethod
    def resolve_unit(self, directory: str) -> Resolution:
        """Map a directory to ``Resolved(unit_id)`` or ``Skipped(reason)``."""

    @abstractmethod
    def dependency_table(self) -> Dict[str, UnitDeps]:
        """Forward dependencies of every unit in the repository."""

    @abstractmethod
    def test_targets(self, units: Sequence[str]) -> List[str]:
        """Arguments naming what to test for ``units``; empty when nothing is testable."""

    @abstractmethod
    def test_command(self, targets: Sequence[str], options: TestOptions) -> List[str]:
        """Full command line that runs the tests for ``targets``."""
