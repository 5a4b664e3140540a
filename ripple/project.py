"""Project: the three change-impact queries over one repository."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from .backends import Backend, create_backend
from .changeset import classify_changes
from .closure import impact_closure
from .config import RippleConfig, load_config
from .errors import CollaboratorUnavailable, MalformedMetadata
from .git import GitRepository
from .graph import DependencyGraph, build_reverse_index
from .models import Diff, FileChanges
from .resolver import resolve_units


class Project:
    """A version-controlled source tree and the backend that understands its units.

    Every query recomputes its answer from the working tree; nothing is
    cached between calls.
    """

    def __init__(self, repo: GitRepository, backend: Backend, config: Optional[RippleConfig] = None) -> None:
        self.repo = repo
        self.backend = backend
        self.config = config or backend.config

    @classmethod
    def open(cls, path: Optional[Path] = None) -> "Project":
        """Open the repository containing ``path`` with its own configuration."""
        repo = GitRepository.discover(path)
        config = load_config(repo.root)
        return cls(repo, create_backend(repo.root, config), config)

    @property
    def root(self) -> Path:
        return self.repo.root

    def root_unit(self) -> str:
        return self.backend.root_unit()

    def _process(self, changes: FileChanges) -> Diff:
        diff = classify_changes(changes)
        resolution = resolve_units(diff.files, self.root, self.backend, self.config.fixture_dirs)
        return Diff(files=diff.files, units=resolution.units, skipped=resolution.skipped)

    def diff(self, since: str) -> Diff:
        """Files and units directly modified since ``since``."""
        return self._process(self.repo.changes(since))

    def recursive_diff(self, since: str) -> Diff:
        """Like :meth:`diff`, plus every unit that depends on modified code."""
        direct = self.diff(since)
        graph = self.graph()
        return Diff(
            files=direct.files,
            units=impact_closure(direct.units, graph),
            recursive=True,
            skipped=direct.skipped,
        )

    def all(self) -> Diff:
        """Every file and unit in the project, all reported as modified."""
        return self._process(self.repo.all_files())

    def graph(self, units_only: bool = False) -> DependencyGraph:
        """Reverse dependency index of the whole tree.

        With ``units_only``, dependencies outside the project (standard
        library, third-party packages) are left out of the index.
        """
        try:
            table = self.backend.dependency_table()
        except CollaboratorUnavailable as exc:
            raise CollaboratorUnavailable(f"can't build project's import graph: {exc}") from exc
        except MalformedMetadata as exc:
            raise MalformedMetadata(f"can't build project's import graph: {exc}") from exc
        index = build_reverse_index(table)
        if units_only:
            index = {unit: deps for unit, deps in index.items() if unit in table}
        return index
