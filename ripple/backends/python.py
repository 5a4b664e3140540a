"""Python backend: packages are directories, dependencies are ``import`` statements.

A unit is a directory beneath one of the configured source roots that holds
at least one ``.py`` file. Its identifier is the dotted path from the source
root (``pkg/sub`` -> ``pkg.sub``); the source root itself is the project's
root unit. A ``tests`` directory without an ``__init__.py`` is not a unit of
its own: it, and everything below it, belongs to the enclosing unit, and its
imports count as that unit's external test imports.
"""

from __future__ import annotations

import ast
import fnmatch
import logging
import os
import sys
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Sequence, Set, Tuple

import toml

from ..errors import MalformedMetadata, UnsupportedOption
from ..models import Resolution, Resolved, Skipped, UnitDeps
from ..runner import TestOptions
from .base import Backend

logger = logging.getLogger(__name__)

SKIP_DIRS: Set[str] = {
    ".venv", "venv", "__pycache__", "node_modules", ".git",
    "site-packages", ".tox", ".nox", ".pytest_cache", "build", "dist",
    ".mypy_cache", ".ruff_cache", "htmlcov", ".eggs",
}

TEST_FILE_PATTERNS = ("test_*.py", "*_test.py")
EXTERNAL_TEST_DIR = "tests"


def is_test_file(name: str) -> bool:
    return name == "conftest.py" or any(fnmatch.fnmatch(name, p) for p in TEST_FILE_PATTERNS)


def _parts(directory: str) -> List[str]:
    return [p for p in directory.split("/") if p not in ("", ".")]


def _join(parts: Sequence[str]) -> str:
    return "/".join(parts) or "."


class PythonBackend(Backend):
    name = "python"

    def __init__(self, root, config) -> None:
        super().__init__(root, config)
        roots = {_join(_parts(r)) for r in config.source_roots}
        # Deepest first so nested roots win.
        self.source_roots = sorted(roots, key=lambda r: (-len(_parts(r)), r))
        self._root_unit: Optional[str] = None

    # ------------------------------------------------------------------
    # Directory classification
    # ------------------------------------------------------------------

    def _excluded(self, name: str) -> bool:
        return (
            name in SKIP_DIRS
            or name in self.config.exclude_dirs
            or name in self.config.fixture_dirs
            or name.startswith(".")
            or name.endswith(".egg-info")
        )

    def source_root_for(self, directory: str) -> Optional[str]:
        parts = _parts(directory)
        for source_root in self.source_roots:
            prefix = _parts(source_root)
            if parts[: len(prefix)] == prefix:
                return source_root
        return None

    def owner_dir(self, directory: str) -> str:
        """Directory of the unit that owns ``directory``."""
        parts = _parts(directory)
        for idx, part in enumerate(parts):
            if part == EXTERNAL_TEST_DIR and not (self.root / _join(parts[: idx + 1]) / "__init__.py").exists():
                return _join(parts[:idx])
        return _join(parts)

    def is_external_test_dir(self, directory: str) -> bool:
        return self.owner_dir(directory) != _join(_parts(directory))

    def module_prefix(self, directory: str) -> str:
        """Dotted module path of ``directory`` relative to its source root."""
        source_root = self.source_root_for(directory)
        parts = _parts(directory)
        return ".".join(parts[len(_parts(source_root or ".")):])

    def unit_id_for(self, directory: str) -> str:
        prefix = self.module_prefix(directory)
        return prefix or self.root_unit()

    def root_unit(self) -> str:
        if self._root_unit is None:
            self._root_unit = self.config.root_unit or self._project_name()
        return self._root_unit

    def _project_name(self) -> str:
        pyproject = self.root / "pyproject.toml"
        if pyproject.exists():
            try:
                name = toml.load(str(pyproject)).get("project", {}).get("name")
            except toml.TomlDecodeError as exc:
                logger.debug("can't read project name from %s: %s", pyproject, exc)
                name = None
            if name:
                return name
        return self.root.name

    # ------------------------------------------------------------------
    # Backend API
    # ------------------------------------------------------------------

    def resolve_unit(self, directory: str) -> Resolution:
        parts = _parts(directory)
        if any(self._excluded(p) for p in parts):
            return Skipped(f"{directory} is excluded")
        if self.source_root_for(directory) is None:
            return Skipped(f"{directory} is outside the source roots")

        owner = self.owner_dir(directory)
        if owner != _join(parts):
            if self.source_root_for(owner) is None:
                return Skipped(f"{directory} belongs to {owner}, which is outside the source roots")
            return Resolved(self.unit_id_for(owner))

        if not any(self.root.joinpath(*parts).glob("*.py")):
            return Skipped(f"{directory} has no Python source files")
        return Resolved(self.unit_id_for(directory))

    def walk(self) -> Iterator[Tuple[str, List[str]]]:
        """Yield ``(directory, python_files)`` for every directory holding Python source."""
        for dirpath, dirnames, filenames in os.walk(self.root):
            dirnames[:] = sorted(d for d in dirnames if not self._excluded(d))
            rel = Path(dirpath).relative_to(self.root).as_posix()
            directory = _join(_parts(rel))
            if self.source_root_for(directory) is None:
                continue
            py_files = sorted(f for f in filenames if f.endswith(".py"))
            if py_files:
                yield directory, py_files

    def unit_dirs(self) -> Dict[str, List[str]]:
        """Map every unit id to the directories it owns, own directory first."""
        owned: Dict[str, List[str]] = {}
        for directory, _ in self.walk():
            owner = self.owner_dir(directory)
            if self.source_root_for(owner) is None:
                continue
            owned.setdefault(self.unit_id_for(owner), []).append(directory)
        return owned

    def _module_index(self) -> Dict[str, str]:
        """Map importable module names to the unit that provides them."""
        index: Dict[str, str] = {}
        top_level: Dict[str, str] = {}
        for directory, py_files in self.walk():
            if self.is_external_test_dir(directory):
                continue
            prefix = self.module_prefix(directory)
            unit_id = self.unit_id_for(directory)
            if prefix:
                index[prefix] = unit_id
            else:
                for name in py_files:
                    top_level.setdefault(name[:-3], unit_id)
        for name, unit_id in top_level.items():
            index.setdefault(name, unit_id)
        return index

    def dependency_table(self) -> Dict[str, UnitDeps]:
        index = self._module_index()
        table: Dict[str, UnitDeps] = {}
        for directory, py_files in self.walk():
            owner = self.owner_dir(directory)
            if self.source_root_for(owner) is None:
                continue
            unit_id = self.unit_id_for(owner)
            deps = table.setdefault(unit_id, UnitDeps())
            external = owner != directory
            package = self.module_prefix(owner)
            for name in py_files:
                path = self.root / directory / name
                found = sorted(self._imported_units(path, package, index) - {unit_id})
                if external:
                    bucket = deps.external_test_imports
                elif is_test_file(name):
                    bucket = deps.test_imports
                else:
                    bucket = deps.imports
                bucket.extend(d for d in found if d not in bucket)
        logger.debug("dependency table covers %d units", len(table))
        return table

    def _imported_units(self, path: Path, package: str, index: Dict[str, str]) -> Set[str]:
        try:
            tree = ast.parse(path.read_bytes(), filename=str(path))
        except (SyntaxError, ValueError) as exc:
            raise MalformedMetadata(f"can't parse {path.relative_to(self.root).as_posix()}: {exc}") from exc

        units: Set[str] = set()
        for node in ast.walk(tree):
            if isinstance(node, ast.Import):
                candidates = [alias.name for alias in node.names]
            elif isinstance(node, ast.ImportFrom):
                base = self._absolute_module(node, package)
                if base is None:
                    continue
                candidates = [f"{base}.{alias.name}" if base else alias.name for alias in node.names]
                candidates.append(base)
            else:
                continue
            for candidate in candidates:
                unit_id = self._lookup(candidate, index)
                if unit_id is not None:
                    units.add(unit_id)
        return units

    @staticmethod
    def _absolute_module(node: ast.ImportFrom, package: str) -> Optional[str]:
        if not node.level:
            return node.module
        parts = package.split(".") if package else []
        # Level 1 is the current package; every extra level climbs one.
        if node.level - 1 > len(parts):
            return None
        base = parts[: len(parts) - (node.level - 1)]
        if node.module:
            base.extend(node.module.split("."))
        return ".".join(base)

    @staticmethod
    def _lookup(module: str, index: Dict[str, str]) -> Optional[str]:
        parts = module.split(".")
        for end in range(len(parts), 0, -1):
            unit_id = index.get(".".join(parts[:end]))
            if unit_id is not None:
                return unit_id
        return None

    def test_targets(self, units: Sequence[str]) -> List[str]:
        owned = self.unit_dirs()
        targets: List[str] = []
        for unit_id in units:
            for directory in owned.get(unit_id, []):
                parts = _parts(directory)
                for test_file in sorted(self.root.joinpath(*parts).glob("*.py")):
                    if test_file.name != "conftest.py" and is_test_file(test_file.name):
                        targets.append(_join([*parts, test_file.name]))
        return targets

    def test_command(self, targets: Sequence[str], options: TestOptions) -> List[str]:
        for flag in ("race", "cover", "covermode", "bench"):
            if getattr(options, flag):
                raise UnsupportedOption(f"the python backend does not support --{flag}")

        cmd = [sys.executable, "-m", "pytest"]
        if options.verbose:
            cmd.append("-v")
        if options.list_pattern:
            cmd.extend(["--collect-only", "-q", "-k", options.list_pattern])
        elif options.run:
            cmd.extend(["-k", options.run])
        cmd.extend(options.extra_args)
        cmd.extend(targets)
        return cmd
