"""Pytest configuration and fixtures for ripple tests."""

import shutil
import subprocess
import tempfile
from pathlib import Path
from typing import Dict, Generator, List, Optional

import pytest

from ripple.config import RippleConfig
from ripple.models import FileChanges, Resolved, Skipped, UnitDeps
from ripple.project import Project


def write_tree(root: Path, files: Dict[str, str]) -> Path:
    """Create ``files`` (relative path -> content) under ``root``."""
    for rel, content in files.items():
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    return root


class FakeRepo:
    """In-memory stand-in for GitRepository."""

    def __init__(self, root: Path, changes: Optional[FileChanges] = None, files: Optional[List[str]] = None):
        self.root = root
        self._changes = changes or FileChanges()
        self._files = files or []
        self.error: Optional[Exception] = None

    def canonicalize(self, commitish: str) -> str:
        if self.error:
            raise self.error
        return "0" * 40

    def changes(self, since: str) -> FileChanges:
        if self.error:
            raise self.error
        return FileChanges(deleted=list(self._changes.deleted), modified=list(self._changes.modified))

    def all_files(self) -> FileChanges:
        if self.error:
            raise self.error
        return FileChanges(modified=list(self._files))


class FakeBackend:
    """Backend answering from fixed tables."""

    name = "fake"

    def __init__(self, root: Path, units: Dict[str, str], table: Optional[Dict[str, UnitDeps]] = None):
        self.root = root
        self.config = RippleConfig()
        self.units = units
        self.table = table or {}
        self.table_calls = 0
        self.table_error: Optional[Exception] = None
        self.commands: List[List[str]] = []

    def root_unit(self) -> str:
        return "example.com/project"

    def resolve_unit(self, directory: str):
        if directory in self.units:
            return Resolved(self.units[directory])
        return Skipped(f"{directory} is not a unit")

    def dependency_table(self) -> Dict[str, UnitDeps]:
        self.table_calls += 1
        if self.table_error:
            raise self.table_error
        return self.table

    def test_targets(self, units):
        return list(units)

    def test_command(self, targets, options):
        cmd = ["true", *targets]
        self.commands.append(cmd)
        return cmd


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    tmp = Path(tempfile.mkdtemp())
    yield tmp.resolve()
    shutil.rmtree(tmp, ignore_errors=True)


@pytest.fixture
def chain_tree(temp_dir: Path) -> Path:
    """Directories for units app -> lib -> core, plus a data-only directory."""
    return write_tree(
        temp_dir,
        {
            "app/main.go": "package main\n",
            "lib/lib.go": "package lib\n",
            "lib/testdata/golden.txt": "golden\n",
            "core/core.go": "package core\n",
            "docs/index.md": "# docs\n",
            "root.go": "package project\n",
        },
    )


@pytest.fixture
def chain_backend(chain_tree: Path) -> FakeBackend:
    """app imports lib, lib imports core."""
    return FakeBackend(
        chain_tree,
        units={".": "example.com/project", "app": "example.com/project/app",
               "lib": "example.com/project/lib", "core": "example.com/project/core"},
        table={
            "example.com/project/app": UnitDeps(imports=["example.com/project/lib", "fmt"]),
            "example.com/project/lib": UnitDeps(imports=["example.com/project/core"]),
            "example.com/project/core": UnitDeps(test_imports=["testing"]),
            "example.com/project": UnitDeps(),
        },
    )


@pytest.fixture
def make_project(chain_backend: FakeBackend):
    """Build a Project over the chain tree with the given change list."""

    def _make(deleted=(), modified=(), files=()) -> Project:
        repo = FakeRepo(
            chain_backend.root,
            FileChanges(deleted=list(deleted), modified=list(modified)),
            files=list(files),
        )
        return Project(repo, chain_backend)

    return _make


def _git(cwd: Path, *args: str) -> str:
    proc = subprocess.run(["git", *args], cwd=str(cwd), capture_output=True, text=True, check=True)
    return proc.stdout.strip()


@pytest.fixture
def git_repo(temp_dir: Path) -> Path:
    """An initialised git repository with one commit of a small Python project."""
    if shutil.which("git") is None:
        pytest.skip("git is not installed")
    write_tree(
        temp_dir,
        {
            "pyproject.toml": '[project]\nname = "demo"\n',
            "setup_helpers.py": "import app\n",
            "app/__init__.py": "from app import service\n",
            "app/service.py": "from core.models import Model\n",
            "app/test_service.py": "import app.service\n",
            "core/__init__.py": "",
            "core/models.py": "class Model:\n    pass\n",
            "core/testdata/sample.json": "{}\n",
            "util/__init__.py": "",
            "util/strings.py": "def shout(s):\n    return s.upper()\n",
            "tests/test_app.py": "import app\n",
        },
    )
    _git(temp_dir, "init", "-q")
    _git(temp_dir, "config", "user.email", "dev@example.com")
    _git(temp_dir, "config", "user.name", "Dev")
    _git(temp_dir, "config", "commit.gpgsign", "false")
    _git(temp_dir, "add", "-A")
    _git(temp_dir, "commit", "-q", "-m", "initial")
    return temp_dir


@pytest.fixture
def git():
    """Run git in a directory, returning stdout."""
    return _git
