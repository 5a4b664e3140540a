"""Integration tests for CLI commands."""

import json
import logging

import pytest
from typer.testing import CliRunner

from ripple import __version__
from ripple.cli import app
from ripple.errors import CollaboratorUnavailable

runner = CliRunner()


@pytest.fixture
def use_project(monkeypatch):
    """Make every command run against the given project."""

    def _use(project):
        monkeypatch.setattr("ripple.cli._open_project", lambda ctx: project)
        return project

    return _use


class TestStatusCommand:
    """Tests for 'ripple status'."""

    def test_recursive_text(self, make_project, use_project):
        use_project(make_project(modified=["core/core.go"]))
        result = runner.invoke(app, ["status"])

        assert result.exit_code == 0
        assert result.stdout.splitlines() == [
            "1 modified or deleted files:",
            "\tM\tcore/core.go",
            "3 modified or deleted units:",
            "\tM\texample.com/project/app",
            "\tM\texample.com/project/core",
            "\tM\texample.com/project/lib",
        ]

    def test_direct(self, make_project, use_project, chain_backend):
        use_project(make_project(modified=["core/core.go"]))
        result = runner.invoke(app, ["status", "--direct"])

        assert result.exit_code == 0
        assert "1 modified or deleted units:" in result.stdout
        assert chain_backend.table_calls == 0

    def test_no_changes(self, make_project, use_project):
        use_project(make_project())
        result = runner.invoke(app, ["status", "-b", "HEAD"])

        assert result.exit_code == 0
        assert result.stdout.strip() == "No changes."

    def test_json(self, make_project, use_project):
        use_project(make_project(modified=["lib/lib.go"], deleted=["old/x.go"]))
        result = runner.invoke(app, ["status", "--json", "--direct"])

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["files"] == [
            {"status": "M", "path": "lib/lib.go"},
            {"status": "D", "path": "old/x.go"},
        ]
        assert data["units"][0] == {"status": "M", "path": "example.com/project/lib"}
        assert data["units"][1]["status"] == "D"

    def test_error_exits_with_debug_log(self, make_project, use_project):
        project = use_project(make_project())
        project.repo.error = CollaboratorUnavailable("can't resolve 'origin/master' to SHA1")
        result = runner.invoke(app, ["status"])

        assert result.exit_code == 1
        assert "can't resolve 'origin/master' to SHA1" in result.output

    def test_error_carries_debug_trail(self, make_project, monkeypatch):
        project = make_project()
        project.repo.error = CollaboratorUnavailable("not a git repository")

        def open_with_log(ctx):
            logging.getLogger("ripple.git").debug("repository root is %s", "/src/demo")
            return project

        monkeypatch.setattr("ripple.cli._open_project", open_with_log)
        result = runner.invoke(app, ["status"])

        assert result.exit_code == 1
        assert "not a git repository" in result.output
        assert "[DEBUG] repository root is /src/demo" in result.output


class TestTestCommand:
    """Tests for 'ripple test'."""

    def test_runs_affected_units(self, make_project, use_project, chain_backend, monkeypatch):
        calls = []

        def fake_run_tests(backend, units, options):
            calls.append((units, options))
            return 0

        monkeypatch.setattr("ripple.cli.run_tests", fake_run_tests)
        use_project(make_project(modified=["core/core.go"]))
        result = runner.invoke(app, ["test", "-v", "--run", "TestCore", "--", "-count=1"])

        assert result.exit_code == 0
        units, options = calls[0]
        assert units == ["example.com/project/app", "example.com/project/core", "example.com/project/lib"]
        assert options.verbose is True
        assert options.run == "TestCore"
        assert options.extra_args == ["-count=1"]

    def test_failing_tests_set_exit_code(self, make_project, use_project, monkeypatch):
        monkeypatch.setattr("ripple.cli.run_tests", lambda backend, units, options: 2)
        use_project(make_project(modified=["core/core.go"]))
        result = runner.invoke(app, ["test"])

        assert result.exit_code == 2

    def test_nothing_to_test(self, make_project, use_project):
        use_project(make_project(modified=["docs/index.md"], deleted=["gone/x.go"]))
        result = runner.invoke(app, ["test"])

        assert result.exit_code == 0
        assert "No units need to be tested." in result.stdout

    def test_all(self, make_project, use_project, chain_backend, monkeypatch):
        monkeypatch.setattr("ripple.cli.run_tests", lambda backend, units, options: 0 if units else None)
        use_project(make_project(files=["app/main.go", "core/core.go"]))
        result = runner.invoke(app, ["test", "--all"])

        assert result.exit_code == 0
        assert chain_backend.table_calls == 0

    def test_bad_covermode(self, make_project, use_project):
        use_project(make_project())
        result = runner.invoke(app, ["test", "--covermode", "sometimes"])

        assert result.exit_code == 2


class TestGraphCommand:
    """Tests for 'ripple graph'."""

    def test_json(self, make_project, use_project):
        use_project(make_project())
        result = runner.invoke(app, ["graph", "--json"])

        assert result.exit_code == 0
        assert json.loads(result.stdout) == {
            "example.com/project/core": ["example.com/project/lib"],
            "example.com/project/lib": ["example.com/project/app"],
        }

    def test_table(self, make_project, use_project):
        use_project(make_project())
        result = runner.invoke(app, ["graph"])

        assert result.exit_code == 0
        assert "Reverse dependencies" in result.stdout

    def test_graph_failure(self, make_project, use_project, chain_backend):
        chain_backend.table_error = CollaboratorUnavailable("go: command not found")
        use_project(make_project())
        result = runner.invoke(app, ["graph"])

        assert result.exit_code == 1
        assert "import graph" in result.output


def test_version():
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert f"ripple v{__version__}" in result.stdout
