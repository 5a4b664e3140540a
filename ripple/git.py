"""Shell out to git to learn what changed in a repository."""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import List, Optional

from .errors import CollaboratorUnavailable
from .models import FileChanges

logger = logging.getLogger(__name__)


def _run_git(cwd: Optional[Path], *args: str) -> str:
    try:
        proc = subprocess.run(
            ["git", *args],
            cwd=str(cwd) if cwd else None,
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="surrogateescape",
        )
    except OSError as exc:
        raise CollaboratorUnavailable(f"can't run git: {exc}") from exc
    if proc.returncode != 0:
        raise CollaboratorUnavailable(proc.stderr.strip() or f"git {args[0]} exited with status {proc.returncode}")
    return proc.stdout


def _fields(output: str) -> List[str]:
    """Split NUL-terminated ``-z`` output; paths come back unquoted."""
    return [field for field in output.split("\0") if field]


class GitRepository:
    """A handful of read-only git queries against one working tree."""

    def __init__(self, root: Path) -> None:
        self.root = root

    @classmethod
    def discover(cls, path: Optional[Path] = None) -> "GitRepository":
        """Find the repository containing ``path`` (default: the working directory)."""
        try:
            toplevel = _run_git(path, "rev-parse", "--show-toplevel").strip()
        except CollaboratorUnavailable as exc:
            raise CollaboratorUnavailable(f"can't determine repository root: {exc}") from exc
        root = Path(toplevel).resolve()
        logger.debug("repository root is %s", root)
        return cls(root)

    def run(self, *args: str) -> str:
        return _run_git(self.root, *args)

    def canonicalize(self, commitish: str) -> str:
        """Resolve a commitish to a full SHA1."""
        try:
            sha = self.run("rev-parse", "--verify", f"{commitish}^{{commit}}").strip()
        except CollaboratorUnavailable as exc:
            raise CollaboratorUnavailable(f"can't resolve '{commitish}' to SHA1: {exc}") from exc
        logger.debug("resolved commitish %r to SHA1 %s", commitish, sha)
        return sha

    def changes(self, since: str) -> FileChanges:
        """Files changed since ``since``, relative to the repository root.

        Untracked files count as modified; renames count as a delete plus an add.
        """
        try:
            untracked = self.run("ls-files", "-z", "--others", "--exclude-standard")
        except CollaboratorUnavailable as exc:
            raise CollaboratorUnavailable(f"can't find untracked files: {exc}") from exc

        try:
            name_status = self.run(
                "diff",
                "--name-status",
                "-z",
                "--no-renames",
                "--ignore-submodules",
                since,
                "--",
            )
        except CollaboratorUnavailable as exc:
            raise CollaboratorUnavailable(f"can't identify files modified since '{since}': {exc}") from exc

        changes = FileChanges(modified=_fields(untracked))
        fields = _fields(name_status)
        # With -z each status is its own field, followed by the path.
        for status, path in zip(fields[::2], fields[1::2]):
            if status.startswith("D"):
                changes.deleted.append(path)
            else:
                changes.modified.append(path)

        changes.deleted.sort()
        changes.modified.sort()
        logger.debug("files deleted since %r: %s", since, changes.deleted)
        logger.debug("files created or modified since %r: %s", since, changes.modified)
        return changes

    def all_files(self) -> FileChanges:
        """Every tracked and untracked file, all reported as modified."""
        try:
            listing = self.run("ls-files", "-z", "--cached", "--modified", "--others", "--exclude-standard")
        except CollaboratorUnavailable as exc:
            raise CollaboratorUnavailable(f"can't list files: {exc}") from exc
        files = sorted(set(_fields(listing)))
        logger.debug("found %d files in repository", len(files))
        return FileChanges(modified=files)
