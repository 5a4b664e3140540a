"""Go backend: units are Go packages, metadata comes from ``go list -json``."""

from __future__ import annotations

import json
import logging
import re
import subprocess
from typing import Any, Dict, List, Optional, Sequence

from ..errors import CollaboratorUnavailable, MalformedMetadata
from ..models import Resolution, Resolved, Skipped, UnitDeps
from ..runner import TestOptions
from .base import Backend

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s*")
_MODULE_LINE = re.compile(r"^module\s+(\S+)", re.MULTILINE)


def decode_json_stream(text: str) -> List[Dict[str, Any]]:
    """Decode the concatenated JSON objects ``go list -json`` prints."""
    decoder = json.JSONDecoder()
    objects: List[Dict[str, Any]] = []
    idx = _WHITESPACE.match(text, 0).end()
    while idx < len(text):
        try:
            obj, idx = decoder.raw_decode(text, idx)
        except json.JSONDecodeError as exc:
            raise MalformedMetadata(f"can't decode package metadata: {exc}") from exc
        if not isinstance(obj, dict) or not isinstance(obj.get("ImportPath"), str):
            raise MalformedMetadata(f"package metadata entry without an import path: {obj!r:.80}")
        objects.append(obj)
        idx = _WHITESPACE.match(text, idx).end()
    return objects


def _string_list(entry: Dict[str, Any], key: str) -> List[str]:
    value = entry.get(key) or []
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise MalformedMetadata(f"{entry['ImportPath']}: '{key}' is not a list of import paths")
    return list(value)


class GoBackend(Backend):
    name = "go"

    def __init__(self, root, config) -> None:
        super().__init__(root, config)
        self._root_unit: Optional[str] = None

    def _go(self, *args: str) -> subprocess.CompletedProcess:
        cmd = ["go", *args]
        logger.debug("running %s", " ".join(cmd))
        try:
            return subprocess.run(cmd, cwd=str(self.root), capture_output=True, text=True)
        except OSError as exc:
            raise CollaboratorUnavailable(f"can't run the go tool: {exc}") from exc

    def _list_one(self, target: str) -> Optional[str]:
        proc = self._go("list", "-json", target)
        if proc.returncode != 0:
            logger.debug("go list %s failed: %s", target, proc.stderr.strip())
            return None
        entries = decode_json_stream(proc.stdout)
        return entries[0]["ImportPath"] if entries else None

    def root_unit(self) -> str:
        if self._root_unit is None:
            self._root_unit = self.config.root_unit or self._list_one(".") or self._module_path()
            logger.debug("root package is %r", self._root_unit)
        return self._root_unit

    def _module_path(self) -> str:
        gomod = self.root / "go.mod"
        if gomod.exists():
            match = _MODULE_LINE.search(gomod.read_text(encoding="utf-8"))
            if match:
                return match.group(1)
        logger.debug("no go.mod module line, using the repository name as root package")
        return self.root.name

    def resolve_unit(self, directory: str) -> Resolution:
        target = "." if directory == "." else f"./{directory}"
        proc = self._go("list", "-json", target)
        if proc.returncode != 0:
            return Skipped(proc.stderr.strip() or f"go list {target} failed")
        try:
            entries = decode_json_stream(proc.stdout)
        except MalformedMetadata as exc:
            return Skipped(str(exc))
        if not entries:
            return Skipped(f"{directory} is not a Go package")
        return Resolved(entries[0]["ImportPath"])

    def dependency_table(self) -> Dict[str, UnitDeps]:
        proc = self._go("list", "-json", "./...")
        if proc.returncode != 0:
            raise CollaboratorUnavailable(f"can't list packages: {proc.stderr.strip()}")

        table: Dict[str, UnitDeps] = {}
        for entry in decode_json_stream(proc.stdout):
            table[entry["ImportPath"]] = UnitDeps(
                imports=_string_list(entry, "Imports"),
                test_imports=_string_list(entry, "TestImports"),
                external_test_imports=_string_list(entry, "XTestImports"),
            )
        logger.debug("dependency table covers %d packages", len(table))
        return table

    def test_targets(self, units: Sequence[str]) -> List[str]:
        return list(units)

    def test_command(self, targets: Sequence[str], options: TestOptions) -> List[str]:
        cmd = ["go", "test"]
        if options.verbose:
            cmd.append("-v")
        if options.race:
            cmd.append("-race")
        if options.cover:
            cmd.append("-cover")
        if options.covermode:
            cmd.append(f"-covermode={options.covermode}")
        if options.list_pattern:
            cmd.extend(["-list", options.list_pattern])
        if options.run:
            cmd.extend(["-run", options.run])
        if options.bench:
            cmd.extend(["-bench", options.bench, "-benchmem"])
        cmd.extend(options.extra_args)
        cmd.extend(targets)
        return cmd
