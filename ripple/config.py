"""Per-repository configuration loaded from TOML files."""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import toml

from .errors import ConfigError

CONFIG_ENV = "RIPPLE_CONFIG"
BASE_ENV = "RIPPLE_BASE"
CONFIG_FILE_NAME = ".ripple.toml"
BACKENDS = ("auto", "python", "go")

DEFAULT_BASE = "origin/master"


@dataclass(frozen=True)
class RippleConfig:
    backend: str = "auto"
    base: str = DEFAULT_BASE
    fixture_dirs: Tuple[str, ...] = ("testdata",)
    source_roots: Tuple[str, ...] = (".",)
    root_unit: Optional[str] = None
    exclude_dirs: Tuple[str, ...] = field(default_factory=tuple)
    source: Optional[Path] = None


def _read_toml(path: Path) -> Dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            return toml.load(f)
    except (OSError, toml.TomlDecodeError) as exc:
        raise ConfigError(f"can't read configuration from {path}: {exc}") from exc


def find_config(root: Path) -> Tuple[Optional[Path], Dict[str, Any]]:
    """Locate the configuration table for the repository at ``root``.

    Returns:
        The file the table came from (``None`` when nothing was found) and
        the raw table.
    """
    override = os.environ.get(CONFIG_ENV)
    if override:
        path = Path(override).expanduser()
        return path, _read_toml(path)

    dotfile = root / CONFIG_FILE_NAME
    if dotfile.exists():
        return dotfile, _read_toml(dotfile)

    pyproject = root / "pyproject.toml"
    if pyproject.exists():
        table = _read_toml(pyproject).get("tool", {}).get("ripple")
        if table is not None:
            return pyproject, table

    return None, {}


def _string_list(raw: Dict[str, Any], key: str, source: Optional[Path]) -> Optional[Tuple[str, ...]]:
    value = raw.get(key)
    if value is None:
        return None
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ConfigError(f"{source}: '{key}' must be a list of strings")
    return tuple(value)


def _string(raw: Dict[str, Any], key: str, source: Optional[Path]) -> Optional[str]:
    value = raw.get(key)
    if value is not None and not isinstance(value, str):
        raise ConfigError(f"{source}: '{key}' must be a string")
    return value


def load_config(root: Path) -> RippleConfig:
    """Load configuration for the repository rooted at ``root``."""
    source, raw = find_config(root)
    config = RippleConfig(source=source)

    backend = _string(raw, "backend", source)
    if backend is not None:
        if backend not in BACKENDS:
            raise ConfigError(f"{source}: unknown backend '{backend}' (expected one of {', '.join(BACKENDS)})")
        config = replace(config, backend=backend)

    base = _string(raw, "base", source)
    if base:
        config = replace(config, base=base)

    root_unit = _string(raw, "root_unit", source)
    if root_unit:
        config = replace(config, root_unit=root_unit)

    for key in ("fixture_dirs", "source_roots", "exclude_dirs"):
        values = _string_list(raw, key, source)
        if values is not None:
            config = replace(config, **{key: values})

    env_base = os.environ.get(BASE_ENV)
    if env_base:
        config = replace(config, base=env_base)

    return config
