"""Build-metadata backends and backend selection."""

from __future__ import annotations

from pathlib import Path

from ..config import RippleConfig
from ..errors import ConfigError
from .base import Backend
from .go import GoBackend
from .python import PythonBackend

BACKEND_TYPES = {
    "python": PythonBackend,
    "go": GoBackend,
}


def detect_backend(root: Path) -> str:
    return "go" if (root / "go.mod").exists() else "python"


def create_backend(root: Path, config: RippleConfig) -> Backend:
    """Instantiate the backend ``config`` asks for, detecting it when set to ``auto``."""
    name = detect_backend(root) if config.backend == "auto" else config.backend
    try:
        backend_type = BACKEND_TYPES[name]
    except KeyError:
        raise ConfigError(f"unknown backend '{name}'") from None
    return backend_type(root, config)


__all__ = ["Backend", "GoBackend", "PythonBackend", "create_backend", "detect_backend"]
