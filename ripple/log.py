"""Logging setup: console output through rich, debug records kept for error reports.

Debug messages are not shown unless asked for, but they are buffered so that
a failing command can print them after its error message.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from rich.console import Console
from rich.logging import RichHandler

LOGGER_NAME = "ripple"


class DebugBuffer(logging.Handler):
    """Keep every record in memory, formatted as ``[DEBUG] message``."""

    def __init__(self, capacity: int = 10000) -> None:
        super().__init__(level=logging.DEBUG)
        self.capacity = capacity
        self.lines: List[str] = []
        self.setFormatter(logging.Formatter("[%(levelname)s] %(message)s"))

    def emit(self, record: logging.LogRecord) -> None:
        try:
            line = self.format(record)
        except Exception:
            self.handleError(record)
            return
        self.lines.append(line)
        if len(self.lines) > self.capacity:
            del self.lines[: len(self.lines) - self.capacity]

    def getvalue(self) -> str:
        self.acquire()
        try:
            return "\n".join(self.lines)
        finally:
            self.release()

    def annotate(self, message: str) -> str:
        """Decorate an error message with the accumulated debug log."""
        debug = self.getvalue()
        return f"{message}\n\n{debug}" if debug else message


def configure_logging(verbose: bool = False, console: Optional[Console] = None) -> DebugBuffer:
    """Attach a rich console handler and a fresh debug buffer to the ripple logger."""
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    console_handler = RichHandler(
        console=console or Console(stderr=True),
        show_time=False,
        show_path=False,
    )
    console_handler.setLevel(logging.DEBUG if verbose else logging.WARNING)

    buffer = DebugBuffer()
    logger.addHandler(console_handler)
    logger.addHandler(buffer)
    logger.setLevel(logging.DEBUG)
    logger.propagate = False
    return buffer
