"""
Logging setup for tangent.

Console output goes through rich on stderr so it never mixes with command
output; an optional file gets plain timestamped lines.
"""

import logging
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.logging import RichHandler

# Libraries whose INFO chatter drowns out trail events
QUIET_LOGGERS = ("httpx", "httpcore", "aiosqlite")


def setup_logging(level: str = "INFO", log_file: Path | None = None) -> logging.Logger:
    """
    Configure the root logger for a CLI run.

    Args:
        level: Log level name from tangent.toml
        log_file: Optional file to mirror log records into

    Returns:
        Root logger instance
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    root_logger.handlers = []

    # Trail titles and notes may contain [brackets]; keep rich markup off
    console_handler = RichHandler(
        console=Console(stderr=True),
        rich_tracebacks=True,
        show_path=False,
        markup=False,
    )
    console_handler.setLevel(numeric_level)
    console_handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%H:%M:%S]"))
    root_logger.addHandler(console_handler)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(numeric_level)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )
        root_logger.addHandler(file_handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return root_logger


class StructuredLogger:
    """
    Logger that prefixes every message with fixed key=value context.

    Usage:
        log = StructuredLogger("tangent.session", trail_id="abc")
        log.info("Appended note step")
        # Output: [trail_id=abc] Appended note step
    """

    def __init__(self, name: str, **context: Any):
        self.logger = logging.getLogger(name)
        self.prefix = "[" + " ".join(f"{k}={v}" for k, v in context.items()) + "] " if context else ""

    def debug(self, msg: str) -> None:
        self.logger.debug(self.prefix + msg)

    def info(self, msg: str) -> None:
        self.logger.info(self.prefix + msg)
