"""
Logging configuration for volunteer-manager.

Provides:
- Console logging with rich formatting
- Optional file logging
- Structured context (method, path, table, mutation)
- Detection of the test harness, which silences action failure logs
"""

import logging
import os
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.logging import RichHandler


def setup_logging(
    level: str = "INFO",
    log_file: Path | None = None,
    rich_tracebacks: bool = True,
    show_path: bool = False,
) -> logging.Logger:
    """
    Set up logging for the volunteer-manager server and CLI.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional file path for logging
        rich_tracebacks: Enable rich exception formatting
        show_path: Show file paths in console logs

    Returns:
        Root logger instance
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    root_logger.handlers = []

    console_handler = RichHandler(
        console=Console(stderr=True),
        rich_tracebacks=rich_tracebacks,
        show_time=True,
        show_path=show_path,
        show_level=True,
        markup=False,
        tracebacks_show_locals=False,
    )
    console_handler.setLevel(numeric_level)
    console_handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%Y-%m-%d %H:%M:%S]"))
    root_logger.addHandler(console_handler)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(numeric_level)
        file_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        root_logger.addHandler(file_handler)

    # Access logs duplicate what the dispatcher already reports
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    return root_logger


def running_under_pytest() -> bool:
    """Whether the current process is executing a pytest test."""
    return "PYTEST_CURRENT_TEST" in os.environ


class StructuredLogger:
    """
    Logger with structured request context.

    Usage:
        logger = StructuredLogger(__name__, method="PUT", path="/api/admin/vendors/12")
        logger.exception("Action threw an exception")
        # Output: [method=PUT path=/api/admin/vendors/12] Action threw an exception
    """

    def __init__(self, name: str, **context: Any):
        self.logger = logging.getLogger(name)
        self.context = context

    def _format_message(self, msg: str) -> str:
        if not self.context:
            return msg

        context_str = " ".join(f"{k}={v}" for k, v in self.context.items())
        return f"[{context_str}] {msg}"

    def exception(self, msg: str, **kwargs: Any) -> None:
        """Log exception with traceback."""
        self.logger.exception(self._format_message(msg), **kwargs)
