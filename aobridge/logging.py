"""Logging configuration for aobridge using loguru.

Call `setup_logging()` once at startup. Provides:
- Console output with configurable verbosity
- Rotating file log at ~/.aobridge/logs/aobridge.log
- Records from python-telegram-bot, httpx and uvicorn (which log through
  the standard `logging` module) forwarded into the same loguru sinks
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

from loguru import logger

_CONSOLE_FORMAT = "<level>{level:<8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan> - {message}"
_FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level:<8} | {name}:{function}:{line} - {message}"

# httpx logs every getUpdates long-poll at INFO; telegram.ext and uvicorn
# repeat what the bot service and AuditLogMiddleware already report.
_CHATTY_LOGGERS = {
    "httpx": logging.WARNING,
    "httpcore": logging.WARNING,
    "telegram": logging.INFO,
    "telegram.ext": logging.INFO,
    "uvicorn.access": logging.WARNING,
}


class InterceptHandler(logging.Handler):
    """Re-emit standard library log records through loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame, depth = logging.currentframe(), 2
        while frame is not None and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def setup_logging(
    verbose: bool = False,
    quiet: bool = False,
    log_dir: Path | None = None,
) -> None:
    """Configure loguru sinks and capture third-party stdlib logging.

    Args:
        verbose: Show DEBUG-level messages on console, including httpx.
        quiet: Suppress console output below WARNING.
        log_dir: Directory for log files. Defaults to ~/.aobridge/logs.
    """
    logger.remove()

    if quiet:
        console_level = "WARNING"
    elif verbose:
        console_level = "DEBUG"
    else:
        console_level = "INFO"

    logger.add(
        sys.stderr,
        level=console_level,
        format=_CONSOLE_FORMAT,
        colorize=True,
    )

    log_path = log_dir or (Path.home() / ".aobridge" / "logs")
    log_path.mkdir(parents=True, exist_ok=True)

    logger.add(
        log_path / "aobridge.log",
        level="DEBUG",
        format=_FILE_FORMAT,
        rotation="10 MB",
        retention=5,
        encoding="utf-8",
        enqueue=True,
    )

    intercept_stdlib_logging(verbose=verbose)


def intercept_stdlib_logging(verbose: bool = False) -> None:
    """Send stdlib `logging` records to loguru and quiet the chatty libraries."""
    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        uvicorn_logger = logging.getLogger(name)
        uvicorn_logger.handlers = []
        uvicorn_logger.propagate = True
    for name, level in _CHATTY_LOGGERS.items():
        logging.getLogger(name).setLevel(logging.DEBUG if verbose else level)
