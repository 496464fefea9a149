"""
Logging configuration.

Logs always go to stderr: stdout carries the MCP protocol on the stdio
transport.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

# Third-party loggers that are noisy at DEBUG
QUIET_LOGGERS = ("asyncio", "uvicorn.access", "httpx")


def configure_logging(
    level: str = "INFO", log_file: str | None = None, max_bytes: int = 10 * 1024 * 1024, backup_count: int = 3
):
    """
    Configure root logging for the server process.

    Args:
        level: Log level name
        log_file: Optional file to also log to, rotated by size
        max_bytes: Rotation size for log_file
        backup_count: Rotated files to keep
    """
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]

    if log_file:
        path = Path(log_file).expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(RotatingFileHandler(path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"))

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=handlers,
        force=True,
    )

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(logging.WARNING, logging.getLogger().level))
