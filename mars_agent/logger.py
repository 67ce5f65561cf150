"""Logging setup for the two mars-agent processes.

The chat client and the tool provider run as separate processes, so each one
writes its own rotating file under ``~/.mars-agent/logs``. Console output goes
to stderr in both; the provider's stdout is reserved for protocol messages.
"""

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Union

__all__ = ["setup_logger", "get_logger", "log_path_for", "AGENT", "PROVIDER"]

LOG_DIR = Path("~/.mars-agent/logs").expanduser()
AGENT = "agent"
PROVIDER = "provider"

CONSOLE_FORMAT = "[%(levelname).1s] %(message)s"
FILE_FORMAT = "%(asctime)s [%(levelname)s] %(name)s (pid %(process)d): %(message)s"
MAX_LOG_BYTES = 5 * 1024 * 1024  # 5MB
LOG_BACKUP_COUNT = 3

_QUIET_LIBRARIES = ("litellm", "httpx", "urllib3")


def log_path_for(process: str) -> Path:
    """The log file owned by one process kind (``AGENT`` or ``PROVIDER``)."""
    return LOG_DIR / f"{process}.log"


def setup_logger(
    name: str,
    process: str = AGENT,
    verbose: bool = False,
    log_file: Union[str, Path, bool, None] = None,
) -> logging.Logger:
    """Configure and return the package logger for one process.

    Args:
        name: Logger name, usually the package name.
        process: Which process is logging; picks the default log file.
        verbose: ``True`` enables INFO logs; ``False`` keeps output at WARNING+.
        log_file: ``None`` uses ``log_path_for(process)``, ``False`` disables
            file logging, anything else is a custom path.
    """
    logger = logging.getLogger(name)
    level = logging.INFO if verbose else logging.WARNING

    # Reconfigure safely if setup_logger is called more than once.
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    logger.setLevel(level)
    logger.propagate = False

    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setLevel(level)
    stderr_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT))
    logger.addHandler(stderr_handler)

    if log_file is not False:
        path = log_path_for(process) if log_file is None else Path(log_file).expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            path,
            maxBytes=MAX_LOG_BYTES,
            backupCount=LOG_BACKUP_COUNT,
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT))
        logger.addHandler(file_handler)

    for library in _QUIET_LIBRARIES:
        logging.getLogger(library).setLevel(logging.WARNING)

    return logger


def get_logger(name: str) -> logging.Logger:
    """Return a logger by name without changing its configuration."""
    return logging.getLogger(name)
