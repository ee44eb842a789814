"""Logging setup for the ticket generation service."""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

# Prevent duplicate handlers
_configured_loggers: set[str] = set()


def _log_dir(log_dir: Optional[str]) -> Path:
    path = Path(log_dir or os.getenv("LOG_DIR", "logs"))
    path.mkdir(parents=True, exist_ok=True)
    return path


def setup_logger(
    name: str,
    filename: str,
    log_dir: Optional[str] = None,
    level: int = logging.INFO,
) -> logging.Logger:
    """Attach file and console handlers to a logger, once per name.

    Args:
        name: Logger name (e.g., 'ticketgen', 'ticketgen.api')
        filename: Log file name under the log directory (e.g., 'service.log')
        log_dir: Directory for log files; defaults to LOG_DIR env var or ./logs

    Returns:
        Configured logger instance
    """
    if name in _configured_loggers:
        return logging.getLogger(name)

    logger = logging.getLogger(name)
    logger.setLevel(level)
    logger.propagate = False

    fh = logging.FileHandler(_log_dir(log_dir) / filename, encoding="utf-8")
    fh.setLevel(level)
    fh.setFormatter(logging.Formatter(
        "%(asctime)s [%(name)s] [%(levelname)s] %(message)s"
    ))

    sh = logging.StreamHandler()
    sh.setLevel(level)
    sh.setFormatter(logging.Formatter(
        "%(asctime)s [%(name)s] %(message)s"
    ))

    logger.addHandler(fh)
    logger.addHandler(sh)

    _configured_loggers.add(name)
    return logger


def get_service_logger(log_dir: Optional[str] = None) -> logging.Logger:
    """Root logger of the ticketgen package; module loggers propagate into it."""
    return setup_logger("ticketgen", "service.log", log_dir)


def get_api_logger(log_dir: Optional[str] = None) -> logging.Logger:
    """Logger for HTTP requests."""
    return setup_logger("ticketgen.api", "api.log", log_dir)
