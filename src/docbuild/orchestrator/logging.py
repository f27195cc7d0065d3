from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
import os


_configured = False

LOG_FORMAT = "%(asctime)s | %(name)s | %(levelname)s | %(message)s"
LEVEL_ENV = "DOCBUILD_LOG_LEVEL"


def env_level(default: str = "INFO") -> int:
    """Level named by DOCBUILD_LOG_LEVEL; unknown names fall back to INFO."""
    name = os.getenv(LEVEL_ENV, default).strip().upper()
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.INFO


def _ensure_base_logger() -> None:
    global _configured
    if _configured:
        return
    logging.basicConfig(level=env_level(), format=LOG_FORMAT)
    _configured = True


def apply_env_level() -> int:
    """Re-read DOCBUILD_LOG_LEVEL and apply it to the root logger.

    Loggers are created at import time, before the CLI has loaded `.env`,
    so the level has to be applied again once the environment is complete.
    """
    _ensure_base_logger()
    level = env_level()
    logging.getLogger().setLevel(level)
    return level


def get_logger(name: str, log_file: Path | None = None) -> logging.Logger:
    _ensure_base_logger()
    logger = logging.getLogger(name)
    # Do not duplicate handlers for the same file
    if log_file and not any(
        isinstance(h, RotatingFileHandler)
        and h.baseFilename == os.path.abspath(log_file)
        for h in logger.handlers
    ):
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handler = RotatingFileHandler(log_file, maxBytes=1_000_000, backupCount=3)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
    return logger


def format_duration(seconds: float) -> str:
    if seconds < 1:
        return f"{seconds * 1000:.0f} ms"
    return f"{seconds:.2f} s"
