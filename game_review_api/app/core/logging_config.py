"""
Logging configuration for the Game Review API.

Handlers are attached to the ``game_review_api`` package logger rather
than the root logger, so the application's records keep their format
when uvicorn or pytest have already configured the root.  Modules
obtain their loggers with ``logging.getLogger(__name__)`` and inherit
this setup.
"""

import logging
from pathlib import Path
from typing import Optional


APP_LOGGER = "game_review_api"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(level: str = "INFO", logfile: Optional[str] = None) -> logging.Logger:
    """Configure the application logger and return it.

    Parameters
    ----------
    level : str
        Level name such as ``"debug"`` or ``"WARNING"``.  Unknown names
        fall back to ``INFO``.
    logfile : Optional[str]
        Also write records to this file.  Missing parent directories
        are created.

    Calling this again only updates the level; handlers are attached once.
    """
    logger = logging.getLogger(APP_LOGGER)
    resolved = logging.getLevelName(level.upper())
    logger.setLevel(resolved if isinstance(resolved, int) else logging.INFO)

    if getattr(logger, "_game_review_configured", False):
        return logger

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)
    handlers = [logging.StreamHandler()]
    if logfile:
        path = Path(logfile).expanduser().resolve()
        path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(path, encoding="utf-8"))
    for handler in handlers:
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    # Records are already formatted here; the root would print them twice.
    logger.propagate = False
    logger._game_review_configured = True
    return logger
