"""Logging setup for the scvalctl entry point."""

from __future__ import annotations

import logging
from pathlib import Path

from scval.config import LoggingConfig


LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"
CHECK_LOGGER_NAME = "scval.check"


def configure_logging(cfg: LoggingConfig) -> logging.Logger:
    """Attaches stderr and ``cfg.log_paths`` handlers to the ``scval`` logger.

    Handlers from a previous call are closed and replaced, so running several
    checks in one process writes each record once. Returns the logger the
    validation service reports to.
    """
    scval_logger = logging.getLogger("scval")
    scval_logger.setLevel(cfg.level)

    for handler in list(scval_logger.handlers):
        if getattr(handler, "scval_managed", False):
            scval_logger.removeHandler(handler)
            handler.close()

    handlers: list[logging.Handler] = [logging.StreamHandler()]
    for entry in cfg.log_paths:
        path = Path(entry)
        path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(path, encoding="utf-8"))

    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATEFMT)
    for handler in handlers:
        handler.setFormatter(formatter)
        handler.scval_managed = True  # type: ignore[attr-defined]
        scval_logger.addHandler(handler)
    # records are handled here; the root logger would print them a second time
    scval_logger.propagate = False
    return logging.getLogger(CHECK_LOGGER_NAME)
