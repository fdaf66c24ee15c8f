"""Logging setup shared by the CLI and library callers."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

PACKAGE_LOGGER = "autofetch"

_DEFAULT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s - %(message)s"
_HANDLER_MARK = "_autofetch_handler"


def configure_logging(
    level: int = logging.INFO,
    logfile: Optional[Path] = None,
    *,
    third_party_level: int = logging.WARNING,
) -> logging.Logger:
    """Attach stderr (and optionally *logfile*) handlers to the root logger.

    Only loggers under ``autofetch`` follow *level*; records from other
    libraries reaching the root are filtered at *third_party_level*. Handlers
    installed by an earlier call are replaced, others are left alone.
    """

    root_logger = logging.getLogger()
    root_logger.setLevel(third_party_level)
    for handler in list(root_logger.handlers):
        if getattr(handler, _HANDLER_MARK, False):
            root_logger.removeHandler(handler)
            handler.close()

    formatter = logging.Formatter(_DEFAULT_FORMAT)
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if logfile is not None:
        logfile.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(logfile, encoding="utf-8"))

    for handler in handlers:
        handler.setFormatter(formatter)
        setattr(handler, _HANDLER_MARK, True)
        root_logger.addHandler(handler)

    package_logger = logging.getLogger(PACKAGE_LOGGER)
    package_logger.setLevel(level)
    return package_logger


__all__ = ["PACKAGE_LOGGER", "configure_logging"]
