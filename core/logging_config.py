"""
core/logging_config.py -- Process-wide logging setup.

Library modules only ever call logging.getLogger("sessionvault.<area>");
entry points (the maintenance CLI, an embedding ASGI app) call
configure_logging() once at startup.
"""

from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s %(levelname)-5s %(name)s %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def configure_logging(level: str | int = "INFO") -> None:
    """Install the root handler and set the sessionvault logger level.

    Unknown level names fall back to INFO rather than raising, so a typo in
    LOG_LEVEL cannot prevent startup.
    """
    if isinstance(level, str):
        resolved = logging.getLevelName(level.upper())
        if not isinstance(resolved, int):
            resolved = logging.INFO
    else:
        resolved = level

    logging.basicConfig(level=resolved, format=LOG_FORMAT, datefmt=DATE_FORMAT)
    logging.getLogger("sessionvault").setLevel(resolved)
