# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
Logging setup for fleetclient.

Modules log through `logging.getLogger(__name__)`, so every record lands under
the `fleetclient` logger. Importing the package installs a NullHandler there;
`setup_logging()` is opt-in for services that want the client's own output
without touching the root logger.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import TextIO

PACKAGE_LOGGER = "fleetclient"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
_HANDLER_NAME = "fleetclient"


def resolve_level(level: str | int | None = None) -> int:
    """Numeric level for `level`, else FLEETCLIENT_LOG_LEVEL (read now), else WARNING."""
    if isinstance(level, int):
        return level
    name = (level or os.getenv("FLEETCLIENT_LOG_LEVEL", "WARNING")).strip().upper()
    value = logging.getLevelName(name)
    return value if isinstance(value, int) else logging.WARNING


def install_null_handler() -> None:
    logger = logging.getLogger(PACKAGE_LOGGER)
    if not any(isinstance(handler, logging.NullHandler) for handler in logger.handlers):
        logger.addHandler(logging.NullHandler())


def setup_logging(level: str | int | None = None, *, stream: TextIO | None = None) -> logging.Logger:
    """
    Attach one stream handler to the `fleetclient` logger and set its level.

    Calling it again only updates the level (and the stream, when given).
    """
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(resolve_level(level))

    handler = next((item for item in logger.handlers if item.get_name() == _HANDLER_NAME), None)
    if handler is None:
        handler = logging.StreamHandler(stream or sys.stderr)
        handler.set_name(_HANDLER_NAME)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
    elif stream is not None and isinstance(handler, logging.StreamHandler):
        handler.setStream(stream)
    return logger


__all__ = ["LOG_FORMAT", "PACKAGE_LOGGER", "install_null_handler", "resolve_level", "setup_logging"]
