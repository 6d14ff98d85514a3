"""Logging setup for the notelinks service.

Modules log through ``logging.getLogger("notelinks.<area>")`` and attach
request context with ``extra={"rid": ..., ...}``. ``configure_logging`` is
called once from ``create_app``; later calls only adjust the level.
"""

from __future__ import annotations

import logging
import sys

ROOT_LOGGER = "notelinks"


def configure_logging(level_name: str = "INFO") -> logging.Logger:
    root_logger = logging.getLogger(ROOT_LOGGER)
    level = getattr(logging, level_name.upper(), logging.INFO)
    root_logger.setLevel(level)

    if root_logger.handlers:
        return root_logger

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(fmt="[%(levelname)s] %(name)s: %(message)s"))
    root_logger.addHandler(handler)
    root_logger.propagate = False
    return root_logger
