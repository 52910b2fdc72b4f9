"""Logging configuration for the lead engine.

Every module logger is a child of the "lead_engine" root logger, which owns
the single stdout handler. The level comes from LEAD_ENGINE_LOG_LEVEL when set.
"""

from __future__ import annotations

import logging
import os
import sys

ROOT_LOGGER_NAME = "lead_engine"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _configure_root(level: int) -> logging.Logger:
    root = logging.getLogger(ROOT_LOGGER_NAME)
    if root.handlers:
        return root

    # getLevelName maps a known name to its int, anything else to a string
    env_level = logging.getLevelName(os.getenv("LEAD_ENGINE_LOG_LEVEL", "").upper())
    root.setLevel(env_level if isinstance(env_level, int) else level)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT))
    root.addHandler(handler)
    root.propagate = False
    return root


def setup_logging(
    level: int = logging.INFO,
    module_name: str = ROOT_LOGGER_NAME,
) -> logging.Logger:
    """Return the logger for a module, configuring the root logger once.

    Args:
        level: Root level when LEAD_ENGINE_LOG_LEVEL is unset (default INFO).
        module_name: Logger name, nested under "lead_engine".

    Returns:
        Configured logger.
    """
    root = _configure_root(level)
    if module_name == ROOT_LOGGER_NAME:
        return root
    return root.getChild(module_name)
