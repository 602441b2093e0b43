"""
Lightweight logging utilities for the recovery toolkit.

Every module logs through a child of the ``vault_recovery`` logger. The
parent gets one stream handler; its level comes from RECOVERY_LOG_LEVEL
or from the CLI's ``--log-level`` flag.
"""

import logging
import os
from typing import Optional, Union

_DEFAULT_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
_ROOT_LOGGER_NAME = "vault_recovery"


def _configure_root() -> logging.Logger:
    root = logging.getLogger(_ROOT_LOGGER_NAME)
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_DEFAULT_FORMAT))
        root.addHandler(handler)

        level_str = os.getenv("RECOVERY_LOG_LEVEL", "INFO").upper()
        root.setLevel(getattr(logging, level_str, logging.INFO))
    return root


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Get a logger that shares the package-wide stream handler.

    Names outside the ``vault_recovery`` namespace are nested under it so
    that a single level override applies everywhere.
    """
    _configure_root()
    if not name or name == _ROOT_LOGGER_NAME:
        return logging.getLogger(_ROOT_LOGGER_NAME)
    if not name.startswith(_ROOT_LOGGER_NAME + "."):
        name = f"{_ROOT_LOGGER_NAME}.{name}"
    return logging.getLogger(name)


def set_log_level(level: Union[str, int]) -> None:
    """Override the package log level (e.g. from a CLI flag)."""
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)
    _configure_root().setLevel(level)
