"""Core utilities shared across :mod:`tsmeta` modules.

The core namespace bundles configuration loading, logging setup and the
exception hierarchy so feature modules stay small.
"""

from __future__ import annotations

from .config import AppConfig, load_config
from .errors import TsmetaError
from .logging import configure_logging, get_logger

__all__ = [
    "AppConfig",
    "TsmetaError",
    "configure_logging",
    "get_logger",
    "load_config",
]
