"""Shared library for homelab automation services."""

from shared.config import Settings
from shared.log import get_logger, log_sink

__all__ = ["Settings", "get_logger", "log_sink"]
