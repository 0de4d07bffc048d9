"""Utility modules."""

from __future__ import annotations

from es_monitor.utils.logging import get_logger, setup_logging

__all__ = ["get_logger", "setup_logging"]
