"""Display module - terminal rendering of dashboard snapshots."""

from __future__ import annotations

from es_monitor.display.terminal import SECTION_CLUSTER, SECTION_SYSTEM, DashboardRenderer

__all__ = ["DashboardRenderer", "SECTION_CLUSTER", "SECTION_SYSTEM"]
