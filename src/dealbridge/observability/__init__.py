"""Observability package: in-memory debug log of recent activity.

Prometheus metrics and Sentry live in src.dealbridge.core.monitoring.
"""

from __future__ import annotations

from src.dealbridge.observability.debug_log import DebugLog

__all__ = ["DebugLog"]
