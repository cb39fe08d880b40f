"""Shared dependencies for FastAPI routes and workers."""

from __future__ import annotations

from datetime import timedelta
from typing import TYPE_CHECKING

from app.core.config import settings
from app.services.scheduler import AlertScheduler
from app.services.sweeper import CleanupSweeper

if TYPE_CHECKING:
    from app.services.extraction import ExtractionBridge
    from app.services.notifier import ResendNotifier

_notifier: "ResendNotifier | None" = None


def get_notifier() -> "ResendNotifier":
    """Get or lazily initialize the notifier singleton.

    Lazy initialization keeps the HTTP client out of import time.
    """
    global _notifier
    if _notifier is None:
        from app.services.notifier import build_notifier

        _notifier = build_notifier()
    return _notifier


def get_scheduler() -> AlertScheduler:
    return AlertScheduler(horizon_days=settings.ALERT_HORIZON_DAYS)


def get_sweeper() -> CleanupSweeper:
    return CleanupSweeper()


def get_extraction_bridge() -> "ExtractionBridge":
    from app.services.extraction import ExtractionBridge
    from worker.date_extractor import extract_dates

    return ExtractionBridge(extract_dates)


def claim_ttl() -> timedelta:
    return timedelta(minutes=settings.ALERT_CLAIM_TTL_MINUTES)


__all__ = [
    "claim_ttl",
    "get_extraction_bridge",
    "get_notifier",
    "get_scheduler",
    "get_sweeper",
]
