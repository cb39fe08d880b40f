"""Domain schemas for contract dates and alerts."""

from app.schemas.domain import (
    REMINDER_OFFSETS,
    Confidence,
    DateAlertInfo,
    DateExtractionResult,
    DateType,
    ExtractedDate,
)

__all__ = [
    "REMINDER_OFFSETS",
    "Confidence",
    "DateAlertInfo",
    "DateExtractionResult",
    "DateType",
    "ExtractedDate",
]
