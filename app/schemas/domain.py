"""Domain models for contract dates and reminder alerts."""

import enum
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class DateType(str, enum.Enum):
    start_date = "start_date"
    end_date = "end_date"
    renewal_date = "renewal_date"
    termination_notice = "termination_notice"
    payment_due = "payment_due"
    review_date = "review_date"
    warranty_expiry = "warranty_expiry"
    other = "other"


class Confidence(str, enum.Enum):
    high = "high"
    medium = "medium"
    low = "low"


# Days before a contract date at which a reminder fires.
REMINDER_OFFSETS: tuple[int, ...] = (1, 3, 7, 14, 30)

DATE_TYPE_LABELS: dict[DateType, str] = {
    DateType.start_date: "Contract Start",
    DateType.end_date: "Contract End",
    DateType.renewal_date: "Renewal Date",
    DateType.termination_notice: "Termination Notice Deadline",
    DateType.payment_due: "Payment Due",
    DateType.review_date: "Review Date",
    DateType.warranty_expiry: "Warranty Expiry",
    DateType.other: "Important Date",
}


class ExtractedDate(BaseModel):
    """One candidate date returned by the extractor."""

    date_type: DateType = DateType.other
    date: str  # ISO format YYYY-MM-DD
    description: str
    clause: str = ""
    confidence: Confidence = Confidence.low

    @field_validator("date_type", mode="before")
    @classmethod
    def _unknown_type_is_other(cls, value):
        if isinstance(value, str) and value not in DateType._value2member_map_:
            return DateType.other
        return value


class DateExtractionResult(BaseModel):
    """Complete date extraction result from contract analysis."""

    dates: list[ExtractedDate] = Field(default_factory=list)


class DateAlertInfo(BaseModel):
    """Payload handed to the notifier for one firing."""

    date_type: DateType
    date: datetime
    description: str
    clause: Optional[str] = None
    days_until: int = Field(ge=0)
