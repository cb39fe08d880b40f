"""Domain errors raised by the alert services."""

from __future__ import annotations

from app.schemas.domain import REMINDER_OFFSETS


class AlertError(Exception):
    """Base class for contract date / alert errors."""

    pass


class InvalidOffsetError(AlertError, ValueError):
    """Reminder offset outside the fixed set; raised before any state change."""

    def __init__(self, offset_days: object):
        self.offset_days = offset_days
        allowed = ", ".join(str(o) for o in REMINDER_OFFSETS)
        super().__init__(f"invalid reminder offset {offset_days!r}: must be one of {allowed}")


class ContractNotFoundError(AlertError, LookupError):
    def __init__(self, contract_id: str):
        self.contract_id = contract_id
        super().__init__(f"Contract {contract_id} not found")


class ContractDateNotFoundError(AlertError, LookupError):
    def __init__(self, contract_id: str, date_id: str):
        self.contract_id = contract_id
        self.date_id = date_id
        super().__init__(f"Contract date {date_id} not found on contract {contract_id}")


class AlertAlreadyDispatchedError(AlertError):
    """A sent alert is terminal and cannot be recreated."""

    def __init__(self, date_id: str, offset_days: int):
        self.date_id = date_id
        self.offset_days = offset_days
        super().__init__(f"Alert {offset_days}d before date {date_id} was already sent")


def validate_offset(offset_days: object) -> int:
    """Return ``offset_days`` if it is one of the reminder offsets."""
    if isinstance(offset_days, bool) or not isinstance(offset_days, int):
        raise InvalidOffsetError(offset_days)
    if offset_days not in REMINDER_OFFSETS:
        raise InvalidOffsetError(offset_days)
    return int(offset_days)


__all__ = [
    "AlertError",
    "InvalidOffsetError",
    "ContractNotFoundError",
    "ContractDateNotFoundError",
    "AlertAlreadyDispatchedError",
    "validate_offset",
]
