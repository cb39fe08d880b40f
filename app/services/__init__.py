"""Business logic services."""

from app.services.dispatcher import AlertDispatcher, DispatchReport
from app.services.errors import (
    AlertAlreadyDispatchedError,
    AlertError,
    ContractDateNotFoundError,
    ContractNotFoundError,
    InvalidOffsetError,
)
from app.services.extraction import ExtractionBridge, process_contract_for_dates
from app.services.notifier import Notifier, NotifierError, ResendNotifier, build_notifier
from app.services.scheduler import AlertScheduler
from app.services.sweeper import CleanupSweeper, SweepReport

__all__ = [
    "AlertAlreadyDispatchedError",
    "AlertDispatcher",
    "AlertError",
    "AlertScheduler",
    "CleanupSweeper",
    "ContractDateNotFoundError",
    "ContractNotFoundError",
    "DispatchReport",
    "ExtractionBridge",
    "InvalidOffsetError",
    "Notifier",
    "NotifierError",
    "ResendNotifier",
    "SweepReport",
    "build_notifier",
    "process_contract_for_dates",
]
