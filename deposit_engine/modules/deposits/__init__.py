"""Deposit transaction ingestion and confirmation tracking."""

from .models import (
    OPEN_STATUSES,
    STATUS_CONFIRMED,
    STATUS_CREDITED,
    STATUS_PENDING,
    DepositTransaction,
    TrackerFailure,
    TrackerResult,
)
from .service import DepositService
from .tracker import ConfirmationTracker

__all__ = [
    "ConfirmationTracker",
    "DepositService",
    "DepositTransaction",
    "OPEN_STATUSES",
    "STATUS_CONFIRMED",
    "STATUS_CREDITED",
    "STATUS_PENDING",
    "TrackerFailure",
    "TrackerResult",
]
