"""Deposit intent module exports."""

from .exceptions import IntentError, InvalidIntentAmountError, MainWalletNotConfiguredError
from .janitor import IntentJanitor
from .matcher import IntentMatcher
from .models import (
    INTENT_CREDITED,
    INTENT_DETECTED,
    INTENT_EXPIRED,
    INTENT_PENDING,
    DepositIntent,
)
from .service import IntentService

__all__ = [
    "DepositIntent",
    "INTENT_CREDITED",
    "INTENT_DETECTED",
    "INTENT_EXPIRED",
    "INTENT_PENDING",
    "IntentError",
    "IntentJanitor",
    "IntentMatcher",
    "IntentService",
    "InvalidIntentAmountError",
    "MainWalletNotConfiguredError",
]
