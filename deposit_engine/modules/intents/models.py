"""Domain models for deposit intents."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional

INTENT_PENDING = "pending"
INTENT_DETECTED = "detected"
INTENT_CREDITED = "credited"
INTENT_EXPIRED = "expired"


@dataclass(slots=True)
class DepositIntent:
    id: str
    user_id: str
    network: str
    expected_amount: Decimal
    reference_code: str
    status: str
    expires_at: datetime
    main_wallet_address: Optional[str] = None
    created_at: Optional[datetime] = None
