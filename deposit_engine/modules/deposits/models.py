"""Domain models for on-chain deposit transactions."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

STATUS_PENDING = "pending"
STATUS_CONFIRMED = "confirmed"
STATUS_CREDITED = "credited"

OPEN_STATUSES = (STATUS_PENDING, STATUS_CONFIRMED)


@dataclass(slots=True)
class DepositTransaction:
    id: str
    tx_hash: str
    from_address: Optional[str]
    to_address: str
    amount: Decimal
    network: str
    block_number: int
    block_hash: Optional[str]
    confirmations: int
    status: str
    user_id: Optional[str] = None
    deposit_intent_id: Optional[str] = None
    reference_code: Optional[str] = None
    raw_payload: dict[str, Any] = field(default_factory=dict, repr=False)
    created_at: Optional[datetime] = None
    confirmed_at: Optional[datetime] = None
    credited_at: Optional[datetime] = None

    @property
    def is_matched(self) -> bool:
        return self.user_id is not None


@dataclass(slots=True)
class TrackerFailure:
    network: str
    reference: Optional[str]
    message: str


@dataclass(slots=True)
class TrackerResult:
    scanned: int = 0
    confirmed: int = 0
    credited: int = 0
    unmatched: int = 0
    failures: list[TrackerFailure] = field(default_factory=list)
