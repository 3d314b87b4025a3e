"""Domain models for custodial main wallets and block checkpoints."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(slots=True)
class MainWallet:
    id: str
    network: str
    address: str
    token_contract_address: str
    min_confirmations: int
    is_active: bool = True


@dataclass(slots=True)
class BlockCheckpoint:
    network: str
    last_processed_block: int
    updated_at: Optional[datetime] = None
