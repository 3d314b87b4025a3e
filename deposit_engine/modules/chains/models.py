"""Chain-agnostic transfer records handed from adapters to the ingestor."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

NETWORK_TRC20 = "TRC20"
NETWORK_BEP20 = "BEP20"

TRANSFER_EVENT_SIGNATURE = "Transfer(address,address,uint256)"
# keccak256 of TRANSFER_EVENT_SIGNATURE, shared by TRC20 and ERC20/BEP20 tokens
TRANSFER_TOPIC = "ddf252ad1be2c89b69c2b068fc378daa952ba7f163c4a11628f55a4df523b3ef"


@dataclass(slots=True)
class RawTransfer:
    tx_hash: str
    from_address: str
    to_address: str
    amount: Decimal
    network: str
    block_number: int
    block_hash: str = ""
    raw_payload: dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class TransferBatch:
    """Transfers found in ``(checkpoint, scanned_to]`` plus the observed head."""

    events: list[RawTransfer]
    head_height: int
    scanned_to: int

    @property
    def drained(self) -> bool:
        return self.scanned_to >= self.head_height


def scale_amount(raw_value: int, decimals: int) -> Decimal:
    return Decimal(raw_value) / (Decimal(10) ** decimals)
