"""Repository protocol for deposit transactions."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Protocol, Sequence

from deposit_engine.db.models import DepositTransaction as DepositTransactionModel


class DepositRepository(Protocol):
    async def get(self, tx_id: str) -> DepositTransactionModel | None:
        ...

    async def get_by_tx_hash(self, tx_hash: str) -> DepositTransactionModel | None:
        ...

    async def create(
        self,
        *,
        tx_hash: str,
        from_address: str | None,
        to_address: str,
        amount: Decimal,
        network: str,
        block_number: int,
        block_hash: str | None,
        raw_payload: dict[str, Any] | None,
    ) -> DepositTransactionModel | None:
        ...

    async def list_open(self, limit: int) -> Sequence[DepositTransactionModel]:
        ...

    async def update_confirmations(
        self,
        tx_id: str,
        *,
        expected_status: str,
        confirmations: int,
        status: str,
        confirmed_at: datetime | None,
    ) -> bool:
        ...

    async def bind_intent(self, tx_id: str, *, user_id: str, intent_id: str, reference_code: str | None) -> bool:
        ...

    async def mark_credited(self, tx_id: str, credited_at: datetime) -> bool:
        ...

    async def list_for_user(self, user_id: str, limit: int, offset: int) -> Sequence[DepositTransactionModel]:
        ...

    async def list_unmatched(self, status: str, limit: int) -> Sequence[DepositTransactionModel]:
        ...

    async def count_by_status(self) -> dict[str, int]:
        ...

    async def count_unmatched(self, status: str) -> int:
        ...
