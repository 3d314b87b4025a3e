"""Repository protocol for deposit intents."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Protocol, Sequence

from deposit_engine.db.models import DepositIntent as DepositIntentModel


class IntentRepository(Protocol):
    async def get(self, intent_id: str) -> DepositIntentModel | None:
        ...

    async def create(
        self,
        *,
        user_id: str,
        network: str,
        expected_amount: Decimal,
        reference_code: str,
        main_wallet_address: str | None,
        expires_at: datetime,
    ) -> DepositIntentModel:
        ...

    async def find_open_for_user(self, user_id: str, network: str, now: datetime) -> DepositIntentModel | None:
        ...

    async def find_candidates(
        self,
        network: str,
        lower: Decimal,
        upper: Decimal,
        now: datetime,
    ) -> Sequence[DepositIntentModel]:
        ...

    async def claim(self, intent_id: str) -> bool:
        ...

    async def release(self, intent_id: str) -> bool:
        ...

    async def mark_credited(self, intent_id: str) -> bool:
        ...

    async def expire_before(self, now: datetime) -> int:
        ...

    async def list_for_user(self, user_id: str, limit: int, offset: int) -> Sequence[DepositIntentModel]:
        ...

    async def reference_exists(self, reference_code: str) -> bool:
        ...
