"""SQLAlchemy implementation for deposit intents."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Sequence

from sqlalchemy import desc, select, update

from deposit_engine.db.models import DepositIntent, utcnow
from deposit_engine.domain.common import AsyncRepository


class SqlIntentRepository(AsyncRepository[DepositIntent]):
    async def get(self, intent_id: str) -> DepositIntent | None:
        stmt = select(DepositIntent).where(DepositIntent.id == intent_id)
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def create(
        self,
        *,
        user_id: str,
        network: str,
        expected_amount: Decimal,
        reference_code: str,
        main_wallet_address: str | None,
        expires_at: datetime,
    ) -> DepositIntent:
        intent = DepositIntent(
            user_id=user_id,
            network=network,
            expected_amount=expected_amount,
            reference_code=reference_code,
            main_wallet_address=main_wallet_address,
            status="pending",
            expires_at=expires_at,
        )
        return await self.add(intent)

    async def find_open_for_user(self, user_id: str, network: str, now: datetime) -> DepositIntent | None:
        stmt = (
            select(DepositIntent)
            .where(
                DepositIntent.user_id == user_id,
                DepositIntent.network == network,
                DepositIntent.status == "pending",
                DepositIntent.expires_at > now,
            )
            .order_by(desc(DepositIntent.created_at))
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def find_candidates(
        self,
        network: str,
        lower: Decimal,
        upper: Decimal,
        now: datetime,
    ) -> Sequence[DepositIntent]:
        stmt = (
            select(DepositIntent)
            .where(
                DepositIntent.network == network,
                DepositIntent.status == "pending",
                DepositIntent.expires_at > now,
                DepositIntent.expected_amount >= lower,
                DepositIntent.expected_amount <= upper,
            )
            .order_by(DepositIntent.created_at, DepositIntent.id)
        )
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def _transition(self, intent_id: str, source: str, target: str) -> bool:
        stmt = (
            update(DepositIntent)
            .where(DepositIntent.id == intent_id, DepositIntent.status == source)
            .values(status=target, updated_at=utcnow())
        )
        return await self.update_rows(stmt) == 1

    async def claim(self, intent_id: str) -> bool:
        """Compare-and-swap ``pending -> detected``."""
        return await self._transition(intent_id, "pending", "detected")

    async def release(self, intent_id: str) -> bool:
        return await self._transition(intent_id, "detected", "pending")

    async def mark_credited(self, intent_id: str) -> bool:
        return await self._transition(intent_id, "detected", "credited")

    async def expire_before(self, now: datetime) -> int:
        stmt = (
            update(DepositIntent)
            .where(DepositIntent.status == "pending", DepositIntent.expires_at < now)
            .values(status="expired", updated_at=now)
        )
        return await self.update_rows(stmt)

    async def list_for_user(self, user_id: str, limit: int, offset: int) -> Sequence[DepositIntent]:
        stmt = (
            select(DepositIntent)
            .where(DepositIntent.user_id == user_id)
            .order_by(desc(DepositIntent.created_at))
            .offset(offset)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def reference_exists(self, reference_code: str) -> bool:
        stmt = select(DepositIntent.id).where(DepositIntent.reference_code == reference_code)
        result = await self.session.execute(stmt)
        return result.first() is not None
