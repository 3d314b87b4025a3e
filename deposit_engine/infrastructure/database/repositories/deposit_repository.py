"""SQLAlchemy implementation for deposit transactions."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Sequence

from sqlalchemy import and_, desc, func, or_, select, update

from deposit_engine.db.models import DepositTransaction, utcnow
from deposit_engine.domain.common import AsyncRepository


class SqlDepositRepository(AsyncRepository[DepositTransaction]):
    async def get(self, tx_id: str) -> DepositTransaction | None:
        stmt = select(DepositTransaction).where(DepositTransaction.id == tx_id)
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def get_by_tx_hash(self, tx_hash: str) -> DepositTransaction | None:
        stmt = select(DepositTransaction).where(DepositTransaction.tx_hash == tx_hash)
        result = await self.session.execute(stmt)
        return result.scalars().first()

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
    ) -> DepositTransaction | None:
        """Insert a pending transaction; ``None`` when the hash already exists."""
        tx = DepositTransaction(
            tx_hash=tx_hash,
            from_address=from_address,
            to_address=to_address,
            amount=amount,
            network=network,
            block_number=block_number,
            block_hash=block_hash,
            confirmations=0,
            status="pending",
            raw_payload=raw_payload,
        )
        return await self.add_unique(tx)

    async def list_open(self, limit: int) -> Sequence[DepositTransaction]:
        """Pending rows and confirmed rows still waiting for their credit.

        Confirmed rows without a user never move on and are listed by
        ``list_unmatched`` instead.
        """
        stmt = (
            select(DepositTransaction)
            .where(
                or_(
                    DepositTransaction.status == "pending",
                    and_(
                        DepositTransaction.status == "confirmed",
                        DepositTransaction.user_id.is_not(None),
                    ),
                )
            )
            .order_by(desc(DepositTransaction.created_at))
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def update_confirmations(
        self,
        tx_id: str,
        *,
        expected_status: str,
        confirmations: int,
        status: str,
        confirmed_at: datetime | None,
    ) -> bool:
        values: dict[str, Any] = {
            "confirmations": confirmations,
            "status": status,
            "updated_at": utcnow(),
        }
        if confirmed_at is not None:
            values["confirmed_at"] = confirmed_at
        stmt = (
            update(DepositTransaction)
            .where(
                DepositTransaction.id == tx_id,
                DepositTransaction.status == expected_status,
            )
            .values(**values)
        )
        return await self.update_rows(stmt) == 1

    async def bind_intent(self, tx_id: str, *, user_id: str, intent_id: str, reference_code: str | None) -> bool:
        stmt = (
            update(DepositTransaction)
            .where(
                DepositTransaction.id == tx_id,
                DepositTransaction.user_id.is_(None),
            )
            .values(
                user_id=user_id,
                deposit_intent_id=intent_id,
                reference_code=reference_code,
                updated_at=utcnow(),
            )
        )
        return await self.update_rows(stmt) == 1

    async def mark_credited(self, tx_id: str, credited_at: datetime) -> bool:
        """Compare-and-swap ``confirmed -> credited``; the commit marker of a credit."""
        stmt = (
            update(DepositTransaction)
            .where(
                DepositTransaction.id == tx_id,
                DepositTransaction.status == "confirmed",
                DepositTransaction.user_id.is_not(None),
            )
            .values(status="credited", credited_at=credited_at, updated_at=credited_at)
        )
        return await self.update_rows(stmt) == 1

    async def list_for_user(self, user_id: str, limit: int, offset: int) -> Sequence[DepositTransaction]:
        stmt = (
            select(DepositTransaction)
            .where(DepositTransaction.user_id == user_id)
            .order_by(desc(DepositTransaction.created_at))
            .offset(offset)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def list_unmatched(self, status: str, limit: int) -> Sequence[DepositTransaction]:
        stmt = (
            select(DepositTransaction)
            .where(
                DepositTransaction.user_id.is_(None),
                DepositTransaction.status == status,
            )
            .order_by(desc(DepositTransaction.created_at))
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def count_by_status(self) -> dict[str, int]:
        stmt = select(DepositTransaction.status, func.count()).group_by(DepositTransaction.status)
        result = await self.session.execute(stmt)
        return {status: count for status, count in result.all()}

    async def count_unmatched(self, status: str) -> int:
        stmt = select(func.count()).select_from(DepositTransaction).where(
            DepositTransaction.user_id.is_(None),
            DepositTransaction.status == status,
        )
        result = await self.session.execute(stmt)
        return int(result.scalar_one())
