"""Balance and audit-log writes for credited deposits."""

from __future__ import annotations

from decimal import Decimal
from typing import Any

from sqlalchemy import select, update

from deposit_engine.db.models import TransactionLog, UserBalance, utcnow
from deposit_engine.domain.common import AsyncRepository


class SqlCreditLedger(AsyncRepository[UserBalance]):
    """Writes ``user_balances`` and ``transaction_log`` in the caller's transaction."""

    async def credit(
        self,
        user_id: str,
        amount: Decimal,
        reason: str,
        *,
        reference: str | None = None,
        meta: dict[str, Any] | None = None,
    ) -> None:
        now = utcnow()
        stmt = (
            update(UserBalance)
            .where(UserBalance.user_id == user_id)
            .values(available_balance=UserBalance.available_balance + amount, updated_at=now)
        )
        if not await self.update_rows(stmt):
            await self.add(UserBalance(user_id=user_id, available_balance=amount, currency="USDT"))

        self.session.add(
            TransactionLog(
                user_id=user_id,
                type="deposit",
                amount=amount,
                status="completed",
                description=reason,
                reference=reference,
                meta=meta or {},
            )
        )
        await self.session.flush()

    async def get_balance(self, user_id: str) -> Decimal:
        stmt = select(UserBalance.available_balance).where(UserBalance.user_id == user_id)
        result = await self.session.execute(stmt)
        balance = result.scalar_one_or_none()
        return Decimal(balance) if balance is not None else Decimal("0")
