"""Exactly-once crediting of confirmed deposits."""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Callable

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from deposit_engine.db.models import utcnow
from deposit_engine.infrastructure.database.repositories.deposit_repository import SqlDepositRepository
from deposit_engine.infrastructure.database.repositories.intent_repository import SqlIntentRepository
from deposit_engine.infrastructure.database.repositories.ledger_repository import SqlCreditLedger

from .repository import CreditLedger

logger = logging.getLogger(__name__)

LedgerFactory = Callable[[AsyncSession], CreditLedger]


class CreditApplier:
    """Moves a confirmed, matched deposit to ``credited`` and pays the user.

    The status compare-and-swap, the ledger write and the intent update share
    one database transaction; the deposit row is the single writer guard, so
    overlapping passes credit a transaction at most once.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        ledger_factory: LedgerFactory = SqlCreditLedger,
    ) -> None:
        self._session_factory = session_factory
        self._ledger_factory = ledger_factory

    async def apply(self, tx_id: str) -> bool:
        async with self._session_factory() as session:
            try:
                credited = await self._apply(session, tx_id)
            except Exception:
                await session.rollback()
                raise
            if credited:
                await session.commit()
            else:
                await session.rollback()
            return credited

    async def _apply(self, session: AsyncSession, tx_id: str) -> bool:
        deposits = SqlDepositRepository(session)
        now = utcnow()
        if not await deposits.mark_credited(tx_id, now):
            logger.debug("Deposit %s is not creditable (already credited, unmatched or unconfirmed)", tx_id)
            return False

        tx = await deposits.get(tx_id)
        if tx is None or tx.user_id is None:
            raise RuntimeError(f"deposit {tx_id} disappeared while crediting")

        amount = Decimal(tx.amount)
        await self._ledger_factory(session).credit(
            tx.user_id,
            amount,
            f"{tx.network} deposit {tx.tx_hash}",
            reference=tx.tx_hash,
            meta={
                "network": tx.network,
                "from_address": tx.from_address,
                "confirmations": tx.confirmations,
                "reference_code": tx.reference_code,
                "credited_at": now.isoformat(),
            },
        )
        if tx.deposit_intent_id:
            await SqlIntentRepository(session).mark_credited(tx.deposit_intent_id)

        logger.info("Credited %s USDT to user %s for deposit %s", amount, tx.user_id, tx.tx_hash)
        return True
