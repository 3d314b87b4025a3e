"""Binds freshly ingested transfers to pending deposit intents."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from deposit_engine.db.models import utcnow
from deposit_engine.infrastructure.database.repositories.deposit_repository import SqlDepositRepository
from deposit_engine.infrastructure.database.repositories.intent_repository import SqlIntentRepository
from deposit_engine.modules.deposits.models import DepositTransaction
from deposit_engine.modules.deposits.repository import DepositRepository

from .models import DepositIntent
from .repository import IntentRepository
from .service import IntentService

logger = logging.getLogger(__name__)


def tolerance_band(amount: Decimal, tolerance: Decimal) -> tuple[Decimal, Decimal]:
    return amount * (1 - tolerance), amount * (1 + tolerance)


@dataclass(slots=True)
class IntentMatcher:
    intents: IntentRepository
    deposits: DepositRepository
    tolerance: Decimal = Decimal("0.05")

    @classmethod
    def with_session(cls, session: AsyncSession, tolerance: float = 0.05) -> "IntentMatcher":
        return cls(SqlIntentRepository(session), SqlDepositRepository(session), Decimal(str(tolerance)))

    async def match(self, tx: DepositTransaction, now: datetime | None = None) -> DepositIntent | None:
        """Claim the oldest live intent whose expected amount is within tolerance.

        The claim is a ``pending -> detected`` compare-and-swap, so a candidate
        taken by a concurrent pass is skipped. Unmatched transfers stay
        without a user for manual reconciliation.
        """
        if tx.is_matched:
            return None

        lower, upper = tolerance_band(Decimal(tx.amount), self.tolerance)
        candidates = await self.intents.find_candidates(tx.network, lower, upper, now or utcnow())
        for candidate in candidates:
            if not await self.intents.claim(candidate.id):
                continue
            if not await self.deposits.bind_intent(
                tx.id,
                user_id=candidate.user_id,
                intent_id=candidate.id,
                reference_code=candidate.reference_code,
            ):
                # another pass bound this transfer first
                await self.intents.release(candidate.id)
                return None

            tx.user_id = candidate.user_id
            tx.deposit_intent_id = candidate.id
            tx.reference_code = candidate.reference_code
            logger.info(
                "Matched %s deposit %s (%s) to intent %s of user %s",
                tx.network,
                tx.tx_hash,
                tx.amount,
                candidate.reference_code,
                candidate.user_id,
            )
            intent = IntentService._to_domain(candidate)
            intent.status = "detected"
            return intent

        logger.warning("No pending intent matches %s deposit %s of %s", tx.network, tx.tx_hash, tx.amount)
        return None
