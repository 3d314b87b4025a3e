"""Deposit intent creation, listing and expiry."""

from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from deposit_engine.db.models import DepositIntent as DepositIntentModel, utcnow
from deposit_engine.infrastructure.database.repositories.intent_repository import SqlIntentRepository
from deposit_engine.infrastructure.database.repositories.main_wallet_repository import SqlMainWalletRepository
from deposit_engine.modules.wallets.repository import MainWalletRepository

from .exceptions import InvalidIntentAmountError, MainWalletNotConfiguredError
from .models import DepositIntent
from .repository import IntentRepository

logger = logging.getLogger(__name__)

REFERENCE_PREFIX = "DEP"


def generate_reference_code() -> str:
    return REFERENCE_PREFIX + secrets.token_hex(5).upper()


@dataclass(slots=True)
class IntentService:
    repository: IntentRepository
    wallets: MainWalletRepository
    ttl: timedelta = timedelta(hours=24)

    @classmethod
    def with_session(cls, session: AsyncSession, ttl_hours: int = 24) -> "IntentService":
        return cls(SqlIntentRepository(session), SqlMainWalletRepository(session), timedelta(hours=ttl_hours))

    async def create_intent(
        self,
        user_id: str,
        network: str,
        amount: Decimal,
        now: datetime | None = None,
    ) -> tuple[DepositIntent, bool]:
        """Open a deposit intent, reusing the user's live one for the network.

        Returns the intent and whether it was newly created.
        """
        network = network.upper()
        if amount <= 0:
            raise InvalidIntentAmountError(amount)

        wallets = [wallet for wallet in await self.wallets.list_active() if wallet.network == network]
        if not wallets:
            raise MainWalletNotConfiguredError(network)

        now = now or utcnow()
        existing = await self.repository.find_open_for_user(user_id, network, now)
        if existing is not None:
            logger.info("Reusing deposit intent %s for user %s on %s", existing.reference_code, user_id, network)
            return self._to_domain(existing), False

        reference_code = generate_reference_code()
        while await self.repository.reference_exists(reference_code):
            reference_code = generate_reference_code()

        model = await self.repository.create(
            user_id=user_id,
            network=network,
            expected_amount=amount,
            reference_code=reference_code,
            main_wallet_address=wallets[0].address,
            expires_at=now + self.ttl,
        )
        logger.info("Created deposit intent %s: user %s expects %s on %s", reference_code, user_id, amount, network)
        return self._to_domain(model), True

    async def get(self, intent_id: str) -> DepositIntent | None:
        model = await self.repository.get(intent_id)
        return self._to_domain(model) if model else None

    async def list_for_user(self, user_id: str, limit: int = 20, offset: int = 0) -> list[DepositIntent]:
        rows = await self.repository.list_for_user(user_id, limit, offset)
        return [self._to_domain(row) for row in rows]

    async def expire_stale(self, now: datetime | None = None) -> int:
        """Mark pending intents past their deadline as expired."""
        expired = await self.repository.expire_before(now or utcnow())
        if expired:
            logger.info("Expired %d stale deposit intents", expired)
        return expired

    @staticmethod
    def _to_domain(model: DepositIntentModel) -> DepositIntent:
        return DepositIntent(
            id=model.id,
            user_id=model.user_id,
            network=model.network,
            expected_amount=Decimal(model.expected_amount),
            reference_code=model.reference_code,
            status=model.status,
            expires_at=model.expires_at,
            main_wallet_address=model.main_wallet_address,
            created_at=model.created_at,
        )
