"""Transfer ingestion and deposit transaction queries."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import ROUND_DOWN, Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from deposit_engine.db.models import AMOUNT_QUANTUM, DepositTransaction as DepositTransactionModel
from deposit_engine.infrastructure.database.repositories.deposit_repository import SqlDepositRepository
from deposit_engine.modules.chains.models import RawTransfer

from .models import STATUS_CONFIRMED, DepositTransaction
from .repository import DepositRepository

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class DepositService:
    repository: DepositRepository

    @classmethod
    def with_session(cls, session: AsyncSession) -> "DepositService":
        return cls(SqlDepositRepository(session))

    async def ingest(self, raw: RawTransfer) -> tuple[DepositTransaction, bool]:
        """Persist a raw transfer once per ``tx_hash``.

        Returns the stored transaction and whether this call created it. A
        duplicate hash, including one inserted concurrently by an overlapping
        cycle, is a no-op.
        """
        existing = await self.repository.get_by_tx_hash(raw.tx_hash)
        if existing is not None:
            return self._to_domain(existing), False

        amount = Decimal(raw.amount).quantize(AMOUNT_QUANTUM, rounding=ROUND_DOWN)
        if amount != raw.amount:
            logger.debug("Truncated %s amount %s of %s to %s", raw.network, raw.amount, raw.tx_hash, amount)
        model = await self.repository.create(
            tx_hash=raw.tx_hash,
            from_address=raw.from_address,
            to_address=raw.to_address,
            amount=amount,
            network=raw.network,
            block_number=raw.block_number,
            block_hash=raw.block_hash or None,
            raw_payload=raw.raw_payload,
        )
        if model is None:
            existing = await self.repository.get_by_tx_hash(raw.tx_hash)
            if existing is None:
                raise RuntimeError(f"deposit {raw.tx_hash} vanished after a duplicate insert")
            return self._to_domain(existing), False

        logger.info(
            "Recorded %s deposit %s: %s from %s in block %d",
            raw.network,
            raw.tx_hash,
            amount,
            raw.from_address,
            raw.block_number,
        )
        return self._to_domain(model), True

    async def get_by_tx_hash(self, tx_hash: str) -> DepositTransaction | None:
        model = await self.repository.get_by_tx_hash(tx_hash)
        return self._to_domain(model) if model else None

    async def list_open(self, limit: int) -> list[DepositTransaction]:
        rows = await self.repository.list_open(limit)
        return [self._to_domain(row) for row in rows]

    async def list_for_user(self, user_id: str, limit: int = 20, offset: int = 0) -> list[DepositTransaction]:
        rows = await self.repository.list_for_user(user_id, limit, offset)
        return [self._to_domain(row) for row in rows]

    async def list_unmatched_confirmed(self, limit: int = 50) -> list[DepositTransaction]:
        rows = await self.repository.list_unmatched(STATUS_CONFIRMED, limit)
        return [self._to_domain(row) for row in rows]

    async def count_unmatched_confirmed(self) -> int:
        return await self.repository.count_unmatched(STATUS_CONFIRMED)

    async def count_by_status(self) -> dict[str, int]:
        return await self.repository.count_by_status()

    @staticmethod
    def _to_domain(model: DepositTransactionModel) -> DepositTransaction:
        return DepositTransaction(
            id=model.id,
            tx_hash=model.tx_hash,
            from_address=model.from_address,
            to_address=model.to_address,
            amount=Decimal(model.amount),
            network=model.network,
            block_number=int(model.block_number),
            block_hash=model.block_hash,
            confirmations=model.confirmations or 0,
            status=model.status,
            user_id=model.user_id,
            deposit_intent_id=model.deposit_intent_id,
            reference_code=model.reference_code,
            raw_payload=model.raw_payload or {},
            created_at=model.created_at,
            confirmed_at=model.confirmed_at,
            credited_at=model.credited_at,
        )
