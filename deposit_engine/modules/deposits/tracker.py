"""Confirmation depth tracking for open deposit transactions."""

from __future__ import annotations

import logging
from collections import defaultdict
from datetime import datetime
from typing import Mapping

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from deposit_engine.db.models import utcnow
from deposit_engine.infrastructure.database.repositories.deposit_repository import SqlDepositRepository
from deposit_engine.modules.chains.base import ChainAdapter
from deposit_engine.modules.chains.exceptions import ChainAdapterError
from deposit_engine.modules.ledger.service import CreditApplier
from deposit_engine.modules.wallets.service import MainWalletService

from .models import STATUS_CONFIRMED, STATUS_PENDING, DepositTransaction, TrackerFailure, TrackerResult
from .service import DepositService

logger = logging.getLogger(__name__)


class ConfirmationTracker:
    """Recomputes confirmations and hands confirmed, matched deposits to the credit applier."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        adapters: Mapping[str, ChainAdapter],
        credit_applier: CreditApplier,
        *,
        batch_size: int = 50,
        default_min_confirmations: int = 12,
    ) -> None:
        self._session_factory = session_factory
        self._adapters = adapters
        self._credit_applier = credit_applier
        self._batch_size = batch_size
        self._default_min_confirmations = default_min_confirmations

    async def track(self, now: datetime | None = None) -> TrackerResult:
        now = now or utcnow()
        result = TrackerResult()

        async with self._session_factory() as session:
            open_txs = await DepositService.with_session(session).list_open(self._batch_size)
            thresholds = await MainWalletService.with_session(session).min_confirmations_by_network()
        result.scanned = len(open_txs)

        by_network: dict[str, list[DepositTransaction]] = defaultdict(list)
        for tx in open_txs:
            by_network[tx.network].append(tx)

        creditable: list[DepositTransaction] = []
        for network, txs in by_network.items():
            adapter = self._adapters.get(network)
            if adapter is None:
                result.failures.append(TrackerFailure(network, None, f"no chain adapter for {network}"))
                continue
            try:
                head = await adapter.get_head_height()
            except ChainAdapterError as exc:
                logger.error("Confirmation pass skipped for %s: %s", network, exc)
                result.failures.append(TrackerFailure(network, None, str(exc)))
                continue

            min_confirmations = thresholds.get(network, self._default_min_confirmations)
            try:
                confirmed = await self._update_network(txs, head, min_confirmations, now)
            except SQLAlchemyError as exc:
                logger.exception("Failed to store confirmations for %s", network)
                result.failures.append(TrackerFailure(network, None, str(exc)))
                continue
            result.confirmed += confirmed
            creditable.extend(tx for tx in txs if tx.status == STATUS_CONFIRMED)

        for tx in creditable:
            if not tx.is_matched:
                result.unmatched += 1
                logger.warning(
                    "Confirmed %s deposit %s of %s from %s has no matching intent; manual review needed",
                    tx.network,
                    tx.tx_hash,
                    tx.amount,
                    tx.from_address,
                )
                continue
            try:
                if await self._credit_applier.apply(tx.id):
                    result.credited += 1
            except Exception as exc:
                logger.exception("Credit failed for %s deposit %s", tx.network, tx.tx_hash)
                result.failures.append(TrackerFailure(tx.network, tx.tx_hash, str(exc)))

        return result

    async def _update_network(
        self,
        txs: list[DepositTransaction],
        head: int,
        min_confirmations: int,
        now: datetime,
    ) -> int:
        """Persist new depths for one network; returns how many became confirmed."""
        promoted = 0
        async with self._session_factory() as session:
            repository = SqlDepositRepository(session)
            for tx in txs:
                confirmations = max(head - tx.block_number, tx.confirmations)
                promote = tx.status == STATUS_PENDING and confirmations >= min_confirmations
                if confirmations == tx.confirmations and not promote:
                    continue
                status = STATUS_CONFIRMED if promote else tx.status
                updated = await repository.update_confirmations(
                    tx.id,
                    expected_status=tx.status,
                    confirmations=confirmations,
                    status=status,
                    confirmed_at=now if promote else None,
                )
                if not updated:
                    # moved on by an overlapping pass
                    continue
                tx.confirmations = confirmations
                if promote:
                    tx.status = STATUS_CONFIRMED
                    tx.confirmed_at = now
                    promoted += 1
                    logger.info(
                        "%s deposit %s confirmed at %d/%d confirmations",
                        tx.network,
                        tx.tx_hash,
                        confirmations,
                        min_confirmations,
                    )
            await session.commit()
        return promoted
