"""Reconciliation cycle orchestration."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Callable, Mapping

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from deposit_engine.core.config import ReconcilerSettings
from deposit_engine.db.models import utcnow
from deposit_engine.modules.chains.base import ChainAdapter
from deposit_engine.modules.chains.exceptions import ChainAdapterError, WalletConfigError
from deposit_engine.modules.chains.models import RawTransfer
from deposit_engine.modules.deposits.models import STATUS_PENDING
from deposit_engine.modules.deposits.service import DepositService
from deposit_engine.modules.deposits.tracker import ConfirmationTracker
from deposit_engine.modules.intents.janitor import IntentJanitor
from deposit_engine.modules.intents.matcher import IntentMatcher
from deposit_engine.modules.ledger.service import CreditApplier
from deposit_engine.modules.wallets.models import MainWallet
from deposit_engine.modules.wallets.service import CheckpointStore, MainWalletService

from .exceptions import ConfigurationError
from .models import (
    STAGE_CHECKPOINT,
    STAGE_CONFIGURATION,
    STAGE_CONFIRM,
    STAGE_CREDIT,
    STAGE_EXPIRE,
    STAGE_FETCH,
    STAGE_INGEST,
    STAGE_MATCH,
    CycleError,
    CycleReport,
    NetworkReport,
)

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


class _NetworkAborted(Exception):
    def __init__(self, stage: str, reference: str | None, cause: Exception) -> None:
        super().__init__(str(cause))
        self.stage = stage
        self.reference = reference
        self.cause = cause


class DepositReconciler:
    """Runs ingest, match, confirm, credit and expiry passes over all networks.

    The reconciler holds no state between cycles. Every pass re-reads the
    database, so cycles may be re-run, interrupted or overlapped.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        adapters: Mapping[str, ChainAdapter],
        settings: ReconcilerSettings | None = None,
        *,
        clock: Clock = utcnow,
        tracker: ConfirmationTracker | None = None,
        janitor: IntentJanitor | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._adapters = dict(adapters)
        self._settings = settings or ReconcilerSettings()
        self._clock = clock
        self._tracker = tracker or ConfirmationTracker(
            session_factory,
            self._adapters,
            CreditApplier(session_factory),
            batch_size=self._settings.confirmation_batch_size,
            default_min_confirmations=self._settings.default_min_confirmations,
        )
        self._janitor = janitor or IntentJanitor(session_factory)

    async def process_cycle(self) -> CycleReport:
        report = CycleReport(started_at=self._clock())

        try:
            wallets = await self._load_wallets()
        except SQLAlchemyError as exc:
            logger.exception("Could not load main wallets")
            report.errors.append(CycleError(STAGE_CONFIGURATION, None, None, str(exc)))
            wallets = {}
        else:
            if not wallets:
                error = ConfigurationError("no active main wallets configured")
                logger.error("Skipping ingestion: %s", error)
                report.errors.append(CycleError(STAGE_CONFIGURATION, None, None, str(error)))

        networks = sorted(wallets)
        if self._settings.parallel_networks:
            reports = await asyncio.gather(*(self._run_network(network, wallets[network]) for network in networks))
        else:
            reports = [await self._run_network(network, wallets[network]) for network in networks]
        report.networks = {network_report.network: network_report for network_report in reports}

        try:
            tracked = await self._tracker.track(self._clock())
        except SQLAlchemyError as exc:
            logger.exception("Confirmation pass failed")
            report.errors.append(CycleError(STAGE_CONFIRM, None, None, str(exc)))
        else:
            report.scanned = tracked.scanned
            report.confirmed = tracked.confirmed
            report.credited = tracked.credited
            report.unmatched = tracked.unmatched
            for failure in tracked.failures:
                stage = STAGE_CREDIT if failure.reference else STAGE_CONFIRM
                report.errors.append(CycleError(stage, failure.network, failure.reference, failure.message))

        try:
            report.expired_intents = await self._janitor.expire_stale(self._clock())
        except SQLAlchemyError as exc:
            logger.exception("Intent expiry failed")
            report.errors.append(CycleError(STAGE_EXPIRE, None, None, str(exc)))

        report.finished_at = self._clock()
        logger.info(
            "Cycle finished: ingested=%d matched=%d confirmed=%d credited=%d unmatched=%d expired=%d errors=%d",
            report.ingested,
            report.matched,
            report.confirmed,
            report.credited,
            report.unmatched,
            report.expired_intents,
            len(report.all_errors),
        )
        return report

    async def process_network(self, network: str) -> NetworkReport:
        """Ingest and match one network's new transfers and advance its checkpoint."""
        network = network.upper()
        try:
            wallets = (await self._load_wallets()).get(network, [])
        except SQLAlchemyError as exc:
            logger.exception("Could not load %s main wallets", network)
            report = NetworkReport(network=network)
            report.errors.append(CycleError(STAGE_CONFIGURATION, network, None, str(exc)))
            return report
        return await self._run_network(network, wallets)

    async def _load_wallets(self) -> dict[str, list[MainWallet]]:
        async with self._session_factory() as session:
            return await MainWalletService.with_session(session).active_by_network()

    async def _run_network(self, network: str, wallets: list[MainWallet]) -> NetworkReport:
        report = NetworkReport(network=network, wallets=len(wallets))
        try:
            await asyncio.wait_for(self._scan_network(network, wallets, report), self._settings.network_timeout)
        except asyncio.TimeoutError:
            logger.error(
                "%s pass timed out after %ss; checkpoint kept at %s",
                network,
                self._settings.network_timeout,
                report.checkpoint_after,
            )
            report.errors.append(
                CycleError(STAGE_FETCH, network, None, f"timed out after {self._settings.network_timeout}s")
            )
        except ConfigurationError as exc:
            logger.error("Skipping %s: %s", network, exc)
            report.errors.append(CycleError(STAGE_CONFIGURATION, network, None, str(exc)))
        except _NetworkAborted as exc:
            logger.error("%s pass aborted during %s: %s", network, exc.stage, exc.cause)
            report.errors.append(CycleError(exc.stage, network, exc.reference, str(exc.cause)))
        except Exception as exc:
            logger.exception("%s pass failed", network)
            report.errors.append(CycleError(STAGE_FETCH, network, None, f"{type(exc).__name__}: {exc}"))
        return report

    async def _scan_network(self, network: str, wallets: list[MainWallet], report: NetworkReport) -> None:
        if not wallets:
            raise ConfigurationError(f"no active main wallet for {network}")
        adapter = self._adapters.get(network)
        if adapter is None:
            raise ConfigurationError(f"no chain adapter registered for {network}")

        try:
            head = await adapter.get_head_height()
            checkpoint = await self._get_checkpoint(network)
        except (ChainAdapterError, SQLAlchemyError) as exc:
            raise _NetworkAborted(STAGE_FETCH, None, exc) from exc
        report.head_height = head
        report.checkpoint_before = report.checkpoint_after = checkpoint

        max_chunks = self._settings.max_chunks_per_cycle
        while checkpoint < head and (not max_chunks or report.chunks < max_chunks):
            events: list[RawTransfer] = []
            scanned_to = head
            for wallet in wallets:
                try:
                    batch = await adapter.fetch_transfers_since(checkpoint, wallet, head_height=head)
                except WalletConfigError as exc:
                    raise _NetworkAborted(STAGE_CONFIGURATION, wallet.address, exc) from exc
                except ChainAdapterError as exc:
                    raise _NetworkAborted(STAGE_FETCH, wallet.address, exc) from exc
                events.extend(batch.events)
                scanned_to = min(scanned_to, batch.scanned_to)

            report.chunks += 1
            report.fetched += len(events)
            for event in events:
                await self._ingest_and_match(event, report)

            if scanned_to <= checkpoint:
                break
            try:
                checkpoint = await self._set_checkpoint(network, scanned_to)
            except SQLAlchemyError as exc:
                raise _NetworkAborted(STAGE_CHECKPOINT, None, exc) from exc
            report.checkpoint_after = checkpoint
            logger.info("%s checkpoint advanced to %d (head %d)", network, checkpoint, head)

    async def _ingest_and_match(self, event: RawTransfer, report: NetworkReport) -> None:
        try:
            async with self._session_factory() as session:
                tx, created = await DepositService.with_session(session).ingest(event)
                await session.commit()
        except SQLAlchemyError as exc:
            raise _NetworkAborted(STAGE_INGEST, event.tx_hash, exc) from exc

        if created:
            report.ingested += 1
        else:
            report.duplicates += 1
        # a transfer seen again before its checkpoint advanced gets another chance to match
        if tx.is_matched or tx.status != STATUS_PENDING:
            return

        try:
            async with self._session_factory() as session:
                matcher = IntentMatcher.with_session(session, self._settings.amount_tolerance)
                intent = await matcher.match(tx, self._clock())
                await session.commit()
        except SQLAlchemyError as exc:
            raise _NetworkAborted(STAGE_MATCH, event.tx_hash, exc) from exc
        if intent is not None:
            report.matched += 1

    async def _get_checkpoint(self, network: str) -> int:
        async with self._session_factory() as session:
            return await CheckpointStore.with_session(session).get_checkpoint(network)

    async def _set_checkpoint(self, network: str, height: int) -> int:
        async with self._session_factory() as session:
            stored = await CheckpointStore.with_session(session).set_checkpoint(network, height)
            await session.commit()
        return stored
