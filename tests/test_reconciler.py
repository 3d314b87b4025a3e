import asyncio
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from types import SimpleNamespace

from deposit_engine.core.config import ReconcilerSettings
from deposit_engine.infrastructure.database.repositories.ledger_repository import SqlCreditLedger
from deposit_engine.modules.chains import EvmChainAdapter
from deposit_engine.modules.chains.models import NETWORK_BEP20, NETWORK_TRC20
from deposit_engine.modules.deposits import DepositService
from deposit_engine.modules.intents import IntentService
from deposit_engine.modules.reconciler import DepositReconciler
from deposit_engine.modules.wallets import CheckpointStore

from .conftest import TRC20_TOKEN, TRC20_WALLET, add_intent, add_wallet


def _reconciler(session_factory, *adapters, **overrides) -> DepositReconciler:
    settings = ReconcilerSettings(**overrides)
    return DepositReconciler(session_factory, {adapter.network: adapter for adapter in adapters}, settings)


async def _checkpoint(session_factory, network: str = NETWORK_BEP20) -> int:
    async with session_factory() as session:
        return await CheckpointStore.with_session(session).get_checkpoint(network)


async def test_bep20_deposit_is_detected_then_credited(session_factory, bep20_adapter):
    await add_wallet(session_factory, min_confirmations=12)
    intent_id = await add_intent(session_factory, "user-u", "100")
    bep20_adapter.head = 500
    bep20_adapter.add_transfer("0xscenario", "98.5", block_number=500)
    reconciler = _reconciler(session_factory, bep20_adapter)

    first = await reconciler.process_cycle()

    assert first.ok
    assert (first.ingested, first.matched, first.credited) == (1, 1, 0)
    async with session_factory() as session:
        tx = await DepositService.with_session(session).get_by_tx_hash("0xscenario")
        intent = await IntentService.with_session(session).get(intent_id)
    assert tx.user_id == "user-u"
    assert tx.status == "pending"
    assert intent.status == "detected"

    bep20_adapter.head = 512
    second = await reconciler.process_cycle()

    assert (second.ingested, second.confirmed, second.credited) == (0, 1, 1)
    async with session_factory() as session:
        tx = await DepositService.with_session(session).get_by_tx_hash("0xscenario")
        intent = await IntentService.with_session(session).get(intent_id)
        balance = await SqlCreditLedger(session).get_balance("user-u")
    assert tx.status == "credited"
    assert intent.status == "credited"
    assert balance == Decimal("98.5")


async def test_cycle_rerun_ingests_nothing_new(session_factory, bep20_adapter):
    await add_wallet(session_factory)
    bep20_adapter.add_transfer("0x1", "10", block_number=20)
    reconciler = _reconciler(session_factory, bep20_adapter)

    first = await reconciler.process_cycle()
    second = await reconciler.process_cycle()

    assert first.ingested == 1
    assert second.ingested == 0
    assert second.networks[NETWORK_BEP20].chunks == 0


async def test_successful_pass_advances_checkpoint_to_head(session_factory, bep20_adapter):
    await add_wallet(session_factory)
    bep20_adapter.head = 2500
    bep20_adapter.add_transfer("0x1", "10", block_number=1200)

    report = await _reconciler(session_factory, bep20_adapter).process_network(NETWORK_BEP20)

    assert report.ok
    assert report.chunks == 3
    assert bep20_adapter.fetch_calls == [(0, 1000), (1000, 2000), (2000, 2500)]
    assert (report.checkpoint_before, report.checkpoint_after) == (0, 2500)
    assert await _checkpoint(session_factory) == 2500


async def test_chunk_limit_leaves_checkpoint_mid_range(session_factory, bep20_adapter):
    await add_wallet(session_factory)
    bep20_adapter.head = 2500

    await _reconciler(session_factory, bep20_adapter, max_chunks_per_cycle=1).process_cycle()

    assert await _checkpoint(session_factory) == 1000


async def test_failed_fetch_keeps_checkpoint(session_factory, bep20_adapter):
    await add_wallet(session_factory)
    reconciler = _reconciler(session_factory, bep20_adapter)
    bep20_adapter.head = 100
    await reconciler.process_cycle()

    bep20_adapter.head = 200
    bep20_adapter.fail_fetch = True
    report = await reconciler.process_cycle()

    assert not report.ok
    assert report.networks[NETWORK_BEP20].errors[0].stage == "fetch"
    assert await _checkpoint(session_factory) == 100


async def test_one_network_failing_does_not_block_the_other(session_factory, bep20_adapter, trc20_adapter):
    await add_wallet(session_factory)
    await add_wallet(session_factory, network=NETWORK_TRC20, address=TRC20_WALLET, token=TRC20_TOKEN)
    trc20_adapter.fail_head = True
    bep20_adapter.add_transfer("0xok", "10", block_number=20)

    report = await _reconciler(session_factory, bep20_adapter, trc20_adapter).process_cycle()

    assert report.networks[NETWORK_BEP20].ingested == 1
    assert report.networks[NETWORK_TRC20].errors
    assert await _checkpoint(session_factory, NETWORK_TRC20) == 0


async def test_parallel_networks(file_session_factory, bep20_adapter, trc20_adapter):
    session_factory = file_session_factory
    await add_wallet(session_factory)
    await add_wallet(session_factory, network=NETWORK_TRC20, address=TRC20_WALLET, token=TRC20_TOKEN)
    bep20_adapter.add_transfer("0xbsc", "10", block_number=20)
    trc20_adapter.add_transfer("trx-1", "10", block_number=400)

    report = await _reconciler(
        session_factory, bep20_adapter, trc20_adapter, parallel_networks=True
    ).process_cycle()

    assert report.ok
    assert report.ingested == 2
    assert await _checkpoint(session_factory, NETWORK_TRC20) == 500


async def test_slow_network_times_out(session_factory, bep20_adapter):
    await add_wallet(session_factory)

    async def stalled_head() -> int:
        await asyncio.sleep(5)
        return 100

    bep20_adapter.get_head_height = stalled_head
    report = await _reconciler(session_factory, bep20_adapter, network_timeout=0.05).process_cycle()

    errors = report.networks[NETWORK_BEP20].errors
    assert errors and "timed out" in errors[0].message
    assert await _checkpoint(session_factory) == 0


async def test_no_wallets_is_reported(session_factory, bep20_adapter):
    report = await _reconciler(session_factory, bep20_adapter).process_cycle()

    assert not report.ok
    assert report.errors[0].stage == "configuration"
    assert bep20_adapter.fetch_calls == []


async def test_missing_adapter_is_a_configuration_error(session_factory):
    await add_wallet(session_factory)

    report = await _reconciler(session_factory).process_network(NETWORK_BEP20)

    assert report.errors[0].stage == "configuration"


async def test_checkpoint_store_never_moves_backwards(session_factory):
    async with session_factory() as session:
        store = CheckpointStore.with_session(session)
        assert await store.get_checkpoint(NETWORK_BEP20) == 0
        assert await store.set_checkpoint(NETWORK_BEP20, 300) == 300
        assert await store.set_checkpoint(NETWORK_BEP20, 120) == 300
        await session.commit()

    assert await _checkpoint(session_factory) == 300


class _IdleEth:
    @property
    async def block_number(self) -> int:
        return 100

    async def get_logs(self, params: dict) -> list[dict]:
        return []


async def test_misconfigured_wallet_does_not_block_other_network(session_factory, trc20_adapter):
    bsc = EvmChainAdapter(SimpleNamespace(eth=_IdleEth(), provider=None))
    await add_wallet(session_factory, token="not-an-address")
    await add_wallet(session_factory, network=NETWORK_TRC20, address=TRC20_WALLET, token=TRC20_TOKEN)
    trc20_adapter.add_transfer("trx-ok", "10", block_number=400)
    past = datetime.now(timezone.utc) - timedelta(hours=2)
    await add_intent(session_factory, "user-late", "500", created_at=past, expires_at=past + timedelta(hours=1))

    report = await _reconciler(session_factory, bsc, trc20_adapter).process_cycle()

    errors = report.networks[NETWORK_BEP20].errors
    assert [error.stage for error in errors] == ["configuration"]
    assert "not-an-address" in errors[0].message
    assert report.networks[NETWORK_TRC20].ingested == 1
    assert report.networks[NETWORK_TRC20].ok
    assert report.expired_intents == 1
    assert await _checkpoint(session_factory, NETWORK_BEP20) == 0
    assert await _checkpoint(session_factory, NETWORK_TRC20) == 500


async def test_unexpected_adapter_error_is_reported(session_factory, bep20_adapter, trc20_adapter):
    await add_wallet(session_factory)
    await add_wallet(session_factory, network=NETWORK_TRC20, address=TRC20_WALLET, token=TRC20_TOKEN)
    trc20_adapter.add_transfer("trx-ok", "10", block_number=400)

    async def broken_fetch(checkpoint, wallet, *, head_height=None):
        raise KeyError("blockNumber")

    bep20_adapter.fetch_transfers_since = broken_fetch

    report = await _reconciler(session_factory, bep20_adapter, trc20_adapter).process_cycle()

    errors = report.networks[NETWORK_BEP20].errors
    assert len(errors) == 1
    assert "KeyError" in errors[0].message
    assert report.networks[NETWORK_TRC20].ingested == 1
    assert await _checkpoint(session_factory, NETWORK_BEP20) == 0
