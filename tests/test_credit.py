import asyncio
from decimal import Decimal

from sqlalchemy import func, select

from deposit_engine.db.models import TransactionLog
from deposit_engine.infrastructure.database.repositories.deposit_repository import SqlDepositRepository
from deposit_engine.infrastructure.database.repositories.ledger_repository import SqlCreditLedger
from deposit_engine.modules.chains.models import NETWORK_BEP20, RawTransfer
from deposit_engine.modules.deposits import ConfirmationTracker, DepositService
from deposit_engine.modules.intents import IntentMatcher, IntentService
from deposit_engine.modules.ledger import CreditApplier

from .conftest import BEP20_WALLET, add_intent, add_wallet


async def _matched_deposit(session_factory, amount: str = "98.5", block_number: int = 50):
    intent_id = await add_intent(session_factory, "user-1", "100")
    async with session_factory() as session:
        tx, _ = await DepositService.with_session(session).ingest(
            RawTransfer(
                tx_hash="0xdeposit",
                from_address="0xsender",
                to_address=BEP20_WALLET,
                amount=Decimal(amount),
                network=NETWORK_BEP20,
                block_number=block_number,
            )
        )
        await IntentMatcher.with_session(session).match(tx)
        await session.commit()
    return tx, intent_id


def _tracker(session_factory, adapter) -> ConfirmationTracker:
    return ConfirmationTracker(session_factory, {adapter.network: adapter}, CreditApplier(session_factory))


async def _balance(session_factory, user_id: str = "user-1") -> Decimal:
    async with session_factory() as session:
        return await SqlCreditLedger(session).get_balance(user_id)


async def _ledger_entries(session_factory) -> int:
    async with session_factory() as session:
        result = await session.execute(select(func.count()).select_from(TransactionLog))
        return result.scalar_one()


async def _stored(session_factory, tx_hash: str = "0xdeposit"):
    async with session_factory() as session:
        return await DepositService.with_session(session).get_by_tx_hash(tx_hash)


async def test_one_short_of_threshold_stays_pending(session_factory, bep20_adapter):
    await add_wallet(session_factory, min_confirmations=12)
    await _matched_deposit(session_factory, block_number=50)
    bep20_adapter.head = 61

    result = await _tracker(session_factory, bep20_adapter).track()

    stored = await _stored(session_factory)
    assert result.confirmed == 0
    assert stored.status == "pending"
    assert stored.confirmations == 11
    assert await _balance(session_factory) == Decimal("0")


async def test_reaching_threshold_confirms_and_credits_in_same_pass(session_factory, bep20_adapter):
    await add_wallet(session_factory, min_confirmations=12)
    _, intent_id = await _matched_deposit(session_factory, block_number=50)
    bep20_adapter.head = 62

    result = await _tracker(session_factory, bep20_adapter).track()

    stored = await _stored(session_factory)
    assert (result.confirmed, result.credited) == (1, 1)
    assert stored.status == "credited"
    assert stored.confirmations == 12
    assert stored.credited_at is not None
    assert await _balance(session_factory) == Decimal("98.5")
    async with session_factory() as session:
        intent = await IntentService.with_session(session).get(intent_id)
    assert intent.status == "credited"


async def test_wallet_threshold_overrides_default(session_factory, bep20_adapter):
    await add_wallet(session_factory, min_confirmations=3)
    await _matched_deposit(session_factory, block_number=50)
    bep20_adapter.head = 53

    result = await _tracker(session_factory, bep20_adapter).track()

    assert result.credited == 1


async def test_confirmations_never_decrease(session_factory, bep20_adapter):
    await add_wallet(session_factory, min_confirmations=100)
    await _matched_deposit(session_factory, block_number=50)
    tracker = _tracker(session_factory, bep20_adapter)

    bep20_adapter.head = 60
    await tracker.track()
    bep20_adapter.head = 55
    await tracker.track()

    assert (await _stored(session_factory)).confirmations == 10


async def test_rerunning_credit_is_a_noop(session_factory, bep20_adapter):
    await add_wallet(session_factory)
    tx, _ = await _matched_deposit(session_factory, block_number=50)
    bep20_adapter.head = 100
    tracker = _tracker(session_factory, bep20_adapter)

    first = await tracker.track()
    second = await tracker.track()
    again = await CreditApplier(session_factory).apply(tx.id)

    assert first.credited == 1
    assert second.credited == 0
    assert again is False
    assert await _balance(session_factory) == Decimal("98.5")
    assert await _ledger_entries(session_factory) == 1


async def test_stale_snapshot_cannot_credit_twice(session_factory, bep20_adapter):
    await add_wallet(session_factory)
    tx, _ = await _matched_deposit(session_factory, block_number=50)
    bep20_adapter.head = 100
    await _tracker(session_factory, bep20_adapter).track()

    # a second applier still believing the deposit is only confirmed
    applier = CreditApplier(session_factory)
    assert await applier.apply(tx.id) is False
    assert await _balance(session_factory) == Decimal("98.5")


async def test_confirmed_unmatched_deposit_is_reported_not_credited(session_factory, bep20_adapter):
    await add_wallet(session_factory)
    async with session_factory() as session:
        await DepositService.with_session(session).ingest(
            RawTransfer(
                tx_hash="0xorphan",
                from_address="0xsender",
                to_address=BEP20_WALLET,
                amount=Decimal("5"),
                network=NETWORK_BEP20,
                block_number=10,
            )
        )
        await session.commit()
    bep20_adapter.head = 100

    result = await _tracker(session_factory, bep20_adapter).track()

    assert (result.confirmed, result.credited, result.unmatched) == (1, 0, 1)
    assert (await _stored(session_factory, "0xorphan")).status == "confirmed"
    assert await _ledger_entries(session_factory) == 0


async def test_head_failure_is_recorded_and_leaves_rows_untouched(session_factory, bep20_adapter):
    await add_wallet(session_factory)
    await _matched_deposit(session_factory, block_number=50)
    bep20_adapter.fail_head = True

    result = await _tracker(session_factory, bep20_adapter).track()

    assert len(result.failures) == 1
    assert result.failures[0].network == NETWORK_BEP20
    assert (await _stored(session_factory)).status == "pending"


async def test_concurrent_appliers_credit_exactly_once(file_session_factory):
    session_factory = file_session_factory
    await add_wallet(session_factory)
    tx, _ = await _matched_deposit(session_factory, block_number=50)
    async with session_factory() as session:
        await SqlDepositRepository(session).update_confirmations(
            tx.id, expected_status="pending", confirmations=10, status="confirmed", confirmed_at=None
        )
        await session.commit()

    results = await asyncio.gather(*(CreditApplier(session_factory).apply(tx.id) for _ in range(4)))

    assert sorted(results) == [False, False, False, True]
    assert await _balance(session_factory) == Decimal("98.5")
    assert await _ledger_entries(session_factory) == 1
    assert (await _stored(session_factory)).status == "credited"


async def _ingest_unmatched(session_factory, count: int, first_block: int) -> None:
    async with session_factory() as session:
        service = DepositService.with_session(session)
        for offset in range(count):
            await service.ingest(
                RawTransfer(
                    tx_hash=f"0xdust{offset}",
                    from_address="0xspammer",
                    to_address=BEP20_WALLET,
                    amount=Decimal("0.000001"),
                    network=NETWORK_BEP20,
                    block_number=first_block + offset,
                )
            )
        await session.commit()


async def test_unmatched_dust_does_not_starve_a_matched_deposit(session_factory, bep20_adapter):
    await add_wallet(session_factory)
    await _matched_deposit(session_factory, amount="100", block_number=10)
    await _ingest_unmatched(session_factory, 50, first_block=11)
    bep20_adapter.head = 1000
    tracker = _tracker(session_factory, bep20_adapter)

    await tracker.track()
    await tracker.track()

    stored = await _stored(session_factory)
    assert stored.status == "credited"
    assert await _balance(session_factory) == Decimal("100")
    async with session_factory() as session:
        open_txs = await DepositService.with_session(session).list_open(50)
        unmatched = await DepositService.with_session(session).count_unmatched_confirmed()
    assert open_txs == []
    assert unmatched == 50


async def test_credit_error_does_not_stop_other_credits(session_factory, bep20_adapter):
    await add_wallet(session_factory)
    broken, _ = await _matched_deposit(session_factory, block_number=50)
    await add_intent(session_factory, "user-2", "20")
    async with session_factory() as session:
        other, _ = await DepositService.with_session(session).ingest(
            RawTransfer(
                tx_hash="0xother",
                from_address="0xsender",
                to_address=BEP20_WALLET,
                amount=Decimal("20"),
                network=NETWORK_BEP20,
                block_number=51,
            )
        )
        await IntentMatcher.with_session(session).match(other)
        await session.commit()

    class BrokenApplier(CreditApplier):
        async def apply(self, tx_id: str) -> bool:
            if tx_id == broken.id:
                raise RuntimeError(f"deposit {tx_id} disappeared while crediting")
            return await super().apply(tx_id)

    bep20_adapter.head = 100
    tracker = ConfirmationTracker(session_factory, {NETWORK_BEP20: bep20_adapter}, BrokenApplier(session_factory))

    result = await tracker.track()

    assert result.credited == 1
    assert [failure.reference for failure in result.failures] == ["0xdeposit"]
    assert "disappeared" in result.failures[0].message
    assert await _balance(session_factory, "user-2") == Decimal("20")
    assert (await _stored(session_factory)).status == "confirmed"
