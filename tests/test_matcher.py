from datetime import datetime, timedelta, timezone
from decimal import Decimal

from deposit_engine.modules.chains.models import NETWORK_BEP20, NETWORK_TRC20, RawTransfer
from deposit_engine.modules.deposits import DepositService
from deposit_engine.modules.intents import IntentJanitor, IntentMatcher, IntentService

from .conftest import BEP20_WALLET, add_intent


async def _ingest(session_factory, tx_hash: str, amount: str, network: str = NETWORK_BEP20):
    async with session_factory() as session:
        tx, _ = await DepositService.with_session(session).ingest(
            RawTransfer(
                tx_hash=tx_hash,
                from_address="0xsender",
                to_address=BEP20_WALLET,
                amount=Decimal(amount),
                network=network,
                block_number=10,
            )
        )
        await session.commit()
    return tx


async def _match(session_factory, tx, now=None):
    async with session_factory() as session:
        intent = await IntentMatcher.with_session(session, 0.05).match(tx, now)
        await session.commit()
    return intent


async def _intent_status(session_factory, intent_id: str) -> str:
    async with session_factory() as session:
        intent = await IntentService.with_session(session).get(intent_id)
    return intent.status


async def test_transfer_within_tolerance_matches(session_factory):
    intent_id = await add_intent(session_factory, "user-1", "100")
    tx = await _ingest(session_factory, "0x97", "97")

    intent = await _match(session_factory, tx)

    assert intent is not None
    assert intent.id == intent_id
    assert tx.user_id == "user-1"
    assert await _intent_status(session_factory, intent_id) == "detected"
    async with session_factory() as session:
        stored = await DepositService.with_session(session).get_by_tx_hash("0x97")
    assert stored.user_id == "user-1"
    assert stored.deposit_intent_id == intent_id
    assert stored.reference_code == intent.reference_code


async def test_transfer_outside_tolerance_stays_unmatched(session_factory):
    intent_id = await add_intent(session_factory, "user-1", "100")
    tx = await _ingest(session_factory, "0x80", "80")

    assert await _match(session_factory, tx) is None
    assert tx.user_id is None
    assert await _intent_status(session_factory, intent_id) == "pending"


async def test_other_network_intents_are_ignored(session_factory):
    await add_intent(session_factory, "user-1", "100", network=NETWORK_TRC20)
    tx = await _ingest(session_factory, "0x100", "100")

    assert await _match(session_factory, tx) is None


async def test_oldest_intent_wins(session_factory):
    now = datetime.now(timezone.utc)
    newer = await add_intent(session_factory, "user-new", "100", created_at=now - timedelta(minutes=5))
    older = await add_intent(session_factory, "user-old", "100", created_at=now - timedelta(minutes=30))

    first = await _match(session_factory, await _ingest(session_factory, "0xa", "100"))
    second = await _match(session_factory, await _ingest(session_factory, "0xb", "100"))

    assert first.id == older
    assert first.user_id == "user-old"
    assert second.id == newer


async def test_consumed_intent_never_matches_twice(session_factory):
    await add_intent(session_factory, "user-1", "100")

    assert await _match(session_factory, await _ingest(session_factory, "0xa", "100")) is not None
    assert await _match(session_factory, await _ingest(session_factory, "0xb", "100")) is None


async def test_expired_intent_is_never_matched_and_gets_expired(session_factory):
    now = datetime.now(timezone.utc)
    intent_id = await add_intent(
        session_factory,
        "user-1",
        "100",
        created_at=now - timedelta(hours=25),
        expires_at=now - timedelta(hours=1),
    )
    tx = await _ingest(session_factory, "0xlate", "100")

    assert await _match(session_factory, tx, now) is None
    assert tx.user_id is None

    expired = await IntentJanitor(session_factory).expire_stale(now)

    assert expired == 1
    assert await _intent_status(session_factory, intent_id) == "expired"


async def test_janitor_leaves_live_intents_alone(session_factory):
    intent_id = await add_intent(session_factory, "user-1", "100")

    assert await IntentJanitor(session_factory).expire_stale() == 0
    assert await _intent_status(session_factory, intent_id) == "pending"
