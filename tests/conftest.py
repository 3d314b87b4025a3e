"""Shared fixtures: in-memory database, fake chain adapters and seed helpers."""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Optional

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from deposit_engine.db.models import DepositIntent, MainWallet
from deposit_engine.infrastructure.database.session import init_db
from deposit_engine.modules.chains.exceptions import ChainRpcError
from deposit_engine.modules.chains.models import NETWORK_BEP20, NETWORK_TRC20, RawTransfer, TransferBatch

BEP20_WALLET = "0x1111111111111111111111111111111111111111"
BEP20_TOKEN = "0x55d398326f99059fF775485246999027B3197955"
TRC20_WALLET = "TMainWalletAddressForTests000000001"
TRC20_TOKEN = "TR7NHqjeKQxGTCi8q8ZY4pL8otSzgjLj6t"


class FakeChainAdapter:
    """In-memory chain returning canned transfers in ``(checkpoint, head]``."""

    def __init__(self, network: str, head: int = 100, chunk_size: int = 1000) -> None:
        self.network = network
        self.head = head
        self.chunk_size = chunk_size
        self.transfers: list[RawTransfer] = []
        self.fail_fetch = False
        self.fail_head = False
        self.fetch_calls: list[tuple[int, int]] = []
        self.closed = False

    def add_transfer(
        self,
        tx_hash: str,
        amount: str,
        block_number: int,
        to_address: Optional[str] = None,
    ) -> RawTransfer:
        transfer = RawTransfer(
            tx_hash=tx_hash,
            from_address="0xsender",
            to_address=to_address or (BEP20_WALLET if self.network == NETWORK_BEP20 else TRC20_WALLET),
            amount=Decimal(amount),
            network=self.network,
            block_number=block_number,
            block_hash=f"0xblock{block_number}",
        )
        self.transfers.append(transfer)
        return transfer

    async def get_head_height(self) -> int:
        if self.fail_head:
            raise ChainRpcError(self.network, "head unavailable")
        return self.head

    async def fetch_transfers_since(self, checkpoint, wallet, *, head_height=None) -> TransferBatch:
        if self.fail_fetch:
            raise ChainRpcError(self.network, "node unavailable")
        head = head_height if head_height is not None else self.head
        scanned_to = min(checkpoint + self.chunk_size, head)
        self.fetch_calls.append((checkpoint, scanned_to))
        events = [
            transfer
            for transfer in self.transfers
            if checkpoint < transfer.block_number <= scanned_to and transfer.to_address == wallet.address
        ]
        return TransferBatch(events=events, head_height=head, scanned_to=max(scanned_to, checkpoint))

    async def aclose(self) -> None:
        self.closed = True


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def bep20_adapter() -> FakeChainAdapter:
    return FakeChainAdapter(NETWORK_BEP20, head=100)


@pytest.fixture
def trc20_adapter() -> FakeChainAdapter:
    return FakeChainAdapter(NETWORK_TRC20, head=500)


async def add_wallet(
    session_factory: async_sessionmaker[AsyncSession],
    network: str = NETWORK_BEP20,
    address: str = BEP20_WALLET,
    token: str = BEP20_TOKEN,
    min_confirmations: int = 12,
) -> None:
    async with session_factory() as session:
        session.add(
            MainWallet(
                network=network,
                address=address,
                token_contract_address=token,
                min_confirmations=min_confirmations,
                is_active=True,
            )
        )
        await session.commit()


async def add_intent(
    session_factory: async_sessionmaker[AsyncSession],
    user_id: str,
    amount: str,
    *,
    network: str = NETWORK_BEP20,
    created_at: Optional[datetime] = None,
    expires_at: Optional[datetime] = None,
    reference_code: Optional[str] = None,
) -> str:
    now = datetime.now(timezone.utc)
    intent = DepositIntent(
        user_id=user_id,
        network=network,
        expected_amount=Decimal(amount),
        reference_code=reference_code or f"DEP{uuid.uuid4().hex[:10].upper()}",
        status="pending",
        created_at=created_at or now,
        expires_at=expires_at or now + timedelta(hours=1),
    )
    async with session_factory() as session:
        session.add(intent)
        await session.commit()
        return intent.id


@pytest_asyncio.fixture
async def file_session_factory(tmp_path):
    """File-backed database for tests that need several concurrent connections."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'deposits.db'}",
        connect_args={"timeout": 30},
    )
    await init_db(engine)
    yield async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()
