"""Repository protocols for main wallets and checkpoints."""

from __future__ import annotations

from typing import Protocol, Sequence

from deposit_engine.db.models import BlockCheckpoint as CheckpointModel, MainWallet as MainWalletModel


class MainWalletRepository(Protocol):
    async def list_active(self) -> Sequence[MainWalletModel]:
        ...

    async def get_by_address(self, network: str, address: str) -> MainWalletModel | None:
        ...

    async def upsert(
        self,
        *,
        network: str,
        address: str,
        token_contract_address: str,
        min_confirmations: int,
        is_active: bool,
    ) -> MainWalletModel:
        ...


class CheckpointRepository(Protocol):
    async def get(self, network: str) -> CheckpointModel | None:
        ...

    async def advance(self, network: str, height: int) -> CheckpointModel:
        ...

    async def list_all(self) -> Sequence[CheckpointModel]:
        ...
