"""Contract every chain adapter implements."""

from __future__ import annotations

from typing import Protocol

from deposit_engine.modules.wallets.models import MainWallet

from .models import TransferBatch


class ChainAdapter(Protocol):
    network: str

    async def get_head_height(self) -> int:
        ...

    async def fetch_transfers_since(
        self,
        checkpoint: int,
        wallet: MainWallet,
        *,
        head_height: int | None = None,
    ) -> TransferBatch:
        ...

    async def aclose(self) -> None:
        ...
