"""Main wallet lookups and the per-network checkpoint store."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from deposit_engine.db.models import BlockCheckpoint as CheckpointModel, MainWallet as MainWalletModel
from deposit_engine.infrastructure.database.repositories.checkpoint_repository import SqlCheckpointRepository
from deposit_engine.infrastructure.database.repositories.main_wallet_repository import SqlMainWalletRepository

from .models import BlockCheckpoint, MainWallet
from .repository import CheckpointRepository, MainWalletRepository


@dataclass(slots=True)
class MainWalletService:
    repository: MainWalletRepository

    @classmethod
    def with_session(cls, session: AsyncSession) -> "MainWalletService":
        return cls(SqlMainWalletRepository(session))

    async def list_active(self) -> list[MainWallet]:
        rows = await self.repository.list_active()
        return [self._to_domain(row) for row in rows]

    async def active_by_network(self) -> dict[str, list[MainWallet]]:
        grouped: dict[str, list[MainWallet]] = defaultdict(list)
        for wallet in await self.list_active():
            grouped[wallet.network].append(wallet)
        return dict(grouped)

    async def min_confirmations_by_network(self) -> dict[str, int]:
        """Strictest threshold among each network's active wallets."""
        thresholds: dict[str, int] = {}
        for wallet in await self.list_active():
            thresholds[wallet.network] = max(thresholds.get(wallet.network, 0), wallet.min_confirmations)
        return thresholds

    async def register_wallet(
        self,
        *,
        network: str,
        address: str,
        token_contract_address: str,
        min_confirmations: int,
        is_active: bool = True,
    ) -> MainWallet:
        model = await self.repository.upsert(
            network=network.upper(),
            address=address,
            token_contract_address=token_contract_address,
            min_confirmations=min_confirmations,
            is_active=is_active,
        )
        return self._to_domain(model)

    @staticmethod
    def _to_domain(model: MainWalletModel) -> MainWallet:
        return MainWallet(
            id=model.id,
            network=model.network,
            address=model.address,
            token_contract_address=model.token_contract_address,
            min_confirmations=model.min_confirmations,
            is_active=model.is_active,
        )


@dataclass(slots=True)
class CheckpointStore:
    repository: CheckpointRepository

    @classmethod
    def with_session(cls, session: AsyncSession) -> "CheckpointStore":
        return cls(SqlCheckpointRepository(session))

    async def get_checkpoint(self, network: str) -> int:
        checkpoint = await self.repository.get(network)
        return int(checkpoint.last_processed_block) if checkpoint else 0

    async def set_checkpoint(self, network: str, height: int) -> int:
        """Advance the watermark; a lower height leaves it untouched."""
        checkpoint = await self.repository.advance(network, height)
        return int(checkpoint.last_processed_block)

    async def list_checkpoints(self) -> list[BlockCheckpoint]:
        rows = await self.repository.list_all()
        return [self._to_domain(row) for row in rows]

    @staticmethod
    def _to_domain(model: CheckpointModel) -> BlockCheckpoint:
        return BlockCheckpoint(
            network=model.network,
            last_processed_block=int(model.last_processed_block),
            updated_at=model.updated_at,
        )
