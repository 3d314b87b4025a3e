"""SQLAlchemy implementation for per-network block checkpoints."""

from __future__ import annotations

from typing import Sequence

from sqlalchemy import select, update

from deposit_engine.db.models import BlockCheckpoint, utcnow
from deposit_engine.domain.common import AsyncRepository


class SqlCheckpointRepository(AsyncRepository[BlockCheckpoint]):
    async def get(self, network: str) -> BlockCheckpoint | None:
        stmt = select(BlockCheckpoint).where(BlockCheckpoint.network == network)
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def advance(self, network: str, height: int) -> BlockCheckpoint:
        checkpoint = await self.get(network)
        if checkpoint is None:
            return await self.add(BlockCheckpoint(network=network, last_processed_block=height))

        if height > checkpoint.last_processed_block:
            # guarded so a concurrent writer never moves it backwards
            stmt = (
                update(BlockCheckpoint)
                .where(
                    BlockCheckpoint.network == network,
                    BlockCheckpoint.last_processed_block < height,
                )
                .values(last_processed_block=height, updated_at=utcnow())
            )
            await self.update_rows(stmt)
            await self.session.refresh(checkpoint)
        return checkpoint

    async def list_all(self) -> Sequence[BlockCheckpoint]:
        result = await self.session.execute(select(BlockCheckpoint).order_by(BlockCheckpoint.network))
        return result.scalars().all()
