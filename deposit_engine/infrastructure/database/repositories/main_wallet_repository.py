"""SQLAlchemy implementation for main wallets."""

from __future__ import annotations

from typing import Sequence

from sqlalchemy import select

from deposit_engine.db.models import MainWallet
from deposit_engine.domain.common import AsyncRepository


class SqlMainWalletRepository(AsyncRepository[MainWallet]):
    async def list_active(self) -> Sequence[MainWallet]:
        stmt = (
            select(MainWallet)
            .where(MainWallet.is_active.is_(True))
            .order_by(MainWallet.network, MainWallet.created_at)
        )
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def get_by_address(self, network: str, address: str) -> MainWallet | None:
        stmt = select(MainWallet).where(MainWallet.network == network, MainWallet.address == address)
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def upsert(
        self,
        *,
        network: str,
        address: str,
        token_contract_address: str,
        min_confirmations: int,
        is_active: bool,
    ) -> MainWallet:
        wallet = await self.get_by_address(network, address)
        if wallet is None:
            return await self.add(
                MainWallet(
                    network=network,
                    address=address,
                    token_contract_address=token_contract_address,
                    min_confirmations=min_confirmations,
                    is_active=is_active,
                )
            )
        wallet.token_contract_address = token_contract_address
        wallet.min_confirmations = min_confirmations
        wallet.is_active = is_active
        await self.session.flush()
        return wallet
