"""Periodic expiry of deposit intents that never received a transfer."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from .service import IntentService


class IntentJanitor:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def expire_stale(self, now: datetime | None = None) -> int:
        async with self._session_factory() as session:
            expired = await IntentService.with_session(session).expire_stale(now)
            await session.commit()
        return expired
