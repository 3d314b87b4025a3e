"""Base class for the SQL repositories of the deposit engine."""

from __future__ import annotations

from typing import Generic, TypeVar

from sqlalchemy import Update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

ModelT = TypeVar("ModelT")


class AsyncRepository(Generic[ModelT]):
    """Works inside the caller's session and never commits.

    Status changes are written as guarded ``UPDATE`` statements; the number of
    rows they touch tells the caller whether it won the transition.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    @property
    def session(self) -> AsyncSession:
        return self._session

    async def add(self, instance: ModelT) -> ModelT:
        self.session.add(instance)
        await self.session.flush()
        return instance

    async def add_unique(self, instance: ModelT) -> ModelT | None:
        """Insert ``instance``; ``None`` when a unique key already holds that row.

        The session is rolled back on a collision, so callers re-read from a
        clean state.
        """
        self.session.add(instance)
        try:
            await self.session.flush()
        except IntegrityError:
            await self.session.rollback()
            return None
        return instance

    async def update_rows(self, stmt: Update) -> int:
        result = await self.session.execute(stmt.execution_options(synchronize_session=False))
        return result.rowcount or 0
