"""Simple dependency container for wiring core services."""

from __future__ import annotations

from dataclasses import dataclass, field
from functools import lru_cache
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from deposit_engine.core.config import Settings, get_settings
from deposit_engine.infrastructure.database.session import get_session_factory
from deposit_engine.modules.chains import ChainAdapter, build_adapters
from deposit_engine.modules.reconciler import DepositReconciler


@dataclass(slots=True)
class ApplicationContainer:
    settings: Settings
    session_factory: Optional[async_sessionmaker[AsyncSession]] = None
    adapters: dict[str, ChainAdapter] = field(default_factory=dict)
    _reconciler: Optional[DepositReconciler] = None

    def init_infrastructure(self) -> None:
        """Ensure infrastructure singletons (database engine, chain clients) are initialised."""
        if self.session_factory is None:
            self.session_factory = get_session_factory()
        if not self.adapters:
            self.adapters = build_adapters(self.settings.chains)

    @property
    def reconciler(self) -> DepositReconciler:
        if self._reconciler is None:
            self.init_infrastructure()
            assert self.session_factory is not None
            self._reconciler = DepositReconciler(self.session_factory, self.adapters, self.settings.reconciler)
        return self._reconciler

    async def aclose(self) -> None:
        for adapter in self.adapters.values():
            await adapter.aclose()
        self.adapters = {}
        self._reconciler = None


@lru_cache()
def get_container() -> ApplicationContainer:
    container = ApplicationContainer(settings=get_settings())
    container.init_infrastructure()
    return container


__all__ = ["ApplicationContainer", "get_container"]
