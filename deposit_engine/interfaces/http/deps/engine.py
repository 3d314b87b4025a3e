"""Reconciler and settings dependency providers."""

from deposit_engine.core.config import Settings, get_settings
from deposit_engine.core.container import get_container
from deposit_engine.modules.reconciler import DepositReconciler


def get_app_settings() -> Settings:
    return get_settings()


def get_reconciler() -> DepositReconciler:
    return get_container().reconciler


__all__ = ["get_app_settings", "get_reconciler"]
