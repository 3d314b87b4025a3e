"""Reconciliation cycle exports."""

from .exceptions import ConfigurationError
from .models import CycleError, CycleReport, NetworkReport
from .service import DepositReconciler

__all__ = [
    "ConfigurationError",
    "CycleError",
    "CycleReport",
    "DepositReconciler",
    "NetworkReport",
]
