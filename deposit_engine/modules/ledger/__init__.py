"""Ledger crediting exports."""

from .repository import CreditLedger
from .service import CreditApplier

__all__ = ["CreditApplier", "CreditLedger"]
