"""Ledger mutation interface used by the credit applier."""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Protocol


class CreditLedger(Protocol):
    async def credit(
        self,
        user_id: str,
        amount: Decimal,
        reason: str,
        *,
        reference: str | None = None,
        meta: dict[str, Any] | None = None,
    ) -> None:
        """Increase the user's available balance and append an audit entry."""
        ...

    async def get_balance(self, user_id: str) -> Decimal:
        ...
