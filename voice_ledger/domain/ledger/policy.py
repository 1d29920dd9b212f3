"""Overdraft policy applied to debits."""

from __future__ import annotations

from dataclasses import dataclass

from .exceptions import InsufficientFunds
from .models import OverdraftPolicy, TransactionType


@dataclass(frozen=True, slots=True)
class BalancePolicy:
    mode: OverdraftPolicy = OverdraftPolicy.STRICT
    grace_limit_cents: int = 0

    @property
    def floor_cents(self) -> int:
        if self.mode is OverdraftPolicy.GRACE:
            return -self.grace_limit_cents
        return 0

    def settle(self, user_id: str, balance_cents: int, signed_amount_cents: int, type: TransactionType) -> int:
        """Return the amount actually applied, or raise ``InsufficientFunds``."""
        if signed_amount_cents >= 0:
            return signed_amount_cents

        if balance_cents + signed_amount_cents >= self.floor_cents:
            return signed_amount_cents

        if self.mode is OverdraftPolicy.CAPPED and type is TransactionType.CALL_CHARGE and balance_cents > 0:
            # Collect whatever is left; the balance floors at zero.
            return -balance_cents

        raise InsufficientFunds(user_id, balance_cents, -signed_amount_cents)
