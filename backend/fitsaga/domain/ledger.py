"""
Pure credit ledger arithmetic.

Everything here works on immutable ``BalanceSnapshot`` values and either
returns a new snapshot or raises; nothing is mutated in place, so a failed
deduction can never leave a half-applied balance behind. Persistence and
locking live in ``CreditLedgerService``.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Optional

from fitsaga.core.enums import CreditPool
from fitsaga.core.exceptions import InsufficientCreditsError, ValidationException


@dataclass(frozen=True)
class BalanceSnapshot:
    gym_credits: int = 0
    interval_credits: int = 0

    @property
    def total(self) -> int:
        return self.gym_credits + self.interval_credits

    def pool_balance(self, pool: CreditPool) -> int:
        return self.interval_credits if pool == CreditPool.INTERVAL else self.gym_credits

    def is_valid(self) -> bool:
        return self.gym_credits >= 0 and self.interval_credits >= 0

    def apply_deltas(self, gym_delta: int, interval_delta: int) -> "BalanceSnapshot":
        return BalanceSnapshot(
            gym_credits=self.gym_credits + gym_delta,
            interval_credits=self.interval_credits + interval_delta,
        )

    def to_payload(self) -> dict[str, int]:
        return {
            "gym_credits": self.gym_credits,
            "interval_credits": self.interval_credits,
            "total_credits": self.total,
        }


@dataclass(frozen=True)
class DeductionResult:
    balance: BalanceSnapshot
    gym_used: int = 0
    interval_used: int = 0

    @property
    def borrowed(self) -> bool:
        """True when both pools contributed."""
        return self.gym_used > 0 and self.interval_used > 0

    @property
    def total_used(self) -> int:
        return self.gym_used + self.interval_used


def _require_non_negative(amount: int) -> None:
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise ValidationException(
            "Credit amounts must be integers", code="INVALID_CREDIT_AMOUNT", details={"amount": repr(amount)}
        )
    if amount < 0:
        raise ValidationException(
            "Credit amounts must be non-negative", code="INVALID_CREDIT_AMOUNT", details={"amount": amount}
        )


def borrowing_permitted(preferred_pool: CreditPool) -> bool:
    """Interval sessions may fall back to gym credits; gym sessions never touch interval credits."""
    return preferred_pool == CreditPool.INTERVAL


def deduct(
    balance: BalanceSnapshot,
    amount: int,
    preferred_pool: CreditPool,
    *,
    allow_borrow: Optional[bool] = None,
) -> DeductionResult:
    """
    Take ``amount`` credits, preferring ``preferred_pool``.

    If the preferred pool covers the amount it pays alone. Otherwise, when
    borrowing is permitted (interval pool by default), the interval pool is
    emptied and gym credits cover the shortfall. Raises
    ``InsufficientCreditsError`` without touching ``balance`` when the
    permitted sources fall short.
    """
    _require_non_negative(amount)
    if amount == 0:
        return DeductionResult(balance=balance)

    if allow_borrow is None:
        allow_borrow = borrowing_permitted(preferred_pool)

    preferred_available = balance.pool_balance(preferred_pool)
    if preferred_available >= amount:
        if preferred_pool == CreditPool.INTERVAL:
            return DeductionResult(
                balance=replace(balance, interval_credits=balance.interval_credits - amount),
                interval_used=amount,
            )
        return DeductionResult(
            balance=replace(balance, gym_credits=balance.gym_credits - amount),
            gym_used=amount,
        )

    if not allow_borrow:
        raise InsufficientCreditsError(
            required=amount, available=preferred_available, pool=preferred_pool.value
        )

    if balance.total < amount:
        raise InsufficientCreditsError(required=amount, available=balance.total, pool=preferred_pool.value)

    # Drain the preferred pool, cover the shortfall from the other one
    shortfall = amount - preferred_available
    if preferred_pool == CreditPool.INTERVAL:
        interval_used, gym_used = preferred_available, shortfall
    else:
        gym_used, interval_used = preferred_available, shortfall
    return DeductionResult(
        balance=balance.apply_deltas(-gym_used, -interval_used),
        gym_used=gym_used,
        interval_used=interval_used,
    )


def add(balance: BalanceSnapshot, amount: int, pool: CreditPool) -> BalanceSnapshot:
    """Credit ``amount`` to ``pool``. Zero is a no-op; negatives are rejected."""
    _require_non_negative(amount)
    if amount == 0:
        return balance
    if pool == CreditPool.INTERVAL:
        return replace(balance, interval_credits=balance.interval_credits + amount)
    return replace(balance, gym_credits=balance.gym_credits + amount)


__all__ = ["BalanceSnapshot", "DeductionResult", "add", "borrowing_permitted", "deduct"]
