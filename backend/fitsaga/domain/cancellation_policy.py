"""Cancellation fee evaluation for session bookings."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_CEILING, Decimal

from fitsaga.core.enums import CreditPool
from fitsaga.utils.time_utils import hours_between


@dataclass(frozen=True)
class CancellationQuote:
    credits_cost: int
    fee: int
    refund_amount: int
    refund_pool: CreditPool
    hours_until_start: float
    late: bool
    policy_basis: str = ""

    def to_payload(self) -> dict[str, object]:
        return {
            "credits_cost": self.credits_cost,
            "fee": self.fee,
            "refund_amount": self.refund_amount,
            "refund_pool": self.refund_pool.value,
            "hours_until_start": round(self.hours_until_start, 2),
            "late": self.late,
            "policy_basis": self.policy_basis,
        }


class CancellationPolicy:
    """
    Determines the fee withheld when a booking is cancelled.

    Cancelling at least ``window_hours`` before the start refunds everything.
    Inside the window (including after the start) ``ceil(cost * fee_ratio)``
    is withheld. Refunds always go to the booking's designated pool.
    """

    def __init__(self, window_hours: float = 24.0, fee_ratio: float = 0.5) -> None:
        if window_hours < 0:
            raise ValueError("window_hours must be non-negative")
        if not 0 <= fee_ratio <= 1:
            raise ValueError("fee_ratio must be between 0 and 1")
        self.window_hours = window_hours
        # Decimal so ceil(cost * ratio) is exact for ratios like 0.1
        self.fee_ratio = Decimal(str(fee_ratio))

    def fee_for(self, credits_cost: int) -> int:
        raw = Decimal(credits_cost) * self.fee_ratio
        return int(raw.to_integral_value(rounding=ROUND_CEILING))

    def evaluate(
        self,
        *,
        credits_cost: int,
        credit_pool: CreditPool,
        session_start: datetime,
        now: datetime,
    ) -> CancellationQuote:
        hours_until_start = hours_between(now, session_start)

        if hours_until_start >= self.window_hours:
            return CancellationQuote(
                credits_cost=credits_cost,
                fee=0,
                refund_amount=credits_cost,
                refund_pool=credit_pool,
                hours_until_start=hours_until_start,
                late=False,
                policy_basis=f">={self.window_hours:g} hours before session: full refund",
            )

        fee = min(self.fee_for(credits_cost), credits_cost)
        return CancellationQuote(
            credits_cost=credits_cost,
            fee=fee,
            refund_amount=credits_cost - fee,
            refund_pool=credit_pool,
            hours_until_start=hours_until_start,
            late=True,
            policy_basis=(
                f"<{self.window_hours:g} hours before session: "
                f"{float(self.fee_ratio) * 100:g}% fee (rounded up)"
            ),
        )
