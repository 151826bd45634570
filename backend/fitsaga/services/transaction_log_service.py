# backend/fitsaga/services/transaction_log_service.py
"""
Read side of the credit transaction log: history queries, balance replay and
integrity audits.

Current balances are always read from the ledger row; replay exists to
check that the row and the log still agree.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.exceptions import LedgerConsistencyError, NotFoundException
from ..domain.ledger import BalanceSnapshot
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.factory import RepositoryFactory
from ..repositories.transaction_repository import TransactionFilters, TransactionQuery
from .base import BaseService
from .credit_ledger_service import snapshot_of

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LedgerAuditReport:
    user_id: str
    ledger_balance: BalanceSnapshot
    replayed_balance: BalanceSnapshot
    entry_count: int
    last_sequence: Optional[int]
    mismatches: List[str] = field(default_factory=list)

    @property
    def consistent(self) -> bool:
        return not self.mismatches

    def to_payload(self) -> Dict[str, Any]:
        return {
            "user_id": self.user_id,
            "consistent": self.consistent,
            "ledger_balance": self.ledger_balance.to_payload(),
            "replayed_balance": self.replayed_balance.to_payload(),
            "entry_count": self.entry_count,
            "last_sequence": self.last_sequence,
            "mismatches": list(self.mismatches),
        }


class TransactionLogService(BaseService):
    def __init__(self, db: Session, page_size: Optional[int] = None):
        super().__init__(db)
        self.page_size = page_size or settings.transaction_page_size
        self.transaction_repository = RepositoryFactory.create_transaction_repository(db)
        self.balance_repository = RepositoryFactory.create_credit_balance_repository(db)

    def query(self, user_id: str, filters: Optional[TransactionFilters] = None) -> TransactionQuery:
        """Newest-first, lazily paged and restartable."""
        return self.transaction_repository.query(user_id, filters, page_size=self.page_size)

    @BaseService.measure_operation("reconstruct_balance")
    def reconstruct_balance(self, user_id: str, from_sequence: Optional[int] = None) -> BalanceSnapshot:
        """
        Replay the log into a balance.

        With ``from_sequence`` the replay starts from that entry's recorded
        ``balance_after``; otherwise it starts from an empty balance and
        applies every entry.
        """
        start = BalanceSnapshot()
        after_sequence = 0
        if from_sequence is not None:
            anchor = self.transaction_repository.get_at_sequence(user_id, from_sequence)
            if anchor is None:
                raise NotFoundException(
                    "Transaction not found",
                    code="TRANSACTION_NOT_FOUND",
                    details={"user_id": user_id, "sequence": from_sequence},
                )
            start = BalanceSnapshot(
                gym_credits=anchor.gym_balance_after, interval_credits=anchor.interval_balance_after
            )
            after_sequence = from_sequence

        balance = start
        for entry in self.transaction_repository.entries_after(user_id, after_sequence):
            balance = balance.apply_deltas(entry.gym_delta, entry.interval_delta)
        return balance

    @BaseService.measure_operation("audit_user")
    def audit_user(self, user_id: str, *, strict: bool = False) -> LedgerAuditReport:
        """
        Compare the ledger row with the log.

        Checks that a full replay reproduces the row, that every entry's
        ``balance_after`` follows from its predecessor plus its deltas, and
        that the newest entry matches the row.
        """
        ledger_balance = snapshot_of(self.balance_repository.get_balance(user_id))
        entries = self.transaction_repository.entries_after(user_id, 0)
        mismatches: List[str] = []

        running = BalanceSnapshot()
        for entry in entries:
            running = running.apply_deltas(entry.gym_delta, entry.interval_delta)
            recorded = BalanceSnapshot(
                gym_credits=entry.gym_balance_after, interval_credits=entry.interval_balance_after
            )
            if recorded != running:
                mismatches.append(
                    f"sequence {entry.sequence}: recorded {recorded.to_payload()} "
                    f"but replay gives {running.to_payload()}"
                )
                # Continue from what the entry claims so one bad row is reported once
                running = recorded

        replayed = BalanceSnapshot()
        for entry in entries:
            replayed = replayed.apply_deltas(entry.gym_delta, entry.interval_delta)

        if replayed != ledger_balance:
            mismatches.append(
                f"ledger {ledger_balance.to_payload()} differs from replay {replayed.to_payload()}"
            )

        report = LedgerAuditReport(
            user_id=user_id,
            ledger_balance=ledger_balance,
            replayed_balance=replayed,
            entry_count=len(entries),
            last_sequence=entries[-1].sequence if entries else None,
            mismatches=mismatches,
        )

        if not report.consistent:
            prometheus_metrics.record_consistency_violation("ledger_replay_mismatch")
            self.logger.error(
                "Ledger audit failed for user %s: %s",
                user_id,
                "; ".join(mismatches),
                extra={"user_id": user_id, "mismatch_count": len(mismatches)},
            )
            if strict:
                raise LedgerConsistencyError("Ledger and transaction log disagree", details=report.to_payload())
        return report


__all__ = ["LedgerAuditReport", "TransactionLogService"]
