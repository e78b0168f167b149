"""
Ingestion decision and result models.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from smsledger.core.models import StoredTransaction
from smsledger.parsers.sms.models import ParsedTransaction


class DecisionType(Enum):
    """What the coordinator did with one message."""
    INSERTED = "INSERTED"
    MERGED = "MERGED"  # SMS details folded into an existing recurring entry
    DUPLICATE = "DUPLICATE"
    NOT_A_TRANSACTION = "NOT_A_TRANSACTION"
    SKIPPED = "SKIPPED"  # Sender not linked to any account
    FAILED = "FAILED"  # Store rejected the write


@dataclass(frozen=True)
class IngestionDecision:
    """Outcome for a single SMS."""
    decision: DecisionType
    sender_id: str
    timestamp: int
    parsed: Optional[ParsedTransaction] = None
    transaction: Optional[StoredTransaction] = None
    account_id: Optional[str] = None
    balance_delta: Decimal = Decimal("0")
    recurring_id: Optional[str] = None
    reason: str = ""
    pending_saved: bool = False

    @property
    def is_new_transaction(self) -> bool:
        return self.decision == DecisionType.INSERTED


@dataclass
class IngestionResult:
    """Result of ingesting a batch of SMS."""
    success: bool
    transactions_processed: int = 0
    transactions_inserted: int = 0
    transactions_merged: int = 0
    transactions_skipped: int = 0  # Duplicates
    not_transactions: int = 0
    irrelevant_senders: int = 0
    pending_saved: int = 0
    decisions: List[IngestionDecision] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def add_error(self, error: str) -> None:
        """Add an error message."""
        self.errors.append(error)

    def add_warning(self, warning: str) -> None:
        """Add a warning message."""
        self.warnings.append(warning)

    def record(self, decision: IngestionDecision) -> None:
        """Count a decision."""
        self.decisions.append(decision)
        self.transactions_processed += 1
        if decision.pending_saved:
            self.pending_saved += 1
        if decision.decision == DecisionType.INSERTED:
            self.transactions_inserted += 1
        elif decision.decision == DecisionType.MERGED:
            self.transactions_merged += 1
        elif decision.decision == DecisionType.DUPLICATE:
            self.transactions_skipped += 1
        elif decision.decision == DecisionType.NOT_A_TRANSACTION:
            self.not_transactions += 1
        elif decision.decision == DecisionType.SKIPPED:
            self.irrelevant_senders += 1
        elif decision.decision == DecisionType.FAILED:
            self.add_error(f"{decision.sender_id} @ {decision.timestamp}: {decision.reason}")

    def __str__(self) -> str:
        """String representation of result."""
        status = "SUCCESS" if self.success else "FAILED"
        return (
            f"{status}: {self.transactions_processed} processed, "
            f"{self.transactions_inserted} inserted, "
            f"{self.transactions_merged} merged, "
            f"{self.transactions_skipped} skipped (duplicates)"
        )
