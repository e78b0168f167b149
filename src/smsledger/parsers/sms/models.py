"""
Parsed SMS transaction model.

One ParsedTransaction is produced per transactional message; it is an
immutable value and carries the verbatim source text for audit and dedup.
"""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Optional

from smsledger.core.models import TransactionType


class CardType(Enum):
    """Card type mentioned in a bank SMS."""
    CREDIT = "CREDIT"
    DEBIT = "DEBIT"
    PREPAID = "PREPAID"
    UNKNOWN = "UNKNOWN"


@dataclass(frozen=True)
class ParsedTransaction:
    """Structured fields extracted from a single bank/payment SMS."""
    amount: Decimal
    is_debit: bool
    original_message: str
    merchant_name: Optional[str] = None
    account_hint: Optional[str] = None  # Last 4 digits of account/card
    bank_code: Optional[str] = None
    bank_name: Optional[str] = None
    card_type: Optional[CardType] = None
    upi_id: Optional[str] = None
    reference_number: Optional[str] = None
    sender_name: Optional[str] = None  # Credit only
    receiver_name: Optional[str] = None  # Debit only

    def __post_init__(self):
        if not isinstance(self.amount, Decimal):
            object.__setattr__(self, "amount", Decimal(str(self.amount)))
        if self.amount <= 0:
            raise ValueError(f"Transaction amount must be positive: {self.amount}")
        for name in ("sender_name", "receiver_name"):
            value = getattr(self, name)
            if value is not None and "@" in value:
                raise ValueError(f"{name} must not be a UPI handle: {value}")

    @property
    def transaction_type(self) -> TransactionType:
        return TransactionType.for_direction(self.is_debit)

    @property
    def signed_amount(self) -> Decimal:
        """Amount with sign (negative for debit, positive for credit)."""
        return -self.amount if self.is_debit else self.amount

    @property
    def counterparty(self) -> Optional[str]:
        """The other side of the transaction: payer for credits, payee for debits."""
        return self.receiver_name if self.is_debit else self.sender_name
