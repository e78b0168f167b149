"""
Domain models for smsledger.

Accounts, recurring templates and stored transactions live in the external
store; these dataclasses are the values passed in and out of it.
"""

import calendar
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import FrozenSet, Iterable, Optional

from smsledger.core.bank_directory import DEFAULT_ACCOUNT_COLOR


def new_id() -> str:
    """Generate a new record id."""
    return str(uuid.uuid4())


def millis_to_datetime(timestamp: int) -> datetime:
    """Convert epoch millis to an aware UTC datetime."""
    return datetime.fromtimestamp(timestamp / 1000, tz=timezone.utc)


def datetime_to_millis(value: datetime) -> int:
    """Convert a datetime to epoch millis (naive values are taken as UTC)."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return int(value.timestamp() * 1000)


class TransactionType(Enum):
    """Direction of money for a stored transaction."""
    EXPENSE = "EXPENSE"
    INCOME = "INCOME"

    @classmethod
    def for_direction(cls, is_debit: bool) -> "TransactionType":
        return cls.EXPENSE if is_debit else cls.INCOME


class AccountType(Enum):
    """Kinds of payment account."""
    CASH = "CASH"
    BANK = "BANK"
    UPI = "UPI"
    CREDIT_CARD = "CREDIT_CARD"
    WALLET = "WALLET"
    OTHER = "OTHER"


class RecurringFrequency(Enum):
    """Frequency of a recurring template."""
    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    BIWEEKLY = "BIWEEKLY"
    MONTHLY = "MONTHLY"
    QUARTERLY = "QUARTERLY"
    YEARLY = "YEARLY"

    def advance(self, timestamp: int) -> int:
        """
        Return the next due timestamp after the given one.

        Month-based frequencies clamp to the last day of the target month,
        so a template due on Jan 31 falls due on Feb 28/29.
        """
        day_millis = 24 * 60 * 60 * 1000
        if self is RecurringFrequency.DAILY:
            return timestamp + day_millis
        if self is RecurringFrequency.WEEKLY:
            return timestamp + 7 * day_millis
        if self is RecurringFrequency.BIWEEKLY:
            return timestamp + 14 * day_millis

        months = {
            RecurringFrequency.MONTHLY: 1,
            RecurringFrequency.QUARTERLY: 3,
            RecurringFrequency.YEARLY: 12,
        }[self]
        current = millis_to_datetime(timestamp)
        month_index = current.month - 1 + months
        year = current.year + month_index // 12
        month = month_index % 12 + 1
        day = min(current.day, calendar.monthrange(year, month)[1])
        return datetime_to_millis(current.replace(year=year, month=month, day=day))


@dataclass(frozen=True)
class SmsMessage:
    """A raw SMS as delivered by the message source."""
    sender_id: str
    body: str
    timestamp: int  # epoch millis

    @property
    def received_at(self) -> datetime:
        return millis_to_datetime(self.timestamp)


@dataclass
class LinkedAccount:
    """
    A user account as seen by the matcher.

    Accounts can be linked to real bank accounts for SMS auto-detection using
    the last 4 digits, the bank code and the SMS sender IDs the bank uses.
    """
    account_id: str
    name: str = ""
    is_linked: bool = False
    bank_code: Optional[str] = None
    account_number_last4: Optional[str] = None
    linked_sender_ids: FrozenSet[str] = field(default_factory=frozenset)
    account_type: AccountType = AccountType.BANK
    balance: Decimal = field(default_factory=lambda: Decimal("0"))
    color: int = DEFAULT_ACCOUNT_COLOR

    def __post_init__(self):
        if not isinstance(self.balance, Decimal):
            self.balance = Decimal(str(self.balance))
        if not isinstance(self.linked_sender_ids, frozenset):
            self.linked_sender_ids = parse_sender_ids(self.linked_sender_ids)

    @property
    def sender_ids_csv(self) -> str:
        return ",".join(sorted(self.linked_sender_ids))


def parse_sender_ids(value: Optional[Iterable[str]]) -> FrozenSet[str]:
    """Accept a comma-separated string or an iterable of sender IDs."""
    if not value:
        return frozenset()
    if isinstance(value, str):
        value = value.split(",")
    return frozenset(s.strip().upper() for s in value if s and s.strip())


@dataclass
class RecurringTemplate:
    """An expected periodic transaction used to auto-correlate SMS."""
    template_id: str
    name: str
    amount: Decimal
    transaction_type: TransactionType
    next_due_date: int  # epoch millis
    account_id: Optional[str] = None
    frequency: RecurringFrequency = RecurringFrequency.MONTHLY
    category_id: Optional[str] = None
    is_active: bool = True
    last_processed_date: Optional[int] = None

    def __post_init__(self):
        if not isinstance(self.amount, Decimal):
            self.amount = Decimal(str(self.amount))


@dataclass
class StoredTransaction:
    """
    A transaction record as persisted in the store.

    Carries the SMS metadata so a later message can be matched against it
    by reference number or by sender/amount/time.
    """
    amount: Decimal
    transaction_type: TransactionType
    date: int  # epoch millis
    transaction_id: str = field(default_factory=new_id)
    category_id: Optional[str] = None
    account_id: Optional[str] = None
    note: Optional[str] = None
    is_recurring: bool = False
    recurring_id: Optional[str] = None
    sms_sender: Optional[str] = None
    merchant_name: Optional[str] = None
    ref_number: Optional[str] = None
    upi_id: Optional[str] = None
    sender_name: Optional[str] = None
    receiver_name: Optional[str] = None
    original_sms: Optional[str] = None

    def __post_init__(self):
        if not isinstance(self.amount, Decimal):
            self.amount = Decimal(str(self.amount))

    @property
    def signed_amount(self) -> Decimal:
        """Amount with sign (positive for income, negative for expense)."""
        if self.transaction_type == TransactionType.EXPENSE:
            return -abs(self.amount)
        return abs(self.amount)
