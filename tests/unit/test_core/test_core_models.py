"""
Unit tests for core domain models.
"""

from datetime import datetime, timezone
from decimal import Decimal

from smsledger.core.models import (
    LinkedAccount,
    RecurringFrequency,
    StoredTransaction,
    TransactionType,
    datetime_to_millis,
    millis_to_datetime,
    parse_sender_ids,
)


def _ts(year, month, day):
    return datetime_to_millis(datetime(year, month, day, 9, 0, tzinfo=timezone.utc))


class TestTimestamps:
    """Tests for epoch-millis conversion."""

    def test_round_trip(self):
        value = datetime(2024, 3, 15, 10, 30, tzinfo=timezone.utc)
        assert millis_to_datetime(datetime_to_millis(value)) == value

    def test_naive_is_utc(self):
        assert datetime_to_millis(datetime(1970, 1, 1, 0, 0, 1)) == 1000


class TestRecurringFrequency:
    """Tests for due-date advancement."""

    def test_day_based(self):
        start = _ts(2024, 1, 10)
        assert RecurringFrequency.DAILY.advance(start) == _ts(2024, 1, 11)
        assert RecurringFrequency.WEEKLY.advance(start) == _ts(2024, 1, 17)
        assert RecurringFrequency.BIWEEKLY.advance(start) == _ts(2024, 1, 24)

    def test_monthly(self):
        assert RecurringFrequency.MONTHLY.advance(_ts(2024, 1, 10)) == _ts(2024, 2, 10)

    def test_monthly_clamps_to_month_end(self):
        """Jan 31 falls due on Feb 29 in a leap year."""
        assert RecurringFrequency.MONTHLY.advance(_ts(2024, 1, 31)) == _ts(2024, 2, 29)

    def test_quarterly_and_yearly(self):
        assert RecurringFrequency.QUARTERLY.advance(_ts(2024, 11, 15)) == _ts(2025, 2, 15)
        assert RecurringFrequency.YEARLY.advance(_ts(2024, 2, 29)) == _ts(2025, 2, 28)


class TestLinkedAccount:
    """Tests for LinkedAccount normalization."""

    def test_sender_ids_from_csv(self):
        account = LinkedAccount(account_id="a1", linked_sender_ids="hdfcbk, HDFCBN,,")

        assert account.linked_sender_ids == frozenset({"HDFCBK", "HDFCBN"})
        assert account.sender_ids_csv == "HDFCBK,HDFCBN"

    def test_balance_converted_to_decimal(self):
        account = LinkedAccount(account_id="a1", balance=100.5)
        assert account.balance == Decimal("100.5")

    def test_parse_sender_ids_empty(self):
        assert parse_sender_ids(None) == frozenset()
        assert parse_sender_ids("") == frozenset()


class TestStoredTransaction:
    """Tests for StoredTransaction."""

    def test_signed_amount(self):
        expense = StoredTransaction(amount=Decimal("250"), transaction_type=TransactionType.EXPENSE, date=0)
        income = StoredTransaction(amount=Decimal("250"), transaction_type=TransactionType.INCOME, date=0)

        assert expense.signed_amount == Decimal("-250")
        assert income.signed_amount == Decimal("250")

    def test_ids_are_unique(self):
        first = StoredTransaction(amount=1, transaction_type=TransactionType.EXPENSE, date=0)
        second = StoredTransaction(amount=1, transaction_type=TransactionType.EXPENSE, date=0)
        assert first.transaction_id != second.transaction_id
