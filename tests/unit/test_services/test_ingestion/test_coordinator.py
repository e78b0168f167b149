"""
Unit tests for the ingestion coordinator.
"""

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from smsledger.core.config import IngestionConfig
from smsledger.core.exceptions import AccountNotFoundError
from smsledger.core.models import RecurringTemplate, StoredTransaction, TransactionType
from smsledger.parsers.sms import ParsedTransaction
from smsledger.services.ingestion import DecisionType, IngestionCoordinator
from smsledger.services.ingestion.coordinator import build_note

HOUR = 60 * 60 * 1000
DAY = 24 * HOUR

SWIGGY = "Rs.500.00 debited from A/C XX1234 to SWIGGY on 01-01-24. Ref No 123456789012"
ZOMATO = "Rs.750.00 debited from A/c XX1234 to ZOMATO"
SALARY = "INR 2,500.00 credited to A/c no. XX5678 from RAHUL SHARMA on 05-02-24. UPI Ref: 4033123456"
GYM = "Rs.1,000.00 debited from A/c XX1234 for GYMPASS on 11-01-24"


@pytest.fixture
def coordinator(store_with_accounts):
    return IngestionCoordinator(store_with_accounts)


def _balance(store, account_id):
    return store.get_account(account_id).balance


class TestInsert:
    """Tests for new transactions."""

    def test_debit_updates_balance(self, coordinator, store_with_accounts, make_sms):
        decision = coordinator.process_message(make_sms(SWIGGY))

        assert decision.decision == DecisionType.INSERTED
        assert decision.is_new_transaction
        assert decision.account_id == "acc-hdfc"
        assert decision.balance_delta == Decimal("-500.00")
        assert _balance(store_with_accounts, "acc-hdfc") == Decimal("9500.00")

        txn = store_with_accounts.get_transaction(decision.transaction.transaction_id)
        assert txn.transaction_type == TransactionType.EXPENSE
        assert txn.category_id == "food"
        assert txn.note == "[Auto] SWIGGY via HDFC Bank (****1234)"
        assert txn.ref_number == "123456789012"
        assert txn.sms_sender == "VM-HDFCBK"
        assert txn.original_sms == SWIGGY

    def test_credit_updates_balance(self, coordinator, store_with_accounts, make_sms):
        decision = coordinator.process_message(make_sms(SALARY, sender_id="JD-SBIINB"))

        assert decision.account_id == "acc-sbi"
        assert decision.transaction.sender_name == "RAHUL SHARMA"
        assert _balance(store_with_accounts, "acc-sbi") == Decimal("52500.00")

    def test_unmatched_sender_stored_without_account(self, coordinator, store_with_accounts, make_sms):
        decision = coordinator.process_message(
            make_sms("INR 100 credited to your account", sender_id="+919876543210")
        )

        assert decision.decision == DecisionType.INSERTED
        assert decision.account_id is None
        assert decision.balance_delta == Decimal("0")
        assert decision.transaction.note == "[SMS] Received"
        assert decision.transaction.category_id == "uncategorized"
        assert _balance(store_with_accounts, "acc-hdfc") == Decimal("10000.00")

    def test_low_score_not_assigned(self, coordinator, store_with_accounts, make_sms):
        # Bank code only (30) is below the assignment threshold
        decision = coordinator.process_message(
            make_sms("Rs.300 debited from A/c XX9999 to UBER", sender_id="AD-HDFCCC")
        )

        assert decision.decision == DecisionType.INSERTED
        assert decision.account_id is None
        assert decision.transaction.note.startswith("[SMS] UBER")

    def test_no_confidence_not_assigned_at_zero_threshold(self, store_with_accounts, make_sms):
        coordinator = IngestionCoordinator(store_with_accounts, IngestionConfig(min_assign_score=0))

        decision = coordinator.process_message(
            make_sms("INR 100 credited to your account", sender_id="+919876543210")
        )

        assert decision.decision == DecisionType.INSERTED
        assert decision.account_id is None
        assert _balance(store_with_accounts, "acc-hdfc") == Decimal("10000.00")
        assert _balance(store_with_accounts, "acc-sbi") == Decimal("50000.00")


class TestDuplicates:
    """Tests for reference and fuzzy deduplication."""

    def test_same_reference(self, coordinator, store_with_accounts, make_sms, base_ts):
        first = coordinator.process_message(make_sms(SWIGGY))
        second = coordinator.process_message(make_sms(SWIGGY, sender_id="JM-HDFCBK", timestamp=base_ts + 3 * DAY))

        assert second.decision == DecisionType.DUPLICATE
        assert second.transaction.transaction_id == first.transaction.transaction_id
        assert store_with_accounts.count_transactions() == 1
        assert _balance(store_with_accounts, "acc-hdfc") == Decimal("9500.00")

    def test_same_sender_and_amount_in_window(self, coordinator, store_with_accounts, make_sms, base_ts):
        coordinator.process_message(make_sms(ZOMATO))

        within = coordinator.process_message(make_sms(ZOMATO, timestamp=base_ts + 2 * HOUR))
        other_sender = coordinator.process_message(make_sms(ZOMATO, sender_id="AD-HDFCBK", timestamp=base_ts + HOUR))
        outside = coordinator.process_message(make_sms(ZOMATO, timestamp=base_ts + 25 * HOUR))

        assert within.decision == DecisionType.DUPLICATE
        assert other_sender.decision == DecisionType.INSERTED
        assert outside.decision == DecisionType.INSERTED
        assert store_with_accounts.count_transactions() == 3


class TestRecurring:
    """Tests for recurring template correlation."""

    @pytest.fixture
    def gym_template(self, store_with_accounts, base_ts):
        store_with_accounts.add_category("fitness", "Fitness")
        template = RecurringTemplate(
            template_id="rec-gym", name="Gym", amount=Decimal("1000"),
            transaction_type=TransactionType.EXPENSE, next_due_date=base_ts + DAY,
            account_id="acc-hdfc", category_id="fitness",
        )
        return store_with_accounts.add_recurring(template)

    def test_insert_tags_template_and_advances(self, coordinator, store_with_accounts, make_sms, base_ts, gym_template):
        decision = coordinator.process_message(make_sms(GYM, timestamp=base_ts + 2 * DAY))

        assert decision.decision == DecisionType.INSERTED
        assert decision.recurring_id == "rec-gym"
        assert decision.transaction.is_recurring is True
        assert decision.transaction.category_id == "fitness"
        assert _balance(store_with_accounts, "acc-hdfc") == Decimal("9000.00")

        template = store_with_accounts.get_recurring("rec-gym")
        expected_due = int(datetime(2024, 2, 11, 9, 0, tzinfo=timezone.utc).timestamp() * 1000)
        assert template.next_due_date == expected_due
        assert template.last_processed_date == base_ts + 2 * DAY

    def test_amount_outside_tolerance(self, coordinator, make_sms, base_ts, gym_template):
        decision = coordinator.process_message(
            make_sms("Rs.994.00 debited from A/c XX1234 for GYMPASS", timestamp=base_ts + DAY)
        )

        assert decision.decision == DecisionType.INSERTED
        assert decision.recurring_id is None
        assert decision.transaction.category_id == "uncategorized"

    def test_outside_date_window(self, coordinator, make_sms, base_ts, gym_template):
        decision = coordinator.process_message(make_sms(GYM, timestamp=base_ts + 4 * DAY))

        assert decision.recurring_id is None

    def test_close_amount_too_early(self, coordinator, store_with_accounts, make_sms, base_ts, gym_template):
        due = base_ts + DAY
        decision = coordinator.process_message(
            make_sms("Rs.999.00 debited from A/c XX1234 for GYMPASS", timestamp=due - 3 * DAY)
        )

        assert decision.decision == DecisionType.INSERTED
        assert decision.recurring_id is None
        assert decision.transaction.is_recurring is False
        assert store_with_accounts.get_recurring("rec-gym").next_due_date == due

    def test_merge_into_existing(self, coordinator, store_with_accounts, make_sms, base_ts, gym_template):
        existing = store_with_accounts.insert_transaction(StoredTransaction(
            amount=Decimal("1000"), transaction_type=TransactionType.EXPENSE, date=base_ts + DAY,
            category_id="fitness", account_id="acc-hdfc", is_recurring=True, recurring_id="rec-gym",
            merchant_name="Gym membership",
        ))

        decision = coordinator.process_message(make_sms(GYM, timestamp=base_ts + DAY + HOUR))

        assert decision.decision == DecisionType.MERGED
        assert decision.balance_delta == Decimal("0")
        assert store_with_accounts.count_transactions() == 1
        assert _balance(store_with_accounts, "acc-hdfc") == Decimal("10000.00")

        merged = store_with_accounts.get_transaction(existing.transaction_id)
        assert merged.sms_sender == "VM-HDFCBK"
        assert merged.original_sms == GYM
        assert merged.merchant_name == "GYMPASS"
        assert merged.amount == Decimal("1000.00")


class TestNonTransactions:
    """Tests for skipped, rejected and pending messages."""

    def test_linked_senders_only(self, store_with_accounts, make_sms):
        coordinator = IngestionCoordinator(store_with_accounts, IngestionConfig(linked_senders_only=True))

        skipped = coordinator.process_message(make_sms(ZOMATO, sender_id="+919876543210"))
        kept = coordinator.process_message(make_sms(ZOMATO))

        assert skipped.decision == DecisionType.SKIPPED
        assert kept.decision == DecisionType.INSERTED

    def test_excluded_not_pending(self, coordinator, store_with_accounts, make_sms):
        decision = coordinator.process_message(make_sms("Your OTP is 123456 for txn of Rs.5,000"))

        assert decision.decision == DecisionType.NOT_A_TRANSACTION
        assert decision.pending_saved is False
        assert store_with_accounts.get_pending_sms() == []

    def test_unparsed_financial_saved_as_pending(self, coordinator, store_with_accounts, make_sms):
        decision = coordinator.process_message(make_sms("Your transaction of Rs.500 is being processed"))

        assert decision.decision == DecisionType.NOT_A_TRANSACTION
        assert decision.pending_saved is True
        assert len(store_with_accounts.get_pending_sms()) == 1

    def test_pending_disabled(self, store_with_accounts, make_sms):
        coordinator = IngestionCoordinator(store_with_accounts, IngestionConfig(save_pending_on_failure=False))

        decision = coordinator.process_message(make_sms("Your transaction of Rs.500 is being processed"))

        assert decision.pending_saved is False


class TestFailures:
    """Tests for store failures."""

    def test_balance_failure_rolls_back(self, coordinator, store_with_accounts, make_sms, monkeypatch):
        def fail(account_id, delta):
            raise AccountNotFoundError(account_id)

        monkeypatch.setattr(store_with_accounts, "update_balance", fail)

        result = coordinator.process_batch([make_sms(SWIGGY)])

        assert result.success is False
        assert result.decisions[0].decision == DecisionType.FAILED
        assert len(result.errors) == 1
        assert store_with_accounts.count_transactions() == 0


class TestBatch:
    """Tests for batch processing."""

    def test_oldest_first_and_counts(self, coordinator, make_sms, base_ts):
        messages = [
            make_sms(SWIGGY, timestamp=base_ts + HOUR),
            make_sms(SWIGGY, sender_id="AD-HDFCBK", timestamp=base_ts),
            make_sms("Your OTP is 123456"),
            make_sms(SALARY, sender_id="JD-SBIINB"),
        ]

        result = coordinator.process_batch(messages)

        assert result.success is True
        assert result.transactions_processed == 4
        assert result.transactions_inserted == 2
        assert result.transactions_skipped == 1
        assert result.not_transactions == 1
        inserted = [d for d in result.decisions if d.decision == DecisionType.INSERTED]
        assert inserted[0].sender_id == "AD-HDFCBK"
        assert "2 inserted" in str(result)

    def test_ingest_parsed(self, coordinator, store_with_accounts, base_ts):
        parsed = ParsedTransaction(
            amount=Decimal("42"), is_debit=True, original_message="fallback", account_hint="1234",
            merchant_name="CAFE COFFEE DAY",
        )

        decision = coordinator.ingest_parsed(parsed, "VM-HDFCBK", base_ts)

        assert decision.account_id == "acc-hdfc"
        assert decision.transaction.category_id == "food"


class TestBuildNote:
    """Tests for transaction notes."""

    def test_matched(self):
        parsed = ParsedTransaction(
            amount=Decimal("1"), is_debit=True, original_message="x", merchant_name="SWIGGY",
            bank_name="HDFC Bank", account_hint="1234",
        )

        assert build_note(parsed, True) == "[Auto] SWIGGY via HDFC Bank (****1234)"

    def test_unmatched_without_merchant(self):
        parsed = ParsedTransaction(amount=Decimal("1"), is_debit=True, original_message="x")

        assert build_note(parsed, False) == "[SMS] Payment"
