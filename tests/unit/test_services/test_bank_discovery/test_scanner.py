"""
Unit tests for the bank discovery scanner.
"""

import pytest

from smsledger.core.config import IngestionConfig
from smsledger.core.models import SmsMessage
from smsledger.services.bank_discovery import BankDiscoveryScanner, CancellationToken
from smsledger.services.bank_discovery.scanner import infer_bank_name, is_transaction_sms

DEBIT = "Rs.500 debited from A/c XX1234 on 01-01-24"


def _sms(sender, body=DEBIT, timestamp=1000):
    return SmsMessage(sender_id=sender, body=body, timestamp=timestamp)


@pytest.fixture
def scanner():
    return BankDiscoveryScanner()


class TestIsTransactionSms:
    """Tests for the discovery financial-message check."""

    def test_account_debit(self):
        assert is_transaction_sms(DEBIT)

    def test_upi_credit(self):
        assert is_transaction_sms("INR 200 credited via UPI")

    def test_needs_currency_amount(self):
        assert not is_transaction_sms("Your A/c was debited")

    def test_needs_keyword(self):
        assert not is_transaction_sms("Balance in A/c XX1234 is Rs.10,000")

    def test_needs_account_or_upi(self):
        assert not is_transaction_sms("Rs.500 paid successfully")


class TestInferBankName:
    """Tests for naming unknown senders."""

    @pytest.mark.parametrize("sender,expected", [
        ("ZXQBNK", "ZXQ Bank"),
        ("ABCBK", "ABC Bank"),
        ("ZXQINB", "ZXQ"),
        ("AB1", "AB1"),
        ("VERYLONGFINANCEC0", "VERYLONGFINANCE..."),
    ])
    def test_names(self, sender, expected):
        assert infer_bank_name(sender) == expected


class TestScan:
    """Tests for grouping and the final snapshot."""

    def test_variants_group_by_bank(self, scanner):
        result = scanner.scan([
            _sms("VM-HDFCBK", timestamp=1000),
            _sms("JD-HDFCBK", timestamp=3000),
            _sms("AD-HDFCCC", timestamp=2000),
            _sms("JD-SBIINB"),
        ])

        assert result.is_complete is True
        assert result.scanned_count == 4
        hdfc, sbi = result.detected_banks
        assert hdfc.bank_code == "HDFC"
        assert set(hdfc.sender_ids) == {"HDFCBK", "HDFCCC"}
        assert hdfc.primary_sender_id == "HDFCBK"
        assert hdfc.new_sender_ids == ("HDFCCC",)
        assert hdfc.has_new_sender_ids
        assert hdfc.transaction_count == 3
        assert hdfc.last_transaction_timestamp == 3000
        assert hdfc.is_known_bank is True
        assert sbi.bank_code == "SBI"
        assert sbi.new_sender_ids == ()

    def test_unknown_sender_needs_two_messages(self, scanner):
        once = scanner.scan([_sms("XY-ZXQBNK")])
        twice = scanner.scan([_sms("XY-ZXQBNK"), _sms("XY-ZXQBNK", timestamp=2000)])

        assert once.unknown_senders == ()
        unknown, = twice.unknown_senders
        assert unknown.bank_name == "ZXQ Bank"
        assert unknown.primary_sender_id == "ZXQBNK"
        assert unknown.is_known_bank is False
        assert unknown.bank_code is None

    def test_non_financial_ignored(self, scanner):
        result = scanner.scan([_sms("VM-HDFCBK", body="Your OTP is 1234")])

        assert result.detected_banks == ()
        assert result.scanned_count == 1

    def test_sample_truncated(self):
        scanner = BankDiscoveryScanner(config=IngestionConfig(sample_message_chars=10))

        result = scanner.scan([_sms("VM-HDFCBK")])

        assert result.detected_banks[0].sample_message == DEBIT[:10]

    def test_empty_corpus(self, scanner):
        result = scanner.scan([])

        assert result.is_complete is True
        assert result.all_banks == ()


class TestDiscoverProgress:
    """Tests for incremental snapshots and cancellation."""

    def test_snapshot_cadence(self, scanner):
        messages = [_sms("VM-HDFCBK", timestamp=i) for i in range(120)]

        snapshots = list(scanner.discover(messages))

        assert [s.scanned_count for s in snapshots] == [50, 100, 120]
        assert [s.is_complete for s in snapshots] == [False, False, True]
        assert snapshots[1].detected_banks[0].transaction_count == 100

    def test_cancel(self, scanner):
        token = CancellationToken()
        messages = [_sms("VM-HDFCBK", timestamp=i) for i in range(120)]
        snapshots = []

        for snapshot in scanner.discover(messages, token):
            snapshots.append(snapshot)
            token.cancel()

        assert [s.scanned_count for s in snapshots] == [50, 50]
        assert snapshots[-1].is_cancelled is True
        assert snapshots[-1].is_complete is False
        assert scanner.scan(messages, token).is_cancelled is True
