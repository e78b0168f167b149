"""
Shared pytest fixtures for smsledger tests.

Provides an in-memory ledger store, linked accounts and SMS helpers.
"""

import pytest
import sys
from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from smsledger.core.bank_directory import BankDirectory
from smsledger.core.config import IngestionConfig
from smsledger.core.models import AccountType, LinkedAccount, SmsMessage
from smsledger.core.store import SqliteLedgerStore


# 2024-01-10 09:00 UTC
BASE_TIMESTAMP = int(datetime(2024, 1, 10, 9, 0, tzinfo=timezone.utc).timestamp() * 1000)
HOUR = 60 * 60 * 1000
DAY = 24 * HOUR


@pytest.fixture
def base_ts():
    """Reference timestamp (epoch millis) used across tests."""
    return BASE_TIMESTAMP


@pytest.fixture
def directory():
    """Provide the built-in bank directory."""
    return BankDirectory.default()


@pytest.fixture
def config():
    """Provide the default ingestion config."""
    return IngestionConfig()


@pytest.fixture
def store():
    """Provide a fresh in-memory ledger store for each test."""
    ledger = SqliteLedgerStore(":memory:")
    ledger.connect()
    yield ledger
    ledger.close()


@pytest.fixture
def hdfc_account():
    """Linked HDFC savings account ending 1234."""
    return LinkedAccount(
        account_id="acc-hdfc",
        name="HDFC Savings",
        is_linked=True,
        bank_code="HDFC",
        account_number_last4="1234",
        linked_sender_ids="HDFCBK",
        account_type=AccountType.BANK,
        balance=Decimal("10000.00"),
    )


@pytest.fixture
def sbi_account():
    """Linked SBI account ending 5678."""
    return LinkedAccount(
        account_id="acc-sbi",
        name="SBI Salary",
        is_linked=True,
        bank_code="SBI",
        account_number_last4="5678",
        linked_sender_ids="SBIINB,SBIPSG",
        account_type=AccountType.BANK,
        balance=Decimal("50000.00"),
    )


@pytest.fixture
def store_with_accounts(store, hdfc_account, sbi_account):
    """Provide a store with the HDFC and SBI accounts added."""
    store.add_account(hdfc_account)
    store.add_account(sbi_account)
    yield store


@pytest.fixture
def make_sms():
    """Factory for SmsMessage values, defaulting to an HDFC sender at the base time."""
    def _make(body: str, sender_id: str = "VM-HDFCBK", timestamp: int = BASE_TIMESTAMP) -> SmsMessage:
        return SmsMessage(sender_id=sender_id, body=body, timestamp=timestamp)
    return _make
