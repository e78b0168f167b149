"""
Core module for smsledger.

Provides:
- Bank registry and sender ID normalization
- Domain models (accounts, recurring templates, stored transactions)
- Ingestion configuration
- SQLite ledger store
- Exception hierarchy
"""

from .bank_directory import BankDirectory, BankInfo, DEFAULT_ACCOUNT_COLOR, normalize_sender_id
from .config import IngestionConfig
from .exceptions import (
    SmsLedgerError,
    ConfigurationError,
    PersistenceConflictError,
    AccountNotFoundError,
    ScanCancelledError,
    LoaderError,
)
from .models import (
    AccountType,
    LinkedAccount,
    RecurringFrequency,
    RecurringTemplate,
    SmsMessage,
    StoredTransaction,
    TransactionType,
)
from .store import SqliteLedgerStore

__all__ = [
    "BankDirectory",
    "BankInfo",
    "DEFAULT_ACCOUNT_COLOR",
    "normalize_sender_id",
    "IngestionConfig",
    "SmsLedgerError",
    "ConfigurationError",
    "PersistenceConflictError",
    "AccountNotFoundError",
    "ScanCancelledError",
    "LoaderError",
    "AccountType",
    "LinkedAccount",
    "RecurringFrequency",
    "RecurringTemplate",
    "SmsMessage",
    "StoredTransaction",
    "TransactionType",
    "SqliteLedgerStore",
]
