"""
Custom exceptions for smsledger.

All smsledger-specific exceptions inherit from SmsLedgerError for easy catching.
A message that is not a transaction is never an exception: extraction returns
None for it.
"""


class SmsLedgerError(Exception):
    """Base exception for all smsledger errors."""

    def __init__(self, message: str, code: str = None):
        super().__init__(message)
        self.message = message
        self.code = code


class ConfigurationError(SmsLedgerError):
    """Invalid configuration file or value."""

    def __init__(self, message: str, field: str = None, code: str = "CONFIG_ERROR"):
        super().__init__(message, code)
        self.field = field


class PersistenceConflictError(SmsLedgerError):
    """
    Raised when the store rejects a write.

    Typical causes are a foreign-key violation (the referenced category or
    account was deleted concurrently) or a primary-key collision.
    """

    def __init__(self, message: str, table: str = None, code: str = "PERSISTENCE_CONFLICT"):
        super().__init__(message, code)
        self.table = table


class AccountNotFoundError(SmsLedgerError):
    """Raised when an account is not found."""

    def __init__(self, account_id: str, code: str = "ACCOUNT_NOT_FOUND"):
        super().__init__(f"Account not found: {account_id}", code)
        self.account_id = account_id


class ScanCancelledError(SmsLedgerError):
    """Raised by a cancellation token when a discovery scan was cancelled."""

    def __init__(self, scanned_count: int = 0, code: str = "SCAN_CANCELLED"):
        super().__init__(f"Scan cancelled after {scanned_count} messages", code)
        self.scanned_count = scanned_count


class LoaderError(SmsLedgerError):
    """Raised when an SMS export file cannot be read."""

    def __init__(self, message: str, path: str = None, code: str = "LOADER_ERROR"):
        super().__init__(message, code)
        self.path = path
