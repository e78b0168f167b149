"""
Bank discovery from an SMS corpus.

Finds the banks and financial senders a user receives transaction SMS
from, including sender IDs the bank registry does not know yet.
"""

from .models import CancellationToken, DiscoveredBank, DiscoveryResult
from .report import discovery_to_frame, write_discovery_report
from .scanner import BankDiscoveryScanner, infer_bank_name, is_transaction_sms

__all__ = [
    "BankDiscoveryScanner",
    "CancellationToken",
    "DiscoveredBank",
    "DiscoveryResult",
    "infer_bank_name",
    "is_transaction_sms",
    "discovery_to_frame",
    "write_discovery_report",
]
