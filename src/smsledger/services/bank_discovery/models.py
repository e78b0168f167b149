"""
Bank discovery data models.
"""

import threading
from dataclasses import dataclass, field
from typing import Optional, Tuple

from smsledger.core.exceptions import ScanCancelledError


@dataclass(frozen=True)
class DiscoveredBank:
    """
    A bank (or unknown financial sender) found in the SMS corpus.

    A known bank may be reached through several sender IDs; new_sender_ids
    lists the ones the registry patterns do not already cover.
    """
    sender_ids: Tuple[str, ...]
    primary_sender_id: str
    new_sender_ids: Tuple[str, ...]
    bank_name: str
    transaction_count: int
    last_transaction_timestamp: int
    bank_code: Optional[str] = None
    color: Optional[int] = None
    sample_message: Optional[str] = None
    is_known_bank: bool = False

    @property
    def has_new_sender_ids(self) -> bool:
        return bool(self.new_sender_ids)


@dataclass(frozen=True)
class DiscoveryResult:
    """Cumulative snapshot of a discovery scan."""
    scanned_count: int
    detected_banks: Tuple[DiscoveredBank, ...] = field(default_factory=tuple)
    unknown_senders: Tuple[DiscoveredBank, ...] = field(default_factory=tuple)
    is_complete: bool = False
    is_cancelled: bool = False

    @property
    def all_banks(self) -> Tuple[DiscoveredBank, ...]:
        return self.detected_banks + self.unknown_senders


class CancellationToken:
    """
    Cooperative cancellation flag for a running scan.

    Safe to cancel from another thread; the scanner checks it between
    messages.
    """

    def __init__(self):
        self._event = threading.Event()
        self.scanned_count = 0

    def cancel(self) -> None:
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise ScanCancelledError(self.scanned_count)
