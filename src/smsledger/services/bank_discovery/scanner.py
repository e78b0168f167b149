"""
Bank discovery scanner.

Scans an entire SMS corpus (not just linked senders) to find which banks
and financial senders the user deals with. A message counts as financial
when it has:

- a currency amount (Rs / INR / ₹)
- a debit or credit keyword
- an account reference (A/C, card, XX1234, ...) or a UPI marker

Financial messages are bucketed by normalized sender ID. On every snapshot
the buckets are regrouped: buckets whose sender resolves to a registered
bank are merged by bank code, and the rest are kept as unknown senders
when they carry enough messages to not be noise.
"""

import logging
import re
from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, List, Optional

from smsledger.core.bank_directory import BankDirectory, normalize_sender_id
from smsledger.core.config import IngestionConfig
from smsledger.core.exceptions import ScanCancelledError
from smsledger.core.models import SmsMessage
from smsledger.parsers.sms import patterns as p

from .models import CancellationToken, DiscoveredBank, DiscoveryResult

logger = logging.getLogger(__name__)

_DIGITS = re.compile(r"[0-9]")
INFERRED_NAME_MAX_CHARS = 15


def is_transaction_sms(body: str) -> bool:
    """True if the body looks like a bank/payment transaction message."""
    if not body or not p.CURRENCY_AMOUNT_REGEX.search(body):
        return False

    lower = body.lower()
    if not (p.DISCOVERY_DEBIT_REGEX.search(lower) or p.DISCOVERY_CREDIT_REGEX.search(lower)):
        return False

    has_account_ref = any(token in lower for token in p.ACCOUNT_REFERENCE_TOKENS)
    is_upi = any(token in lower for token in p.UPI_TOKENS)
    return has_account_ref or is_upi


def infer_bank_name(sender_id: str) -> str:
    """
    Make a readable name from an unknown sender ID.

    "ABCBNK" -> "ABC Bank"; results shorter than 3 characters fall back to
    the sender ID itself.
    """
    cleaned = _DIGITS.sub("", sender_id)
    cleaned = cleaned.replace("BK", " Bank").replace("BNK", " Bank")
    cleaned = cleaned.replace("INB", "").replace("SMS", "").strip()

    if len(cleaned) < 3:
        return sender_id
    if len(cleaned) > INFERRED_NAME_MAX_CHARS:
        return cleaned[:INFERRED_NAME_MAX_CHARS] + "..."
    return cleaned


@dataclass
class _SenderBucket:
    """Running tally for one normalized sender."""
    count: int = 0
    latest_timestamp: int = 0
    latest_body: Optional[str] = None

    def add(self, message: SmsMessage) -> None:
        self.count += 1
        if self.latest_body is None or message.timestamp > self.latest_timestamp:
            self.latest_timestamp = message.timestamp
            self.latest_body = message.body


class BankDiscoveryScanner:
    """
    Discovers banks from an SMS corpus.

    Usage:
        scanner = BankDiscoveryScanner()
        for snapshot in scanner.discover(messages):
            show_progress(snapshot.scanned_count)
        final = snapshot  # is_complete or is_cancelled
    """

    def __init__(
        self,
        directory: Optional[BankDirectory] = None,
        config: Optional[IngestionConfig] = None,
    ):
        self.directory = directory or BankDirectory.default()
        self.config = config or IngestionConfig()

    def discover(
        self,
        corpus: Iterable[SmsMessage],
        cancel_token: Optional[CancellationToken] = None,
    ) -> Iterator[DiscoveryResult]:
        """
        Scan the corpus, yielding cumulative snapshots.

        A snapshot is yielded after every `discovery_emit_every` scanned
        messages, then a final one with is_complete=True. When the token is
        cancelled the scan stops before the next message and the final
        snapshot has is_cancelled=True instead.
        """
        buckets: Dict[str, _SenderBucket] = {}
        scanned = 0
        emit_every = self.config.discovery_emit_every

        try:
            for message in corpus:
                if cancel_token is not None:
                    cancel_token.scanned_count = scanned
                    cancel_token.raise_if_cancelled()

                scanned += 1
                if is_transaction_sms(message.body):
                    key = normalize_sender_id(message.sender_id)
                    if key:
                        buckets.setdefault(key, _SenderBucket()).add(message)

                if scanned % emit_every == 0:
                    yield self._build_result(buckets, scanned)
        except ScanCancelledError as e:
            logger.info(f"Discovery cancelled after {e.scanned_count} messages")
            yield self._build_result(buckets, scanned, is_cancelled=True)
            return

        result = self._build_result(buckets, scanned, is_complete=True)
        logger.info(
            f"Discovery complete: {scanned} scanned, {len(result.detected_banks)} banks, "
            f"{len(result.unknown_senders)} unknown senders"
        )
        yield result

    def scan(
        self,
        corpus: Iterable[SmsMessage],
        cancel_token: Optional[CancellationToken] = None,
    ) -> DiscoveryResult:
        """Run discover() to the end and return only the final snapshot."""
        result = DiscoveryResult(scanned_count=0)
        for result in self.discover(corpus, cancel_token):
            pass
        return result

    def _build_result(
        self,
        buckets: Dict[str, _SenderBucket],
        scanned: int,
        is_complete: bool = False,
        is_cancelled: bool = False,
    ) -> DiscoveryResult:
        groups: Dict[str, List[str]] = {}
        unknown: List[DiscoveredBank] = []
        sample_chars = self.config.sample_message_chars

        for sender_id, bucket in buckets.items():
            bank = self.directory.find_by_sender(sender_id)
            if bank is not None:
                groups.setdefault(bank.code, []).append(sender_id)
            elif bucket.count >= self.config.unknown_sender_min_count:
                unknown.append(DiscoveredBank(
                    sender_ids=(sender_id,),
                    primary_sender_id=sender_id,
                    new_sender_ids=(sender_id,),
                    bank_name=infer_bank_name(sender_id),
                    transaction_count=bucket.count,
                    last_transaction_timestamp=bucket.latest_timestamp,
                    sample_message=_truncate(bucket.latest_body, sample_chars),
                ))

        detected: List[DiscoveredBank] = []
        for code, sender_ids in groups.items():
            bank = self.directory.find_by_code(code)
            group = [buckets[s] for s in sender_ids]
            latest = max(group, key=lambda b: b.latest_timestamp)
            primary = max(sender_ids, key=lambda s: buckets[s].count)

            detected.append(DiscoveredBank(
                sender_ids=tuple(sender_ids),
                primary_sender_id=primary,
                new_sender_ids=tuple(s for s in sender_ids if not self.directory.is_covered(bank, s)),
                bank_name=bank.name,
                bank_code=bank.code,
                color=bank.color,
                transaction_count=sum(b.count for b in group),
                last_transaction_timestamp=latest.latest_timestamp,
                sample_message=_truncate(latest.latest_body, sample_chars),
                is_known_bank=True,
            ))

        detected.sort(key=lambda b: b.transaction_count, reverse=True)
        unknown.sort(key=lambda b: b.transaction_count, reverse=True)

        return DiscoveryResult(
            scanned_count=scanned,
            detected_banks=tuple(detected),
            unknown_senders=tuple(unknown),
            is_complete=is_complete,
            is_cancelled=is_cancelled,
        )


def _truncate(text: Optional[str], max_chars: int) -> Optional[str]:
    return text[:max_chars] if text is not None else None
