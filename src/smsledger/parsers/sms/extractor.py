"""
Transaction extraction from bank/payment SMS.

Turns free-form SMS text into a ParsedTransaction. The pipeline is:

1. Exclusion filter (OTP, mandate/auto-pay, reminders, marketing)
2. Direction-keyword gate (at least one debit or credit verb)
3. Amount extraction (first pattern yielding a positive amount)
4. Direction resolution (both directions present -> debit)
5. Secondary fields, each an independent best-effort matcher
6. Bank enrichment from the sender ID

Stages 1-3 reject with None; stage 5 never rejects. Exclusion and keyword
gates run before amount extraction: configuration messages such as
"Auto-Pay for INR 75000 will be activated" carry an amount.

Every matcher below is a pure function of the message text, so extraction
is safe to call from any number of threads.
"""

import logging
from decimal import Decimal, InvalidOperation
from typing import Callable, Iterable, Optional, Pattern, Sequence, Tuple

from smsledger.core.bank_directory import BankDirectory, normalize_sender_id
from smsledger.parsers.sms import patterns as p
from smsledger.parsers.sms.models import CardType, ParsedTransaction

logger = logging.getLogger(__name__)

TWO_PLACES = Decimal("0.01")


# ---------------------------------------------------------------------------
# Gates
# ---------------------------------------------------------------------------

def is_excluded(message: str) -> bool:
    """True if the message carries a non-transactional marker phrase."""
    return p.EXCLUSION_REGEX.search(message.lower()) is not None


def direction_keywords(message: str) -> Tuple[bool, bool]:
    """Return (has_debit_keyword, has_credit_keyword)."""
    lower = message.lower()
    return bool(p.DEBIT_REGEX.search(lower)), bool(p.CREDIT_REGEX.search(lower))


def resolve_direction(has_debit: bool, has_credit: bool) -> bool:
    """
    Resolve debit/credit from keyword presence; both present means debit.
    """
    if has_credit and not has_debit:
        return False
    return True


# ---------------------------------------------------------------------------
# Field matchers
# ---------------------------------------------------------------------------

def parse_amount(raw: str) -> Optional[Decimal]:
    """Parse "1,234.56" into Decimal("1234.56"); None if unparseable."""
    cleaned = raw.replace(",", "").strip().rstrip(".")
    if not cleaned:
        return None
    try:
        return Decimal(cleaned).quantize(TWO_PLACES)
    except InvalidOperation:
        return None


def find_amount(message: str) -> Optional[Decimal]:
    """First positive amount from the ordered amount patterns."""
    for pattern in p.AMOUNT_PATTERNS:
        for match in pattern.finditer(message):
            amount = parse_amount(match.group(1))
            if amount is not None and amount > 0:
                return amount
    return None


def _first_word(text: str) -> str:
    parts = text.split()
    return parts[0].lower().strip(".:,") if parts else ""


def _clean(value: Optional[str], max_chars: Optional[int] = None) -> Optional[str]:
    if value is None:
        return None
    value = " ".join(value.split()).strip(" .,-")
    if max_chars:
        value = value[:max_chars].strip()
    return value or None


def _merchant_before_handle(message: str) -> Optional[str]:
    for match in p.MERCHANT_BEFORE_HANDLE.finditer(message):
        name = _clean(match.group(1))
        if name and _first_word(name) not in p.NON_NAME_WORDS:
            return name
    return None


def _merchant_generic(message: str) -> Optional[str]:
    for match in p.MERCHANT_GENERIC.finditer(message):
        name = _clean(match.group(1))
        if name and _first_word(name) not in p.NON_NAME_WORDS:
            return name
    return None


def _merchant_info(message: str) -> Optional[str]:
    match = p.MERCHANT_INFO.search(message)
    return _clean(match.group(1)) if match else None


def _merchant_payee(message: str) -> Optional[str]:
    match = p.MERCHANT_PAYEE.search(message)
    return _clean(match.group(1)) if match else None


MERCHANT_MATCHERS: Tuple[Callable[[str], Optional[str]], ...] = (
    _merchant_before_handle,
    _merchant_generic,
    _merchant_info,
    _merchant_payee,
)


def find_merchant(message: str, max_chars: int = 50) -> Optional[str]:
    """First non-blank merchant from the ordered matchers, truncated."""
    for matcher in MERCHANT_MATCHERS:
        merchant = _clean(matcher(message), max_chars)
        if merchant:
            return merchant
    return None


def _first_group(patterns: Iterable[Pattern], message: str) -> Optional[str]:
    for pattern in patterns:
        match = pattern.search(message)
        if match:
            return match.group(1)
    return None


def find_account_hint(message: str) -> Optional[str]:
    """Last 4 digits of the account or card (A/C ***1234, XXXX1234, **1234)."""
    return _first_group(p.ACCOUNT_HINT_PATTERNS, message)


def find_card_type(message: str) -> Optional[CardType]:
    """Card type if a card is mentioned; UNKNOWN for an untyped card."""
    if any(pattern.search(message) for pattern in p.CREDIT_CARD_PATTERNS):
        return CardType.CREDIT
    if any(pattern.search(message) for pattern in p.DEBIT_CARD_PATTERNS):
        return CardType.DEBIT
    if any(pattern.search(message) for pattern in p.PREPAID_CARD_PATTERNS):
        return CardType.PREPAID
    if p.ANY_CARD_PATTERN.search(message):
        return CardType.UNKNOWN
    return None


def find_upi_id(message: str) -> Optional[str]:
    """UPI handle; every pattern requires an '@' so plain names never qualify."""
    upi_id = _first_group(p.UPI_PATTERNS, message)
    if upi_id and "@" in upi_id:
        return upi_id
    return None


def find_reference_number(message: str) -> Optional[str]:
    """Reference / UTR / txn number."""
    return _first_group(p.REFERENCE_PATTERNS, message)


def _find_person(patterns: Sequence[Pattern], message: str) -> Optional[str]:
    for pattern in patterns:
        for match in pattern.finditer(message):
            name = _clean(match.group(1))
            if not name or "@" in name:
                continue
            if _first_word(name) in p.NON_NAME_WORDS:
                continue
            return name
    return None


def find_sender_name(message: str) -> Optional[str]:
    """Payer name from "from X" (never a UPI handle)."""
    return _find_person(p.SENDER_NAME_PATTERNS, message)


def find_receiver_name(message: str) -> Optional[str]:
    """Payee name from "to X" (never a UPI handle)."""
    return _find_person(p.RECEIVER_NAME_PATTERNS, message)


# ---------------------------------------------------------------------------
# Sender helpers
# ---------------------------------------------------------------------------

def is_bank_sender(sender_id: str) -> bool:
    """Check if a sender ID looks like a bank or payment app header."""
    if not sender_id:
        return False
    upper = sender_id.strip().upper()
    normalized = normalize_sender_id(upper)
    if any(prefix in normalized for prefix in p.BANK_SENDER_PREFIXES):
        return True
    return p.SENDER_HEADER_REGEX.match(upper) is not None


def looks_financial(body: str, sender_id: str = "") -> bool:
    """Quick pre-check for live messages, before any full extraction."""
    if is_bank_sender(sender_id):
        return True
    lower = body.lower()
    has_amount = any(token in lower for token in p.AMOUNT_INDICATORS)
    has_keyword = any(word in lower for word in p.LIVE_TRANSACTION_WORDS)
    return has_amount and has_keyword


# ---------------------------------------------------------------------------
# Extractor
# ---------------------------------------------------------------------------

class TransactionExtractor:
    """
    Stateless SMS transaction extractor.

    Usage:
        extractor = TransactionExtractor()
        parsed = extractor.extract("Rs.500 debited from A/C XX1234 to SWIGGY", "VM-HDFCBK")
        if parsed is None:
            ...  # not a transaction
    """

    def __init__(self, directory: Optional[BankDirectory] = None, merchant_max_chars: int = 50):
        self.directory = directory or BankDirectory.default()
        self.merchant_max_chars = merchant_max_chars

    def extract(self, message: str, sender_id: str = "") -> Optional[ParsedTransaction]:
        """
        Parse an SMS into a ParsedTransaction.

        Returns:
            ParsedTransaction, or None when the message is not a transaction
        """
        if not message or not message.strip():
            return None

        if is_excluded(message):
            logger.debug(f"Rejected (non-transactional marker) from {sender_id}")
            return None

        has_debit, has_credit = direction_keywords(message)
        if not has_debit and not has_credit:
            logger.debug(f"Rejected (no direction keyword) from {sender_id}")
            return None

        amount = find_amount(message)
        if amount is None:
            logger.debug(f"Rejected (no amount) from {sender_id}")
            return None

        is_debit = resolve_direction(has_debit, has_credit)

        merchant_name = find_merchant(message, self.merchant_max_chars)
        upi_id = find_upi_id(message)

        sender_name = None
        receiver_name = None
        if is_debit:
            receiver_name = find_receiver_name(message)
            if receiver_name is None and merchant_name and "@" not in merchant_name:
                receiver_name = merchant_name
        else:
            sender_name = find_sender_name(message)

        bank = self.directory.find_by_sender(sender_id)

        return ParsedTransaction(
            amount=amount,
            is_debit=is_debit,
            original_message=message,
            merchant_name=merchant_name,
            account_hint=find_account_hint(message),
            bank_code=bank.code if bank else None,
            bank_name=bank.name if bank else None,
            card_type=find_card_type(message),
            upi_id=upi_id,
            reference_number=find_reference_number(message),
            sender_name=sender_name,
            receiver_name=receiver_name,
        )

    def __call__(self, message: str, sender_id: str = "") -> Optional[ParsedTransaction]:
        return self.extract(message, sender_id)


def extract(message: str, sender_id: str = "") -> Optional[ParsedTransaction]:
    """Module-level convenience using the default bank directory."""
    return _DEFAULT_EXTRACTOR.extract(message, sender_id)


_DEFAULT_EXTRACTOR = TransactionExtractor()
