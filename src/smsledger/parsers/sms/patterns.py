"""
Keyword vocabularies and regex tables for Indian bank/payment SMS.

Shared by the transaction extractor and the bank discovery scanner. All
tables are immutable and compiled once at import.
"""

import re
from typing import Pattern, Tuple

# Phrases that mark a message as non-transactional even when it mentions an
# amount: OTPs, mandate/auto-pay configuration, reminders and marketing.
EXCLUSION_MARKERS: Tuple[str, ...] = (
    # OTP / verification
    "otp is", "is your otp", "otp for", "otp to", "one time password",
    "one-time password", "verification code",
    # Auto-pay, mandates, standing instructions
    "auto-pay", "autopay", "auto pay", "mandate", "e-mandate",
    "standing instruction", "si registered", "si has been", "will be debited",
    "will be activated", "will be deducted", "has been registered",
    # Reminders and due-date notices
    "reminder", "is due", "due on", "due date", "due by", "payment due",
    "bill due", "min amt due", "minimum amount due", "total amt due", "overdue",
    # Collect requests (money not yet moved)
    "has requested", "collect request", "requested money",
    # Marketing, rewards, KYC
    "exclusive offer", "special offer", "limited offer", "offer valid", "offer ends",
    "pre-approved", "preapproved", "apply now", "congratulations",
    "reward points", "reward point", "kyc", "limited period", "upgrade your card",
    "eligible for", "voucher code",
)

DEBIT_KEYWORDS: Tuple[str, ...] = (
    "debited", "spent", "paid", "purchase", "withdrawn", "payment",
    "transferred", "sent", "deducted", "charged",
)

CREDIT_KEYWORDS: Tuple[str, ...] = (
    "credited", "received", "deposited", "refund", "cashback", "added",
    "transfer from",
)

# Looser vocabularies used only by discovery ("this sender plausibly sends
# financial SMS"), so bare debit/credit and reversal wording count too.
DISCOVERY_DEBIT_KEYWORDS: Tuple[str, ...] = DEBIT_KEYWORDS + ("debit", "txn")
DISCOVERY_CREDIT_KEYWORDS: Tuple[str, ...] = CREDIT_KEYWORDS + ("credit", "reversed")

ACCOUNT_REFERENCE_TOKENS: Tuple[str, ...] = (
    "a/c", "ac ", "acct", "account", "card", "xx", "**",
)

UPI_TOKENS: Tuple[str, ...] = ("upi", "@")

# Common body markers used by the quick pre-check on live messages
AMOUNT_INDICATORS: Tuple[str, ...] = ("rs.", "rs ", "inr", "₹", "rupees")
LIVE_TRANSACTION_WORDS: Tuple[str, ...] = (
    "debited", "credited", "spent", "received", "paid", "transferred",
    "payment", "transaction",
)

# Sender ID fragments of banks and payment apps
BANK_SENDER_PREFIXES: Tuple[str, ...] = (
    "HDFCBK", "SBIINB", "ICICIB", "AXISBK", "KOTAKB", "PNBSMS",
    "YESBNK", "ILOYBK", "BOIIND", "CANBNK", "UCOBNK", "CENTBK",
    "UNIONB", "BOBSMS", "INDUSB", "FEDERL", "SCBANK",
    "PAYTM", "GPAY", "PHONPE", "AMAZON", "IDFCFB", "RBLBNK",
)


def _keyword_regex(keywords: Tuple[str, ...]) -> Pattern:
    """Keywords anchored at a word start; suffixes (refunded, payments) still match."""
    alternation = "|".join(re.escape(k) for k in sorted(keywords, key=len, reverse=True))
    return re.compile(rf"\b(?:{alternation})", re.IGNORECASE)


def _phrase_regex(phrases: Tuple[str, ...]) -> Pattern:
    """Whole-phrase match on word boundaries."""
    alternation = "|".join(re.escape(p) for p in sorted(phrases, key=len, reverse=True))
    return re.compile(rf"(?<!\w)(?:{alternation})(?!\w)", re.IGNORECASE)


EXCLUSION_REGEX = _phrase_regex(EXCLUSION_MARKERS)
DEBIT_REGEX = _keyword_regex(DEBIT_KEYWORDS)
CREDIT_REGEX = _keyword_regex(CREDIT_KEYWORDS)
DISCOVERY_DEBIT_REGEX = _keyword_regex(DISCOVERY_DEBIT_KEYWORDS)
DISCOVERY_CREDIT_REGEX = _keyword_regex(DISCOVERY_CREDIT_KEYWORDS)

_CURRENCY = r"(?:Rs\.?|INR|₹)"
_NUMBER = r"(\d[\d,]*(?:\.\d{1,2})?)"

# Currency-amount presence test used by discovery
CURRENCY_AMOUNT_REGEX = re.compile(rf"{_CURRENCY}\s*\d[\d,]*(?:\.\d{{1,2}})?", re.IGNORECASE)

AMOUNT_PATTERNS: Tuple[Pattern, ...] = (
    # Rs.1,234.56 / Rs 1234.56 / INR 1234 / ₹1234
    re.compile(rf"{_CURRENCY}\s*{_NUMBER}", re.IGNORECASE),
    # debited by 1234.56 / credited with INR 500
    re.compile(
        rf"\b(?:debited|credited|paid|spent|received)\s+(?:by|with|of|for)?\s*{_CURRENCY}?\s*{_NUMBER}",
        re.IGNORECASE,
    ),
    # Amount: 1234.56 / Amt 500
    re.compile(rf"\b(?:amount|amt)[:\s]+{_CURRENCY}?\s*{_NUMBER}", re.IGNORECASE),
)

_NAME_END = r"(?=\s+(?:on|via|ref|upi|thru|through|in|at|for|using|avl|bal)\b|[,(;]|\.\s|\.$|\s*$)"

# Business name immediately followed by its UPI handle: "to SWIGGY LTD (swiggy@axis)"
MERCHANT_BEFORE_HANDLE = re.compile(
    r"\b(?:to|at)\s+([A-Za-z][A-Za-z0-9&.' ]{1,60}?)\s*[(\-/]\s*[A-Za-z0-9._-]+@[A-Za-z][A-Za-z0-9]*",
    re.IGNORECASE,
)
MERCHANT_GENERIC = re.compile(
    rf"\b(?:at|to|for)\s+([A-Za-z0-9][A-Za-z0-9&.'\s-]*?){_NAME_END}",
    re.IGNORECASE,
)
MERCHANT_INFO = re.compile(r"\bInfo[:\s]+([^.]+)", re.IGNORECASE)
MERCHANT_PAYEE = re.compile(r"\bpayee[:\s]+([^.,]+)", re.IGNORECASE)

ACCOUNT_HINT_PATTERNS: Tuple[Pattern, ...] = (
    re.compile(r"\b(?:a/c|acct|account|ac)(?:\s*no\.?)?[\s*:.\-]*[Xx*]*(\d{4})(?!\d)", re.IGNORECASE),
    re.compile(r"\bcard(?:\s*no\.?)?(?:\s*ending(?:\s*with)?)?[\s*:.\-]*[Xx*]*(\d{4})(?!\d)", re.IGNORECASE),
    re.compile(r"[Xx]{2,}(\d{4})(?!\d)"),
    re.compile(r"\*{2,}(\d{4})(?!\d)"),
)

CREDIT_CARD_PATTERNS: Tuple[Pattern, ...] = (
    re.compile(r"credit\s*card", re.IGNORECASE),
    re.compile(r"\bcc\s*[x*]", re.IGNORECASE),
)
DEBIT_CARD_PATTERNS: Tuple[Pattern, ...] = (
    re.compile(r"debit\s*card", re.IGNORECASE),
    re.compile(r"atm\s*card", re.IGNORECASE),
    re.compile(r"\bdc\s*[x*]", re.IGNORECASE),
)
PREPAID_CARD_PATTERNS: Tuple[Pattern, ...] = (
    re.compile(r"prepaid\s*card", re.IGNORECASE),
    re.compile(r"forex\s*card", re.IGNORECASE),
    re.compile(r"gift\s*card", re.IGNORECASE),
)
ANY_CARD_PATTERN = re.compile(r"\bcard\b", re.IGNORECASE)

_HANDLE = r"([A-Za-z0-9._-]+@[A-Za-z][A-Za-z0-9]*)(?![A-Za-z0-9]|\.[A-Za-z])"
UPI_PATTERNS: Tuple[Pattern, ...] = (
    re.compile(rf"\b(?:VPA|UPI\s*ID|UPI)[:\s\-/]*{_HANDLE}", re.IGNORECASE),
    re.compile(rf"(?<![\w.@-]){_HANDLE}"),
)

REFERENCE_PATTERNS: Tuple[Pattern, ...] = (
    re.compile(r"\bUTR(?:\s*(?:no|number))?[\s.:#\-]*((?=[A-Za-z]*\d)[A-Za-z0-9]{6,})", re.IGNORECASE),
    re.compile(
        r"\b(?:ref(?:erence)?|txn|transaction)(?:\s*(?:no|num|number|id))?[\s.:#\-]*((?=[A-Za-z]*\d)[A-Za-z0-9]{6,})",
        re.IGNORECASE,
    ),
)

_PERSON = r"([A-Za-z][\w.@&' -]*?)"
SENDER_NAME_PATTERNS: Tuple[Pattern, ...] = (
    re.compile(rf"\b(?:remitter|sender)[:\s]+{_PERSON}{_NAME_END}", re.IGNORECASE),
    re.compile(rf"\bfrom\s+{_PERSON}{_NAME_END}", re.IGNORECASE),
)
RECEIVER_NAME_PATTERNS: Tuple[Pattern, ...] = (
    re.compile(rf"\b(?:beneficiary|payee)[:\s]+{_PERSON}{_NAME_END}", re.IGNORECASE),
    re.compile(rf"\bto\s+{_PERSON}{_NAME_END}", re.IGNORECASE),
)

# First words that mean a "from X"/"to X" capture is not a person
NON_NAME_WORDS = frozenset({
    "a", "ac", "acct", "account", "your", "you", "card", "the", "be", "rs",
    "inr", "vpa", "upi", "mobile", "block", "report", "avoid", "call", "dispute",
    "self", "bank", "wallet", "beneficiary", "sms",
})

SENDER_HEADER_REGEX = re.compile(r"^(?:[A-Z]{2}-)?[A-Z]{6}$")
