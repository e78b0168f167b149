"""
Account matcher - links parsed SMS transactions to the user's accounts.

Matching strategy:
1. Score every linked account on sender ID, bank code and last-4 digits
2. Band the best score into a confidence level
3. When nothing matches well, suggest a new linked account

Scoring (capped at 100):
    +40  one of the account's linked sender IDs appears in the SMS sender
    +30  the account's bank code appears in the SMS sender
    +50  the account's last 4 digits equal the SMS account hint
"""

import logging
from typing import Iterable, List, Optional

from smsledger.core.bank_directory import DEFAULT_ACCOUNT_COLOR, BankDirectory
from smsledger.core.models import AccountType, LinkedAccount, new_id
from smsledger.parsers.sms.models import CardType, ParsedTransaction

from .models import AccountMatch, AccountSuggestion, MatchConfidence, MatchResult

logger = logging.getLogger(__name__)

SENDER_ID_POINTS = 40
BANK_CODE_POINTS = 30
LAST4_POINTS = 50
MAX_SCORE = 100

HIGH_THRESHOLD = 80
MEDIUM_THRESHOLD = 50
LOW_THRESHOLD = 20


def _normalize(sender_id: str) -> str:
    return (sender_id or "").upper().replace("-", "")


def _sender_matches(account: LinkedAccount, normalized_sender: str) -> bool:
    return any(s and _normalize(s) in normalized_sender for s in account.linked_sender_ids)


def _bank_code_matches(account: LinkedAccount, normalized_sender: str) -> bool:
    return bool(account.bank_code) and account.bank_code.upper() in normalized_sender


def _last4_matches(account: LinkedAccount, account_hint: Optional[str]) -> bool:
    return account.account_number_last4 is not None and account.account_number_last4 == account_hint


def score(account: LinkedAccount, sender_id: str, account_hint: Optional[str]) -> int:
    """Match score in [0, 100]; unlinked accounts always score 0."""
    if not account.is_linked:
        return 0

    normalized = _normalize(sender_id)
    total = 0
    if _sender_matches(account, normalized):
        total += SENDER_ID_POINTS
    if _bank_code_matches(account, normalized):
        total += BANK_CODE_POINTS
    if _last4_matches(account, account_hint):
        total += LAST4_POINTS
    return min(total, MAX_SCORE)


def confidence_for(match_score: int) -> MatchConfidence:
    """Band a score: HIGH >= 80, MEDIUM >= 50, LOW >= 20, else NONE."""
    if match_score >= HIGH_THRESHOLD:
        return MatchConfidence.HIGH
    if match_score >= MEDIUM_THRESHOLD:
        return MatchConfidence.MEDIUM
    if match_score >= LOW_THRESHOLD:
        return MatchConfidence.LOW
    return MatchConfidence.NONE


def build_match_reason(account: LinkedAccount, sender_id: str, account_hint: Optional[str]) -> str:
    """Human-readable list of the signals that matched."""
    normalized = _normalize(sender_id)
    reasons = []
    if _last4_matches(account, account_hint):
        reasons.append(f"Account number matched (****{account_hint})")
    if _bank_code_matches(account, normalized):
        reasons.append(f"Bank code matched ({account.bank_code})")
    if _sender_matches(account, normalized):
        reasons.append("Sender ID matched")
    return ", ".join(reasons) if reasons else "No specific match"


def find_exact_match(
    accounts: Iterable[LinkedAccount],
    bank_code: str,
    last4: str,
) -> Optional[LinkedAccount]:
    """Linked account with this bank code (case-insensitive) and last 4 digits."""
    code = (bank_code or "").upper()
    for account in accounts:
        if (account.is_linked
                and (account.bank_code or "").upper() == code
                and account.account_number_last4 == last4):
            return account
    return None


def find_accounts_by_bank(accounts: Iterable[LinkedAccount], bank_code: str) -> List[LinkedAccount]:
    """Linked accounts whose bank code or linked sender IDs mention the code."""
    code = (bank_code or "").upper()
    if not code:
        return []
    return [
        account for account in accounts
        if account.is_linked and (
            (account.bank_code or "").upper() == code
            or any(code in _normalize(sender) for sender in account.linked_sender_ids)
        )
    ]


def has_linked_sender(accounts: Iterable[LinkedAccount], sender_id: str) -> bool:
    """True if some linked account claims this sender by sender ID or bank code."""
    normalized = _normalize(sender_id)
    return any(
        account.is_linked and (_sender_matches(account, normalized) or _bank_code_matches(account, normalized))
        for account in accounts
    )


class AccountMatcher:
    """
    Matches parsed transactions against a list of accounts.

    The matcher holds no account state; callers pass the current account
    list on every call so it never reads a stale snapshot.

    Usage:
        matcher = AccountMatcher()
        result = matcher.find_matching_account(parsed, "VM-HDFCBK", accounts)
        if result.confidence in (MatchConfidence.HIGH, MatchConfidence.MEDIUM):
            account = result.matched_account
    """

    def __init__(self, directory: Optional[BankDirectory] = None):
        self.directory = directory or BankDirectory.default()

    def find_matching_account(
        self,
        parsed: ParsedTransaction,
        sender_id: str,
        accounts: Iterable[LinkedAccount],
    ) -> MatchResult:
        """
        Score all linked accounts and pick the best.

        Candidates are sorted by score descending; ties keep input order.
        A new-account suggestion is attached when confidence is LOW or NONE.
        """
        linked = [account for account in accounts if account.is_linked]
        logger.debug(
            f"Matching sender={sender_id} hint={parsed.account_hint} "
            f"bank={parsed.bank_code} against {len(linked)} linked accounts"
        )

        candidates = [
            AccountMatch(
                account=account,
                score=score(account, sender_id, parsed.account_hint),
                reason=build_match_reason(account, sender_id, parsed.account_hint),
            )
            for account in linked
        ]
        candidates.sort(key=lambda c: c.score, reverse=True)

        confidence = confidence_for(candidates[0].score) if candidates else MatchConfidence.NONE

        suggestion = None
        if confidence in (MatchConfidence.NONE, MatchConfidence.LOW):
            suggestion = self.suggest_account(parsed, sender_id)

        return MatchResult(
            parsed=parsed,
            matched_accounts=candidates,
            confidence=confidence,
            suggestion=suggestion,
        )

    def suggest_account(self, parsed: ParsedTransaction, sender_id: str) -> AccountSuggestion:
        """Propose a linked account built from the SMS and the sender's bank."""
        bank = self.directory.find_by_sender(sender_id)

        if parsed.card_type == CardType.CREDIT:
            account_type = AccountType.CREDIT_CARD
        elif parsed.upi_id is not None:
            account_type = AccountType.UPI
        elif bank is not None:
            account_type = AccountType.BANK
        else:
            account_type = AccountType.OTHER

        name = bank.name if bank else "Unknown Bank"
        if parsed.card_type == CardType.CREDIT:
            name += " Credit Card"
        elif parsed.card_type == CardType.DEBIT:
            name += " Debit Card"
        elif parsed.account_hint:
            name += f" ****{parsed.account_hint}"

        if bank:
            sender_ids = frozenset(bank.sender_patterns)
        else:
            sender_ids = frozenset([sender_id.upper()]) if sender_id else frozenset()

        return AccountSuggestion(
            suggested_name=name,
            account_type=account_type,
            sender_ids=sender_ids,
            bank_code=bank.code if bank else parsed.bank_code,
            bank_name=bank.name if bank else parsed.bank_name,
            account_number_last4=parsed.account_hint,
            color=bank.color if bank else DEFAULT_ACCOUNT_COLOR,
        )

    @staticmethod
    def create_account_from_suggestion(
        suggestion: AccountSuggestion,
        account_id: Optional[str] = None,
    ) -> LinkedAccount:
        """Materialize a suggestion as a linked account."""
        return LinkedAccount(
            account_id=account_id or new_id(),
            name=suggestion.suggested_name,
            is_linked=True,
            bank_code=suggestion.bank_code,
            account_number_last4=suggestion.account_number_last4,
            linked_sender_ids=suggestion.sender_ids,
            account_type=suggestion.account_type,
            color=suggestion.color,
        )

    find_exact_match = staticmethod(find_exact_match)
    find_accounts_by_bank = staticmethod(find_accounts_by_bank)
    has_linked_sender = staticmethod(has_linked_sender)
