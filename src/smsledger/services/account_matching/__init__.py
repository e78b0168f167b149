"""
Account matching for SMS transactions.

Scores the user's linked accounts against a parsed SMS (sender ID, bank
code, last 4 digits) and proposes a new account when nothing fits.
"""

from .matcher import (
    AccountMatcher,
    build_match_reason,
    confidence_for,
    find_accounts_by_bank,
    find_exact_match,
    has_linked_sender,
    score,
)
from .models import AccountMatch, AccountSuggestion, MatchConfidence, MatchResult

__all__ = [
    "AccountMatcher",
    "AccountMatch",
    "AccountSuggestion",
    "MatchConfidence",
    "MatchResult",
    "score",
    "confidence_for",
    "build_match_reason",
    "find_exact_match",
    "find_accounts_by_bank",
    "has_linked_sender",
]
