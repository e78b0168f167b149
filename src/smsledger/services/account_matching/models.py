"""
Account matching result models.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import FrozenSet, List, Optional

from smsledger.core.models import AccountType, LinkedAccount
from smsledger.parsers.sms.models import ParsedTransaction


class MatchConfidence(Enum):
    """Confidence band for an account match."""
    HIGH = "HIGH"      # score >= 80
    MEDIUM = "MEDIUM"  # score 50-79
    LOW = "LOW"        # score 20-49
    NONE = "NONE"      # score < 20


@dataclass(frozen=True)
class AccountMatch:
    """A scored candidate account."""
    account: LinkedAccount
    score: int
    reason: str


@dataclass(frozen=True)
class AccountSuggestion:
    """Proposed new account for an SMS that matched nothing well."""
    suggested_name: str
    account_type: AccountType
    sender_ids: FrozenSet[str]
    bank_code: Optional[str] = None
    bank_name: Optional[str] = None
    account_number_last4: Optional[str] = None
    color: int = 0


@dataclass
class MatchResult:
    """Outcome of matching a parsed transaction to the user's accounts."""
    parsed: ParsedTransaction
    matched_accounts: List[AccountMatch] = field(default_factory=list)
    confidence: MatchConfidence = MatchConfidence.NONE
    suggestion: Optional[AccountSuggestion] = None

    @property
    def best_match(self) -> Optional[AccountMatch]:
        return self.matched_accounts[0] if self.matched_accounts else None

    @property
    def best_score(self) -> int:
        return self.matched_accounts[0].score if self.matched_accounts else 0

    @property
    def matched_account(self) -> Optional[LinkedAccount]:
        """The top candidate's account; None when confidence is NONE."""
        if self.confidence == MatchConfidence.NONE or not self.matched_accounts:
            return None
        return self.matched_accounts[0].account

    @property
    def matched_account_id(self) -> Optional[str]:
        account = self.matched_account
        return account.account_id if account is not None else None
