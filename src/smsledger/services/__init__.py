"""Services for smsledger.

Provides services for:
- Account Matching: Link parsed SMS to the user's accounts
- Bank Discovery: Find banks and financial senders in an SMS corpus
- Ingestion: Deduplicating, recurring-aware transaction ingestion
"""

from .account_matching import AccountMatcher, MatchConfidence, MatchResult
from .bank_discovery import BankDiscoveryScanner, CancellationToken, DiscoveryResult
from .ingestion import IngestionCoordinator, IngestionResult

__all__ = [
    "AccountMatcher",
    "MatchConfidence",
    "MatchResult",
    "BankDiscoveryScanner",
    "CancellationToken",
    "DiscoveryResult",
    "IngestionCoordinator",
    "IngestionResult",
]
