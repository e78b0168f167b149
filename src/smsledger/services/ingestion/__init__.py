"""
SMS transaction ingestion.

Deduplicates parsed SMS against stored transactions, assigns accounts,
correlates recurring templates and keeps account balances in step.
"""

from .category_rules import CategoryClassifier, UNCATEGORIZED
from .coordinator import IngestionCoordinator, build_note
from .models import DecisionType, IngestionDecision, IngestionResult

__all__ = [
    "IngestionCoordinator",
    "IngestionDecision",
    "IngestionResult",
    "DecisionType",
    "CategoryClassifier",
    "UNCATEGORIZED",
    "build_note",
]
