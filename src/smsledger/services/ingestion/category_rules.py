"""
Category classification rules for SMS transactions.

Keyword rules over the merchant name. The returned value is a category id
seeded in the store, so a classification can always be persisted.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional

UNCATEGORIZED = "uncategorized"


@dataclass
class CategoryMapping:
    """Keywords that map a merchant to a category."""
    category: str
    name: str
    keywords: List[str]
    priority: int = 0  # Higher priority rules are checked first


EXPENSE_CATEGORIES: List[CategoryMapping] = [
    CategoryMapping(
        category="food",
        name="Food & Dining",
        keywords=["SWIGGY", "ZOMATO", "RESTAURANT", "CAFE", "FOOD"],
        priority=60
    ),
    CategoryMapping(
        category="groceries",
        name="Groceries",
        keywords=["GROCERY", "SUPERMARKET", "BLINKIT", "ZEPTO", "INSTAMART",
                  "BASKET", "MART"],
        priority=55
    ),
    CategoryMapping(
        category="shopping",
        name="Shopping",
        keywords=["AMAZON", "FLIPKART", "MYNTRA", "SHOP", "STORE"],
        priority=50
    ),
    CategoryMapping(
        category="transportation",
        name="Transportation",
        keywords=["UBER", "OLA", "RAPIDO", "PETROL", "FUEL", "PUMP"],
        priority=40
    ),
    CategoryMapping(
        category="entertainment",
        name="Entertainment",
        keywords=["NETFLIX", "SPOTIFY", "HOTSTAR", "PRIME", "MOVIE", "CINEMA"],
        priority=30
    ),
    CategoryMapping(
        category="bills",
        name="Bills & Utilities",
        keywords=["ELECTRICITY", "WATER", "GAS", "BILL", "RECHARGE", "MOBILE",
                  "BROADBAND"],
        priority=20
    ),
]


class CategoryClassifier:
    """
    Classifies merchants into categories.

    Custom overrides (keyword -> category) are checked first, then the
    built-in rules by priority. Unknown merchants are left unclassified.
    """

    def __init__(self, custom_overrides: Optional[Dict[str, str]] = None):
        """
        Initialize classifier with optional custom overrides.

        Args:
            custom_overrides: Dictionary of keyword -> category id
        """
        self.custom_overrides = custom_overrides or {}
        self.rules = sorted(EXPENSE_CATEGORIES, key=lambda x: x.priority, reverse=True)

    def classify(self, merchant_name: Optional[str]) -> Optional[str]:
        """Return the category id for a merchant, or None when nothing matches."""
        if not merchant_name or not merchant_name.strip():
            return None
        merchant_upper = merchant_name.upper()

        for keyword, category in self.custom_overrides.items():
            if keyword.upper() in merchant_upper:
                return category

        for rule in self.rules:
            for keyword in rule.keywords:
                if keyword in merchant_upper:
                    return rule.category

        return None

    def infer(self, merchant_name: Optional[str], fallback: Optional[str] = None) -> str:
        """Classify, falling back to the given category and then to uncategorized."""
        return self.classify(merchant_name) or fallback or UNCATEGORIZED

    def default_categories(self) -> Dict[str, str]:
        """Category id -> display name for seeding the store."""
        categories = {rule.category: rule.name for rule in self.rules}
        for category in self.custom_overrides.values():
            categories.setdefault(category, category.replace("_", " ").title())
        categories[UNCATEGORIZED] = "Uncategorized"
        return categories
