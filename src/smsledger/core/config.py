"""Ingestion configuration for smsledger.

Provides data-driven tuning of the duplicate and recurring windows with
sensible defaults. Values can be overridden from a JSON file.
"""

import json
import logging
from dataclasses import dataclass, field, fields
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Dict, Union

from smsledger.core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

MILLIS_PER_HOUR = 60 * 60 * 1000
MILLIS_PER_DAY = 24 * MILLIS_PER_HOUR

# Default configuration (used when nothing is configured)
DEFAULT_CONFIG: Dict[str, Any] = {
    "duplicate_window_hours": 24,
    "recurring_window_days": 2,
    "recurring_amount_tolerance": "5",
    "min_assign_score": 50,
    "discovery_emit_every": 50,
    "unknown_sender_min_count": 2,
    "sample_message_chars": 200,
    "merchant_max_chars": 50,
    "linked_senders_only": False,
    "save_pending_on_failure": True,
    "category_overrides": {},
}


@dataclass
class IngestionConfig:
    """
    Tunables for extraction, discovery and ingestion.

    Windows are in hours/days here and exposed in millis for store queries.
    """
    duplicate_window_hours: int = 24
    recurring_window_days: int = 2
    recurring_amount_tolerance: Decimal = Decimal("5")
    min_assign_score: int = 50
    discovery_emit_every: int = 50
    unknown_sender_min_count: int = 2
    sample_message_chars: int = 200
    merchant_max_chars: int = 50
    linked_senders_only: bool = False
    save_pending_on_failure: bool = True
    category_overrides: Dict[str, str] = field(default_factory=dict)

    def __post_init__(self):
        if not isinstance(self.recurring_amount_tolerance, Decimal):
            try:
                self.recurring_amount_tolerance = Decimal(str(self.recurring_amount_tolerance))
            except InvalidOperation:
                raise ConfigurationError(
                    f"Invalid amount tolerance: {self.recurring_amount_tolerance}",
                    field="recurring_amount_tolerance",
                )
        self.validate()

    def validate(self) -> None:
        """Reject negative windows and thresholds outside the score range."""
        for name in ("duplicate_window_hours", "recurring_window_days",
                     "unknown_sender_min_count", "sample_message_chars"):
            if getattr(self, name) < 0:
                raise ConfigurationError(f"{name} must not be negative", field=name)
        if self.recurring_amount_tolerance < 0:
            raise ConfigurationError(
                "recurring_amount_tolerance must not be negative",
                field="recurring_amount_tolerance",
            )
        if not 0 <= self.min_assign_score <= 100:
            raise ConfigurationError("min_assign_score must be within 0-100", field="min_assign_score")
        if self.discovery_emit_every < 1:
            raise ConfigurationError("discovery_emit_every must be at least 1", field="discovery_emit_every")
        if self.merchant_max_chars < 1:
            raise ConfigurationError("merchant_max_chars must be at least 1", field="merchant_max_chars")

    @property
    def duplicate_window_millis(self) -> int:
        return self.duplicate_window_hours * MILLIS_PER_HOUR

    @property
    def recurring_window_millis(self) -> int:
        return self.recurring_window_days * MILLIS_PER_DAY

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "IngestionConfig":
        """Build config from a dictionary, defaults filling the gaps."""
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ConfigurationError(f"Unknown configuration keys: {', '.join(sorted(unknown))}")

        merged = DEFAULT_CONFIG.copy()
        merged.update(data)
        merged["category_overrides"] = dict(merged.get("category_overrides") or {})
        return cls(**merged)

    @classmethod
    def from_json(cls, json_path: Union[str, Path]) -> "IngestionConfig":
        """Load configuration from JSON file."""
        try:
            with open(json_path, encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigurationError(f"Failed to load config from {json_path}: {e}")

        if not isinstance(data, dict):
            raise ConfigurationError(f"Config root must be an object: {json_path}")

        logger.debug(f"Loaded ingestion config from {json_path}")
        return cls.from_dict(data)

    def to_dict(self) -> Dict[str, Any]:
        data = {f.name: getattr(self, f.name) for f in fields(self)}
        data["recurring_amount_tolerance"] = str(self.recurring_amount_tolerance)
        data["category_overrides"] = dict(self.category_overrides)
        return data

    def to_json(self, json_path: Union[str, Path]) -> None:
        """Save configuration to JSON file."""
        with open(json_path, 'w', encoding='utf-8') as f:
            json.dump(self.to_dict(), f, indent=4)
        logger.info(f"Saved ingestion config to {json_path}")
