"""
SMS parser for Indian bank and payment app messages.

Usage:
    from smsledger.parsers.sms import TransactionExtractor

    parsed = TransactionExtractor().extract(body, sender_id)
"""

from .extractor import TransactionExtractor, extract, is_bank_sender, looks_financial
from .loader import load_sms_export
from .models import CardType, ParsedTransaction

__all__ = [
    "TransactionExtractor",
    "ParsedTransaction",
    "CardType",
    "extract",
    "is_bank_sender",
    "looks_financial",
    "load_sms_export",
]
