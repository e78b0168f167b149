"""
Bank directory for smsledger.

Static registry of Indian banks and UPI/wallet providers with the SMS
sender-ID patterns they use. Loaded once at import time and never mutated,
so lookups are safe from any thread.
"""

import json
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional, Tuple, Union

from smsledger.core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

# Colour used for suggested accounts when no bank was recognised
DEFAULT_ACCOUNT_COLOR = 0xFF6B7280

_OPERATOR_PREFIX = re.compile(r"^[A-Z]{2}-")


def normalize_sender_id(sender_id: str) -> str:
    """
    Normalize an SMS sender ID for comparison and grouping.

    Examples:
        "VM-HDFCBK" -> "HDFCBK"
        "jd-sbiinb" -> "SBIINB"
        "AX-ICICI-T" -> "ICICIT"
    """
    if not sender_id:
        return ""
    cleaned = sender_id.strip().upper()
    cleaned = _OPERATOR_PREFIX.sub("", cleaned)
    return cleaned.replace("-", "").strip()


@dataclass(frozen=True)
class BankInfo:
    """A bank or payment provider and the sender IDs it uses."""
    name: str
    code: str
    sender_patterns: Tuple[str, ...]
    color: int

    def matches_sender(self, sender_id: str) -> bool:
        """Check if a (raw or normalized) sender ID contains one of our patterns."""
        normalized = normalize_sender_id(sender_id)
        return any(pattern in normalized for pattern in self.sender_patterns)


def _bank(name: str, code: str, patterns: Iterable[str], color: int) -> BankInfo:
    return BankInfo(name, code, tuple(p.upper() for p in patterns), color)


DEFAULT_BANKS: Tuple[BankInfo, ...] = (
    # Major private banks
    _bank("HDFC Bank", "HDFC", ["HDFCBK", "HDFC", "HDFCBN"], 0xFF004B8D),
    _bank("ICICI Bank", "ICICI", ["ICICIB", "ICICI", "ICICIP"], 0xFFF58220),
    _bank("Axis Bank", "AXIS", ["AXISBK", "AXIS", "UTIB"], 0xFF97144D),
    _bank("Kotak Mahindra Bank", "KOTAK", ["KOTAKB", "KOTAK", "KKBK"], 0xFFED1C24),
    _bank("Yes Bank", "YES", ["YESBNK", "YES", "YESBK"], 0xFF0066B3),
    _bank("IndusInd Bank", "INDUSIND", ["INDUSB", "INDUS", "INDB"], 0xFF98272A),
    _bank("IDFC First Bank", "IDFC", ["IDFCFB", "IDFC", "IDFCBK"], 0xFF9C1D26),
    _bank("Federal Bank", "FEDERAL", ["FEDERL", "FEDERA", "FDRL"], 0xFF00529B),
    _bank("RBL Bank", "RBL", ["RBLBNK", "RBL", "RATNAKAR"], 0xFFDA251D),
    _bank("South Indian Bank", "SIB", ["SIBANK", "SIB", "SOUTHIN"], 0xFF0066B3),
    _bank("Karnataka Bank", "KARNATAKA", ["KRNTKB", "KARNBK", "KBLBNK"], 0xFF00529B),
    _bank("City Union Bank", "CUB", ["CITYUB", "CUB", "CIUB"], 0xFF0072BC),
    _bank("Karur Vysya Bank", "KVB", ["KVBANK", "KVB", "KARURV"], 0xFFF26522),
    _bank("Bandhan Bank", "BANDHAN", ["BANDHN", "BANDHAN", "BDBL"], 0xFFE34424),
    _bank("DCB Bank", "DCB", ["DCBBK", "DCB", "DCBL"], 0xFF0072AA),
    _bank("Dhanlaxmi Bank", "DHANLAXMI", ["DHANLA", "DLB", "DLXMI"], 0xFF97144D),
    _bank("Jammu & Kashmir Bank", "JK", ["JKBANK", "JKB", "JKBNK"], 0xFF004B8D),
    _bank("Tamilnad Mercantile Bank", "TMB", ["TMBANK", "TMB", "TNMB"], 0xFFE42529),
    _bank("CSB Bank", "CSB", ["CSBBNK", "CSB", "CATHOL"], 0xFF22409A),
    _bank("Nainital Bank", "NAINITAL", ["NNITAL", "NAINIT", "NBNK"], 0xFF0072BC),

    # Public sector banks
    _bank("State Bank of India", "SBI", ["SBIINB", "SBIPSG", "SBI", "SBISMS"], 0xFF22409A),
    _bank("Punjab National Bank", "PNB", ["PNBSMS", "PNB", "PUNBNK"], 0xFFE42529),
    _bank("Bank of Baroda", "BOB", ["BOBSMS", "BOB", "BARODAB"], 0xFFE34424),
    _bank("Canara Bank", "CANARA", ["CANBNK", "CANARA", "CNRBK"], 0xFFFFCC00),
    _bank("Union Bank of India", "UNION", ["UNIONB", "UNION", "UBOI"], 0xFFF26522),
    _bank("Bank of India", "BOI", ["BOIIND", "BOI", "BKID"], 0xFF0072BC),
    _bank("Indian Bank", "INDIAN", ["INDBK", "INDIAN", "IDIB"], 0xFF004B8D),
    _bank("Central Bank of India", "CENTRAL", ["CBIBNK", "CENBNK", "CBOI"], 0xFFE42529),
    _bank("Bank of Maharashtra", "BOM", ["BOMBNK", "MAHABK", "MAHB"], 0xFFF26522),
    _bank("Punjab & Sind Bank", "PSB", ["PSBBNK", "PSB", "PSIB"], 0xFF22409A),
    _bank("Indian Overseas Bank", "IOB", ["IOBBNK", "IOB", "IOBA"], 0xFF0072BC),
    _bank("UCO Bank", "UCO", ["UCOBK", "UCO", "UCOBNK"], 0xFF007749),
    _bank("IDBI Bank", "IDBI", ["IDBIBK", "IDBI", "IDBLIK"], 0xFF007749),

    # Small finance banks
    _bank("AU Small Finance Bank", "AU", ["AUBANK", "AUSFB", "AUSF"], 0xFF5F259F),
    _bank("Equitas Small Finance Bank", "EQUITAS", ["EQITAS", "EQUITA", "ESFB"], 0xFFDA251D),
    _bank("Ujjivan Small Finance Bank", "UJJIVAN", ["UJJIVA", "UJJIV", "USFB"], 0xFF0066B3),
    _bank("ESAF Small Finance Bank", "ESAF", ["ESAFBK", "ESAF", "ESAFB"], 0xFF007749),
    _bank("Suryoday Small Finance Bank", "SURYODAY", ["SURYOD", "SURYO", "SSFB"], 0xFFF58220),
    _bank("Jana Small Finance Bank", "JANA", ["JANABK", "JANA", "JSFB"], 0xFF22409A),
    _bank("Fincare Small Finance Bank", "FINCARE", ["FNCBK", "FINCAR", "FSFB"], 0xFF5F259F),
    _bank("Shivalik Small Finance Bank", "SHIVALIK", ["SHVLK", "SHIVAL", "SHSFB"], 0xFF0072BC),

    # Payments banks
    _bank("Airtel Payments Bank", "AIRTEL", ["AIRTEL", "APTB", "AIRPB"], 0xFFED1C24),
    _bank("India Post Payments Bank", "IPPB", ["IPPBNK", "IPPB", "INDPOST"], 0xFFE42529),
    _bank("Jio Payments Bank", "JIO", ["JIOPAY", "JIOBNK", "JPBANK"], 0xFF0066B3),
    _bank("NSDL Payments Bank", "NSDL", ["NSDLPB", "NSDL", "NSDLBK"], 0xFF004B8D),
    _bank("Fino Payments Bank", "FINO", ["FINOPB", "FINO", "FINOBK"], 0xFF0072AA),

    # Foreign banks
    _bank("Standard Chartered", "SCB", ["SCBANK", "SCBL", "STCHART"], 0xFF0072AA),
    _bank("HSBC", "HSBC", ["HSBCIN", "HSBC", "HSBCBK"], 0xFFDB0011),
    _bank("Citibank", "CITI", ["CITIBK", "CITI", "CITBNK"], 0xFF0066B3),
    _bank("Deutsche Bank", "DB", ["DEUTBK", "DEUTSC"], 0xFF0018A8),
    _bank("DBS Bank", "DBS", ["DBSBNK", "DBSBK", "DBSS"], 0xFFED1C24),
    _bank("American Express", "AMEX", ["AMEXIN", "AMEX", "AMXIN"], 0xFF006FCF),

    # Cooperative banks
    _bank("Saraswat Bank", "SARASWAT", ["SARBNK", "SARASW"], 0xFF97144D),
    _bank("Cosmos Bank", "COSMOS", ["COSMOS", "COSMOB"], 0xFF0072BC),
    _bank("TJSB Bank", "TJSB", ["TJSBNK", "TJSB", "TJSBK"], 0xFF22409A),
)

UPI_PROVIDERS: Tuple[BankInfo, ...] = (
    _bank("Google Pay", "GPAY", ["GPAY", "GOOGLEPAY"], 0xFF4285F4),
    _bank("PhonePe", "PHONEPE", ["PHONPE", "PHONEPE"], 0xFF5F259F),
    _bank("Paytm", "PAYTM", ["PAYTM", "PYTM"], 0xFF00BAF2),
    _bank("Amazon Pay", "AMAZONPAY", ["AMAZON", "AMZN"], 0xFFFF9900),
)


class BankDirectory:
    """
    Read-only lookup over a bank registry.

    Banks are searched before UPI providers; within each list the first
    registered bank whose pattern appears in the normalized sender wins.

    Usage:
        directory = BankDirectory.default()
        bank = directory.find_by_sender("VM-HDFCBK")   # HDFC Bank
        bank = directory.find_by_code("sbi")           # State Bank of India
    """

    _default: Optional["BankDirectory"] = None

    def __init__(
        self,
        banks: Iterable[BankInfo] = DEFAULT_BANKS,
        upi_providers: Iterable[BankInfo] = UPI_PROVIDERS,
    ):
        self.banks: Tuple[BankInfo, ...] = tuple(banks)
        self.upi_providers: Tuple[BankInfo, ...] = tuple(upi_providers)

    @classmethod
    def default(cls) -> "BankDirectory":
        """Shared directory built from the built-in registry."""
        if cls._default is None:
            cls._default = cls()
        return cls._default

    @property
    def all_entries(self) -> Tuple[BankInfo, ...]:
        return self.banks + self.upi_providers

    def find_by_code(self, code: Optional[str]) -> Optional[BankInfo]:
        """Find a bank by its code, case-insensitive."""
        if not code:
            return None
        upper_code = code.upper()
        for bank in self.all_entries:
            if bank.code.upper() == upper_code:
                return bank
        return None

    def find_by_sender(self, sender_id: Optional[str]) -> Optional[BankInfo]:
        """Find the bank whose sender pattern appears in the normalized sender ID."""
        normalized = normalize_sender_id(sender_id or "")
        if not normalized:
            return None
        for bank in self.all_entries:
            if bank.matches_sender(normalized):
                return bank
        return None

    @staticmethod
    def is_covered(bank: BankInfo, sender_id: str) -> bool:
        """
        True if the normalized sender is itself one of the bank's registered
        sender IDs. A sender that only contains a pattern ("HDFCCC" via "HDFC")
        resolves to the bank but is a new variant.
        """
        return normalize_sender_id(sender_id) in bank.sender_patterns

    @classmethod
    def from_json(cls, json_path: Union[str, Path]) -> "BankDirectory":
        """
        Load a custom registry.

        Expected format:
            {
                "banks": [{"name": "...", "code": "...", "sender_patterns": [...], "color": "0xFF004B8D"}],
                "upi_providers": [...]
            }
        """
        try:
            with open(json_path, encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigurationError(f"Failed to load bank directory from {json_path}: {e}")

        def _entries(key: str) -> Tuple[BankInfo, ...]:
            result = []
            for raw in data.get(key, []):
                try:
                    color = raw.get("color", DEFAULT_ACCOUNT_COLOR)
                    if isinstance(color, str):
                        color = int(color, 16)
                    result.append(_bank(raw["name"], raw["code"], raw["sender_patterns"], color))
                except (KeyError, TypeError, ValueError) as e:
                    raise ConfigurationError(f"Invalid bank entry in {json_path}: {raw!r} ({e})", field=key)
            return tuple(result)

        directory = cls(_entries("banks"), _entries("upi_providers"))
        logger.info(
            f"Loaded {len(directory.banks)} banks and "
            f"{len(directory.upi_providers)} UPI providers from {json_path}"
        )
        return directory
