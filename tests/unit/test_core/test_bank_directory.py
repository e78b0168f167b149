"""
Unit tests for the bank directory.

Tests sender ID normalization, sender/code lookup and custom registries.
"""

import json

import pytest

from smsledger.core.bank_directory import (
    DEFAULT_ACCOUNT_COLOR,
    DEFAULT_BANKS,
    UPI_PROVIDERS,
    BankDirectory,
    normalize_sender_id,
)
from smsledger.core.exceptions import ConfigurationError


class TestNormalizeSenderId:
    """Tests for normalize_sender_id."""

    @pytest.mark.parametrize("raw,expected", [
        ("VM-HDFCBK", "HDFCBK"),
        ("jd-sbiinb", "SBIINB"),
        ("AX-ICICI-T", "ICICIT"),
        ("HDFCBK", "HDFCBK"),
        ("  ad-axisbk ", "AXISBK"),
        ("", ""),
    ])
    def test_normalization(self, raw, expected):
        """Operator prefix and hyphens are removed, result uppercased."""
        assert normalize_sender_id(raw) == expected

    def test_same_bank_different_operators(self):
        """Different operator prefixes collapse to one sender."""
        assert normalize_sender_id("VM-HDFCBK") == normalize_sender_id("JD-HDFCBK")


class TestBankDirectory:
    """Tests for BankDirectory lookups."""

    def test_find_by_sender_known_banks(self, directory):
        """Registered sender IDs resolve to their bank."""
        assert directory.find_by_sender("VM-HDFCBK").code == "HDFC"
        assert directory.find_by_sender("JD-SBIINB").code == "SBI"
        assert directory.find_by_sender("AD-ICICIB").code == "ICICI"
        assert directory.find_by_sender("BZ-AXISBK").code == "AXIS"

    def test_find_by_sender_upi_provider(self, directory):
        """UPI providers are searched after banks."""
        bank = directory.find_by_sender("VK-PHONPE")
        assert bank.code == "PHONEPE"
        assert bank.name == "PhonePe"

    def test_find_by_sender_unknown(self, directory):
        """Unregistered senders return None."""
        assert directory.find_by_sender("XY-ZXQBNK") is None
        assert directory.find_by_sender("") is None
        assert directory.find_by_sender(None) is None

    def test_find_by_code_case_insensitive(self, directory):
        """Codes match regardless of case."""
        assert directory.find_by_code("hdfc").name == "HDFC Bank"
        assert directory.find_by_code("Sbi").name == "State Bank of India"
        assert directory.find_by_code("NOPE") is None
        assert directory.find_by_code(None) is None

    def test_is_covered_exact_registered_id(self, directory):
        """A sender equal to a registered pattern is covered; a variant is not."""
        hdfc = directory.find_by_code("HDFC")
        assert directory.is_covered(hdfc, "VM-HDFCBK")
        assert not directory.is_covered(hdfc, "HDFCCC")
        assert directory.find_by_sender("HDFCCC") is hdfc

    def test_default_is_shared(self):
        """default() returns the same instance."""
        assert BankDirectory.default() is BankDirectory.default()

    def test_registry_is_immutable(self):
        """Registry tables are tuples of frozen entries."""
        assert isinstance(DEFAULT_BANKS, tuple)
        assert isinstance(UPI_PROVIDERS, tuple)
        with pytest.raises(AttributeError):
            DEFAULT_BANKS[0].name = "Changed"

    def test_codes_are_unique(self):
        """No two registry entries share a code."""
        codes = [bank.code for bank in DEFAULT_BANKS + UPI_PROVIDERS]
        assert len(codes) == len(set(codes))


class TestBankDirectoryFromJson:
    """Tests for loading a custom registry."""

    def test_load_custom_registry(self, tmp_path):
        """Banks and providers load, hex colors are parsed."""
        path = tmp_path / "banks.json"
        path.write_text(json.dumps({
            "banks": [
                {"name": "Test Bank", "code": "TST", "sender_patterns": ["tstbnk"], "color": "0xFF112233"},
            ],
            "upi_providers": [
                {"name": "Test Pay", "code": "TPAY", "sender_patterns": ["TPAY"]},
            ],
        }))

        directory = BankDirectory.from_json(path)

        bank = directory.find_by_sender("VM-TSTBNK")
        assert bank.code == "TST"
        assert bank.color == 0xFF112233
        assert directory.find_by_code("TPAY").color == DEFAULT_ACCOUNT_COLOR
        assert directory.find_by_sender("VM-HDFCBK") is None

    def test_invalid_entry_raises(self, tmp_path):
        """Entries missing required keys raise ConfigurationError."""
        path = tmp_path / "banks.json"
        path.write_text(json.dumps({"banks": [{"name": "No Code"}]}))

        with pytest.raises(ConfigurationError):
            BankDirectory.from_json(path)

    def test_missing_file_raises(self, tmp_path):
        """A missing file raises ConfigurationError."""
        with pytest.raises(ConfigurationError):
            BankDirectory.from_json(tmp_path / "missing.json")
