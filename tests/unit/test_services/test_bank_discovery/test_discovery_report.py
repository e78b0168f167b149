"""
Unit tests for the discovery report export.
"""

from openpyxl import load_workbook

from smsledger.services.bank_discovery import DiscoveredBank, DiscoveryResult
from smsledger.services.bank_discovery.report import REPORT_COLUMNS, discovery_to_frame, write_discovery_report


def _result():
    known = DiscoveredBank(
        sender_ids=("HDFCBK", "HDFCCC"), primary_sender_id="HDFCBK", new_sender_ids=("HDFCCC",),
        bank_name="HDFC Bank", bank_code="HDFC", transaction_count=12,
        last_transaction_timestamp=1704877200000, sample_message="Rs.500 debited", is_known_bank=True,
    )
    unknown = DiscoveredBank(
        sender_ids=("ZXQBNK",), primary_sender_id="ZXQBNK", new_sender_ids=("ZXQBNK",),
        bank_name="ZXQ Bank", transaction_count=2, last_transaction_timestamp=0,
    )
    return DiscoveryResult(
        scanned_count=40, detected_banks=(known,), unknown_senders=(unknown,), is_complete=True
    )


class TestDiscoveryFrame:
    """Tests for the DataFrame view."""

    def test_rows(self):
        df = discovery_to_frame(_result())

        assert list(df.columns) == REPORT_COLUMNS
        assert len(df) == 2
        assert df.iloc[0]["Bank"] == "HDFC Bank"
        assert df.iloc[0]["Known"] == "Yes"
        assert df.iloc[0]["New Sender IDs"] == "HDFCCC"
        assert df.iloc[0]["Last Transaction"] == "2024-01-10 09:00"
        assert df.iloc[1]["Known"] == "No"
        assert df.iloc[1]["Last Transaction"] == ""

    def test_empty_result(self):
        df = discovery_to_frame(DiscoveryResult(scanned_count=0))

        assert df.empty
        assert list(df.columns) == REPORT_COLUMNS


class TestWriteDiscoveryReport:
    """Tests for the Excel workbook."""

    def test_sheets(self, tmp_path):
        path = write_discovery_report(_result(), tmp_path / "out" / "banks.xlsx")

        wb = load_workbook(path)

        assert wb.sheetnames == ["Detected_Banks", "Unknown_Senders", "Summary"]
        detected = wb["Detected_Banks"]
        assert [c.value for c in detected[1]] == REPORT_COLUMNS
        assert detected["A2"].value == "HDFC Bank"
        assert detected.freeze_panes == "A2"
        assert wb["Unknown_Senders"]["A2"].value == "ZXQ Bank"
        summary = wb["Summary"]
        assert summary["B2"].value == 40
        assert summary["B5"].value == "Yes"
