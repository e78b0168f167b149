"""
Discovery report export.

Flattens a DiscoveryResult into a DataFrame and writes it to an Excel
workbook with one sheet per list (known banks, unknown senders).
"""

import logging
from pathlib import Path
from typing import Iterable, Union

import pandas as pd
from openpyxl import Workbook
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter
from openpyxl.utils.dataframe import dataframe_to_rows

from smsledger.core.models import millis_to_datetime

from .models import DiscoveredBank, DiscoveryResult

logger = logging.getLogger(__name__)

REPORT_COLUMNS = [
    "Bank", "Bank Code", "Known", "Transactions", "Sender IDs",
    "New Sender IDs", "Last Transaction", "Sample Message",
]


def _rows(banks: Iterable[DiscoveredBank]):
    for bank in banks:
        yield {
            "Bank": bank.bank_name,
            "Bank Code": bank.bank_code or "",
            "Known": "Yes" if bank.is_known_bank else "No",
            "Transactions": bank.transaction_count,
            "Sender IDs": ", ".join(bank.sender_ids),
            "New Sender IDs": ", ".join(bank.new_sender_ids),
            "Last Transaction": (
                millis_to_datetime(bank.last_transaction_timestamp).strftime("%Y-%m-%d %H:%M")
                if bank.last_transaction_timestamp else ""
            ),
            "Sample Message": bank.sample_message or "",
        }


def discovery_to_frame(result: DiscoveryResult) -> pd.DataFrame:
    """One row per discovered bank, known banks first."""
    return pd.DataFrame(list(_rows(result.all_banks)), columns=REPORT_COLUMNS)


def write_discovery_report(result: DiscoveryResult, output_path: Union[str, Path]) -> Path:
    """
    Write the discovery result to an .xlsx workbook.

    Sheets:
        Detected_Banks  - senders resolved to a registered bank
        Unknown_Senders - unregistered senders with repeated transactions
        Summary         - scan counters
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    wb = Workbook()
    wb.remove(wb.active)

    for title, banks in (
        ("Detected_Banks", result.detected_banks),
        ("Unknown_Senders", result.unknown_senders),
    ):
        ws = wb.create_sheet(title)
        df = pd.DataFrame(list(_rows(banks)), columns=REPORT_COLUMNS)
        for row in dataframe_to_rows(df, index=False, header=True):
            ws.append(row)
        _style_header(ws, len(REPORT_COLUMNS))
        ws.auto_filter.ref = f"A1:{get_column_letter(len(REPORT_COLUMNS))}{max(2, len(df) + 1)}"
        ws.freeze_panes = "A2"
        _adjust_column_widths(ws)

    ws = wb.create_sheet("Summary")
    ws.append(["Metric", "Value"])
    ws.append(["Messages Scanned", result.scanned_count])
    ws.append(["Known Banks", len(result.detected_banks)])
    ws.append(["Unknown Senders", len(result.unknown_senders)])
    ws.append(["Complete", "Yes" if result.is_complete else "No"])
    _style_header(ws, 2)
    _adjust_column_widths(ws)

    wb.save(output_path)
    logger.info(f"Discovery report written to {output_path}")
    return output_path


def _style_header(ws, column_count: int) -> None:
    header_font = Font(bold=True, color="FFFFFF")
    header_fill = PatternFill(start_color="4472C4", end_color="4472C4", fill_type="solid")
    for col in range(1, column_count + 1):
        cell = ws.cell(row=1, column=col)
        cell.font = header_font
        cell.fill = header_fill
        cell.alignment = Alignment(horizontal="center")


def _adjust_column_widths(ws) -> None:
    for column_cells in ws.columns:
        max_length = max(len(str(cell.value)) if cell.value is not None else 0 for cell in column_cells)
        column = get_column_letter(column_cells[0].column)
        ws.column_dimensions[column].width = min(max(max_length + 2, 10), 60)
