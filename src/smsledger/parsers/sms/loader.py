"""
SMS export loader.

Reads SMS inbox exports (CSV, XLS, XLSX) produced by backup apps into
SmsMessage values. Column names vary between exporters, so headers are
matched by keyword:

    sender:    address, sender, from, originator
    body:      body, message, text, content
    timestamp: date, timestamp, time, received

Numeric timestamps are taken as epoch millis (values below 1e11 are taken as
epoch seconds); anything else is parsed as a date string, day first.
"""

import logging
from pathlib import Path
from typing import List, Optional, Union

import pandas as pd

from smsledger.core.exceptions import LoaderError
from smsledger.core.models import SmsMessage

logger = logging.getLogger(__name__)

SENDER_HEADERS = ["ADDRESS", "SENDER", "FROM", "ORIGINATOR"]
BODY_HEADERS = ["BODY", "MESSAGE", "TEXT", "CONTENT"]
TIMESTAMP_HEADERS = ["DATE", "TIMESTAMP", "TIME", "RECEIVED"]

# Epoch values below this are seconds, not millis (1e11 ms is March 1973)
_SECONDS_CUTOFF = 10 ** 11


def _find_column(columns: List[str], keywords: List[str]) -> Optional[str]:
    """Exact header match first, then substring match."""
    normalized = {str(col).strip().upper(): col for col in columns}
    for keyword in keywords:
        if keyword in normalized:
            return normalized[keyword]
    for keyword in keywords:
        for upper, original in normalized.items():
            if keyword in upper:
                return original
    return None


def _read_frame(file_path: Path) -> pd.DataFrame:
    suffix = file_path.suffix.lower()
    try:
        if suffix == ".csv":
            return pd.read_csv(file_path, dtype=str, keep_default_na=False, encoding='utf-8')
        if suffix in (".xls", ".xlsx"):
            return pd.read_excel(file_path, dtype=str, keep_default_na=False)
    except (OSError, ValueError) as e:
        raise LoaderError(f"Failed to read {file_path.name}: {e}", path=str(file_path))
    raise LoaderError(f"Unsupported file type: {suffix}", path=str(file_path))


def _to_millis(value: str) -> Optional[int]:
    value = str(value).strip()
    if not value:
        return None
    try:
        number = int(float(value))
    except ValueError:
        number = None
    if number is not None:
        return number * 1000 if number < _SECONDS_CUTOFF else number

    parsed = pd.to_datetime(value, dayfirst=True, errors="coerce")
    if pd.isna(parsed):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.tz_localize("UTC")
    return int(parsed.timestamp() * 1000)


def load_sms_export(
    path: Union[str, Path],
    start_timestamp: Optional[int] = None,
) -> List[SmsMessage]:
    """
    Load an SMS export file.

    Args:
        path: CSV/XLS/XLSX file
        start_timestamp: Only keep messages at or after this epoch-millis time

    Returns:
        Messages sorted by timestamp ascending

    Raises:
        LoaderError: File missing, unreadable, or lacking required columns
    """
    file_path = Path(path)
    if not file_path.exists():
        raise LoaderError(f"File not found: {file_path}", path=str(file_path))

    df = _read_frame(file_path)
    columns = list(df.columns)

    sender_col = _find_column(columns, SENDER_HEADERS)
    body_col = _find_column(columns, BODY_HEADERS)
    time_col = _find_column(columns, TIMESTAMP_HEADERS)

    missing = [
        name for name, col in (("sender", sender_col), ("body", body_col), ("timestamp", time_col))
        if col is None
    ]
    if missing:
        raise LoaderError(
            f"{file_path.name}: missing required columns ({', '.join(missing)}); found {columns}",
            path=str(file_path),
        )

    messages: List[SmsMessage] = []
    skipped = 0
    for _, row in df.iterrows():
        sender = str(row[sender_col]).strip()
        body = str(row[body_col]).strip()
        timestamp = _to_millis(row[time_col])

        if not sender or not body or timestamp is None:
            skipped += 1
            continue
        if start_timestamp is not None and timestamp < start_timestamp:
            continue

        messages.append(SmsMessage(sender_id=sender, body=body, timestamp=timestamp))

    messages.sort(key=lambda m: m.timestamp)

    if skipped:
        logger.warning(f"{file_path.name}: skipped {skipped} incomplete rows")
    logger.info(f"Loaded {len(messages)} messages from {file_path.name}")

    return messages
