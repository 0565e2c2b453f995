from __future__ import annotations

import csv
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import pandas as pd

from .errors import ExportError
from .models import ColumnMapping, ImportOutcome, Reconciliation, RemoteContact
from .normalization import safe_get

logger = logging.getLogger(__name__)

EXPORT_COLUMNS = ["Name", "Phone", "Last Contact", "Tags"]
NO_ACCESS_RECORD = "No access record"
EARLIEST_PLAUSIBLE_ACTIVITY = datetime(2020, 1, 1, tzinfo=timezone.utc)

MINUTE = 60
HOUR = 60 * MINUTE
DAY = 24 * HOUR
MONTH = 30 * DAY
YEAR = 365 * DAY


def _plural(count: int, unit: str) -> str:
    return f"{count} {unit}" if count == 1 else f"{count} {unit}s"


def humanize_distance(seconds: float) -> str:
    """Approximate distance in words, e.g. ``about 3 hours`` or ``5 days``."""
    seconds = abs(seconds)
    if seconds < 30:
        return "less than a minute"
    if seconds < 90:
        return "1 minute"
    if seconds < 45 * MINUTE:
        return _plural(round(seconds / MINUTE), "minute")
    if seconds < 90 * MINUTE:
        return "about 1 hour"
    if seconds < DAY:
        return f"about {_plural(round(seconds / HOUR), 'hour')}"
    if seconds < 42 * HOUR:
        return "1 day"
    if seconds < MONTH:
        return _plural(round(seconds / DAY), "day")
    if seconds < 45 * DAY:
        return "about 1 month"
    if seconds < YEAR:
        return _plural(max(2, round(seconds / MONTH)), "month")
    years = int(seconds // YEAR)
    remainder_months = (seconds - years * YEAR) / MONTH
    if remainder_months < 3:
        return f"about {_plural(years, 'year')}"
    if remainder_months < 9:
        return f"over {_plural(years, 'year')}"
    return f"almost {_plural(years + 1, 'year')}"


def format_last_contact(last_active: Optional[datetime], now: Optional[datetime] = None) -> str:
    if last_active is None:
        return NO_ACCESS_RECORD
    if last_active.tzinfo is None:
        last_active = last_active.replace(tzinfo=timezone.utc)
    if last_active < EARLIEST_PLAUSIBLE_ACTIVITY:
        return NO_ACCESS_RECORD
    now = now or datetime.now(timezone.utc)
    delta = (now - last_active).total_seconds()
    distance = humanize_distance(delta)
    return f"{distance} ago" if delta >= 0 else f"in {distance}"


def verification_frame(
    contacts: Sequence[RemoteContact], now: Optional[datetime] = None
) -> pd.DataFrame:
    rows = [
        {
            "Name": contact.name,
            "Phone": contact.phone_number,
            "Last Contact": format_last_contact(contact.last_active_utc, now=now),
            "Tags": ", ".join(contact.tags),
        }
        for contact in contacts
    ]
    return pd.DataFrame(rows, columns=EXPORT_COLUMNS)


def reconciliation_frame(
    reconciliation: Reconciliation, mapping: ColumnMapping, status: str = "all"
) -> pd.DataFrame:
    """Side-by-side preview: CSV value and current remote value for each mapped field."""
    columns: List[str] = ["row", "status"]
    for entry in mapping.entries:
        columns.append(entry.display_label)
        columns.append(f"{entry.display_label} (current)")

    records: List[Dict[str, Any]] = []
    for row in reconciliation.filtered(status):
        record: Dict[str, Any] = {"row": row.index + 1, "status": row.status}
        for entry in mapping.entries:
            record[entry.display_label] = safe_get(row.csv_data, entry.csv_column)
            current = row.existing.value_for(entry.system_field) if row.existing else ""
            record[f"{entry.display_label} (current)"] = current
        records.append(record)
    return pd.DataFrame(records, columns=columns)


def outcome_frame(outcome: ImportOutcome) -> pd.DataFrame:
    return pd.DataFrame(
        [detail.to_dict() for detail in outcome.details],
        columns=["row", "name", "phone", "error"],
    )


def write_frame(frame: pd.DataFrame, path: str | Path) -> Path:
    target = Path(path)
    suffix = target.suffix.lower()
    if suffix == ".csv":
        frame.to_csv(str(target), index=False, encoding="utf-8", quoting=csv.QUOTE_ALL)
    elif suffix == ".xlsx":
        frame.to_excel(str(target), index=False, engine="openpyxl")
    else:
        raise ExportError(f"Unsupported export format: {suffix or target.name}")
    logger.info("Saved: %s", target)
    return target
