from __future__ import annotations

import logging
from typing import Optional, Sequence

from .client import ContactsClient
from .errors import RemoteAPIError
from .models import PHONE_FIELD, ColumnMapping, CsvRow, Reconciliation, ReconciledRow
from .normalization import (
    DEFAULT_PHONE_PREFIX,
    find_phone_column,
    is_plausible_phone,
    normalize_phone,
    safe_get,
)
from .progress import ProgressCallback, ProgressReporter

logger = logging.getLogger(__name__)


def resolve_phone_column(row: CsvRow, mapping: Optional[ColumnMapping] = None) -> Optional[str]:
    """
    Column holding the row's phone number.

    The mapping's ``Phone`` column wins when the row carries it; otherwise the
    first header that looks like a phone column. ``None`` means the row cannot
    be reconciled and is skipped.
    """
    if mapping is not None:
        column = mapping.column_for(PHONE_FIELD)
        if column is not None and column in row:
            return column
    return find_phone_column(row.keys())


def classify_row(
    index: int,
    row: CsvRow,
    phone_column: str,
    client: ContactsClient,
    phone_prefix: str = DEFAULT_PHONE_PREFIX,
) -> ReconciledRow:
    phone = normalize_phone(safe_get(row, phone_column), prefix=phone_prefix)
    if not is_plausible_phone(phone):
        logger.warning("Row %d: phone %s does not look dialable", index + 1, phone)
    try:
        contact = client.lookup_contact_by_phone(phone)
        if contact is None:
            return ReconciledRow(index=index, csv_data=row)
        custom_fields = client.list_contact_custom_fields(contact.id)
    except RemoteAPIError as exc:
        logger.warning("Row %d: lookup for %s failed, treating as new: %s", index + 1, phone, exc)
        return ReconciledRow(index=index, csv_data=row)
    return ReconciledRow(
        index=index, csv_data=row, existing=contact.with_custom_fields(custom_fields)
    )


def reconcile_rows(
    rows: Sequence[CsvRow],
    client: ContactsClient,
    mapping: Optional[ColumnMapping] = None,
    on_progress: Optional[ProgressCallback] = None,
    phone_prefix: str = DEFAULT_PHONE_PREFIX,
) -> Reconciliation:
    """
    Classify every CSV row as new or existing against the remote contacts.

    Rows are looked up one at a time in file order. Rows without a phone
    column land in ``Reconciliation.skipped``. Lookup failures never stop the
    run; the row is treated as new.
    """
    reporter = ProgressReporter(len(rows), on_progress)
    result = Reconciliation()
    for index, row in enumerate(rows):
        phone_column = resolve_phone_column(row, mapping)
        if phone_column is None:
            logger.warning("Row %d: no phone column found, skipping", index + 1)
            result = result.skip(index)
        else:
            result = result.add(classify_row(index, row, phone_column, client, phone_prefix))
        reporter.advance()

    logger.info(
        "Reconciled %d row(s): %d new, %d existing, %d skipped",
        len(rows),
        len(result.new),
        len(result.existing),
        len(result.skipped),
    )
    return result
