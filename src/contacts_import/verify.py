from __future__ import annotations

import logging
from typing import List, Optional, Sequence, Tuple

from .client import ContactsClient
from .errors import RemoteAPIError
from .models import CsvRow, RemoteContact
from .normalization import DEFAULT_PHONE_PREFIX, find_phone_column, normalize_phone, safe_get
from .progress import ProgressCallback, ProgressReporter

logger = logging.getLogger(__name__)


def sort_by_last_active(contacts: Sequence[RemoteContact]) -> List[RemoteContact]:
    """Most recently active first; contacts without a timestamp keep their order at the end."""

    def _key(contact: RemoteContact) -> Tuple[bool, float]:
        if contact.last_active_utc is None:
            return (True, 0.0)
        return (False, -contact.last_active_utc.timestamp())

    return sorted(contacts, key=_key)


def verify_rows(
    rows: Sequence[CsvRow],
    client: ContactsClient,
    on_progress: Optional[ProgressCallback] = None,
    phone_prefix: str = DEFAULT_PHONE_PREFIX,
) -> List[RemoteContact]:
    reporter = ProgressReporter(len(rows), on_progress)
    found: List[RemoteContact] = []
    for index, row in enumerate(rows):
        phone_column = find_phone_column(row.keys())
        raw_phone = safe_get(row, phone_column)
        if raw_phone:
            phone = normalize_phone(raw_phone, prefix=phone_prefix)
            try:
                contact = client.lookup_contact_by_phone(phone)
            except RemoteAPIError as exc:
                logger.warning("Row %d: failed to verify %s: %s", index + 1, phone, exc)
                contact = None
            if contact is not None:
                found.append(contact)
        reporter.advance()

    logger.info("Verified %d row(s), %d matched an existing contact", len(rows), len(found))
    return sort_by_last_active(found)
