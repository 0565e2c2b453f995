from __future__ import annotations

import logging
from typing import Optional, Sequence, Tuple

from .client import ContactsClient
from .errors import InvalidCustomFieldError, RemoteAPIError
from .models import (
    NAME_FIELD,
    PHONE_FIELD,
    ColumnMapping,
    CsvRow,
    ImportFailure,
    ImportOutcome,
    ReconciledRow,
)
from .normalization import DEFAULT_PHONE_PREFIX, normalize_phone, safe_get
from .progress import ProgressCallback, ProgressReporter

logger = logging.getLogger(__name__)

ROW_ERRORS = (RemoteAPIError, InvalidCustomFieldError)


class RowFailed(Exception):
    """A single row could not be imported; the batch carries on."""

    def __init__(self, message: str, name: Optional[str] = None, phone: Optional[str] = None):
        self.message = message
        self.name = name
        self.phone = phone
        super().__init__(message)


def custom_field_values(row: CsvRow, mapping: ColumnMapping) -> Tuple[Tuple[str, str], ...]:
    """(custom field id, value) for every mapped custom field column present in the row."""
    return tuple(
        (entry.system_field, safe_get(row, entry.csv_column))
        for entry in mapping.custom_field_entries()
        if entry.csv_column in row
    )


class BatchImporter:
    """
    Creates new contacts and updates custom fields on existing ones.

    Rows are processed one by one: every new row first, then every existing
    row. A failing row is recorded in the outcome and the batch moves on.
    """

    def __init__(
        self,
        client: ContactsClient,
        mapping: ColumnMapping,
        phone_prefix: str = DEFAULT_PHONE_PREFIX,
        country_code: str = "BR",
        on_progress: Optional[ProgressCallback] = None,
    ):
        self.client = client
        self.mapping = mapping
        self.phone_prefix = phone_prefix
        self.country_code = country_code
        self.on_progress = on_progress

    def run(self, rows: Sequence[ReconciledRow]) -> ImportOutcome:
        new_rows = [row for row in rows if not row.is_existing]
        existing_rows = [row for row in rows if row.is_existing]
        logger.info(
            "Importing %d new contact(s) and updating %d existing contact(s)",
            len(new_rows),
            len(existing_rows),
        )

        reporter = ProgressReporter(len(rows), self.on_progress)
        outcome = ImportOutcome(total=len(rows))
        for row in new_rows:
            outcome = self._step(outcome, row, self._create)
            reporter.advance()
        for row in existing_rows:
            outcome = self._step(outcome, row, self._update)
            reporter.advance()

        logger.info(
            "Import finished: %d succeeded, %d failed, %d total",
            outcome.success,
            outcome.errors,
            outcome.total,
        )
        return outcome

    def _step(self, outcome: ImportOutcome, row: ReconciledRow, action) -> ImportOutcome:
        position = outcome.processed + 1
        try:
            action(row)
        except RowFailed as exc:
            logger.warning("Row %d failed: %s", position, exc.message)
            return outcome.record_failure(
                ImportFailure(row=position, error=exc.message, name=exc.name, phone=exc.phone)
            )
        return outcome.record_success()

    def _create(self, row: ReconciledRow) -> None:
        name = safe_get(row.csv_data, self.mapping.column_for(NAME_FIELD))
        raw_phone = safe_get(row.csv_data, self.mapping.column_for(PHONE_FIELD))
        missing = [
            label for label, value in ((NAME_FIELD, name), (PHONE_FIELD, raw_phone)) if not value
        ]
        if missing:
            raise RowFailed(
                f"Missing required fields: {', '.join(missing)}", name or None, raw_phone or None
            )

        try:
            self.client.create_contact(
                name=name,
                phone=normalize_phone(raw_phone, prefix=self.phone_prefix),
                custom_fields=custom_field_values(row.csv_data, self.mapping),
                country_code=self.country_code,
            )
        except ROW_ERRORS as exc:
            raise RowFailed(str(exc), name, raw_phone) from exc

    def _update(self, row: ReconciledRow) -> None:
        contact = row.existing
        for entry in self.mapping.custom_field_entries():
            if entry.csv_column not in row.csv_data:
                continue
            try:
                self.client.update_contact_custom_field(
                    contact.id, entry.system_field, safe_get(row.csv_data, entry.csv_column)
                )
            except ROW_ERRORS as exc:
                raise RowFailed(
                    f"Failed to update {entry.display_label}: {exc}",
                    contact.name,
                    contact.phone_number,
                ) from exc


def import_rows(
    rows: Sequence[ReconciledRow],
    client: ContactsClient,
    mapping: ColumnMapping,
    phone_prefix: str = DEFAULT_PHONE_PREFIX,
    country_code: str = "BR",
    on_progress: Optional[ProgressCallback] = None,
) -> ImportOutcome:
    importer = BatchImporter(
        client,
        mapping,
        phone_prefix=phone_prefix,
        country_code=country_code,
        on_progress=on_progress,
    )
    return importer.run(rows)
