from datetime import datetime, timedelta, timezone

import pandas as pd
import pytest

from contacts_import.errors import ExportError
from contacts_import.export import (
    EXPORT_COLUMNS,
    NO_ACCESS_RECORD,
    format_last_contact,
    humanize_distance,
    outcome_frame,
    reconciliation_frame,
    verification_frame,
    write_frame,
)
from contacts_import.models import (
    ColumnMapping,
    ImportFailure,
    ImportOutcome,
    Reconciliation,
    ReconciledRow,
    RemoteContact,
    freeze_row,
)

NOW = datetime(2024, 7, 1, 12, 0, tzinfo=timezone.utc)


@pytest.mark.parametrize(
    "delta, expected",
    [
        (timedelta(seconds=10), "less than a minute"),
        (timedelta(minutes=5), "5 minutes"),
        (timedelta(hours=3), "about 3 hours"),
        (timedelta(days=1), "1 day"),
        (timedelta(days=12), "12 days"),
        (timedelta(days=40), "about 1 month"),
        (timedelta(days=200), "7 months"),
        (timedelta(days=400), "about 1 year"),
        (timedelta(days=365 * 2 + 200), "over 2 years"),
    ],
)
def test_humanize_distance(delta, expected):
    assert humanize_distance(delta.total_seconds()) == expected


def test_format_last_contact():
    assert format_last_contact(NOW - timedelta(days=3), now=NOW) == "3 days ago"
    assert format_last_contact(None, now=NOW) == NO_ACCESS_RECORD
    assert format_last_contact(datetime(2019, 12, 31, tzinfo=timezone.utc), now=NOW) == (
        NO_ACCESS_RECORD
    )
    assert format_last_contact(datetime(1, 1, 1), now=NOW) == NO_ACCESS_RECORD


def test_verification_frame_column_order():
    contacts = [
        RemoteContact(
            id="c1",
            name="Ana",
            phone_number="+5511999998888",
            last_active_utc=NOW - timedelta(days=2),
            tags=("vip", "lead"),
        ),
        RemoteContact(id="c2", name="Bia", phone_number="+5521988887777"),
    ]
    frame = verification_frame(contacts, now=NOW)
    assert list(frame.columns) == EXPORT_COLUMNS
    assert frame.iloc[0].tolist() == ["Ana", "+5511999998888", "2 days ago", "vip, lead"]
    assert frame.iloc[1]["Last Contact"] == NO_ACCESS_RECORD


def test_write_frame_csv_and_xlsx(tmp_path):
    frame = verification_frame([RemoteContact(id="c1", name="Ana")], now=NOW)
    csv_path = write_frame(frame, tmp_path / "out.csv")
    assert pd.read_csv(csv_path, dtype=str, keep_default_na=False).loc[0, "Name"] == "Ana"

    xlsx_path = write_frame(frame, tmp_path / "out.xlsx")
    assert pd.read_excel(xlsx_path, engine="openpyxl").loc[0, "Name"] == "Ana"

    with pytest.raises(ExportError):
        write_frame(frame, tmp_path / "out.json")


def test_reconciliation_frame_shows_current_values(cnpj_field):
    mapping = ColumnMapping.from_pairs(
        {"Nome": "Name", "Telefone": "Phone", "Cidade": cnpj_field.id}
    ).resolve_custom_fields([cnpj_field])
    existing = RemoteContact(
        id="c1",
        name="Ana Maria",
        phone_number="+5511999998888",
        custom_fields={cnpj_field.id: "RJ"},
    )
    ana = freeze_row({"Nome": "Ana", "Telefone": "1", "Cidade": "SP"})
    bia = freeze_row({"Nome": "Bia", "Telefone": "2", "Cidade": "MG"})
    reconciliation = (
        Reconciliation().add(ReconciledRow(0, ana, existing)).add(ReconciledRow(1, bia))
    )

    frame = reconciliation_frame(reconciliation, mapping)
    assert frame["status"].tolist() == ["new", "existing"]
    existing_row = frame[frame["status"] == "existing"].iloc[0]
    assert existing_row["CNPJ"] == "SP"
    assert existing_row["CNPJ (current)"] == "RJ"
    assert existing_row["Name (current)"] == "Ana Maria"

    only_new = reconciliation_frame(reconciliation, mapping, status="new")
    assert only_new["row"].tolist() == [2]


def test_outcome_frame():
    outcome = ImportOutcome(total=1).record_failure(
        ImportFailure(row=1, error="Missing required fields: Name", phone="1")
    )
    frame = outcome_frame(outcome)
    assert frame.to_dict(orient="records") == [
        {"row": 1, "name": "", "phone": "1", "error": "Missing required fields: Name"}
    ]
