from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import pandas as pd

from .errors import MappingError

NAME_FIELD = "Name"
PHONE_FIELD = "Phone"
SYSTEM_FIELDS = (NAME_FIELD, PHONE_FIELD)
REQUIRED_FIELDS = (NAME_FIELD, PHONE_FIELD)

CsvRow = Mapping[str, str]


def freeze_row(payload: Mapping[str, Any]) -> CsvRow:
    return MappingProxyType(
        {str(key): "" if value is None else str(value) for key, value in payload.items()}
    )


def _parse_timestamp(value: Any) -> Optional[datetime]:
    if value in (None, "") or not isinstance(value, (str, int, float)):
        return None
    parsed = pd.to_datetime(value, utc=True, errors="coerce")
    if pd.isna(parsed):
        return None
    return parsed.to_pydatetime()


def _mapping(value: Any) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else {}


def _text(payload: Mapping[str, Any], key: str) -> str:
    return str(payload.get(key, "") or "").strip()


@dataclass(frozen=True)
class Organization:
    id: str
    name: str


@dataclass(frozen=True)
class CustomFieldDefinition:
    id: str
    name: str
    type: str = ""
    required: bool = False

    @staticmethod
    def from_mapping(payload: Mapping[str, Any]) -> "CustomFieldDefinition":
        return CustomFieldDefinition(
            id=_text(payload, "id"),
            name=_text(payload, "name"),
            type=_text(payload, "type"),
            required=bool(payload.get("required", False)),
        )


@dataclass(frozen=True)
class RemoteContact:
    id: str
    name: str = ""
    phone_number: str = ""
    email: Optional[str] = None
    custom_fields: Mapping[str, str] = field(default_factory=dict)
    last_active_utc: Optional[datetime] = None
    created_at_utc: Optional[datetime] = None
    tags: Tuple[str, ...] = ()

    @staticmethod
    def from_mapping(
        payload: Mapping[str, Any], custom_fields: Optional[Mapping[str, str]] = None
    ) -> "RemoteContact":
        tags = []
        raw_tags = payload.get("tags") or []
        if not isinstance(raw_tags, (list, tuple)):
            raw_tags = []
        for tag in raw_tags:
            name = _text(tag, "name") if isinstance(tag, Mapping) else str(tag or "").strip()
            if name:
                tags.append(name)
        return RemoteContact(
            id=_text(payload, "id"),
            name=_text(payload, "name"),
            phone_number=_text(payload, "phoneNumber"),
            email=_text(payload, "email") or None,
            custom_fields=dict(custom_fields or _mapping(payload.get("customFields"))),
            last_active_utc=_parse_timestamp(payload.get("lastActiveUTC")),
            created_at_utc=_parse_timestamp(payload.get("createdAtUTC")),
            tags=tuple(tags),
        )

    def with_custom_fields(self, custom_fields: Optional[Mapping[str, str]]) -> "RemoteContact":
        return replace(self, custom_fields=dict(custom_fields or {}))

    def value_for(self, system_field: str) -> str:
        if system_field == NAME_FIELD:
            return self.name
        if system_field == PHONE_FIELD:
            return self.phone_number
        return self.custom_fields.get(system_field, "") or ""


@dataclass(frozen=True)
class MappingEntry:
    csv_column: str
    system_field: str
    label: str = ""

    @property
    def is_system_field(self) -> bool:
        return self.system_field in SYSTEM_FIELDS

    @property
    def display_label(self) -> str:
        return self.label or self.system_field


@dataclass(frozen=True)
class ColumnMapping:
    """CSV column to system field pairs, at most one field per column."""

    entries: Tuple[MappingEntry, ...] = ()

    @classmethod
    def from_pairs(cls, pairs: Mapping[str, str] | Iterable[Tuple[str, str]]) -> "ColumnMapping":
        items = pairs.items() if isinstance(pairs, Mapping) else pairs
        mapping = cls()
        for csv_column, system_field in items:
            mapping = mapping.with_entry(csv_column, system_field)
        return mapping

    def with_entry(self, csv_column: str, system_field: str, label: str = "") -> "ColumnMapping":
        entry = MappingEntry(
            csv_column=csv_column,
            system_field=system_field,
            label=label or (system_field if system_field in SYSTEM_FIELDS else ""),
        )
        entries = list(self.entries)
        for idx, existing in enumerate(entries):
            if existing.csv_column == csv_column:
                entries[idx] = entry
                break
        else:
            entries.append(entry)
        return ColumnMapping(entries=tuple(entries))

    def column_for(self, system_field: str) -> Optional[str]:
        for entry in self.entries:
            if entry.system_field == system_field:
                return entry.csv_column
        return None

    def custom_field_entries(self) -> Tuple[MappingEntry, ...]:
        return tuple(entry for entry in self.entries if not entry.is_system_field)

    def missing_required(self) -> List[str]:
        mapped = {entry.system_field for entry in self.entries}
        return [required for required in REQUIRED_FIELDS if required not in mapped]

    def require_complete(self) -> "ColumnMapping":
        missing = self.missing_required()
        if missing:
            raise MappingError(f"All required fields must be mapped; missing: {', '.join(missing)}")
        return self

    def resolve_custom_fields(
        self, definitions: Sequence[CustomFieldDefinition]
    ) -> "ColumnMapping":
        """Accept custom fields by id or by name and attach their labels."""
        by_id = {definition.id: definition for definition in definitions}
        by_name = {definition.name.strip().lower(): definition for definition in definitions}
        resolved = ColumnMapping()
        for entry in self.entries:
            if entry.is_system_field:
                resolved = resolved.with_entry(entry.csv_column, entry.system_field)
                continue
            definition = by_id.get(entry.system_field) or by_name.get(
                entry.system_field.strip().lower()
            )
            if definition is None:
                raise MappingError(
                    f"Unknown custom field {entry.system_field!r} for column {entry.csv_column!r}"
                )
            resolved = resolved.with_entry(entry.csv_column, definition.id, definition.name)
        return resolved


@dataclass(frozen=True)
class ReconciledRow:
    index: int
    csv_data: CsvRow
    existing: Optional[RemoteContact] = None

    @property
    def is_existing(self) -> bool:
        return self.existing is not None

    @property
    def status(self) -> str:
        return "existing" if self.is_existing else "new"


@dataclass(frozen=True)
class Reconciliation:
    new: Tuple[ReconciledRow, ...] = ()
    existing: Tuple[ReconciledRow, ...] = ()
    skipped: Tuple[int, ...] = ()

    def add(self, row: ReconciledRow) -> "Reconciliation":
        if row.is_existing:
            return replace(self, existing=self.existing + (row,))
        return replace(self, new=self.new + (row,))

    def skip(self, index: int) -> "Reconciliation":
        return replace(self, skipped=self.skipped + (index,))

    @property
    def rows(self) -> Tuple[ReconciledRow, ...]:
        """New rows first, then existing rows, each group in file order."""
        return self.new + self.existing

    def in_file_order(self) -> Tuple[ReconciledRow, ...]:
        return tuple(sorted(self.rows, key=lambda row: row.index))

    def filtered(self, status: str = "all") -> Tuple[ReconciledRow, ...]:
        if status == "new":
            return self.new
        if status == "existing":
            return self.existing
        if status == "all":
            return self.rows
        raise ValueError(f"Unknown status filter: {status!r}")

    @property
    def total(self) -> int:
        return len(self.new) + len(self.existing)


@dataclass(frozen=True)
class ImportFailure:
    row: int
    error: str
    name: Optional[str] = None
    phone: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "row": self.row,
            "name": self.name or "",
            "phone": self.phone or "",
            "error": self.error,
        }


@dataclass(frozen=True)
class ImportOutcome:
    success: int = 0
    errors: int = 0
    total: int = 0
    details: Tuple[ImportFailure, ...] = ()

    def record_success(self) -> "ImportOutcome":
        return replace(self, success=self.success + 1)

    def record_failure(self, failure: ImportFailure) -> "ImportOutcome":
        return replace(self, errors=self.errors + 1, details=self.details + (failure,))

    @property
    def processed(self) -> int:
        return self.success + self.errors

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "errors": self.errors,
            "total": self.total,
            "details": [detail.to_dict() for detail in self.details],
        }
