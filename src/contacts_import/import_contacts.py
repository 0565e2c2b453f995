from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional, Sequence, Tuple

from .client import ContactsClient
from .common import build_client, load_config, parse_mapping_args
from .config_loader import PipelineConfig
from .errors import ConfigurationError, ExportError, MappingError, RemoteAPIError, UploadError
from .export import outcome_frame, reconciliation_frame, write_frame
from .importer import BatchImporter
from .ingestion import read_contacts_csv
from .logging_utils import configure_logging
from .models import ColumnMapping, CsvRow, ImportOutcome, Reconciliation
from .progress import log_progress
from .reconcile import reconcile_rows

logger = logging.getLogger(__name__)


def prepare_mapping(
    raw_mapping: Optional[Sequence[str]], rows: Sequence[CsvRow], client: ContactsClient
) -> ColumnMapping:
    if not rows:
        raise UploadError("The file contains no contact rows")
    headers = list(rows[0].keys())
    mapping = parse_mapping_args(raw_mapping)
    unknown = [entry.csv_column for entry in mapping.entries if entry.csv_column not in headers]
    if unknown:
        raise MappingError(f"Columns not found in the file: {', '.join(unknown)}")
    mapping.require_complete()
    if not mapping.custom_field_entries():
        return mapping
    definitions = client.list_custom_field_definitions()
    return mapping.resolve_custom_fields(definitions)


def build(
    args: argparse.Namespace,
    config: Optional[PipelineConfig] = None,
    client: Optional[ContactsClient] = None,
) -> Tuple[Reconciliation, Optional[ImportOutcome]]:
    config = config or load_config(args)
    rows = read_contacts_csv(args.csv, config.upload)
    client = client or build_client(config)
    mapping = prepare_mapping(args.map, rows, client)

    reconciliation = reconcile_rows(
        rows,
        client,
        mapping=mapping,
        on_progress=log_progress("Checking contacts"),
        phone_prefix=config.importing.phone_prefix,
    )
    out_dir = config.outputs.dir
    out_dir.mkdir(parents=True, exist_ok=True)
    preview = reconciliation_frame(reconciliation, mapping)
    write_frame(preview, out_dir / "reconciliation_preview.csv")

    if getattr(args, "dry_run", False):
        return reconciliation, None

    importer = BatchImporter(
        client,
        mapping,
        phone_prefix=config.importing.phone_prefix,
        country_code=config.importing.country_code,
        on_progress=log_progress("Importing contacts"),
    )
    outcome = importer.run(reconciliation.rows)
    write_frame(outcome_frame(outcome), out_dir / "import_results.csv")
    return reconciliation, outcome


def list_fields(config: PipelineConfig, client: Optional[ContactsClient] = None) -> List[str]:
    client = client or build_client(config)
    return [
        f"{definition.id}\t{definition.name}\t{definition.type}"
        for definition in client.list_custom_field_definitions()
    ]


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Import contacts from a CSV file into the contacts API."
    )
    parser.add_argument("--config", type=str, default=None, help="Path to YAML config.")
    parser.add_argument("--csv", type=str, default=None, help="CSV file to import.")
    parser.add_argument(
        "--map",
        action="append",
        default=None,
        metavar="COLUMN=FIELD",
        help="Map a CSV column to Name, Phone, or a custom field id/name. Repeatable.",
    )
    parser.add_argument("--out-dir", type=str, default=None)
    parser.add_argument("--api-base-url", type=str, default=None)
    parser.add_argument("--api-token", type=str, default=None)
    parser.add_argument("--organization-id", type=str, default=None)
    parser.add_argument(
        "--dry-run", action="store_true", help="Only check which contacts already exist."
    )
    parser.add_argument(
        "--list-fields", action="store_true", help="Print the organization's custom fields."
    )
    parser.add_argument("--log-level", type=str, default=None, help="Override logging level")
    args = parser.parse_args(argv)

    config = load_config(args)
    configure_logging(config, level_override=args.log_level)

    try:
        if args.list_fields:
            for line in list_fields(config):
                print(line)
            return 0
        if not args.csv:
            parser.error("--csv is required")
        reconciliation, outcome = build(args, config=config)
    except (UploadError, MappingError, ConfigurationError, ExportError, RemoteAPIError) as exc:
        logger.debug("Import aborted", exc_info=True)
        print(f"Error: {exc}", file=sys.stderr)
        return 2

    print(
        f"Checked {reconciliation.total} contact(s): "
        f"{len(reconciliation.new)} new, {len(reconciliation.existing)} existing, "
        f"{len(reconciliation.skipped)} skipped"
    )
    if outcome is None:
        return 0
    print(f"Imported: {outcome.success} succeeded, {outcome.errors} failed, {outcome.total} total")
    for detail in outcome.details:
        print(f"  row {detail.row}: {detail.error} ({detail.name or '-'} / {detail.phone or '-'})")
    return 1 if outcome.errors else 0


if __name__ == "__main__":
    raise SystemExit(main())
