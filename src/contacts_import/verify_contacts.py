from __future__ import annotations

import argparse
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Sequence

from .client import ContactsClient
from .common import build_client, load_config
from .config_loader import PipelineConfig
from .errors import ConfigurationError, ExportError, UploadError
from .export import verification_frame, write_frame
from .ingestion import read_contacts_csv
from .logging_utils import configure_logging
from .models import RemoteContact
from .progress import log_progress
from .verify import verify_rows

logger = logging.getLogger(__name__)


def _resolve_output(args: argparse.Namespace, config: PipelineConfig) -> Path:
    out = getattr(args, "out", None)
    if out:
        return Path(out)
    return config.outputs.dir / "verified_contacts.csv"


def build(
    args: argparse.Namespace,
    config: Optional[PipelineConfig] = None,
    client: Optional[ContactsClient] = None,
    now: Optional[datetime] = None,
) -> List[RemoteContact]:
    config = config or load_config(args)
    out_path = _resolve_output(args, config)
    if out_path.suffix.lower() not in (".csv", ".xlsx"):
        raise ExportError(f"Unsupported export format: {out_path.suffix or out_path.name}")

    rows = read_contacts_csv(args.csv, config.upload)
    client = client or build_client(config)
    contacts = verify_rows(
        rows,
        client,
        on_progress=log_progress("Verifying contacts"),
        phone_prefix=config.importing.phone_prefix,
    )

    out_path.parent.mkdir(parents=True, exist_ok=True)
    write_frame(verification_frame(contacts, now=now), out_path)
    return contacts


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Look up CSV phone numbers in the contacts API and export the matches."
    )
    parser.add_argument("--config", type=str, default=None, help="Path to YAML config.")
    parser.add_argument("--csv", type=str, required=True, help="CSV file with a phone column.")
    parser.add_argument("--out", type=str, default=None, help="Output .csv or .xlsx file.")
    parser.add_argument("--out-dir", type=str, default=None)
    parser.add_argument("--api-base-url", type=str, default=None)
    parser.add_argument("--api-token", type=str, default=None)
    parser.add_argument("--organization-id", type=str, default=None)
    parser.add_argument("--log-level", type=str, default=None, help="Override logging level")
    args = parser.parse_args(argv)

    config = load_config(args)
    configure_logging(config, level_override=args.log_level)

    try:
        contacts = build(args, config=config)
    except (UploadError, ConfigurationError, ExportError) as exc:
        logger.debug("Verification aborted", exc_info=True)
        print(f"Error: {exc}", file=sys.stderr)
        return 2

    print(f"Found {len(contacts)} existing contact(s); saved to {_resolve_output(args, config)}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
