from __future__ import annotations

import logging
import os
from typing import List, Optional, Tuple

import pandas as pd

from .config_loader import UploadConfig
from .errors import UploadError
from .models import CsvRow, freeze_row

logger = logging.getLogger(__name__)


def check_upload(path: Optional[str], upload: UploadConfig) -> str:
    """Reject a file on name and size alone, before anything reads it."""
    if not path or not os.path.exists(path):
        raise UploadError(f"File not found: {path}")
    if not path.lower().endswith(upload.extension):
        raise UploadError(f"Invalid format. Only {upload.extension} files are accepted")
    size = os.path.getsize(path)
    if size > upload.max_bytes:
        limit_mb = upload.max_bytes / (1024 * 1024)
        raise UploadError(f"File too large ({size} bytes). Maximum allowed: {limit_mb:g}MB")
    return path


def read_contacts_csv(
    path: Optional[str], upload: Optional[UploadConfig] = None
) -> Tuple[CsvRow, ...]:
    upload = upload or UploadConfig()
    checked = check_upload(path, upload)
    try:
        df = pd.read_csv(checked, dtype=str, keep_default_na=False, skip_blank_lines=True)
    except (pd.errors.EmptyDataError, pd.errors.ParserError, UnicodeDecodeError) as exc:
        raise UploadError(f"Error reading file: {exc}") from exc
    headers: List[str] = [str(column) for column in df.columns]
    logger.info("Read %d row(s) with columns %s from %s", len(df), headers, checked)
    return tuple(freeze_row(record) for record in df.to_dict(orient="records"))
