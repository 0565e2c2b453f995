from __future__ import annotations

import logging
import re
from typing import Any, Iterable, Optional

import pandas as pd
import phonenumbers

logger = logging.getLogger(__name__)

DEFAULT_PHONE_PREFIX = "+55"
PHONE_COLUMN_KEYWORDS = ("telefone", "phone")

NON_DIGITS_RE = re.compile(r"\D")


class CanonicalPhone(str):
    """A phone number that already went through ``normalize_phone``."""


def normalize_phone(value: Any, prefix: str = DEFAULT_PHONE_PREFIX) -> CanonicalPhone:
    """
    Strip every non-digit character and prepend the country calling-code prefix.

    No validation is performed: ``"(11) 91234-5678"`` becomes ``"+5511912345678"``
    and an empty value becomes the bare prefix. Plain strings are always treated
    as raw input, so ``"+5511..."`` passed as ``str`` gains a second ``55``.
    A ``CanonicalPhone`` is returned untouched so the prefix is applied once.
    """
    if isinstance(value, CanonicalPhone):
        return value
    raw = "" if value is None else str(value)
    digits = NON_DIGITS_RE.sub("", raw)
    return CanonicalPhone(f"{prefix}{digits}")


def is_plausible_phone(value: str) -> bool:
    s = (value or "").strip()
    if not s:
        return False
    try:
        parsed = phonenumbers.parse(s, None)
    except phonenumbers.NumberParseException:
        return False
    return phonenumbers.is_possible_number(parsed)


def find_phone_column(headers: Iterable[str]) -> Optional[str]:
    """Return the first header whose name contains "telefone" or "phone", any case."""
    for header in headers:
        lowered = str(header).lower()
        if any(keyword in lowered for keyword in PHONE_COLUMN_KEYWORDS):
            return header
    return None


def _coerce_to_string(value: Any) -> str:
    if value is None:
        return ""
    try:
        if pd.isna(value):
            return ""
    except (TypeError, ValueError):
        pass
    return str(value).strip()


def safe_get(row: Any, key: Optional[str]) -> str:
    if key is None:
        return ""
    try:
        return _coerce_to_string(row.get(key, ""))
    except (AttributeError, KeyError, TypeError):
        try:
            if hasattr(row, "__contains__") and key in row:
                return _coerce_to_string(row[key])
            return ""
        except (KeyError, TypeError, AttributeError):
            return ""
