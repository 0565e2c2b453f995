from __future__ import annotations

from typing import Any, Dict, Iterable, Optional

import requests

from .client import ContactsClient
from .config_loader import PipelineConfig, load_pipeline_config
from .errors import MappingError
from .models import ColumnMapping

__all__ = [
    "build_client",
    "load_config",
    "parse_mapping_args",
]


def load_config(args: Any) -> PipelineConfig:
    return load_pipeline_config(args)


def build_client(
    config: PipelineConfig, session: Optional[requests.Session] = None
) -> ContactsClient:
    return ContactsClient(config.api, session=session)


def parse_mapping_args(values: Optional[Iterable[str]]) -> ColumnMapping:
    """Turn ``COLUMN=FIELD`` strings from the command line into a mapping."""
    pairs: Dict[str, str] = {}
    for raw in values or []:
        column, sep, system_field = raw.partition("=")
        column, system_field = column.strip(), system_field.strip()
        if not sep or not column or not system_field:
            raise MappingError(f"Invalid mapping {raw!r}; expected COLUMN=FIELD")
        pairs[column] = system_field
    return ColumnMapping.from_pairs(pairs)
