from __future__ import annotations

import argparse
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import yaml  # type: ignore[import-untyped]

DEFAULT_API_BASE_URL = "https://app-utalk.umbler.com/api"
DEFAULT_MAX_UPLOAD_BYTES = 5 * 1024 * 1024
DEFAULT_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@dataclass
class ApiConfig:
    base_url: str = DEFAULT_API_BASE_URL
    token: str = ""
    organization_id: str = ""
    timeout: float = 30.0


@dataclass
class UploadConfig:
    max_bytes: int = DEFAULT_MAX_UPLOAD_BYTES
    extension: str = ".csv"


@dataclass
class ImportConfig:
    phone_prefix: str = "+55"
    country_code: str = "BR"


@dataclass
class OutputsConfig:
    dir: Path


@dataclass
class LoggingConfig:
    level: str = "WARNING"
    format: str = DEFAULT_LOG_FORMAT


@dataclass
class PipelineConfig:
    api: ApiConfig
    upload: UploadConfig
    importing: ImportConfig
    outputs: OutputsConfig
    logging: LoggingConfig


def _load_yaml(path: Optional[str]) -> Dict[str, Any]:
    if not path:
        return {}
    with open(path, "r", encoding="utf-8") as handle:
        return yaml.safe_load(handle) or {}


def _first(*values: Any) -> Any:
    for value in values:
        if value not in (None, ""):
            return value
    return None


def load_pipeline_config(args: argparse.Namespace) -> PipelineConfig:
    """
    Build the pipeline configuration.

    Each value resolves as CLI argument, then environment variable, then the
    YAML file given with ``--config``, then the built-in default. Credentials
    are allowed to stay empty here; ``ContactsClient`` refuses to start
    without them.
    """
    config_data = _load_yaml(getattr(args, "config", None))
    api_cfg = config_data.get("api", {}) or {}
    upload_cfg = config_data.get("upload", {}) or {}
    importing_cfg = config_data.get("importing", {}) or {}
    outputs_cfg = config_data.get("outputs", {}) or {}
    logging_cfg = config_data.get("logging", {}) or {}

    api = ApiConfig(
        base_url=_first(
            getattr(args, "api_base_url", None),
            os.getenv("CONTACTS_IMPORT_API_BASE_URL"),
            api_cfg.get("base_url"),
        )
        or DEFAULT_API_BASE_URL,
        token=_first(
            getattr(args, "api_token", None),
            os.getenv("CONTACTS_IMPORT_API_TOKEN"),
            api_cfg.get("token"),
        )
        or "",
        organization_id=_first(
            getattr(args, "organization_id", None),
            os.getenv("CONTACTS_IMPORT_ORGANIZATION_ID"),
            api_cfg.get("organization_id"),
        )
        or "",
        timeout=float(api_cfg.get("timeout", 30.0)),
    )

    upload = UploadConfig(
        max_bytes=int(upload_cfg.get("max_bytes", DEFAULT_MAX_UPLOAD_BYTES)),
        extension=str(upload_cfg.get("extension", ".csv")).lower(),
    )

    importing = ImportConfig(
        phone_prefix=str(importing_cfg.get("phone_prefix", "+55")),
        country_code=str(importing_cfg.get("country_code", "BR")),
    )

    outputs_dir = Path(getattr(args, "out_dir", None) or outputs_cfg.get("dir") or os.getcwd())
    outputs = OutputsConfig(dir=outputs_dir)

    arg_level = getattr(args, "log_level", None)
    effective_level = (arg_level or logging_cfg.get("level") or "WARNING").upper()
    logging_config = LoggingConfig(
        level=effective_level, format=str(logging_cfg.get("format") or DEFAULT_LOG_FORMAT)
    )

    return PipelineConfig(
        api=api,
        upload=upload,
        importing=importing,
        outputs=outputs,
        logging=logging_config,
    )
