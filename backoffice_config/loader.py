"""
Configuration Loader (``backoffice_config.loader``).

Responsibility
--------------
Reads a YAML configuration set and parses it into the frozen dataclasses of
``backoffice_config.schema``.  Callers use
``backoffice_config.get_active_config()``; this module is its internals.

Failure modes
-------------
* Missing file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing section or invalid value  -> ``ConfigurationError``.
"""

from __future__ import annotations

import hashlib
import json
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from backoffice_config.schema import (
    BackofficeConfig,
    DatabaseConfig,
    LoggingConfig,
    ReconciliationSettings,
    StorageConfig,
)
from backoffice_kernel.exceptions import ConfigurationError


def load_yaml_file(path: Path) -> dict[str, Any]:
    """Load a single YAML file; an empty file yields an empty dict."""
    with open(path) as f:
        return yaml.safe_load(f) or {}


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def parse_decimal(value: Any, field: str) -> Decimal:
    """Parse a YAML scalar into Decimal via its string form."""
    try:
        return Decimal(str(value))
    except InvalidOperation as exc:
        raise ConfigurationError(field, f"not a decimal: {value!r}") from exc


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    section = data.get(name)
    if not isinstance(section, dict):
        raise ConfigurationError(name, "section missing or not a mapping")
    return section


def _required(section: dict[str, Any], key: str, prefix: str) -> Any:
    if key not in section:
        raise ConfigurationError(f"{prefix}.{key}", "required")
    return section[key]


def parse_database(data: dict[str, Any]) -> DatabaseConfig:
    return DatabaseConfig(
        url=str(_required(data, "url", "database")),
        echo=bool(data.get("echo", False)),
        pool_size=int(data.get("pool_size", 10)),
        max_overflow=int(data.get("max_overflow", 5)),
    )


def parse_logging(data: dict[str, Any]) -> LoggingConfig:
    return LoggingConfig(level=str(data.get("level", "INFO")).upper())


def parse_reconciliation(data: dict[str, Any]) -> ReconciliationSettings:
    return ReconciliationSettings(
        tolerance=parse_decimal(
            data.get("tolerance", "0.01"), "reconciliation.tolerance"
        ),
        currency=str(data.get("currency", "USD")),
    )


def parse_storage(data: dict[str, Any]) -> StorageConfig:
    return StorageConfig(
        root=str(_required(data, "root", "storage")),
        signing_key=str(_required(data, "signing_key", "storage")),
        url_base=str(data.get("url_base", "/statements")),
        default_expiry_seconds=int(data.get("default_expiry_seconds", 3600)),
    )


def parse_config(data: dict[str, Any]) -> BackofficeConfig:
    """
    Parse a configuration set dict.

    Postconditions:
        - Returns a frozen ``BackofficeConfig`` whose ``checksum`` covers
          the whole input mapping.
    """
    return BackofficeConfig(
        config_id=str(data.get("config_id", "default")),
        version=int(data.get("version", 1)),
        database=parse_database(_section(data, "database")),
        logging=parse_logging(data.get("logging") or {}),
        reconciliation=parse_reconciliation(data.get("reconciliation") or {}),
        storage=parse_storage(_section(data, "storage")),
        checksum=compute_checksum(data),
    )


def load_config(path: Path) -> BackofficeConfig:
    """Load and parse the configuration set at ``path``."""
    return parse_config(load_yaml_file(path))
