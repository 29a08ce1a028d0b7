"""
backoffice_config -- single public entrypoint for runtime configuration.

Responsibility:
    ``get_active_config()`` is the only way services obtain configuration.
    No other component reads configuration files directly.

Failure modes:
    - ``FileNotFoundError`` when the configuration file does not exist.
    - ``ConfigurationError`` when a section is missing or a value is invalid.

Every successful call logs a ``BACKOFFICE_CONFIG_TRACE`` record carrying the
config id, version and checksum.
"""

from __future__ import annotations

from pathlib import Path

from backoffice_config.loader import load_config
from backoffice_config.schema import (
    BackofficeConfig,
    DatabaseConfig,
    LoggingConfig,
    ReconciliationSettings,
    StorageConfig,
)
from backoffice_kernel.db.engine import init_engine_from_config
from backoffice_kernel.logging_config import configure_logging, get_logger

_logger = get_logger("config")

_DEFAULT_CONFIG_PATH = Path(__file__).parent / "sets" / "default.yaml"


def get_active_config(path: Path | str | None = None) -> BackofficeConfig:
    """
    Load the active configuration set.

    Args:
        path: Override path to a YAML configuration set.  Defaults to
            ``backoffice_config/sets/default.yaml``.
    """
    config = load_config(Path(path) if path is not None else _DEFAULT_CONFIG_PATH)

    _logger.info(
        "BACKOFFICE_CONFIG_TRACE",
        extra={
            "trace_type": "BACKOFFICE_CONFIG_TRACE",
            "config_set_id": config.config_id,
            "config_set_version": config.version,
            "checksum": config.checksum,
            "currency": config.reconciliation.currency,
        },
    )
    return config


__all__ = [
    "BackofficeConfig",
    "DatabaseConfig",
    "LoggingConfig",
    "ReconciliationSettings",
    "StorageConfig",
    "bootstrap",
    "get_active_config",
]


def bootstrap(path: Path | str | None = None) -> BackofficeConfig:
    """
    Process start-up: load the configuration set, install JSON logging at
    its level, and initialize the database engine from its ``database``
    section.
    """
    config = get_active_config(path)
    configure_logging(level=config.logging.level)
    init_engine_from_config(config.database)
    return config
