"""
Configuration Schema (``backoffice_config.schema``).

Responsibility
--------------
Frozen dataclasses describing one loaded configuration set.  Structure and
field-level validation only; loading lives in ``loader.py``.

Invariants enforced
-------------------
* Every section is immutable once constructed.
* Monetary settings are ``Decimal``.
* Invalid values raise ``ConfigurationError`` naming the offending field.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from backoffice_kernel.db.types import InvalidCurrencyError, validate_currency
from backoffice_kernel.exceptions import ConfigurationError

_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})


@dataclass(frozen=True)
class DatabaseConfig:
    """Connection settings passed to ``init_engine_from_url``."""

    url: str
    echo: bool = False
    pool_size: int = 10
    max_overflow: int = 5

    def __post_init__(self) -> None:
        if not self.url:
            raise ConfigurationError("database.url", "must not be empty")
        if self.pool_size < 1:
            raise ConfigurationError("database.pool_size", "must be at least 1")
        if self.max_overflow < 0:
            raise ConfigurationError("database.max_overflow", "must be non-negative")


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "INFO"

    def __post_init__(self) -> None:
        if self.level not in _LOG_LEVELS:
            raise ConfigurationError(
                "logging.level", f"must be one of {sorted(_LOG_LEVELS)}"
            )


@dataclass(frozen=True)
class ReconciliationSettings:
    """Tolerance for the balanced checks and the statement currency."""

    tolerance: Decimal = Decimal("0.01")
    currency: str = "USD"

    def __post_init__(self) -> None:
        if self.tolerance < 0:
            raise ConfigurationError(
                "reconciliation.tolerance", "must be non-negative"
            )
        try:
            validate_currency(self.currency)
        except InvalidCurrencyError as exc:
            raise ConfigurationError("reconciliation.currency", str(exc)) from exc


@dataclass(frozen=True)
class StorageConfig:
    """Where statement files are kept and how their URLs are signed."""

    root: str
    signing_key: str
    url_base: str = "/statements"
    default_expiry_seconds: int = 3600

    def __post_init__(self) -> None:
        if not self.root:
            raise ConfigurationError("storage.root", "must not be empty")
        if not self.signing_key:
            raise ConfigurationError("storage.signing_key", "must not be empty")
        if self.default_expiry_seconds <= 0:
            raise ConfigurationError(
                "storage.default_expiry_seconds", "must be positive"
            )


@dataclass(frozen=True)
class BackofficeConfig:
    """A complete, validated configuration set."""

    config_id: str
    version: int
    database: DatabaseConfig
    logging: LoggingConfig
    reconciliation: ReconciliationSettings
    storage: StorageConfig
    checksum: str = ""
