"""
backoffice_modules.banking.config
=================================

Responsibility:
    Configuration schema for bank reconciliation.  Values normally come
    from ``backoffice_config.get_active_config()`` via ``from_settings``.

Invariants enforced:
    - ``tolerance`` is a non-negative Decimal.
    - ``currency`` is an ISO 4217 code.

Failure modes:
    - Invalid values -> ``ValueError`` from ``__post_init__``.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from backoffice_kernel.db.types import validate_currency
from backoffice_kernel.logging_config import get_logger

logger = get_logger("modules.banking.config")


@dataclass(frozen=True)
class ReconciliationConfig:
    """
    Settings the reconciliation service runs with.

    Example::

        config = ReconciliationConfig(tolerance=Decimal("0.01"), currency="USD")
    """

    tolerance: Decimal = Decimal("0.01")
    currency: str = "USD"

    def __post_init__(self) -> None:
        if not isinstance(self.tolerance, Decimal):
            raise ValueError("tolerance must be Decimal")
        if self.tolerance < 0:
            raise ValueError("tolerance cannot be negative")
        validate_currency(self.currency)
        logger.debug(
            "reconciliation_config_validated",
            extra={"tolerance": str(self.tolerance), "currency": self.currency},
        )

    @classmethod
    def from_settings(cls, settings) -> ReconciliationConfig:
        """Build from ``backoffice_config.ReconciliationSettings``."""
        return cls(tolerance=settings.tolerance, currency=settings.currency)
