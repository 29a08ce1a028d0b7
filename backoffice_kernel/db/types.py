"""
Module: backoffice_kernel.db.types
Responsibility: Money and currency helpers shared by the engines, the
    banking module and configuration.
Architecture position: Kernel > DB.  Imports nothing from the rest of the
    kernel.

Invariants enforced:
    - Amounts are Decimal; floats are refused.
    - Display rounding is ROUND_HALF_UP to cents unless told otherwise.

Failure modes:
    - InvalidCurrencyError for a code outside ``ISO_4217_CURRENCIES``.
    - decimal.InvalidOperation from to_money() on non-numeric text.
"""

from decimal import ROUND_HALF_UP, Decimal

ZERO = Decimal("0")
ONE_CENT = Decimal("0.01")


def to_money(value: Decimal | int | str | None) -> Decimal:
    """
    Decimal for an amount read from the database or typed by a user.
    ``None`` (an unset balance column) is zero.
    """
    if value is None:
        return ZERO
    if isinstance(value, float):
        raise TypeError("monetary amounts must not be float")
    return value if isinstance(value, Decimal) else Decimal(str(value))


def round_money(value: Decimal, decimal_places: int = 2) -> Decimal:
    return value.quantize(Decimal(1).scaleb(-decimal_places), rounding=ROUND_HALF_UP)


ISO_4217_CURRENCIES: frozenset[str] = frozenset(
    "USD EUR GBP CAD AUD NZD CHF JPY CNY HKD SGD INR MXN BRL ZAR "
    "SEK NOK DKK PLN CZK HUF ILS AED SAR KRW TWD THB PHP IDR MYR".split()
)


class InvalidCurrencyError(ValueError):
    code = "INVALID_CURRENCY"

    def __init__(self, currency):
        self.currency = currency
        super().__init__(f"unsupported currency code: {currency!r}")


def validate_currency(currency) -> str:
    """Upper-cased, trimmed code, or InvalidCurrencyError."""
    normalized = currency.strip().upper() if isinstance(currency, str) else ""
    if normalized not in ISO_4217_CURRENCIES:
        raise InvalidCurrencyError(currency)
    return normalized
