"""Currency domain exceptions (re-exported from the shared taxonomy)."""

from shared.domain.exceptions import (
    ExchangeRateUnavailable,
    UnsupportedCurrency,
    ValidationFailed,
)

__all__ = ["ExchangeRateUnavailable", "InvalidExchangeRate", "UnsupportedCurrency"]


class InvalidExchangeRate(ValidationFailed):
    """The exchange rate must be at least 1."""

    code = "invalid_exchange_rate"
