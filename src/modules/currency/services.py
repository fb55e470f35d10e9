"""Currency oracle.

Prices are stored in the ledger currency (FC).  ``convert`` turns an FC
amount into the requested order currency and reports the rate it used so
the order can lock it; there is no rate history.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import TYPE_CHECKING, Optional, Tuple

import structlog
from django.conf import settings
from django.db import transaction

from modules.currency.constants import CENT, MIN_RATE
from modules.currency.exceptions import (
    ExchangeRateUnavailable,
    InvalidExchangeRate,
    UnsupportedCurrency,
)

if TYPE_CHECKING:
    from modules.currency.models import CurrencyRate
    from modules.currency.repositories.interfaces import ICurrencyRateRepository
    from shared.domain.actor import Actor

logger = structlog.get_logger(__name__)

ONE = Decimal("1")


class CurrencyService:
    def __init__(self, rate_repository: ICurrencyRateRepository) -> None:
        self._repo = rate_repository

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    @transaction.atomic
    def get_rate(self, actor: Optional[Actor] = None) -> CurrencyRate:
        """Return the rate row, creating the configured default on first access."""
        return self._repo.get_or_create(
            Decimal(str(settings.DEFAULT_USD_TO_FC_RATE)),
            actor.id if actor is not None else None,
        )

    @transaction.atomic
    def set_rate(self, new_rate: Decimal, actor: Actor) -> CurrencyRate:
        """Replace the USD→FC rate.

        Raises:
            Forbidden: actor is not an admin.
            InvalidExchangeRate: ``new_rate`` below 1.
        """
        actor.require_admin()
        if new_rate < MIN_RATE:
            logger.warning("currency.invalid_rate", rate=str(new_rate))
            raise InvalidExchangeRate(
                "Exchange rate must be at least 1.", field="usd_to_fc_rate"
            )
        rate = self._repo.upsert(new_rate, actor.id)
        logger.info("currency.rate_updated", rate=str(rate.usd_to_fc_rate), actor_id=str(actor.id))
        return rate

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def convert(self, amount: Decimal, target_currency: str) -> Tuple[Decimal, Decimal]:
        """Convert an FC ``amount`` into ``target_currency``.

        Returns ``(converted_amount, rate_used)``; the rate is 1 for FC.

        Raises:
            UnsupportedCurrency: neither the ledger nor the secondary currency.
            ExchangeRateUnavailable: USD requested and no rate configured.
        """
        currency = (target_currency or "").upper()
        if currency == settings.LEDGER_CURRENCY:
            return amount.quantize(CENT, rounding=ROUND_HALF_UP), ONE
        if currency != settings.SECONDARY_CURRENCY:
            raise UnsupportedCurrency(
                f"Currency {target_currency!r} is not supported.", field="currency"
            )
        rate = self.current_rate()
        return (amount / rate).quantize(CENT, rounding=ROUND_HALF_UP), rate

    def current_rate(self) -> Decimal:
        """Stored rate, else ``REFERENCE_EXCHANGE_RATE_USD_TO_FC``.

        Raises:
            ExchangeRateUnavailable: neither is available.
        """
        row = self._repo.get()
        if row is not None:
            return row.usd_to_fc_rate
        reference = settings.REFERENCE_EXCHANGE_RATE_USD_TO_FC
        try:
            rate = Decimal(str(reference)) if reference else None
        except InvalidOperation:
            rate = None
        if rate is None or rate < MIN_RATE:
            logger.error("currency.rate_unavailable")
            raise ExchangeRateUnavailable("No USD exchange rate is configured.")
        return rate
