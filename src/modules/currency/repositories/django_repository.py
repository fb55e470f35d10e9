"""Django ORM implementation of the currency-rate repository.

``get_or_create`` / ``update_or_create`` already recover from a lost
unique-constraint race by re-reading the winner's row.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Optional

from modules.currency.constants import RATE_KEY
from modules.currency.models import CurrencyRate
from modules.currency.repositories.interfaces import ICurrencyRateRepository


class CurrencyRateDjangoRepository(ICurrencyRateRepository):
    def get(self) -> Optional[CurrencyRate]:
        return CurrencyRate.objects.filter(key=RATE_KEY).first()

    def get_or_create(self, default_rate: Decimal, updated_by_id: Any) -> CurrencyRate:
        rate, _ = CurrencyRate.objects.get_or_create(
            key=RATE_KEY,
            defaults={
                "usd_to_fc_rate": default_rate,
                "last_updated_by_id": updated_by_id,
            },
        )
        return rate

    def upsert(self, rate: Decimal, updated_by_id: Any) -> CurrencyRate:
        row, _ = CurrencyRate.objects.update_or_create(
            key=RATE_KEY,
            defaults={
                "usd_to_fc_rate": rate,
                "last_updated_by_id": updated_by_id,
            },
        )
        return row
