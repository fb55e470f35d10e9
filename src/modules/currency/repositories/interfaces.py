from __future__ import annotations

from abc import ABC, abstractmethod
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    from modules.currency.models import CurrencyRate


class ICurrencyRateRepository(ABC):
    @abstractmethod
    def get(self) -> Optional[CurrencyRate]:
        """Return the single rate row, if it exists."""

    @abstractmethod
    def get_or_create(self, default_rate: Decimal, updated_by_id: Any) -> CurrencyRate:
        """Return the row, creating it with ``default_rate`` on first access."""

    @abstractmethod
    def upsert(self, rate: Decimal, updated_by_id: Any) -> CurrencyRate:
        """Store ``rate`` on the single row, creating it when missing."""
