"""Exchange-rate configuration.

A single row holds the USD→FC rate.  ``key`` is unique *and* pinned to
``"default"`` by a check constraint, so the table can never hold a second
row no matter how many processes race to create the first one.
"""

from __future__ import annotations

from decimal import Decimal

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models

from modules.core.models import BaseModel
from modules.currency.constants import MIN_RATE, RATE_KEY


class CurrencyRate(BaseModel):
    key: models.CharField = models.CharField(
        max_length=20, unique=True, default=RATE_KEY, editable=False
    )
    usd_to_fc_rate: models.DecimalField = models.DecimalField(
        max_digits=14,
        decimal_places=4,
        default=Decimal("2700"),
        validators=[MinValueValidator(MIN_RATE)],
    )
    last_updated_by: models.ForeignKey = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )

    class Meta:
        db_table = "currency_rates"
        constraints = [
            models.CheckConstraint(
                check=models.Q(key=RATE_KEY),
                name="currency_rates_single_row",
            ),
            models.CheckConstraint(
                check=models.Q(usd_to_fc_rate__gte=MIN_RATE),
                name="currency_rates_rate_min_one",
            ),
        ]

    def __str__(self) -> str:
        return f"1 USD = {self.usd_to_fc_rate} FC"
