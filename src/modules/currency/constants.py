from decimal import Decimal

from django.db import models


class Currency(models.TextChoices):
    FC = "FC", "Congolese franc"
    USD = "USD", "US dollar"


RATE_KEY = "default"
MIN_RATE = Decimal("1")
CENT = Decimal("0.01")
