"""Buyer shipping addresses.

Orders copy the address fields at creation time, so editing or deleting an
address never changes where an existing order ships.
"""

from __future__ import annotations

from django.conf import settings
from django.db import models

from modules.core.models import BaseModel


class Address(BaseModel):
    user: models.ForeignKey = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="addresses",
    )
    street: models.CharField = models.CharField(max_length=255)
    city: models.CharField = models.CharField(max_length=120)
    state: models.CharField = models.CharField(max_length=120)
    zip_code: models.CharField = models.CharField(max_length=20)
    country: models.CharField = models.CharField(max_length=120)
    is_default: models.BooleanField = models.BooleanField(default=False)

    class Meta:
        db_table = "addresses"
        ordering = ["-is_default", "created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["user"],
                condition=models.Q(is_default=True),
                name="addresses_one_default_per_user",
            ),
        ]

    def as_snapshot(self) -> dict[str, str]:
        return {
            "street": self.street,
            "city": self.city,
            "state": self.state,
            "zip_code": self.zip_code,
            "country": self.country,
        }

    def __str__(self) -> str:
        return f"{self.street}, {self.city} ({self.country})"
