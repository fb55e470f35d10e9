"""Currency DTOs."""

from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, field_validator

from modules.currency.constants import MIN_RATE


class SetRateDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    usd_to_fc_rate: Decimal

    @field_validator("usd_to_fc_rate")
    @classmethod
    def rate_must_be_at_least_one(cls, v: Decimal) -> Decimal:
        if v < MIN_RATE:
            raise ValueError("Exchange rate must be at least 1.")
        return v
