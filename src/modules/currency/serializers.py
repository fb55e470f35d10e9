from __future__ import annotations

from decimal import Decimal

from rest_framework import serializers

from modules.currency.models import CurrencyRate


class SetRateSerializer(serializers.Serializer):
    usd_to_fc_rate = serializers.DecimalField(
        max_digits=14, decimal_places=4, min_value=Decimal("1")
    )


class CurrencyRateSerializer(serializers.ModelSerializer):
    class Meta:
        model = CurrencyRate
        fields = ["usd_to_fc_rate", "last_updated_by_id", "updated_at"]
        read_only_fields = fields
