"""Exchange-rate API.

``GET /api/v1/currency-rate/``            any authenticated user
``GET|PUT /api/v1/admin/currency-rate/``  admin (PUT replaces the rate)
"""

from __future__ import annotations

from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from modules.core.container import build_currency_service
from modules.currency.dtos import SetRateDTO
from modules.currency.serializers import CurrencyRateSerializer, SetRateSerializer
from shared.domain.actor import Actor


class CurrencyRateView(APIView):
    def get(self, request: Request) -> Response:
        rate = build_currency_service().get_rate(Actor.from_user(request.user))
        return Response(CurrencyRateSerializer(rate).data)


class AdminCurrencyRateView(APIView):
    def get(self, request: Request) -> Response:
        actor = Actor.from_user(request.user)
        actor.require_admin()
        rate = build_currency_service().get_rate(actor)
        return Response(CurrencyRateSerializer(rate).data)

    def put(self, request: Request) -> Response:
        serializer = SetRateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        dto = SetRateDTO(usd_to_fc_rate=serializer.validated_data["usd_to_fc_rate"])
        rate = build_currency_service().set_rate(
            dto.usd_to_fc_rate, Actor.from_user(request.user)
        )
        return Response(CurrencyRateSerializer(rate).data)
