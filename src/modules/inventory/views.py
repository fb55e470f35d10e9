"""Stock movement API.

``GET  /api/v1/variations/{variation_id}/stock-movements/``
``POST /api/v1/variations/{variation_id}/stock-movements/``

Domain errors propagate to ``api_exception_handler``.
"""

from __future__ import annotations

from rest_framework import status
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.viewsets import GenericViewSet

from modules.core.container import build_inventory_ledger
from modules.core.pagination import StandardResultsSetPagination
from modules.inventory.dtos import RecordMovementDTO
from modules.inventory.serializers import (
    RecordMovementSerializer,
    StockMovementSerializer,
)
from shared.domain.actor import Actor


class StockMovementViewSet(GenericViewSet):
    serializer_class = StockMovementSerializer
    pagination_class = StandardResultsSetPagination

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._ledger = build_inventory_ledger()

    def list(self, request: Request, variation_id: str) -> Response:
        movements = self._ledger.list_movements(variation_id, Actor.from_user(request.user))
        page = self.paginate_queryset(movements)
        serializer = StockMovementSerializer(page, many=True)
        return self.get_paginated_response(serializer.data)

    def create(self, request: Request, variation_id: str) -> Response:
        serializer = RecordMovementSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        data = serializer.validated_data
        dto = RecordMovementDTO(
            kind=data["kind"],
            quantity=data["quantity"],
            reason=data["reason"],
            reference=data.get("reference") or None,
        )
        movement = self._ledger.record_movement(
            variation_id, dto, Actor.from_user(request.user)
        )
        return Response(
            StockMovementSerializer(movement).data, status=status.HTTP_201_CREATED
        )
