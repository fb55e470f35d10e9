"""Order API views.

Buyers use ``/api/v1/orders/``; admins use ``/api/v1/admin/orders/``.
Both sides call the same ``OrderService``, which decides authorization
from the actor.  Domain exceptions propagate to ``api_exception_handler``.
"""

from __future__ import annotations

from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.filters import OrderingFilter, SearchFilter
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.throttling import BaseThrottle
from rest_framework.viewsets import GenericViewSet

from modules.core.container import build_order_service
from modules.core.pagination import StandardResultsSetPagination
from modules.orders.dtos import (
    CreateOrderDTO,
    MarkPaidDTO,
    RejectOrderDTO,
    UpdateOrderStatusDTO,
)
from modules.orders.filters import OrderFilter
from modules.orders.models import Order
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.serializers import (
    CancelOrderSerializer,
    CreateOrderSerializer,
    MarkPaidSerializer,
    OrderListSerializer,
    OrderSerializer,
    RejectOrderSerializer,
    UpdateOrderStatusSerializer,
)
from shared.domain.actor import Actor


class _OrderViewSetBase(GenericViewSet):
    queryset = Order.objects.none()
    serializer_class = OrderSerializer
    pagination_class = StandardResultsSetPagination

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = build_order_service()

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        order = self._service.get(pk, Actor.from_user(request.user))
        return Response(OrderSerializer(order).data)

    @action(detail=True, methods=["post"])
    def cancel(self, request: Request, pk: str | None = None) -> Response:
        """POST .../{pk}/cancel/ puts the ordered stock back."""
        serializer = CancelOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        order = self._service.cancel(
            pk, Actor.from_user(request.user), notes=serializer.validated_data["notes"]
        )
        return Response(OrderSerializer(order).data)

    def _paginated(self, orders) -> Response:
        page = self.paginate_queryset(orders)
        return self.get_paginated_response(OrderListSerializer(page, many=True).data)


class OrderViewSet(_OrderViewSetBase):
    """Buyer side: place, list, view and cancel own orders."""

    def get_throttles(self) -> list[BaseThrottle]:
        if self.action == "create":
            self.throttle_scope = "order_creation"
        elif self.action in {"list", "retrieve"}:
            self.throttle_scope = "order_listing"
        else:
            self.throttle_scope = None
        return super().get_throttles()

    def create(self, request: Request) -> Response:
        """POST /api/v1/orders/

        Supports idempotency via the ``Idempotency-Key`` header.
        Returns 200 when the key was already used, 201 for new orders.
        """
        serializer = CreateOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        idempotency_key = request.headers.get("Idempotency-Key")
        dto = CreateOrderDTO(
            shipping_address_id=data["shipping_address_id"],
            currency=data["currency"],
            idempotency_key=idempotency_key,
        )

        order, created = self._service.place(Actor.from_user(request.user), dto)
        return Response(
            OrderSerializer(order).data,
            status=status.HTTP_201_CREATED if created else status.HTTP_200_OK,
        )

    def list(self, request: Request) -> Response:
        return self._paginated(self._service.list_for_buyer(Actor.from_user(request.user)))


class AdminOrderViewSet(_OrderViewSetBase):
    """Admin side: approve, reject, advance, collect payment and restock."""

    filterset_class = OrderFilter
    search_fields = ["order_number"]
    ordering_fields = ["created_at", "total_amount", "status"]
    ordering = ["-created_at", "-id"]
    filter_backends = [DjangoFilterBackend, SearchFilter, OrderingFilter]

    def get_queryset(self):
        return OrderDjangoRepository().queryset()

    def list(self, request: Request) -> Response:
        """GET /api/v1/admin/orders/ (filterable, ordered, paginated)."""
        Actor.from_user(request.user).require_admin()
        return self._paginated(self.filter_queryset(self.get_queryset()))

    @action(detail=True, methods=["post"])
    def accept(self, request: Request, pk: str | None = None) -> Response:
        order = self._service.accept(pk, Actor.from_user(request.user))
        return Response(OrderSerializer(order).data)

    @action(detail=True, methods=["post"])
    def reject(self, request: Request, pk: str | None = None) -> Response:
        serializer = RejectOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        dto = RejectOrderDTO(**serializer.validated_data)
        order = self._service.reject(pk, dto, Actor.from_user(request.user))
        return Response(OrderSerializer(order).data)

    def partial_update(self, request: Request, pk: str | None = None) -> Response:
        """PATCH /api/v1/admin/orders/{pk}/: status transition."""
        serializer = UpdateOrderStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        dto = UpdateOrderStatusDTO(**serializer.validated_data)
        order = self._service.update_status(pk, dto, Actor.from_user(request.user))
        return Response(OrderSerializer(order).data)

    @action(detail=True, methods=["post"], url_path="mark-paid")
    def mark_paid(self, request: Request, pk: str | None = None) -> Response:
        serializer = MarkPaidSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        dto = MarkPaidDTO(**serializer.validated_data)
        order = self._service.mark_paid(pk, dto, Actor.from_user(request.user))
        return Response(OrderSerializer(order).data)

    @action(detail=True, methods=["post"])
    def restock(self, request: Request, pk: str | None = None) -> Response:
        order = self._service.restock_return(pk, Actor.from_user(request.user))
        return Response(OrderSerializer(order).data)
