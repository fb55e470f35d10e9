"""Offer API.

Buyer entry points under ``/api/v1/offers/`` and admin entry points under
``/api/v1/admin/offers/`` share one ``OfferService``; authorization is
decided by the service from the actor's roles.
"""

from __future__ import annotations

from rest_framework import status
from rest_framework.decorators import action
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.viewsets import GenericViewSet

from modules.core.container import build_offer_service
from modules.core.pagination import StandardResultsSetPagination
from modules.offers.dtos import (
    AcceptOfferDTO,
    CreateOfferDTO,
    OfferMessageDTO,
    RejectOfferDTO,
)
from modules.offers.serializers import (
    AcceptOfferSerializer,
    CreateOfferSerializer,
    OfferListSerializer,
    OfferMessageInputSerializer,
    OfferSerializer,
    OfferStatusQuerySerializer,
    RejectOfferSerializer,
)
from shared.domain.actor import Actor


class _OfferViewSetBase(GenericViewSet):
    serializer_class = OfferSerializer
    pagination_class = StandardResultsSetPagination

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = build_offer_service()

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        offer = self._service.get(pk, Actor.from_user(request.user))
        return Response(OfferSerializer(offer).data)

    @action(detail=True, methods=["post"])
    def messages(self, request: Request, pk: str | None = None) -> Response:
        serializer = OfferMessageInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        dto = OfferMessageDTO(**serializer.validated_data)
        actor = Actor.from_user(request.user)
        self._service.add_message(pk, actor, dto)
        return Response(
            OfferSerializer(self._service.get(pk, actor)).data,
            status=status.HTTP_201_CREATED,
        )

    def _paginated(self, offers) -> Response:
        page = self.paginate_queryset(offers)
        return self.get_paginated_response(OfferListSerializer(page, many=True).data)


class OfferViewSet(_OfferViewSetBase):
    """Buyer side: open, follow, retract and redeem own offers."""

    def list(self, request: Request) -> Response:
        return self._paginated(self._service.list_for_buyer(Actor.from_user(request.user)))

    def create(self, request: Request) -> Response:
        serializer = CreateOfferSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        dto = CreateOfferDTO(
            variation_id=data["variation_id"],
            proposed_price=data["proposed_price"],
            message=data.get("message") or None,
        )
        offer = self._service.create(Actor.from_user(request.user), dto)
        return Response(OfferSerializer(offer).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["post"])
    def retract(self, request: Request, pk: str | None = None) -> Response:
        offer = self._service.retract(pk, Actor.from_user(request.user))
        return Response(OfferSerializer(offer).data)

    @action(detail=True, methods=["post"])
    def redeem(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/offers/{pk}/redeem/: one unit at the accepted price."""
        offer = self._service.redeem_to_cart(pk, Actor.from_user(request.user))
        return Response(OfferSerializer(offer).data)


class AdminOfferViewSet(_OfferViewSetBase):
    """Admin side: review, accept and reject offers."""

    def list(self, request: Request) -> Response:
        query = OfferStatusQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        offers = self._service.list_all(
            Actor.from_user(request.user), query.validated_data.get("status")
        )
        return self._paginated(offers)

    @action(detail=True, methods=["post"])
    def accept(self, request: Request, pk: str | None = None) -> Response:
        serializer = AcceptOfferSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        dto = AcceptOfferDTO(**serializer.validated_data)
        offer = self._service.accept(pk, dto, Actor.from_user(request.user))
        return Response(OfferSerializer(offer).data)

    @action(detail=True, methods=["post"])
    def reject(self, request: Request, pk: str | None = None) -> Response:
        serializer = RejectOfferSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        dto = RejectOfferDTO(**serializer.validated_data)
        offer = self._service.reject(pk, dto, Actor.from_user(request.user))
        return Response(OfferSerializer(offer).data)
