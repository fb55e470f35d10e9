"""Cart API (buyer's own cart only).

``GET    /api/v1/cart/``                        current cart
``DELETE /api/v1/cart/``                        clear
``POST   /api/v1/cart/items/``                  add / merge a line
``PATCH  /api/v1/cart/items/{variation_id}/``   set quantity (0 removes)
``DELETE /api/v1/cart/items/{variation_id}/``   remove a line
"""

from __future__ import annotations

from rest_framework import status
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.viewsets import GenericViewSet

from modules.carts.dtos import AddCartItemDTO, UpdateCartItemDTO
from modules.carts.serializers import (
    AddCartItemSerializer,
    CartSerializer,
    UpdateCartItemSerializer,
)
from modules.core.container import build_cart_service
from shared.domain.actor import Actor

EMPTY_CART = {"id": None, "buyer_id": None, "total_price": "0.00", "items": [], "updated_at": None}


class CartViewSet(GenericViewSet):
    serializer_class = CartSerializer

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = build_cart_service()

    def retrieve(self, request: Request) -> Response:
        actor = Actor.from_user(request.user)
        cart = self._service.get(actor)
        if cart is None:
            return Response({**EMPTY_CART, "buyer_id": actor.id})
        return Response(CartSerializer(cart).data)

    def clear(self, request: Request) -> Response:
        self._service.clear(Actor.from_user(request.user))
        return Response(status=status.HTTP_204_NO_CONTENT)

    def add_item(self, request: Request) -> Response:
        serializer = AddCartItemSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        dto = AddCartItemDTO(**serializer.validated_data)
        cart = self._service.add_item(Actor.from_user(request.user), dto)
        return Response(self._render(cart), status=status.HTTP_201_CREATED)

    def update_item(self, request: Request, variation_id: str) -> Response:
        serializer = UpdateCartItemSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        dto = UpdateCartItemDTO(**serializer.validated_data)
        cart = self._service.update_quantity(Actor.from_user(request.user), variation_id, dto)
        return Response(self._render(cart))

    def remove_item(self, request: Request, variation_id: str) -> Response:
        cart = self._service.remove_item(Actor.from_user(request.user), variation_id)
        return Response(self._render(cart))

    def _render(self, cart) -> dict:
        # Re-read so the nested lines reflect the committed state.
        fresh = self._service.get(Actor.from_user(self.request.user))
        return CartSerializer(fresh or cart).data
