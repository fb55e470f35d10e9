"""Cart URL configuration."""

from __future__ import annotations

from django.urls import path

from modules.carts.views import CartViewSet

urlpatterns = [
    path(
        "cart/",
        CartViewSet.as_view({"get": "retrieve", "delete": "clear"}),
        name="cart",
    ),
    path(
        "cart/items/",
        CartViewSet.as_view({"post": "add_item"}),
        name="cart-items",
    ),
    path(
        "cart/items/<uuid:variation_id>/",
        CartViewSet.as_view({"patch": "update_item", "delete": "remove_item"}),
        name="cart-item-detail",
    ),
]
