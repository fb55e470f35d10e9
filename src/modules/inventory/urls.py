"""Inventory URL configuration."""

from __future__ import annotations

from django.urls import path

from modules.inventory.views import StockMovementViewSet

movements = StockMovementViewSet.as_view({"get": "list", "post": "create"})

urlpatterns = [
    path(
        "variations/<uuid:variation_id>/stock-movements/",
        movements,
        name="variation-stock-movements",
    ),
]
