"""Currency URL configuration."""

from __future__ import annotations

from django.urls import path

from modules.currency.views import AdminCurrencyRateView, CurrencyRateView

urlpatterns = [
    path("currency-rate/", CurrencyRateView.as_view(), name="currency-rate"),
    path(
        "admin/currency-rate/",
        AdminCurrencyRateView.as_view(),
        name="admin-currency-rate",
    ),
]
