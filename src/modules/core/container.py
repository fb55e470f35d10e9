"""Composition root: builds services wired to the Django repositories.

Views, tasks and management commands call these; unit tests construct the
services directly with mocked repositories instead.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from modules.carts.services import CartService
    from modules.catalog.services import CatalogService
    from modules.currency.services import CurrencyService
    from modules.inventory.services import InventoryLedger
    from modules.offers.services import OfferService
    from modules.orders.services import OrderService


def build_inventory_ledger() -> InventoryLedger:
    from modules.catalog.repositories.django_repository import VariationDjangoRepository
    from modules.inventory.repositories.django_repository import (
        StockCounterDjangoRepository,
        StockMovementDjangoRepository,
    )
    from modules.inventory.services import InventoryLedger
    from modules.notifications.services import NotificationService

    return InventoryLedger(
        variation_repository=VariationDjangoRepository(),
        stock_counter=StockCounterDjangoRepository(),
        movement_repository=StockMovementDjangoRepository(),
        notification_service=NotificationService(),
    )


def build_catalog_service() -> CatalogService:
    from modules.catalog.repositories.django_repository import (
        ProductDjangoRepository,
        VariationDjangoRepository,
    )
    from modules.catalog.services import CatalogService

    return CatalogService(
        product_repository=ProductDjangoRepository(),
        variation_repository=VariationDjangoRepository(),
        ledger=build_inventory_ledger(),
    )


def build_currency_service() -> CurrencyService:
    from modules.currency.repositories.django_repository import (
        CurrencyRateDjangoRepository,
    )
    from modules.currency.services import CurrencyService

    return CurrencyService(rate_repository=CurrencyRateDjangoRepository())


def build_cart_service() -> CartService:
    from modules.carts.repositories.django_repository import CartDjangoRepository
    from modules.carts.services import CartService

    return CartService(
        cart_repository=CartDjangoRepository(),
        ledger=build_inventory_ledger(),
    )


def build_offer_service() -> OfferService:
    from modules.catalog.repositories.django_repository import VariationDjangoRepository
    from modules.notifications.services import NotificationService
    from modules.offers.repositories.django_repository import OfferDjangoRepository
    from modules.offers.services import OfferService

    return OfferService(
        offer_repository=OfferDjangoRepository(),
        variation_repository=VariationDjangoRepository(),
        cart_service=build_cart_service(),
        notification_service=NotificationService(),
    )


def build_order_service() -> OrderService:
    from modules.accounts.repositories.django_repository import AddressDjangoRepository
    from modules.carts.repositories.django_repository import CartDjangoRepository
    from modules.notifications.services import NotificationService
    from modules.orders.repositories.django_repository import OrderDjangoRepository
    from modules.orders.services import OrderService

    return OrderService(
        order_repository=OrderDjangoRepository(),
        cart_repository=CartDjangoRepository(),
        address_repository=AddressDjangoRepository(),
        ledger=build_inventory_ledger(),
        currency_service=build_currency_service(),
        notification_service=NotificationService(),
    )
