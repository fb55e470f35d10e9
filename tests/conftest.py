from decimal import Decimal

import pytest
from django.contrib.auth.models import Group
from django.core.cache import cache
from rest_framework.test import APIClient

from modules.accounts.models import Address
from modules.catalog.dtos import CreateProductDTO, CreateVariationDTO
from modules.core.container import (
    build_cart_service,
    build_catalog_service,
    build_currency_service,
    build_inventory_ledger,
    build_offer_service,
    build_order_service,
)
from shared.domain.actor import ADMIN, BUYER, SELLER, Actor


@pytest.fixture(autouse=True)
def _use_db(db):
    """Automatically use the test database for all tests."""


@pytest.fixture(autouse=True)
def _clear_cache():
    """Throttle counters live in the cache; start every test from zero."""
    cache.clear()
    yield
    cache.clear()


@pytest.fixture()
def api_client():
    """DRF APIClient for testing API endpoints."""
    return APIClient()


@pytest.fixture()
def api_client_with_correlation(api_client):
    """APIClient pre-configured with a known correlation ID header."""
    cid = "test-correlation-id-fixture"
    api_client.defaults["HTTP_X_REQUEST_ID"] = cid
    return api_client, cid


# ---------------------------------------------------------------------------
# Users and actors
# ---------------------------------------------------------------------------


@pytest.fixture()
def make_user(django_user_model):
    def _make(username: str, role: str = BUYER, **extra):
        user = django_user_model.objects.create_user(
            username=username, password="testpass123", **extra
        )
        group, _ = Group.objects.get_or_create(name=role)
        user.groups.add(group)
        return user

    return _make


@pytest.fixture()
def admin_user(make_user):
    return make_user("admin", ADMIN)


@pytest.fixture()
def seller_user(make_user):
    return make_user("seller", SELLER)


@pytest.fixture()
def buyer_user(make_user):
    return make_user("buyer", BUYER)


@pytest.fixture()
def other_buyer_user(make_user):
    return make_user("other-buyer", BUYER)


@pytest.fixture()
def admin(admin_user):
    return Actor.from_user(admin_user)


@pytest.fixture()
def seller(seller_user):
    return Actor.from_user(seller_user)


@pytest.fixture()
def buyer(buyer_user):
    return Actor.from_user(buyer_user)


@pytest.fixture()
def other_buyer(other_buyer_user):
    return Actor.from_user(other_buyer_user)


@pytest.fixture()
def client_for():
    """APIClient force-authenticated as the given user."""

    def _client(user):
        client = APIClient()
        client.force_authenticate(user=user)
        return client

    return _client


# ---------------------------------------------------------------------------
# Services
# ---------------------------------------------------------------------------


@pytest.fixture()
def ledger():
    return build_inventory_ledger()


@pytest.fixture()
def catalog_service():
    return build_catalog_service()


@pytest.fixture()
def currency_service():
    return build_currency_service()


@pytest.fixture()
def cart_service():
    return build_cart_service()


@pytest.fixture()
def offer_service():
    return build_offer_service()


@pytest.fixture()
def order_service():
    return build_order_service()


# ---------------------------------------------------------------------------
# Catalog and addresses
# ---------------------------------------------------------------------------


@pytest.fixture()
def product(catalog_service, seller):
    return catalog_service.create_product(
        CreateProductDTO(name="Leather sandals", description="Hand-stitched"), seller
    )


@pytest.fixture()
def make_variation(catalog_service, product, seller):
    counter = {"n": 0}

    def _make(price="100.00", stock=10, threshold=2, **extra):
        counter["n"] += 1
        return catalog_service.create_variation(
            product.id,
            CreateVariationDTO(
                sku=f"SANDAL-{counter['n']:03d}",
                price=Decimal(price),
                attributes=[("size", str(38 + counter["n"]))],
                initial_stock=stock,
                low_stock_threshold=threshold,
                **extra,
            ),
            seller,
        )

    return _make


@pytest.fixture()
def variation(make_variation):
    return make_variation()


@pytest.fixture()
def address(buyer_user):
    return Address.objects.create(
        user=buyer_user,
        street="12 Avenue du Commerce",
        city="Kinshasa",
        state="Kinshasa",
        zip_code="00000",
        country="CD",
        is_default=True,
    )
