"""Competing checkouts for the last units of a variation.

Needs real row locks, so it only runs on backends with SELECT ... FOR
UPDATE (PostgreSQL in CI); SQLite serializes writers differently.
"""

from __future__ import annotations

import threading
from decimal import Decimal

import pytest
from django.db import connection, connections

from modules.accounts.models import Address
from modules.carts.dtos import AddCartItemDTO
from modules.catalog.models import ProductVariation
from modules.core.container import build_cart_service, build_order_service
from modules.inventory.models import StockMovement
from modules.orders.dtos import CreateOrderDTO
from modules.orders.models import Order
from shared.domain.actor import Actor
from shared.domain.exceptions import InsufficientStock

pytestmark = [
    pytest.mark.integration,
    pytest.mark.django_db(transaction=True),
    pytest.mark.skipif(
        not connection.features.has_select_for_update,
        reason="requires row-level locking",
    ),
]

BUYERS = 4


def test_only_one_buyer_gets_the_last_units(make_user, make_variation, ledger):
    variation = make_variation(price="30.00", stock=5)
    cart_service = build_cart_service()
    checkouts = []
    for n in range(BUYERS):
        user = make_user(f"racer-{n}")
        actor = Actor.from_user(user)
        address = Address.objects.create(
            user=user, street="1 Rue", city="Goma", state="Nord-Kivu", zip_code="0", country="CD"
        )
        cart_service.add_item(actor, AddCartItemDTO(variation_id=variation.id, quantity=5))
        checkouts.append((actor, address))

    barrier = threading.Barrier(BUYERS)
    outcomes = []
    lock = threading.Lock()

    def place(actor, address):
        try:
            barrier.wait()
            build_order_service().create(actor, CreateOrderDTO(shipping_address_id=address.id))
            result = "ok"
        except InsufficientStock:
            result = "short"
        finally:
            connections.close_all()
        with lock:
            outcomes.append(result)

    threads = [threading.Thread(target=place, args=pair) for pair in checkouts]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert sorted(outcomes) == ["ok"] + ["short"] * (BUYERS - 1)
    assert Order.objects.count() == 1
    assert ProductVariation.objects.get(pk=variation.pk).stock == 0
    assert StockMovement.objects.filter(variation=variation, delta__lt=0).count() == 1
    assert Order.objects.get().total_amount == Decimal("150.00")
    assert ledger.verify(variation.id)
