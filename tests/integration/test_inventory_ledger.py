"""Inventory ledger against the database.

Every test ends by replaying the movements of the touched variation and
comparing the result with the live counter.
"""

from __future__ import annotations

import pytest
from django.urls import reverse

from modules.catalog.models import ProductVariation
from modules.core.models import ImmutableRecordError, OutboxEvent
from modules.inventory.constants import MovementKind, MovementReason
from modules.inventory.dtos import RecordMovementDTO
from modules.inventory.exceptions import StockManagementForbidden
from modules.inventory.models import StockMovement
from shared.domain.exceptions import InsufficientStock

pytestmark = pytest.mark.integration


def _stock(variation) -> int:
    return ProductVariation.objects.values_list("stock", flat=True).get(pk=variation.pk)


class TestInitialStock:
    def test_creation_books_an_initial_movement(self, ledger, make_variation):
        variation = make_variation(stock=12)

        movement = StockMovement.objects.get(variation=variation)
        assert movement.kind == MovementKind.IN
        assert movement.reason == MovementReason.INITIAL_STOCK
        assert movement.current_stock == 12
        assert ledger.verify(variation.id)

    def test_zero_initial_stock_books_nothing(self, make_variation):
        variation = make_variation(stock=0)
        assert not StockMovement.objects.filter(variation=variation).exists()


class TestDecrementIncrement:
    def test_sequence_reconstructs(self, ledger, make_variation, seller):
        variation = make_variation(stock=10)

        ledger.decrement(variation.id, 4, reason=MovementReason.ORDER_PLACED, reference="ord-1")
        ledger.increment(variation.id, 1, reason=MovementReason.ORDER_CANCELLED, reference="ord-1")
        ledger.adjust(variation.id, -2, reason="shrinkage", actor=seller)

        assert _stock(variation) == 5
        assert ledger.reconstruct_stock(variation.id) == 5
        assert ledger.verify(variation.id)
        assert list(
            StockMovement.objects.filter(variation=variation).values_list("current_stock", flat=True)
        ) == [10, 6, 7, 5]

    def test_insufficient_leaves_no_trace(self, ledger, make_variation):
        variation = make_variation(stock=3)
        before = StockMovement.objects.count()

        with pytest.raises(InsufficientStock) as exc_info:
            ledger.decrement(variation.id, 4, reason=MovementReason.ORDER_PLACED)

        assert exc_info.value.context == {
            "variation_id": variation.id,
            "requested": 4,
            "available": 3,
        }
        assert _stock(variation) == 3
        assert StockMovement.objects.count() == before

    def test_can_drain_to_zero(self, ledger, make_variation):
        variation = make_variation(stock=2, threshold=0)
        ledger.decrement(variation.id, 2, reason=MovementReason.ORDER_PLACED)
        assert _stock(variation) == 0
        assert ledger.verify(variation.id)

    def test_counter_drift_is_detected(self, ledger, make_variation):
        variation = make_variation(stock=5)
        # Bypass the ledger on purpose.
        ProductVariation.objects.filter(pk=variation.pk).update(stock=9)
        assert ledger.verify(variation.id) is False


class TestLowStock:
    def test_fires_once_on_crossing(self, ledger, make_variation):
        variation = make_variation(stock=5, threshold=2)

        ledger.decrement(variation.id, 2, reason=MovementReason.ORDER_PLACED)
        ledger.decrement(variation.id, 1, reason=MovementReason.ORDER_PLACED)
        ledger.decrement(variation.id, 1, reason=MovementReason.ORDER_PLACED)

        assert OutboxEvent.objects.filter(event_type="LowStockReached").count() == 1
        assert OutboxEvent.objects.filter(event_type="notification.low_stock").count() == 1

    def test_fires_again_after_restock(self, ledger, make_variation):
        variation = make_variation(stock=3, threshold=2)

        ledger.decrement(variation.id, 1, reason=MovementReason.ORDER_PLACED)
        ledger.increment(variation.id, 5, reason="restock")
        ledger.decrement(variation.id, 5, reason=MovementReason.ORDER_PLACED)

        assert OutboxEvent.objects.filter(event_type="LowStockReached").count() == 2


class TestManualMovements:
    def test_seller_records_incoming_stock(self, ledger, make_variation, seller):
        variation = make_variation(stock=1)
        movement = ledger.record_movement(
            variation.id, RecordMovementDTO(kind="in", quantity=9, reason="supplier delivery"), seller
        )
        assert movement.moved_by_id == seller.id
        assert _stock(variation) == 10

    def test_other_seller_is_forbidden(self, ledger, make_variation, make_user):
        from shared.domain.actor import SELLER, Actor

        variation = make_variation(stock=1)
        intruder = Actor.from_user(make_user("rival", SELLER))

        with pytest.raises(StockManagementForbidden):
            ledger.record_movement(
                variation.id, RecordMovementDTO(kind="in", quantity=1, reason="x"), intruder
            )
        assert _stock(variation) == 1

    def test_adjustment_writes_off(self, ledger, make_variation, admin):
        variation = make_variation(stock=6)
        movement = ledger.record_movement(
            variation.id, RecordMovementDTO(kind="adjustment", quantity=2, reason="water damage"), admin
        )
        assert movement.delta == -2
        assert _stock(variation) == 4
        assert ledger.verify(variation.id)


class TestAppendOnly:
    def test_rows_cannot_be_edited_or_deleted(self, make_variation):
        movement = StockMovement.objects.get(variation=make_variation(stock=4))

        movement.reason = "rewritten"
        with pytest.raises(ImmutableRecordError):
            movement.save()
        with pytest.raises(ImmutableRecordError):
            movement.delete()
        with pytest.raises(ImmutableRecordError):
            StockMovement.objects.filter(pk=movement.pk).update(reason="rewritten")
        with pytest.raises(ImmutableRecordError):
            StockMovement.objects.all().delete()


class TestStockMovementAPI:
    def _url(self, variation):
        return reverse("variation-stock-movements", kwargs={"variation_id": variation.id})

    def test_seller_lists_newest_first(self, client_for, seller_user, ledger, make_variation):
        variation = make_variation(stock=5)
        ledger.decrement(variation.id, 2, reason=MovementReason.ORDER_PLACED)

        response = client_for(seller_user).get(self._url(variation))

        assert response.status_code == 200
        assert [row["delta"] for row in response.data["results"]] == [-2, 5]

    def test_seller_posts_movement(self, client_for, seller_user, make_variation):
        variation = make_variation(stock=5)

        response = client_for(seller_user).post(
            self._url(variation),
            {"kind": "out", "quantity": 2, "reason": "sample for photo shoot"},
            format="json",
        )

        assert response.status_code == 201
        assert response.data["delta"] == -2
        assert response.data["current_stock"] == 3

    def test_buyer_is_forbidden(self, client_for, buyer_user, make_variation):
        response = client_for(buyer_user).get(self._url(make_variation()))
        assert response.status_code == 403
        assert response.data["errors"][0]["code"] == "forbidden"

    def test_outgoing_over_stock_is_a_conflict(self, client_for, seller_user, make_variation):
        variation = make_variation(stock=1)
        response = client_for(seller_user).post(
            self._url(variation), {"kind": "out", "quantity": 3, "reason": "x"}, format="json"
        )
        assert response.status_code == 409
        assert response.data["errors"][0]["code"] == "insufficient_stock"
        assert response.data["context"]["available"] == 1

    def test_unknown_variation(self, client_for, admin_user):
        from uuid import uuid4

        response = client_for(admin_user).get(
            reverse("variation-stock-movements", kwargs={"variation_id": uuid4()})
        )
        assert response.status_code == 404
