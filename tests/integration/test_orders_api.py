from __future__ import annotations

from decimal import Decimal

import pytest
from django.urls import reverse

from modules.carts.dtos import AddCartItemDTO
from modules.orders.models import Order

pytestmark = pytest.mark.integration


@pytest.fixture()
def buyer_client(client_for, buyer_user):
    return client_for(buyer_user)


@pytest.fixture()
def admin_client(client_for, admin_user):
    return client_for(admin_user)


@pytest.fixture()
def fill_cart(cart_service, buyer, make_variation):
    def _fill(price="50.00", quantity=1, stock=10):
        variation = make_variation(price=price, stock=stock)
        cart_service.add_item(buyer, AddCartItemDTO(variation_id=variation.id, quantity=quantity))
        return variation

    return _fill


def _place(client, address, currency="FC", **headers):
    return client.post(
        reverse("order-list"),
        {"shipping_address_id": str(address.id), "currency": currency},
        format="json",
        **headers,
    )


class TestPlaceOrder:
    def test_created(self, buyer_client, address, fill_cart):
        fill_cart(price="50.00", quantity=2)

        response = _place(buyer_client, address)

        assert response.status_code == 201
        assert response.data["status"] == "pending_admin_approval"
        assert response.data["total_amount"] == "100.00"
        assert response.data["payment_method"] == "pay_on_delivery"
        assert len(response.data["items"]) == 1
        assert response.data["tracking_events"][0]["status"] == "pending_admin_approval"

    def test_idempotent_replay_returns_200(self, buyer_client, address, fill_cart):
        fill_cart()

        first = _place(buyer_client, address, HTTP_IDEMPOTENCY_KEY="pay-7f3a")
        replay = _place(buyer_client, address, HTTP_IDEMPOTENCY_KEY="pay-7f3a")

        assert first.status_code == 201
        assert replay.status_code == 200
        assert replay.data["id"] == first.data["id"]
        assert Order.objects.count() == 1

    def test_empty_cart(self, buyer_client, address):
        response = _place(buyer_client, address)

        assert response.status_code == 400
        assert response.data["errors"][0]["code"] == "empty_cart"

    def test_unsupported_currency(self, buyer_client, address, fill_cart):
        fill_cart()
        response = _place(buyer_client, address, currency="EUR")

        assert response.status_code == 400
        assert response.data["type"] == "validation_error"
        assert response.data["errors"][0]["attr"] == "currency"

    def test_usd_with_configured_rate(self, buyer_client, address, fill_cart, currency_service, admin):
        currency_service.set_rate(Decimal("2500"), admin)
        fill_cart(price="5000.00")

        response = _place(buyer_client, address, currency="USD")

        assert response.status_code == 201
        assert response.data["total_amount"] == "2.00"
        assert response.data["exchange_rate_used"] == "2500.0000"

    def test_sixth_checkout_in_a_minute_is_throttled(self, buyer_client, address):
        statuses = [_place(buyer_client, address).status_code for _ in range(6)]

        assert statuses[:5] == [400] * 5
        assert statuses[5] == 429


class TestBuyerViews:
    def test_lists_only_own_orders(self, buyer_client, client_for, other_buyer_user, address, fill_cart):
        fill_cart()
        _place(buyer_client, address)

        assert buyer_client.get(reverse("order-list")).data["count"] == 1
        assert client_for(other_buyer_user).get(reverse("order-list")).data["count"] == 0

    def test_other_buyer_cannot_read(self, buyer_client, client_for, other_buyer_user, address, fill_cart):
        fill_cart()
        order_id = _place(buyer_client, address).data["id"]

        response = client_for(other_buyer_user).get(reverse("order-detail", kwargs={"pk": order_id}))
        assert response.status_code == 403

    def test_unknown_order(self, buyer_client):
        from uuid import uuid4

        response = buyer_client.get(reverse("order-detail", kwargs={"pk": uuid4()}))
        assert response.status_code == 404
        assert response.data["errors"][0]["code"] == "order_not_found"

    def test_cancel(self, buyer_client, address, fill_cart):
        variation = fill_cart(quantity=3, stock=3)
        order_id = _place(buyer_client, address).data["id"]

        response = buyer_client.post(
            reverse("order-cancel", kwargs={"pk": order_id}), {"notes": "ordered twice"}, format="json"
        )

        assert response.status_code == 200
        assert response.data["status"] == "cancelled"
        variation.refresh_from_db()
        assert variation.stock == 3


class TestAdminViews:
    def _order(self, buyer_client, address, fill_cart):
        fill_cart()
        return _place(buyer_client, address).data["id"]

    def test_buyer_cannot_list_all(self, buyer_client):
        assert buyer_client.get(reverse("admin-order-list")).status_code == 403

    def test_filters(self, admin_client, buyer_client, address, fill_cart, currency_service, admin):
        currency_service.set_rate(Decimal("2500"), admin)
        self._order(buyer_client, address, fill_cart)
        fill_cart(price="2500.00")
        _place(buyer_client, address, currency="USD")

        url = reverse("admin-order-list")
        assert admin_client.get(url).data["count"] == 2
        assert admin_client.get(url, {"currency": "usd"}).data["count"] == 1
        assert admin_client.get(url, {"status": "pending_admin_approval"}).data["count"] == 2
        assert admin_client.get(url, {"status": "delivered"}).data["count"] == 0
        assert admin_client.get(url, {"min_total": "10"}).data["count"] == 1
        assert admin_client.get(url, {"is_paid": "true"}).data["count"] == 0

    def test_accept_then_patch_status(self, admin_client, buyer_client, address, fill_cart):
        order_id = self._order(buyer_client, address, fill_cart)

        accepted = admin_client.post(reverse("admin-order-accept", kwargs={"pk": order_id}))
        assert accepted.status_code == 200
        assert accepted.data["status"] == "accepted"

        detail = reverse("admin-order-detail", kwargs={"pk": order_id})
        moved = admin_client.patch(
            detail, {"status": "processing", "notes": "picking", "location": "Depot A"}, format="json"
        )
        assert moved.status_code == 200
        assert moved.data["tracking_events"][-1]["location"] == "Depot A"

    def test_invalid_transition_is_a_conflict(self, admin_client, buyer_client, address, fill_cart):
        order_id = self._order(buyer_client, address, fill_cart)

        response = admin_client.patch(
            reverse("admin-order-detail", kwargs={"pk": order_id}), {"status": "shipped"}, format="json"
        )

        assert response.status_code == 409
        assert response.data["errors"][0]["code"] == "invalid_status_transition"
        assert response.data["errors"][0]["attr"] == "status"
        assert response.data["context"]["current_status"] == "pending_admin_approval"

    def test_reject_requires_reason(self, admin_client, buyer_client, address, fill_cart):
        order_id = self._order(buyer_client, address, fill_cart)
        url = reverse("admin-order-reject", kwargs={"pk": order_id})

        assert admin_client.post(url, {"reason": ""}, format="json").status_code == 400
        rejected = admin_client.post(url, {"reason": "Address unreachable"}, format="json")
        assert rejected.data["admin_notes"] == "Address unreachable"

    def test_mark_paid_and_restock(self, admin_client, buyer_client, address, fill_cart):
        order_id = self._order(buyer_client, address, fill_cart)
        detail = reverse("admin-order-detail", kwargs={"pk": order_id})
        admin_client.post(reverse("admin-order-accept", kwargs={"pk": order_id}))
        for status in ("processing", "shipped", "out_for_delivery", "delivered"):
            admin_client.patch(detail, {"status": status}, format="json")

        paid = admin_client.post(reverse("admin-order-mark-paid", kwargs={"pk": order_id}), {"is_paid": True}, format="json")
        assert paid.status_code == 200
        assert paid.data["is_paid"] is True

        early = admin_client.post(reverse("admin-order-restock", kwargs={"pk": order_id}))
        assert early.status_code == 409

        admin_client.patch(detail, {"status": "returned"}, format="json")
        restocked = admin_client.post(reverse("admin-order-restock", kwargs={"pk": order_id}))
        assert restocked.status_code == 200
        assert restocked.data["restocked_at"] is not None
