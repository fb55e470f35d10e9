"""Order lifecycle against the database.

Covers:
- Checkout in FC and USD (price conversion, locked rate, totals)
- Stock effects of creation, rejection, cancellation and returns
- Idempotent replays and all-or-nothing creation
- Transition table, payment collection and restocking guards
"""

from __future__ import annotations

from decimal import Decimal

import pytest
from django.db.models import Sum

from modules.accounts.models import Address
from modules.carts.dtos import AddCartItemDTO, UpdateCartItemDTO
from modules.carts.models import Cart
from modules.catalog.dtos import UpdateVariationDTO
from modules.catalog.models import ProductVariation
from modules.core.models import ImmutableRecordError, OutboxEvent
from modules.inventory.constants import MovementKind, MovementReason
from modules.inventory.models import StockMovement
from modules.offers.dtos import AcceptOfferDTO, CreateOfferDTO
from modules.orders.constants import OrderStatus
from modules.orders.dtos import CreateOrderDTO, MarkPaidDTO, RejectOrderDTO, UpdateOrderStatusDTO
from modules.orders.exceptions import (
    AddressNotFound,
    AlreadyPaid,
    EmptyCart,
    InvalidOrderStatus,
    InvalidState,
)
from modules.orders.models import Order, OrderTrackingEvent
from shared.domain.exceptions import Forbidden, InsufficientStock, ValidationFailed

pytestmark = pytest.mark.integration


@pytest.fixture()
def other_address(other_buyer_user):
    return Address.objects.create(
        user=other_buyer_user,
        street="4 Boulevard du 30 Juin",
        city="Kinshasa",
        state="Kinshasa",
        zip_code="00000",
        country="CD",
    )


@pytest.fixture()
def checkout(cart_service, order_service):
    """Fill the actor's cart with ``(variation, quantity)`` lines and place the order."""

    def _checkout(actor, address, lines, currency="FC", key=None):
        for variation, quantity in lines:
            cart_service.add_item(actor, AddCartItemDTO(variation_id=variation.id, quantity=quantity))
        return order_service.create(
            actor,
            CreateOrderDTO(shipping_address_id=address.id, currency=currency, idempotency_key=key),
        )

    return _checkout


def _stock(variation) -> int:
    return ProductVariation.objects.values_list("stock", flat=True).get(pk=variation.pk)


def _net_delta(order) -> int:
    return StockMovement.objects.filter(reference=str(order.id)).aggregate(net=Sum("delta"))["net"]


def _advance(order_service, order, admin, *statuses):
    for status in statuses:
        order = order_service.update_status(order.id, UpdateOrderStatusDTO(status=status), admin)
    return order


class TestCreate:
    def test_fc_order(self, checkout, buyer, address, make_variation):
        sandal = make_variation(price="100.00", stock=10)
        belt = make_variation(price="25.50", stock=4)

        order = checkout(buyer, address, [(sandal, 2), (belt, 1)])

        assert order.status == OrderStatus.PENDING_ADMIN_APPROVAL
        assert order.currency == "FC"
        assert order.exchange_rate_used == Decimal("1")
        assert order.total_amount == Decimal("225.50")
        assert order.order_number.startswith("ORD-")
        assert order.shipping_address["street"] == "12 Avenue du Commerce"
        assert {(i.variation_id, i.quantity, i.price_paid) for i in order.items.all()} == {
            (sandal.id, 2, Decimal("100.00")),
            (belt.id, 1, Decimal("25.50")),
        }
        assert _stock(sandal) == 8
        assert _stock(belt) == 3
        assert not Cart.objects.filter(buyer_id=buyer.id).exists()

    def test_books_out_movements_referencing_order(self, checkout, ledger, buyer, address, make_variation):
        variation = make_variation(stock=10)

        order = checkout(buyer, address, [(variation, 3)])

        movement = StockMovement.objects.get(reference=str(order.id))
        assert movement.kind == MovementKind.OUT
        assert movement.reason == MovementReason.ORDER_PLACED
        assert movement.delta == -3
        assert movement.moved_by_id == buyer.id
        assert ledger.verify(variation.id)

    def test_usd_order_locks_rate(self, checkout, currency_service, buyer, admin, address, make_variation):
        currency_service.set_rate(Decimal("2800"), admin)
        radio = make_variation(price="5600.00", stock=5)
        lamp = make_variation(price="2800.00", stock=5)

        order = checkout(buyer, address, [(radio, 1), (lamp, 2)], currency="usd")
        currency_service.set_rate(Decimal("3000"), admin)

        order.refresh_from_db()
        assert order.currency == "USD"
        assert order.exchange_rate_used == Decimal("2800.0000")
        assert order.total_amount == Decimal("4.00")
        assert order.total_amount == sum(i.price_paid * i.quantity for i in order.items.all())

    def test_negotiated_price_is_charged(
        self, offer_service, order_service, buyer, admin, address, make_variation
    ):
        variation = make_variation(price="100.00", stock=3)
        offer = offer_service.create(
            buyer, CreateOfferDTO(variation_id=variation.id, proposed_price=Decimal("80"))
        )
        offer_service.accept(offer.id, AcceptOfferDTO(accepted_price=Decimal("85")), admin)
        offer_service.redeem_to_cart(offer.id, buyer)

        order = order_service.create(buyer, CreateOrderDTO(shipping_address_id=address.id))

        assert order.total_amount == Decimal("85.00")

    def test_extra_units_on_a_redeemed_line_pay_the_listed_price(
        self, offer_service, cart_service, order_service, ledger, buyer, admin, address, make_variation
    ):
        variation = make_variation(price="100.00", stock=10)
        offer = offer_service.create(
            buyer, CreateOfferDTO(variation_id=variation.id, proposed_price=Decimal("80"))
        )
        offer_service.accept(offer.id, AcceptOfferDTO(accepted_price=Decimal("85")), admin)
        offer_service.redeem_to_cart(offer.id, buyer)
        cart_service.update_quantity(buyer, variation.id, UpdateCartItemDTO(quantity=10))

        order = order_service.create(buyer, CreateOrderDTO(shipping_address_id=address.id))

        assert order.total_amount == Decimal("985.00")
        assert sorted((i.quantity, i.price_paid) for i in order.items.all()) == [
            (1, Decimal("85.00")),
            (9, Decimal("100.00")),
        ]
        assert StockMovement.objects.get(reference=str(order.id)).delta == -10
        assert _stock(variation) == 0
        assert ledger.verify(variation.id)

    def test_later_price_and_rate_changes_leave_the_order_alone(
        self, checkout, catalog_service, currency_service, seller, buyer, admin, address, make_variation
    ):
        currency_service.set_rate(Decimal("2500"), admin)
        variation = make_variation(price="5000.00", stock=5)
        placed = checkout(buyer, address, [(variation, 3)], currency="USD")

        catalog_service.update_variation(variation.id, UpdateVariationDTO(price=Decimal("7500")), seller)
        currency_service.set_rate(Decimal("3000"), admin)

        order = Order.objects.get(pk=placed.pk)
        items = list(order.items.all())
        assert order.total_amount == Decimal("6.00")
        assert order.exchange_rate_used == Decimal("2500.0000")
        assert [(i.quantity, i.price_paid) for i in items] == [(3, Decimal("2.00"))]
        assert order.total_amount == sum(i.quantity * i.price_paid for i in items)

    def test_orders_are_never_deleted(self, checkout, buyer, address, make_variation):
        order = checkout(buyer, address, [(make_variation(), 1)])

        with pytest.raises(ImmutableRecordError):
            order.delete()
        assert Order.objects.filter(pk=order.pk).exists()

    def test_records_tracking_event_and_outbox_rows(self, checkout, buyer, admin_user, address, make_variation):
        order = checkout(buyer, address, [(make_variation(), 1)])

        event = OrderTrackingEvent.objects.get(order=order)
        assert event.status == OrderStatus.PENDING_ADMIN_APPROVAL
        assert event.previous_status is None
        assert OutboxEvent.objects.filter(event_type="OrderCreated", aggregate_id=str(order.id)).exists()
        admin_row = OutboxEvent.objects.get(event_type="notification.new_order_request")
        assert admin_row.payload["recipients"] == [str(admin_user.pk)]

    def test_empty_cart(self, order_service, buyer, address):
        with pytest.raises(EmptyCart):
            order_service.create(buyer, CreateOrderDTO(shipping_address_id=address.id))

    def test_foreign_address(self, checkout, other_buyer, address, make_variation):
        with pytest.raises(AddressNotFound):
            checkout(other_buyer, address, [(make_variation(), 1)])
        assert not Order.objects.exists()

    def test_second_buyer_loses_the_last_units(
        self, checkout, cart_service, order_service, buyer, other_buyer, address, other_address, make_variation
    ):
        variation = make_variation(stock=5)
        cart_service.add_item(other_buyer, AddCartItemDTO(variation_id=variation.id, quantity=5))

        checkout(buyer, address, [(variation, 5)])
        with pytest.raises(InsufficientStock):
            order_service.create(other_buyer, CreateOrderDTO(shipping_address_id=other_address.id))

        assert _stock(variation) == 0
        assert Order.objects.count() == 1
        assert Cart.objects.filter(buyer_id=other_buyer.id).exists()

    def test_failure_mid_creation_rolls_everything_back(
        self, checkout, order_service, buyer, address, make_variation, monkeypatch
    ):
        first = make_variation(stock=5)
        second = make_variation(stock=5)
        ledger = order_service._ledger
        real_decrement = ledger.decrement
        calls = []

        def flaky(variation_id, quantity, **kwargs):
            calls.append(variation_id)
            if len(calls) == 2:
                raise InsufficientStock("sold out meanwhile")
            return real_decrement(variation_id, quantity, **kwargs)

        monkeypatch.setattr(ledger, "decrement", flaky)

        with pytest.raises(InsufficientStock):
            checkout(buyer, address, [(first, 2), (second, 2)])

        assert not Order.objects.exists()
        assert _stock(first) == 5
        assert _stock(second) == 5
        assert not StockMovement.objects.filter(reason=MovementReason.ORDER_PLACED).exists()
        assert not OutboxEvent.objects.filter(event_type="OrderCreated").exists()
        assert Cart.objects.get(buyer_id=buyer.id).items.count() == 2


class TestIdempotency:
    def test_replay_returns_same_order(self, checkout, order_service, buyer, address, make_variation):
        variation = make_variation(stock=10)
        first = checkout(buyer, address, [(variation, 2)], key="checkout-42")

        again = order_service.create(
            buyer, CreateOrderDTO(shipping_address_id=address.id, idempotency_key="checkout-42")
        )

        assert again.id == first.id
        assert Order.objects.count() == 1
        assert _stock(variation) == 8

    def test_key_of_another_buyer(self, checkout, other_buyer, buyer, address, other_address, make_variation):
        checkout(buyer, address, [(make_variation(), 1)], key="checkout-42")
        with pytest.raises(ValidationFailed):
            checkout(other_buyer, other_address, [(make_variation(), 1)], key="checkout-42")

    def test_key_committed_by_another_buyer_mid_checkout(
        self, checkout, order_service, buyer, other_buyer, address, other_address, make_variation, monkeypatch
    ):
        checkout(buyer, address, [(make_variation(), 1)], key="checkout-42")
        repo = order_service._order_repo
        real_lookup = repo.get_by_idempotency_key
        lookups = []

        def lookup(key):
            # The first read runs before the other buyer's order is visible.
            lookups.append(key)
            return None if len(lookups) == 1 else real_lookup(key)

        monkeypatch.setattr(repo, "get_by_idempotency_key", lookup)
        variation = make_variation(stock=5)

        with pytest.raises(ValidationFailed) as exc_info:
            checkout(other_buyer, other_address, [(variation, 1)], key="checkout-42")

        assert exc_info.value.context["field"] == "idempotency_key"
        assert len(lookups) == 2
        assert Order.objects.count() == 1
        assert _stock(variation) == 5
        assert Cart.objects.filter(buyer_id=other_buyer.id).exists()


class TestReversals:
    def test_cancel_while_accepted_restores_stock(self, checkout, order_service, ledger, buyer, admin, address, make_variation):
        variation = make_variation(stock=10)
        order = checkout(buyer, address, [(variation, 4)])
        order_service.accept(order.id, admin)

        cancelled = order_service.cancel(order.id, buyer, notes="changed my mind")

        assert cancelled.status == OrderStatus.CANCELLED
        assert _stock(variation) == 10
        back = StockMovement.objects.get(reference=str(order.id), kind=MovementKind.IN)
        assert back.reason == MovementReason.ORDER_CANCELLED
        assert back.delta == 4
        assert _net_delta(order) == 0
        assert ledger.verify(variation.id)
        assert OutboxEvent.objects.filter(event_type="OrderCancelled").count() == 1

    def test_reject_nets_zero(self, checkout, order_service, buyer, admin, address, make_variation):
        sandal = make_variation(stock=6)
        belt = make_variation(stock=6)
        order = checkout(buyer, address, [(sandal, 1), (belt, 2)])

        rejected = order_service.reject(order.id, RejectOrderDTO(reason="Cannot ship there"), admin)

        assert rejected.admin_notes == "Cannot ship there"
        assert _net_delta(order) == 0
        assert _stock(sandal) == 6 and _stock(belt) == 6

    def test_admin_cancel_during_processing(self, checkout, order_service, buyer, admin, address, make_variation):
        variation = make_variation(stock=3)
        order = checkout(buyer, address, [(variation, 3)])
        order = _advance(order_service, order, admin, OrderStatus.ACCEPTED, OrderStatus.PROCESSING)

        with pytest.raises(InvalidOrderStatus):
            order_service.cancel(order.id, buyer)
        _advance(order_service, order, admin, OrderStatus.CANCELLED)

        assert _stock(variation) == 3

    def test_cancel_twice_releases_once(self, checkout, order_service, buyer, address, make_variation):
        variation = make_variation(stock=3)
        order = checkout(buyer, address, [(variation, 2)])
        order_service.cancel(order.id, buyer)

        with pytest.raises(InvalidOrderStatus):
            order_service.cancel(order.id, buyer)
        assert _stock(variation) == 3

    def test_other_buyer_cannot_cancel(self, checkout, order_service, buyer, other_buyer, address, make_variation):
        order = checkout(buyer, address, [(make_variation(), 1)])
        with pytest.raises(Forbidden):
            order_service.cancel(order.id, other_buyer)

    def test_return_then_restock_once(self, checkout, order_service, ledger, buyer, admin, address, make_variation):
        variation = make_variation(stock=5)
        order = checkout(buyer, address, [(variation, 2)])
        order = _advance(
            order_service,
            order,
            admin,
            OrderStatus.ACCEPTED,
            OrderStatus.PROCESSING,
            OrderStatus.SHIPPED,
            OrderStatus.RETURNED,
        )
        assert _stock(variation) == 3

        restocked = order_service.restock_return(order.id, admin)

        assert restocked.restocked_at is not None
        assert _stock(variation) == 5
        with pytest.raises(InvalidState):
            order_service.restock_return(order.id, admin)
        assert _stock(variation) == 5
        assert ledger.verify(variation.id)


class TestStatusMachine:
    def test_pending_cannot_jump_to_shipped(self, checkout, order_service, buyer, admin, address, make_variation):
        order = checkout(buyer, address, [(make_variation(), 1)])

        with pytest.raises(InvalidOrderStatus):
            _advance(order_service, order, admin, OrderStatus.SHIPPED)
        assert Order.objects.get(pk=order.pk).status == OrderStatus.PENDING_ADMIN_APPROVAL

    def test_happy_path_tracking_history(self, checkout, order_service, buyer, admin, address, make_variation):
        order = checkout(buyer, address, [(make_variation(), 1)])
        path = [
            OrderStatus.ACCEPTED,
            OrderStatus.PROCESSING,
            OrderStatus.SHIPPED,
            OrderStatus.OUT_FOR_DELIVERY,
            OrderStatus.DELIVERED,
        ]
        _advance(order_service, order, admin, *path)

        history = list(
            OrderTrackingEvent.objects.filter(order=order).values_list("previous_status", "status")
        )
        assert history == list(zip([None, OrderStatus.PENDING_ADMIN_APPROVAL, *path[:-1]], [OrderStatus.PENDING_ADMIN_APPROVAL, *path]))

    def test_terminal_states_accept_nothing(self, checkout, order_service, buyer, admin, address, make_variation):
        order = checkout(buyer, address, [(make_variation(), 1)])
        order_service.reject(order.id, RejectOrderDTO(reason="Duplicate"), admin)

        for status in OrderStatus:
            with pytest.raises(InvalidOrderStatus):
                _advance(order_service, order, admin, status)

    def test_mark_paid_after_delivery(self, checkout, order_service, buyer, admin, address, make_variation):
        order = checkout(buyer, address, [(make_variation(), 1)])
        with pytest.raises(InvalidState):
            order_service.mark_paid(order.id, MarkPaidDTO(is_paid=True), admin)

        _advance(
            order_service,
            order,
            admin,
            OrderStatus.ACCEPTED,
            OrderStatus.PROCESSING,
            OrderStatus.SHIPPED,
            OrderStatus.OUT_FOR_DELIVERY,
            OrderStatus.DELIVERED,
        )
        paid = order_service.mark_paid(order.id, MarkPaidDTO(is_paid=True), admin)
        assert paid.is_paid

        with pytest.raises(AlreadyPaid):
            order_service.mark_paid(order.id, MarkPaidDTO(is_paid=True), admin)
        assert not order_service.mark_paid(order.id, MarkPaidDTO(is_paid=False), admin).is_paid
