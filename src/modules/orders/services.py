"""Order service layer (Use Cases).

Turns the buyer's cart into a priced, currency-locked order and drives the
order state machine.  Every write is one ``transaction.atomic`` unit: the
ledger decrements, tracking events and outbox rows commit or roll back
together with the order itself.

Stock effects:
- creation books one ``out`` movement per line (``order_placed``);
- rejection and cancellation book one ``in`` per line;
- a return has no stock effect until ``restock_return`` is called.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, List, Optional, Tuple

import structlog
from django.db import IntegrityError, transaction
from django.utils import timezone

from modules.inventory.constants import MovementReason
from modules.notifications.constants import NotificationType, RelatedEntity
from modules.orders.constants import BUYER_CANCELLABLE, REVERSING_STATES, OrderStatus
from modules.orders.events import OrderCancelled, OrderCreated, OrderStatusChanged
from modules.orders.exceptions import (
    AddressNotFound,
    AlreadyPaid,
    EmptyCart,
    InvalidOrderStatus,
    InvalidState,
    OrderNotFound,
)
from shared.domain.exceptions import ValidationFailed

if TYPE_CHECKING:
    from modules.accounts.repositories.interfaces import IAddressRepository
    from modules.carts.repositories.interfaces import ICartRepository
    from modules.currency.services import CurrencyService
    from modules.inventory.services import InventoryLedger
    from modules.notifications.services import NotificationService
    from modules.orders.dtos import (
        CreateOrderDTO,
        MarkPaidDTO,
        RejectOrderDTO,
        UpdateOrderStatusDTO,
    )
    from modules.orders.models import Order
    from modules.orders.repositories.interfaces import IOrderRepository
    from shared.domain.actor import Actor

logger = structlog.get_logger(__name__)

_REVERSAL_REASONS = {
    OrderStatus.REJECTED: MovementReason.ORDER_REJECTED,
    OrderStatus.CANCELLED: MovementReason.ORDER_CANCELLED,
}


class OrderService:
    """Application service for Order use-cases.

    Receives repositories and collaborating services via constructor
    injection.
    """

    def __init__(
        self,
        order_repository: IOrderRepository,
        cart_repository: ICartRepository,
        address_repository: IAddressRepository,
        ledger: InventoryLedger,
        currency_service: CurrencyService,
        notification_service: NotificationService,
    ) -> None:
        self._order_repo = order_repository
        self._cart_repo = cart_repository
        self._address_repo = address_repository
        self._ledger = ledger
        self._currency = currency_service
        self._notifications = notification_service

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def create(self, actor: Actor, dto: CreateOrderDTO) -> Order:
        """Check out the actor's cart; see ``place``."""
        order, _ = self.place(actor, dto)
        return order

    @transaction.atomic
    def place(self, actor: Actor, dto: CreateOrderDTO) -> Tuple[Order, bool]:
        """Check out the actor's cart.  Returns ``(order, created)``; ``created``
        is ``False`` when the idempotency key replayed an existing order.

        Steps:
        1. Lock the cart, then replay an existing order for the same
           idempotency key.
        2. Resolve the buyer's shipping address.
        3. Re-validate every line (sorted by variation id) against live
           stock and convert its frozen prices into the order currency.  A
           line holding a redeemed offer becomes two order items: the
           negotiated unit and the rest at ``price_at_add``.
        4. Persist the order with the address snapshot and its first
           tracking event, delete the cart.
        5. Book one ledger decrement per line.

        Raises:
            ValidationFailed: idempotency key used by another buyer.
            AddressNotFound: address missing or not the buyer's.
            EmptyCart: no cart or no lines.
            VariationUnavailable / InsufficientStock: a line failed re-validation.
            UnsupportedCurrency / ExchangeRateUnavailable: conversion failed.
        """
        log = logger.bind(buyer_id=str(actor.id), currency=dto.currency)
        log.info("order.creation_started")

        cart = self._cart_repo.get_for_buyer_for_update(actor.id)

        existing = self._replayed(actor, dto.idempotency_key)
        if existing:
            return existing, False

        address = self._address_repo.get_for_user(str(dto.shipping_address_id), actor.id)
        if not address:
            log.warning("order.address_not_found", address_id=str(dto.shipping_address_id))
            raise AddressNotFound(
                f"Address {dto.shipping_address_id} not found.",
                field="shipping_address_id",
            )

        lines = self._cart_repo.list_items(cart) if cart else []
        if not lines:
            log.warning("order.empty_cart")
            raise EmptyCart("Your cart is empty.", buyer_id=actor.id)

        rate = None
        items = []
        lines = sorted(lines, key=lambda item: str(item.variation_id))
        for line in lines:
            variation = self._ledger.check_available(line.variation_id, line.quantity)
            for quantity, unit_price in line.priced_units():
                price_paid, rate = self._currency.convert(unit_price, dto.currency)
                items.append(
                    {
                        "product_id": variation.product_id,
                        "variation_id": variation.id,
                        "quantity": quantity,
                        "price_paid": price_paid,
                    }
                )

        try:
            order = self._order_repo.create(
                {
                    "buyer_id": actor.id,
                    "currency": dto.currency,
                    "exchange_rate_used": rate,
                    "shipping_address": address.as_snapshot(),
                    "items": items,
                    "idempotency_key": dto.idempotency_key,
                }
            )
        except IntegrityError:
            # A concurrent checkout committed the same idempotency key first.
            existing = self._replayed(actor, dto.idempotency_key)
            if existing is None:
                raise
            return existing, False

        order.add_domain_event(
            OrderCreated(
                aggregate_id=order.id,
                order_number=order.order_number,
                total_amount=str(order.total_amount),
                currency=order.currency,
            )
        )
        self._order_repo.save(order)
        self._order_repo.add_tracking_event(
            order, OrderStatus.PENDING_ADMIN_APPROVAL, actor_id=actor.id, notes="Order placed"
        )
        self._cart_repo.delete(cart)

        for line in lines:
            self._ledger.decrement(
                line.variation_id,
                line.quantity,
                reason=MovementReason.ORDER_PLACED,
                reference=order.id,
                actor=actor,
            )

        args = _template_args(order)
        self._notifications.notify(
            [actor.id],
            NotificationType.ORDER_STATUS,
            "notifications.order.placed",
            args,
            related_entity=_related(order),
        )
        self._notifications.notify_admins(
            NotificationType.NEW_ORDER_REQUEST,
            "notifications.order.new_request",
            args,
            related_entity=_related(order),
        )
        log.info(
            "order.created",
            order_id=str(order.id),
            total_amount=str(order.total_amount),
            item_count=len(items),
        )
        return (self._order_repo.get_by_id(str(order.id)) or order), True

    @transaction.atomic
    def accept(self, order_id: Any, actor: Actor) -> Order:
        """Raises: Forbidden, OrderNotFound, InvalidOrderStatus."""
        actor.require_admin()
        order = self._get_for_update(order_id)
        self._require_pending_approval(order)
        return self._change_status(order, OrderStatus.ACCEPTED, actor)

    @transaction.atomic
    def reject(self, order_id: Any, dto: RejectOrderDTO, actor: Actor) -> Order:
        """Reject a pending order and put its stock back.

        Raises:
            Forbidden: actor is not an admin.
            OrderNotFound: order missing.
            InvalidOrderStatus: order is not pending approval.
        """
        actor.require_admin()
        order = self._get_for_update(order_id)
        self._require_pending_approval(order)
        return self._change_status(order, OrderStatus.REJECTED, actor, notes=dto.reason)

    @transaction.atomic
    def cancel(self, order_id: Any, actor: Actor, notes: str = "") -> Order:
        """Cancel while pending approval or accepted and put the stock back.

        Locks the order row first so concurrent cancellations cannot
        release stock twice.

        Raises:
            OrderNotFound: order missing.
            Forbidden: actor is neither the buyer nor an admin.
            InvalidOrderStatus: order is past the cancellable statuses.
        """
        order = self._get_for_update(order_id)
        actor.require_owner_or_admin(order.buyer_id)
        if order.status not in BUYER_CANCELLABLE:
            logger.warning("order.cancel_not_allowed", order_id=str(order.id), status=order.status)
            raise InvalidOrderStatus(
                f"Cannot cancel order in status {order.status}.",
                order_id=order.id,
                status=order.status,
            )
        return self._change_status(order, OrderStatus.CANCELLED, actor, notes=notes)

    @transaction.atomic
    def update_status(self, order_id: Any, dto: UpdateOrderStatusDTO, actor: Actor) -> Order:
        """Admin transition strictly per the transition table.

        Raises:
            Forbidden: actor is not an admin.
            OrderNotFound: order missing.
            InvalidOrderStatus: the transition is not allowed.
        """
        actor.require_admin()
        order = self._get_for_update(order_id)
        new_status = str(dto.status)
        if not order.can_transition_to(new_status):
            logger.warning(
                "order.invalid_transition",
                order_id=str(order.id),
                current_status=order.status,
                new_status=new_status,
            )
            raise InvalidOrderStatus(
                f"Cannot transition from {order.status} to {new_status}.",
                field="status",
                order_id=order.id,
                current_status=order.status,
                requested_status=new_status,
            )
        return self._change_status(
            order, new_status, actor, notes=dto.notes, location=dto.location
        )

    @transaction.atomic
    def mark_paid(self, order_id: Any, dto: MarkPaidDTO, actor: Actor) -> Order:
        """Record (or undo) cash collection on a delivered order.

        Raises:
            Forbidden: actor is not an admin.
            OrderNotFound: order missing.
            InvalidState: order is not delivered.
            AlreadyPaid: ``is_paid=True`` on an order already paid.
        """
        actor.require_admin()
        order = self._get_for_update(order_id)
        if order.status != OrderStatus.DELIVERED:
            logger.warning("order.mark_paid_not_delivered", order_id=str(order.id), status=order.status)
            raise InvalidState(
                "Only delivered orders can be marked as paid.",
                order_id=order.id,
                status=order.status,
            )
        if dto.is_paid and order.is_paid:
            logger.warning("order.already_paid", order_id=str(order.id))
            raise AlreadyPaid(f"Order {order.order_number} is already paid.", order_id=order.id)

        order.is_paid = dto.is_paid
        self._order_repo.save(order)
        logger.info("order.payment_updated", order_id=str(order.id), is_paid=dto.is_paid)
        return self._order_repo.get_by_id(str(order.id)) or order

    @transaction.atomic
    def restock_return(self, order_id: Any, actor: Actor) -> Order:
        """Put a returned order's units back on the shelf, once.

        Raises:
            Forbidden: actor is not an admin.
            OrderNotFound: order missing.
            InvalidState: order not returned, or already restocked.
        """
        actor.require_admin()
        order = self._get_for_update(order_id)
        if order.status != OrderStatus.RETURNED or order.restocked_at is not None:
            logger.warning(
                "order.restock_not_allowed",
                order_id=str(order.id),
                status=order.status,
                restocked=order.restocked_at is not None,
            )
            raise InvalidState(
                "Only a returned order that was not restocked yet can be restocked.",
                order_id=order.id,
                status=order.status,
            )

        self._book_reversal(order, MovementReason.ORDER_RETURNED, actor)
        order.restocked_at = timezone.now()
        self._order_repo.save(order)
        logger.info("order.restocked", order_id=str(order.id))
        return self._order_repo.get_by_id(str(order.id)) or order

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get(self, order_id: Any, actor: Actor) -> Order:
        """Raises: OrderNotFound, Forbidden."""
        order = self._order_repo.get_by_id(str(order_id))
        if not order:
            raise OrderNotFound(f"Order {order_id} not found.", order_id=order_id)
        actor.require_owner_or_admin(order.buyer_id)
        return order

    def list_for_buyer(self, actor: Actor) -> List[Order]:
        return self._order_repo.list({"buyer_id": actor.id})

    def list_all(self, actor: Actor, filters: Optional[Dict[str, Any]] = None) -> List[Order]:
        actor.require_admin()
        return self._order_repo.list(filters)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _replayed(self, actor: Actor, key: Optional[str]) -> Optional[Order]:
        """The actor's order already placed under ``key``, if any.

        Raises:
            ValidationFailed: another buyer owns the key.
        """
        if not key:
            return None
        existing = self._order_repo.get_by_idempotency_key(key)
        if existing is None:
            return None
        if not actor.owns(existing.buyer_id):
            logger.warning("order.idempotency_key_conflict", buyer_id=str(actor.id))
            raise ValidationFailed("Idempotency key already used.", field="idempotency_key")
        logger.info("order.idempotency_hit", order_id=str(existing.id))
        return existing

    def _get_for_update(self, order_id: Any) -> Order:
        order = self._order_repo.get_for_update(str(order_id))
        if not order:
            logger.warning("order.not_found", order_id=str(order_id))
            raise OrderNotFound(f"Order {order_id} not found.", order_id=order_id)
        return order

    def _require_pending_approval(self, order: Order) -> None:
        if order.status != OrderStatus.PENDING_ADMIN_APPROVAL:
            logger.warning("order.not_pending_approval", order_id=str(order.id), status=order.status)
            raise InvalidOrderStatus(
                f"Order is {order.status}, not pending approval.",
                order_id=order.id,
                status=order.status,
            )

    def _change_status(
        self,
        order: Order,
        new_status: str,
        actor: Actor,
        notes: str = "",
        location: str = "",
    ) -> Order:
        """Apply a validated transition on a locked order."""
        old_status = order.status
        log = logger.bind(order_id=str(order.id), old_status=old_status, new_status=new_status)

        if new_status in REVERSING_STATES:
            self._book_reversal(order, _REVERSAL_REASONS[new_status], actor)
        if new_status == OrderStatus.REJECTED:
            order.admin_notes = notes

        order.status = new_status
        order.add_domain_event(
            OrderStatusChanged(aggregate_id=order.id, old_status=old_status, new_status=new_status)
        )
        if new_status == OrderStatus.CANCELLED:
            order.add_domain_event(OrderCancelled(aggregate_id=order.id, reason=notes))
        self._order_repo.save(order)
        self._order_repo.add_tracking_event(
            order,
            new_status,
            previous_status=old_status,
            actor_id=actor.id,
            notes=notes,
            location=location,
        )

        self._notifications.notify(
            [order.buyer_id],
            NotificationType.ORDER_STATUS,
            f"notifications.order.{new_status}",
            {**_template_args(order), "previous_status": old_status},
            related_entity=_related(order),
        )
        log.info("order.status_updated", actor_id=str(actor.id))
        return self._order_repo.get_by_id(str(order.id)) or order

    def _book_reversal(self, order: Order, reason: str, actor: Actor) -> None:
        for item in sorted(order.items.all(), key=lambda i: str(i.variation_id)):
            self._ledger.increment(
                item.variation_id,
                item.quantity,
                reason=reason,
                reference=order.id,
                actor=actor,
            )


def _template_args(order: Order) -> dict:
    return {
        "order_id": str(order.id),
        "order_number": order.order_number,
        "status": order.status,
        "total_amount": str(order.total_amount),
        "currency": order.currency,
    }


def _related(order: Order) -> dict:
    return {"id": order.id, "type": RelatedEntity.ORDER}
