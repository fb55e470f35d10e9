"""Event handlers for Offers domain events."""

from __future__ import annotations

import structlog

from modules.offers.events import OfferCreated, OfferRedeemed, OfferStatusChanged
from shared.domain.bus import IEventHandler

logger = structlog.get_logger(__name__)


class OfferCreatedHandler(IEventHandler[OfferCreated]):
    def handle(self, event: OfferCreated) -> None:
        logger.info(
            "offer.event.created",
            offer_id=str(event.aggregate_id),
            variation_id=event.variation_id,
        )


class OfferStatusChangedHandler(IEventHandler[OfferStatusChanged]):
    def handle(self, event: OfferStatusChanged) -> None:
        logger.info(
            "offer.event.status_changed",
            offer_id=str(event.aggregate_id),
            old_status=event.old_status,
            new_status=event.new_status,
        )


class OfferRedeemedHandler(IEventHandler[OfferRedeemed]):
    def handle(self, event: OfferRedeemed) -> None:
        logger.info(
            "offer.event.redeemed",
            offer_id=str(event.aggregate_id),
            cart_item_id=event.cart_item_id,
        )


offer_created_handler = OfferCreatedHandler()
offer_status_changed_handler = OfferStatusChangedHandler()
offer_redeemed_handler = OfferRedeemedHandler()

SUBSCRIPTIONS = (
    (OfferCreated, offer_created_handler),
    (OfferStatusChanged, offer_status_changed_handler),
    (OfferRedeemed, offer_redeemed_handler),
)
