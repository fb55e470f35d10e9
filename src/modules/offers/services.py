"""Offer negotiation service.

A buyer proposes a price for one variation; an admin accepts (locking a
price no lower than the floor) or rejects, the buyer may retract, and
stale offers expire.  An accepted price is redeemed into the cart once.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from decimal import Decimal
from typing import TYPE_CHECKING, Any, List, Optional

import structlog
from django.conf import settings
from django.db import transaction
from django.utils import timezone

from modules.catalog.exceptions import VariationNotFound
from modules.notifications.constants import NotificationType, RelatedEntity
from modules.offers.constants import OfferStatus
from modules.offers.events import OfferCreated, OfferRedeemed, OfferStatusChanged
from modules.offers.exceptions import (
    DuplicateActiveOffer,
    InvalidOfferState,
    NotOfferOwner,
    OfferExpiredOrConsumed,
    OfferNotFound,
    OutOfStock,
    PriceBelowFloor,
    VariationUnavailable,
)
from modules.offers.models import Offer

if TYPE_CHECKING:
    from modules.carts.services import CartService
    from modules.catalog.models import ProductVariation
    from modules.catalog.repositories.interfaces import IVariationRepository
    from modules.notifications.services import NotificationService
    from modules.offers.dtos import (
        AcceptOfferDTO,
        CreateOfferDTO,
        OfferMessageDTO,
        RejectOfferDTO,
    )
    from modules.offers.repositories.interfaces import IOfferRepository
    from shared.domain.actor import Actor

logger = structlog.get_logger(__name__)


class OfferService:
    def __init__(
        self,
        offer_repository: IOfferRepository,
        variation_repository: IVariationRepository,
        cart_service: CartService,
        notification_service: NotificationService,
    ) -> None:
        self._offer_repo = offer_repository
        self._variation_repo = variation_repository
        self._cart_service = cart_service
        self._notifications = notification_service

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    @transaction.atomic
    def create(self, actor: Actor, dto: CreateOfferDTO) -> Offer:
        """Open a negotiation on a variation.

        Raises:
            VariationNotFound: variation missing.
            VariationUnavailable: variation cannot be sold.
            OutOfStock: variation has no stock.
            DuplicateActiveOffer: buyer already has a live offer on it.
        """
        log = logger.bind(buyer_id=str(actor.id), variation_id=str(dto.variation_id))
        variation = self._variation_repo.get_for_update(str(dto.variation_id))
        if not variation:
            raise VariationNotFound(
                f"Variation {dto.variation_id} not found.", variation_id=dto.variation_id
            )
        if not variation.is_sellable:
            log.warning("offer.variation_unavailable")
            raise VariationUnavailable(
                f"Variation {variation.sku} is not available.", variation_id=variation.id
            )
        if variation.stock < 1:
            log.warning("offer.out_of_stock")
            raise OutOfStock(
                f"Variation {variation.sku} is out of stock.",
                variation_id=variation.id,
                requested=1,
                available=0,
            )
        if self._offer_repo.has_active(actor.id, variation.id):
            log.warning("offer.duplicate_active")
            raise DuplicateActiveOffer(
                "You already have an active offer on this variation.",
                variation_id=variation.id,
            )

        offer = Offer(
            buyer_id=actor.id,
            product_id=variation.product_id,
            variation=variation,
            proposed_price=dto.proposed_price,
        )
        offer.add_domain_event(
            OfferCreated(
                aggregate_id=offer.id,
                variation_id=str(variation.id),
                proposed_price=str(dto.proposed_price),
            )
        )
        offer = self._offer_repo.save(offer)
        self._offer_repo.add_message(
            offer,
            actor.id,
            dto.message or f"Proposed {dto.proposed_price}.",
            price=dto.proposed_price,
            is_proposal=True,
        )

        args = _template_args(offer, variation)
        self._notifications.notify_admins(
            NotificationType.NEW_OFFER_REQUEST,
            "notifications.offer.new_request",
            args,
            related_entity=_related(offer),
            out_of_band=True,
        )
        self._notifications.notify(
            [actor.id],
            NotificationType.OFFER_UPDATE,
            "notifications.offer.submitted",
            args,
            related_entity=_related(offer),
        )
        log.info("offer.created", offer_id=str(offer.id), proposed_price=str(dto.proposed_price))
        return offer

    @transaction.atomic
    def add_message(self, offer_id: Any, actor: Actor, dto: OfferMessageDTO) -> Offer:
        """Append to the thread; a priced message from the buyer is a new proposal.

        Raises:
            OfferNotFound: offer missing.
            Forbidden: actor is neither the buyer nor an admin.
            InvalidOfferState: offer is no longer pending.
        """
        offer = self._get_for_update(offer_id)
        actor.require_owner_or_admin(offer.buyer_id)
        self._require_pending(offer, "message")

        self._offer_repo.add_message(
            offer, actor.id, dto.text, price=dto.price, is_proposal=dto.price is not None
        )
        offer.touch()
        offer.save(update_fields=["last_activity", "updated_at"])

        args = {**_template_args(offer, offer.variation), "text": dto.text}
        if actor.owns(offer.buyer_id):
            self._notifications.notify_admins(
                NotificationType.OFFER_UPDATE,
                "notifications.offer.buyer_message",
                args,
                related_entity=_related(offer),
            )
        else:
            self._notifications.notify(
                [offer.buyer_id],
                NotificationType.OFFER_UPDATE,
                "notifications.offer.admin_message",
                args,
                related_entity=_related(offer),
            )
        logger.info(
            "offer.message_added",
            offer_id=str(offer.id),
            sender_id=str(actor.id),
            has_price=dto.price is not None,
        )
        return offer

    @transaction.atomic
    def accept(self, offer_id: Any, dto: AcceptOfferDTO, actor: Actor) -> Offer:
        """Lock ``dto.accepted_price`` on a pending offer.

        The floor is the buyer's latest proposal capped at the live listed
        price.

        Raises:
            Forbidden: actor is not an admin.
            OfferNotFound: offer missing.
            InvalidOfferState: offer is no longer pending.
            PriceBelowFloor: ``accepted_price`` below the floor.
        """
        actor.require_admin()
        offer = self._get_for_update(offer_id)
        self._require_pending(offer, "accept")

        floor = self.floor_price(offer)
        if dto.accepted_price < floor:
            logger.warning(
                "offer.price_below_floor",
                offer_id=str(offer.id),
                accepted_price=str(dto.accepted_price),
                floor=str(floor),
            )
            raise PriceBelowFloor(
                f"Accepted price {dto.accepted_price} is below the floor {floor}.",
                field="accepted_price",
                offer_id=offer.id,
                floor=floor,
            )

        offer.accepted_price = dto.accepted_price
        self._transition(offer, OfferStatus.ACCEPTED)
        self._offer_repo.add_message(
            offer,
            actor.id,
            f"Offer accepted at {dto.accepted_price}.",
            price=dto.accepted_price,
            is_proposal=True,
        )
        self._notifications.notify(
            [offer.buyer_id],
            NotificationType.OFFER_UPDATE,
            "notifications.offer.accepted",
            {**_template_args(offer, offer.variation), "accepted_price": str(dto.accepted_price)},
            related_entity=_related(offer),
        )
        logger.info(
            "offer.accepted",
            offer_id=str(offer.id),
            accepted_price=str(dto.accepted_price),
            admin_id=str(actor.id),
        )
        return offer

    @transaction.atomic
    def reject(self, offer_id: Any, dto: RejectOfferDTO, actor: Actor) -> Offer:
        """Raises: Forbidden, OfferNotFound, InvalidOfferState."""
        actor.require_admin()
        offer = self._get_for_update(offer_id)
        self._require_pending(offer, "reject")

        offer.admin_notes = dto.reason
        self._transition(offer, OfferStatus.REJECTED)
        self._offer_repo.add_message(offer, actor.id, dto.reason)
        self._notifications.notify(
            [offer.buyer_id],
            NotificationType.OFFER_UPDATE,
            "notifications.offer.rejected",
            {**_template_args(offer, offer.variation), "reason": dto.reason},
            related_entity=_related(offer),
        )
        logger.info("offer.rejected", offer_id=str(offer.id), admin_id=str(actor.id))
        return offer

    @transaction.atomic
    def retract(self, offer_id: Any, actor: Actor) -> Offer:
        """Raises: OfferNotFound, NotOfferOwner, InvalidOfferState."""
        offer = self._get_for_update(offer_id)
        self._require_buyer(offer, actor)
        self._require_pending(offer, "retract")

        self._transition(offer, OfferStatus.RETRACTED)
        self._notifications.notify_admins(
            NotificationType.OFFER_UPDATE,
            "notifications.offer.retracted",
            _template_args(offer, offer.variation),
            related_entity=_related(offer),
        )
        logger.info("offer.retracted", offer_id=str(offer.id), buyer_id=str(actor.id))
        return offer

    @transaction.atomic
    def redeem_to_cart(self, offer_id: Any, actor: Actor) -> Offer:
        """Move one unit at the accepted price into the buyer's cart, once.

        Raises:
            OfferNotFound: offer missing.
            NotOfferOwner: actor is not the offer's buyer.
            OfferExpiredOrConsumed: not accepted, or already redeemed.
            VariationUnavailable / InsufficientStock: live re-check failed.
        """
        offer = self._get_for_update(offer_id)
        self._require_buyer(offer, actor)
        if not offer.is_redeemable:
            logger.warning(
                "offer.not_redeemable",
                offer_id=str(offer.id),
                status=offer.status,
                consumed=offer.consumed_at is not None,
            )
            raise OfferExpiredOrConsumed(
                "This offer is not accepted or was already added to the cart.",
                offer_id=offer.id,
            )

        item = self._cart_service.merge_offer_line(
            offer.buyer_id, offer.variation, offer.accepted_price, offer
        )
        offer.consumed_at = timezone.now()
        offer.redeemed_cart_item = item
        offer.touch()
        offer.add_domain_event(OfferRedeemed(aggregate_id=offer.id, cart_item_id=str(item.id)))
        self._offer_repo.save(offer)
        logger.info("offer.redeemed", offer_id=str(offer.id), cart_item_id=str(item.id))
        return offer

    @transaction.atomic
    def expire_stale(self, now: Optional[datetime] = None) -> int:
        """Expire pending offers idle for ``OFFER_EXPIRY_DAYS``; returns the count."""
        now = now or timezone.now()
        cutoff = now - timedelta(days=settings.OFFER_EXPIRY_DAYS)
        expired = 0
        for offer in self._offer_repo.list_stale_for_update(cutoff):
            self._transition(offer, OfferStatus.EXPIRED)
            self._notifications.notify(
                [offer.buyer_id],
                NotificationType.OFFER_UPDATE,
                "notifications.offer.expired",
                {"offer_id": str(offer.id)},
                related_entity=_related(offer),
            )
            expired += 1
        if expired:
            logger.info("offer.expired_stale", count=expired, cutoff=cutoff.isoformat())
        return expired

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get(self, offer_id: Any, actor: Actor) -> Offer:
        offer = self._offer_repo.get_by_id(str(offer_id))
        if not offer:
            raise OfferNotFound(f"Offer {offer_id} not found.", offer_id=offer_id)
        actor.require_owner_or_admin(offer.buyer_id)
        return offer

    def list_for_buyer(self, actor: Actor) -> List[Offer]:
        return self._offer_repo.list({"buyer_id": actor.id})

    def list_all(self, actor: Actor, status: Optional[str] = None) -> List[Offer]:
        actor.require_admin()
        return self._offer_repo.list({"status": status} if status else None)

    def floor_price(self, offer: Offer) -> Decimal:
        proposal = self._offer_repo.latest_buyer_proposal(offer) or offer.proposed_price
        return min(proposal, offer.variation.price)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _get_for_update(self, offer_id: Any) -> Offer:
        offer = self._offer_repo.get_for_update(str(offer_id))
        if not offer:
            logger.warning("offer.not_found", offer_id=str(offer_id))
            raise OfferNotFound(f"Offer {offer_id} not found.", offer_id=offer_id)
        return offer

    def _require_pending(self, offer: Offer, action: str) -> None:
        if offer.status != OfferStatus.PENDING:
            logger.warning(
                "offer.invalid_state", offer_id=str(offer.id), status=offer.status, action=action
            )
            raise InvalidOfferState(
                f"Cannot {action} an offer that is {offer.status}.",
                offer_id=offer.id,
                status=offer.status,
            )

    def _require_buyer(self, offer: Offer, actor: Actor) -> None:
        if not actor.owns(offer.buyer_id):
            logger.warning("offer.not_owner", offer_id=str(offer.id), actor_id=str(actor.id))
            raise NotOfferOwner("Only the buyer who made this offer may do this.", offer_id=offer.id)

    def _transition(self, offer: Offer, new_status: str) -> None:
        old_status = offer.status
        offer.status = new_status
        offer.touch()
        offer.add_domain_event(
            OfferStatusChanged(
                aggregate_id=offer.id,
                old_status=old_status,
                new_status=new_status,
                accepted_price=str(offer.accepted_price) if offer.accepted_price else None,
            )
        )
        self._offer_repo.save(offer)


def _template_args(offer: Offer, variation: ProductVariation) -> dict:
    return {
        "offer_id": str(offer.id),
        "sku": variation.sku,
        "proposed_price": str(offer.proposed_price),
    }


def _related(offer: Offer) -> dict:
    return {"id": offer.id, "type": RelatedEntity.OFFER}
