"""Django ORM implementation of the Offer repository."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

import structlog
from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import Q

from modules.core.models import OutboxTopic
from modules.core.outbox import record_domain_events
from modules.offers.constants import OfferStatus
from modules.offers.models import Offer, OfferMessage
from modules.offers.repositories.interfaces import IOfferRepository

logger = structlog.get_logger(__name__)


class OfferDjangoRepository(IOfferRepository):
    def get_by_id(self, id: str) -> Optional[Offer]:
        try:
            return (
                Offer.objects.select_related("variation", "product")
                .prefetch_related("messages")
                .filter(id=id)
                .first()
            )
        except (ValueError, ValidationError):
            return None

    def get_for_update(self, id: str) -> Optional[Offer]:
        try:
            return (
                Offer.objects.select_for_update(of=("self",))
                .select_related("variation", "product")
                .filter(id=id)
                .first()
            )
        except (ValueError, ValidationError):
            return None

    def has_active(self, buyer_id: Any, variation_id: Any) -> bool:
        return (
            Offer.objects.filter(buyer_id=buyer_id, variation_id=variation_id)
            .filter(
                Q(status=OfferStatus.PENDING)
                | Q(status=OfferStatus.ACCEPTED, consumed_at__isnull=True)
            )
            .exists()
        )

    @transaction.atomic
    def save(self, entity: Offer) -> Offer:
        """Persist the offer and move its domain events to the outbox."""
        entity.save()
        events = record_domain_events(entity, OutboxTopic.OFFERS)
        logger.info("offer.saved", offer_id=str(entity.id), event_count=len(events))
        return entity

    def add_message(
        self,
        offer: Offer,
        sender_id: Any,
        text: str,
        price: Optional[Decimal] = None,
        is_proposal: bool = False,
    ) -> OfferMessage:
        message = OfferMessage(
            offer=offer,
            sender_id=sender_id,
            text=text,
            price=price,
            is_proposal=is_proposal,
        )
        message.save()
        return message

    def latest_buyer_proposal(self, offer: Offer) -> Optional[Decimal]:
        return (
            OfferMessage.objects.filter(
                offer=offer,
                sender_id=offer.buyer_id,
                is_proposal=True,
                price__isnull=False,
            )
            .order_by("-created_at", "-id")
            .values_list("price", flat=True)
            .first()
        )

    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[Offer]:
        queryset = Offer.objects.select_related("variation", "product").prefetch_related(
            "messages"
        )
        if filters:
            queryset = queryset.filter(**filters)
        return list(queryset)

    def list_stale_for_update(self, cutoff: datetime) -> List[Offer]:
        return list(
            Offer.objects.select_for_update(skip_locked=True)
            .filter(status=OfferStatus.PENDING, last_activity__lt=cutoff)
            .order_by("last_activity")
        )
