"""Periodic offer maintenance."""

from __future__ import annotations

import structlog
from celery import shared_task

from modules.core.container import build_offer_service

logger = structlog.get_logger(__name__)


@shared_task(name="offers.expire_stale_offers")
def expire_stale_offers() -> int:
    """Expire pending offers with no activity for ``OFFER_EXPIRY_DAYS``."""
    count = build_offer_service().expire_stale()
    logger.info("offer.expiry_run", expired=count)
    return count
