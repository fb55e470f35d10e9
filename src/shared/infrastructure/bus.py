"""Process-local event bus used by the outbox dispatcher."""

from __future__ import annotations

from typing import Dict, List, Type

import structlog

from shared.domain.bus import IEventBus, IEventHandler
from shared.domain.events import DomainEvent

logger = structlog.get_logger(__name__)


class InMemoryEventBus(IEventBus):
    """Exact-type dispatch: a handler for a base class never sees subclasses.

    Subscribing the same handler twice is a no-op, so ``AppConfig.ready``
    may run more than once without duplicating deliveries.
    """

    def __init__(self) -> None:
        self._subscribers: Dict[Type[DomainEvent], List[IEventHandler]] = {}

    def subscribe(self, event_class: Type[DomainEvent], handler: IEventHandler) -> None:
        registered = self._subscribers.setdefault(event_class, [])
        if handler in registered:
            return
        registered.append(handler)
        logger.debug(
            "event_bus.subscribed",
            event_class=event_class.__name__,
            handler=type(handler).__name__,
        )

    def handlers_for(self, event_class: Type[DomainEvent]) -> List[IEventHandler]:
        return list(self._subscribers.get(event_class, []))

    def publish(self, event: DomainEvent) -> int:
        handlers = self.handlers_for(type(event))
        if not handlers:
            logger.debug("event_bus.no_subscribers", event_name=event.event_name)
        for handler in handlers:
            handler.handle(event)
        return len(handlers)


event_bus = InMemoryEventBus()
