"""Event bus contracts.

Events reach the bus only through the outbox dispatcher, after the
transaction that recorded them has committed.  A handler that raises makes
the dispatcher mark the outbox row as failed so it is retried later, so
handlers must tolerate seeing the same event more than once.
"""

from __future__ import annotations

from typing import Generic, List, Protocol, Type, TypeVar

from shared.domain.events import DomainEvent

E = TypeVar("E", bound=DomainEvent, contravariant=True)


class IEventHandler(Protocol, Generic[E]):
    def handle(self, event: E) -> None: ...


class IEventBus(Protocol):
    def publish(self, event: DomainEvent) -> int:
        """Deliver ``event`` to its subscribers; returns how many ran."""
        ...

    def subscribe(self, event_class: Type[E], handler: IEventHandler[E]) -> None: ...

    def handlers_for(self, event_class: Type[DomainEvent]) -> List[IEventHandler]: ...
