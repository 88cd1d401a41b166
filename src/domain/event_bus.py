"""
Event Bus implementation.

Handlers run synchronously in the publishing thread after the unit of work
has committed. A failing handler is logged and never affects the
transaction or the other handlers.
"""

import logging
from typing import Callable, Dict, Iterable, List, Type, Optional

from .events import DomainEvent

logger = logging.getLogger(__name__)

EventHandler = Callable[[DomainEvent], None]


# =============================================================================
# EVENT BUS
# =============================================================================

class EventBus:
    """
    In-process publish/subscribe for domain events.

    Typed handlers receive events of exactly their class; global handlers
    receive everything, after the typed ones.
    """

    def __init__(self):
        self._handlers: Dict[Type[DomainEvent], List[EventHandler]] = {}
        self._global_handlers: List[EventHandler] = []

    def subscribe(self, event_type: Type[DomainEvent], handler: EventHandler) -> None:
        self._handlers.setdefault(event_type, []).append(handler)
        logger.debug(f"Subscribed handler to {event_type.__name__}")

    def subscribe_all(self, handler: EventHandler) -> None:
        self._global_handlers.append(handler)
        logger.debug("Subscribed global handler")

    def unsubscribe(self, event_type: Type[DomainEvent], handler: EventHandler) -> bool:
        """
        Remove a typed handler.

        Returns:
            True if the handler was registered
        """
        try:
            self._handlers.get(event_type, []).remove(handler)
            return True
        except ValueError:
            return False

    def publish(self, event: DomainEvent) -> None:
        handlers = self._handlers.get(type(event), []) + self._global_handlers
        for handler in handlers:
            try:
                handler(event)
            except Exception as e:
                logger.error(
                    f"Error in event handler for {event.event_type.value}: {e}",
                    exc_info=True,
                )

    def publish_all(self, events: Iterable[DomainEvent]) -> int:
        """
        Publish events in order.

        Returns:
            Number of events published
        """
        count = 0
        for event in events:
            self.publish(event)
            count += 1
        return count

    def clear(self) -> None:
        self._handlers.clear()
        self._global_handlers.clear()


# =============================================================================
# LOGGING EVENT HANDLER
# =============================================================================

class LoggingEventHandler:
    """Writes one INFO line per event, for audit trails."""

    def __init__(self, logger_name: str = "domain.events"):
        self._logger = logging.getLogger(logger_name)

    def handle(self, event: DomainEvent) -> None:
        self._logger.info(
            f"Event: {event.event_type.value}",
            extra={
                "event_id": str(event.event_id),
                "event_type": event.event_type.value,
                "aggregate_type": event.aggregate_type,
                "aggregate_id": str(event.aggregate_id) if event.aggregate_id else None,
                "occurred_at": event.occurred_at.isoformat(),
                "performed_by": event.metadata.get("performed_by"),
            }
        )

    __call__ = handle


# =============================================================================
# GLOBAL EVENT BUS INSTANCE
# =============================================================================

_event_bus: Optional[EventBus] = None


def get_event_bus() -> EventBus:
    """Get the process-wide event bus."""
    global _event_bus
    if _event_bus is None:
        _event_bus = EventBus()
    return _event_bus


def publish_event(event: DomainEvent) -> None:
    get_event_bus().publish(event)
