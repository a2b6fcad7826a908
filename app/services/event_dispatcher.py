"""
Event dispatcher for decoupled side effects.

Services emit an event once their transaction has committed; subscribers
(notifications today) react without the service knowing about them.

Usage in services:
    from app.services.event_dispatcher import emit_event, EventType

    await emit_event(EventType.QUOTE_APPROVED, {
        "quote_id": quote.id,
        "quote_number": quote.quote_number,
        ...
    }, company_id=quote.company_id)

A failing subscriber is logged and never propagates back to the emitter.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)


class EventType(str, Enum):
    """Domain events."""
    # Quote events
    QUOTE_APPROVED = "quote.approved"
    QUOTE_REJECTED = "quote.rejected"
    QUOTE_EXPIRED = "quote.expired"
    QUOTE_EXPIRING = "quote.expiring"

    # Project request events
    PROJECT_REQUEST_STATUS_CHANGED = "project_request.status_changed"


@dataclass
class Event:
    """Represents an event to be dispatched."""
    type: EventType
    data: Dict[str, Any]
    timestamp: str = field(default_factory=lambda: datetime.utcnow().isoformat())
    company_id: Optional[str] = None
    target_user_id: Optional[str] = None


EventHandler = Callable[[Event], Any]


class EventDispatcher:
    """
    In-process pub/sub. One instance per process.
    """

    _instance: Optional["EventDispatcher"] = None
    _handlers: Dict[EventType, List[EventHandler]]

    def __new__(cls) -> "EventDispatcher":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._handlers = {}
        return cls._instance

    def subscribe(self, event_type: EventType, handler: EventHandler) -> None:
        """Subscribe to a specific event type."""
        handlers = self._handlers.setdefault(event_type, [])
        if handler not in handlers:
            handlers.append(handler)
        logger.debug(f"Handler subscribed to {event_type.value}")

    def clear(self) -> None:
        """Drop every subscription. Used by tests."""
        self._handlers = {}

    async def emit(self, event: Event) -> None:
        """Emit an event to all subscribers."""
        handlers = list(self._handlers.get(event.type, []))

        if not handlers:
            logger.debug(f"No handlers for event {event.type.value}")
            return

        tasks = []
        for handler in handlers:
            try:
                result = handler(event)
                if asyncio.iscoroutine(result):
                    tasks.append(result)
            except Exception as e:
                logger.error(f"Error in event handler for {event.type.value}: {e}")

        if tasks:
            results = await asyncio.gather(*tasks, return_exceptions=True)
            for outcome in results:
                if isinstance(outcome, Exception):
                    logger.error(f"Error in event handler for {event.type.value}: {outcome}")

        logger.debug(f"Event {event.type.value} dispatched to {len(handlers)} handlers")


_dispatcher = EventDispatcher()


def get_dispatcher() -> EventDispatcher:
    return _dispatcher


async def emit_event(
    event_type: EventType,
    data: Dict[str, Any],
    company_id: Optional[str] = None,
    target_user_id: Optional[str] = None,
) -> None:
    """
    Emit an event to all subscribers.

    Args:
        event_type: Type of event
        data: Event data payload
        company_id: Owning company of the entity the event is about
        target_user_id: Specific user the event concerns, if any
    """
    event = Event(
        type=event_type,
        data=data,
        company_id=company_id,
        target_user_id=target_user_id,
    )
    await _dispatcher.emit(event)


def subscribe(event_type: EventType, handler: EventHandler) -> None:
    _dispatcher.subscribe(event_type, handler)

