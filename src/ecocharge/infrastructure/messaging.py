# File: src/ecocharge/infrastructure/messaging.py
"""
In-process event publishing for the EcoCharge engine

Committed bookings, new reviews and station changes are published as
domain events so that rendering or notification code can react without
the services knowing about it. Delivery is synchronous and in subscription
order.
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Any, Optional, Callable
from dataclasses import dataclass, field, asdict
from datetime import datetime
from enum import Enum
from uuid import UUID, uuid4
import json
import logging


class EventType(str, Enum):
    """Domain event types"""
    BOOKING_CONFIRMED = "booking_confirmed"
    REVIEW_ADDED = "review_added"
    USER_REGISTERED = "user_registered"
    STATION_ADDED = "station_added"
    STATION_REMOVED = "station_removed"
    STATION_STATUS_CHANGED = "station_status_changed"
    CONNECTOR_AVAILABILITY_CHANGED = "connector_availability_changed"


@dataclass
class DomainEvent:
    """Something that happened to an aggregate"""
    event_type: EventType
    aggregate_id: str
    data: Dict[str, Any] = field(default_factory=dict)
    event_id: UUID = field(default_factory=uuid4)
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['event_type'] = self.event_type.value
        data['event_id'] = str(self.event_id)
        data['timestamp'] = self.timestamp.isoformat()
        return data

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), default=str)


class EventHandler(ABC):
    """Abstract base class for event handlers"""

    @abstractmethod
    def handle(self, event: DomainEvent) -> None:
        """Handle a domain event"""
        pass

    def can_handle(self, event: DomainEvent) -> bool:
        """Check if this handler can handle the event"""
        return True


class CallbackHandler(EventHandler):
    """Adapts a plain callable to EventHandler"""

    def __init__(self, callback: Callable[[DomainEvent], None]):
        self.callback = callback

    def handle(self, event: DomainEvent) -> None:
        self.callback(event)


class RecordingHandler(EventHandler):
    """Keeps every event it receives, in order"""

    def __init__(self):
        self.events: List[DomainEvent] = []

    def handle(self, event: DomainEvent) -> None:
        self.events.append(event)


class EventBus:
    """
    In-memory event bus for intra-process event publishing
    A failing handler is logged and its exception propagates to the publisher.
    """

    def __init__(self):
        self._subscribers: Dict[EventType, List[EventHandler]] = {}
        self._logger = logging.getLogger(self.__class__.__name__)

    def subscribe(self, event_type: EventType, handler: EventHandler) -> None:
        """Subscribe to events of a specific type"""
        handlers = self._subscribers.setdefault(event_type, [])
        if handler not in handlers:
            handlers.append(handler)
            self._logger.debug(f"Subscribed {handler.__class__.__name__} to {event_type.value}")

    def unsubscribe(self, event_type: EventType, handler: EventHandler) -> None:
        """Unsubscribe handler from events"""
        handlers = self._subscribers.get(event_type, [])
        if handler in handlers:
            handlers.remove(handler)
            self._logger.debug(f"Unsubscribed {handler.__class__.__name__} from {event_type.value}")

    def publish(self, event: DomainEvent) -> None:
        """Publish an event to all subscribers"""
        self._logger.info(f"Publishing event: {event.event_type.value} (aggregate: {event.aggregate_id})")

        for handler in list(self._subscribers.get(event.event_type, [])):
            if not handler.can_handle(event):
                continue
            try:
                handler.handle(event)
            except Exception as e:
                self._logger.error(
                    f"Error handling event {event.event_type.value} with {handler.__class__.__name__}: {e}"
                )
                raise

    def subscriber_count(self, event_type: Optional[EventType] = None) -> int:
        if event_type is not None:
            return len(self._subscribers.get(event_type, []))
        return sum(len(h) for h in self._subscribers.values())

    def clear_subscribers(self) -> None:
        """Clear all subscribers (for testing)"""
        self._subscribers.clear()
