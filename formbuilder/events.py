"""Event system for the FormBuilder core.

Every state-changing builder mutation emits a typed BuilderEvent. Events are
kept by the builder store as an append-only audit trail for the editing
session and can be forwarded to listeners through an EventEmitter.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional
import json
import logging

from dateutil.parser import isoparse

from .types import EventType

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BuilderEvent:
    """A single event in a builder session.

    Attributes:
        event_id: Unique event identifier (e.g., "evt_01H8...")
        type: Event type from EventType enum
        ts: UTC timestamp when the event occurred
        field_count: Number of fields on the canvas after this event
        payload: Optional event-specific data (field id, patch keys, form id, ...)

    Examples:
        >>> from datetime import datetime, timezone
        >>> event = BuilderEvent(
        ...     event_id="evt_001",
        ...     type=EventType.FIELD_ADDED,
        ...     ts=datetime.now(timezone.utc),
        ...     field_count=1,
        ...     payload={"fieldId": "fld_001", "fieldType": "text"},
        ... )
        >>> event.type.value
        'field.added'
    """
    event_id: str
    type: EventType
    ts: datetime
    field_count: int
    payload: Optional[Dict[str, Any]] = None

    def __post_init__(self):
        if isinstance(self.type, str):
            object.__setattr__(self, "type", EventType(self.type))

    def to_dict(self) -> Dict[str, Any]:
        """Convert event to dictionary for serialization.

        Returns:
            Dictionary with all event fields, suitable for JSON serialization.
            Timestamp is formatted as ISO 8601 string.
        """
        result: Dict[str, Any] = {
            "eventId": self.event_id,
            "type": self.type.value,
            "ts": self.ts.isoformat(),
            "fieldCount": self.field_count,
        }
        if self.payload is not None:
            result["payload"] = self.payload
        return result

    def to_jsonl(self) -> str:
        """Convert event to a single-line JSON string."""
        return json.dumps(self.to_dict(), separators=(',', ':'))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BuilderEvent":
        """Create BuilderEvent from dictionary (camelCase keys)."""
        return cls(
            event_id=data["eventId"],
            type=EventType(data["type"]),
            ts=isoparse(data["ts"]),
            field_count=data["fieldCount"],
            payload=data.get("payload"),
        )


EventListener = Callable[[BuilderEvent], None]
"""Type alias for event listener callbacks.

Listeners are called synchronously when events are emitted.
"""


class EventEmitter:
    """Dispatches builder events to subscribed listeners.

    - Type-specific subscriptions (listen to specific event types)
    - Wildcard subscriptions (listen to all events)
    - Synchronous dispatch in registration order
    - Error isolation: a failing listener is logged and skipped

    Examples:
        >>> emitter = EventEmitter()
        >>> seen = []
        >>> emitter.on(EventType.FORM_PUBLISHED, seen.append)
        >>> emitter.listener_count()
        1
    """

    def __init__(self):
        self._listeners: Dict[EventType, List[EventListener]] = {}
        self._any_listeners: List[EventListener] = []

    def on(self, event_type: EventType, listener: EventListener) -> None:
        """Subscribe to a specific event type."""
        self._listeners.setdefault(event_type, []).append(listener)

    def on_any(self, listener: EventListener) -> None:
        """Subscribe to all event types."""
        self._any_listeners.append(listener)

    def off(self, event_type: EventType, listener: EventListener) -> None:
        """Unsubscribe from a specific event type. Unknown listeners are ignored."""
        listeners = self._listeners.get(event_type, [])
        if listener in listeners:
            listeners.remove(listener)

    def off_any(self, listener: EventListener) -> None:
        """Unsubscribe from the wildcard subscription. Unknown listeners are ignored."""
        if listener in self._any_listeners:
            self._any_listeners.remove(listener)

    def emit(self, event: BuilderEvent) -> None:
        """Dispatch an event to type-specific listeners, then wildcard listeners.

        A listener that raises is logged with its traceback; the remaining
        listeners still run and the exception does not reach the caller.
        """
        for listener in list(self._listeners.get(event.type, [])) + list(self._any_listeners):
            try:
                listener(event)
            except Exception:
                logger.warning(
                    "Listener %r failed for event %s (%s)",
                    listener,
                    event.event_id,
                    event.type.value,
                    exc_info=True,
                )

    def clear(self) -> None:
        """Remove all event listeners."""
        self._listeners.clear()
        self._any_listeners.clear()

    def listener_count(self, event_type: Optional[EventType] = None) -> int:
        """Count registered listeners.

        Args:
            event_type: If provided, count listeners for this type only.
                        If None, count all listeners (including wildcard).
        """
        if event_type is not None:
            return len(self._listeners.get(event_type, []))
        return len(self._any_listeners) + sum(len(l) for l in self._listeners.values())


__all__ = [
    "BuilderEvent",
    "EventListener",
    "EventEmitter",
]
