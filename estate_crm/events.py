"""Typed change notifications between CRM services and their consumers."""
from __future__ import annotations

import enum
import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

LOGGER = logging.getLogger(__name__)


class Topic(str, enum.Enum):
    LEADS = "leads"
    CONTACTS = "contacts"
    PROPERTIES = "properties"
    ACTIVITIES = "activities"
    CALENDAR = "calendar"


@dataclass(frozen=True)
class EntityChanged:
    """Published after a successful write so subscribers can refresh."""

    topic: Topic
    action: str
    entity_id: Optional[str] = None
    payload: Dict[str, Any] = field(default_factory=dict)


Subscriber = Callable[[EntityChanged], None]


class EventBus:
    """In-process publish/subscribe keyed by :class:`Topic`."""

    def __init__(self) -> None:
        self._subscribers: Dict[Topic, List[Subscriber]] = {}
        self._lock = threading.Lock()

    def subscribe(self, topic: Topic, callback: Subscriber) -> Callable[[], None]:
        """Register ``callback`` for ``topic`` and return a function that removes it."""

        with self._lock:
            self._subscribers.setdefault(topic, []).append(callback)

        def unsubscribe() -> None:
            with self._lock:
                callbacks = self._subscribers.get(topic, [])
                if callback in callbacks:
                    callbacks.remove(callback)

        return unsubscribe

    def publish(self, event: EntityChanged) -> int:
        """Deliver ``event`` to every subscriber of its topic; return how many ran cleanly."""

        with self._lock:
            callbacks = list(self._subscribers.get(event.topic, []))

        delivered = 0
        for callback in callbacks:
            try:
                callback(event)
                delivered += 1
            except Exception:
                LOGGER.exception("Subscriber %r failed for %s/%s", callback, event.topic.value, event.action)
        return delivered

    def subscriber_count(self, topic: Topic) -> int:
        with self._lock:
            return len(self._subscribers.get(topic, []))


def publish(bus: Optional[EventBus], topic: Topic, action: str, entity_id: Optional[str] = None, **payload: Any) -> None:
    """Publish on ``bus`` when one was injected; services may run without a bus."""

    if bus is None:
        return
    bus.publish(EntityChanged(topic=topic, action=action, entity_id=entity_id, payload=payload))


__all__ = ["EntityChanged", "EventBus", "Subscriber", "Topic", "publish"]
