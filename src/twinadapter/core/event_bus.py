
import fnmatch
import itertools
import logging
import threading
from abc import ABC, abstractmethod
from collections import deque
from datetime import datetime, timezone
from typing import Any, Callable, Deque, Dict, List, Optional, Tuple

from .errors import PublishError
from .schemas import (
    CapabilitiesAnnounced,
    CapabilityDescriptor,
    DeviceEvent,
    OutboundEvent,
    PropertyChanged,
    RelationshipInstance,
    RelationshipInstanceCreated,
)

logger = logging.getLogger(__name__)

Subscriber = Callable[[str, Dict[str, Any]], None]


class EventBus(ABC):
    """Topic based transport the adapters publish on."""

    @abstractmethod
    def publish(self, topic: str, message: Dict[str, Any]) -> None:
        ...

    @abstractmethod
    def subscribe(self, pattern: str, callback: Subscriber) -> int:
        ...

    @abstractmethod
    def unsubscribe(self, token: int) -> None:
        ...


class InMemoryEventBus(EventBus):
    """Process local bus with wildcard subscriptions and a bounded history ring."""

    def __init__(self, ring_size: int = 1024):
        self.ring: Deque[dict] = deque(maxlen=ring_size)
        self._lock = threading.Lock()
        self._subscribers: Dict[int, Tuple[str, Subscriber]] = {}
        self._tokens = itertools.count(1)
        self._seq = 0
        self._closed = False

    @staticmethod
    def matches(topic: str, pattern: str) -> bool:
        return fnmatch.fnmatchcase(topic, pattern)

    @property
    def closed(self) -> bool:
        return self._closed

    def publish(self, topic: str, message: Dict[str, Any]) -> None:
        with self._lock:
            if self._closed:
                raise PublishError("event bus is closed", topic=topic)
            self._seq += 1
            self.ring.append({
                'seq': self._seq,
                'topic': topic,
                'ts': datetime.now(timezone.utc).isoformat(),
                'payload': message,
            })
            targets = [cb for pattern, cb in self._subscribers.values() if self.matches(topic, pattern)]
        for cb in targets:
            try:
                cb(topic, message)
            except Exception:
                logger.exception("Subscriber failed on topic %s", topic)

    def subscribe(self, pattern: str, callback: Subscriber) -> int:
        with self._lock:
            token = next(self._tokens)
            self._subscribers[token] = (pattern, callback)
        return token

    def unsubscribe(self, token: int) -> None:
        with self._lock:
            self._subscribers.pop(token, None)

    def history(self, limit: int = 100, pattern: Optional[str] = None, after_seq: int = 0) -> List[dict]:
        if limit < 0:
            raise ValueError(f"limit must be >= 0, got {limit}")
        with self._lock:
            entries = list(self.ring)
        out = [
            e for e in entries
            if e['seq'] > after_seq and (pattern is None or self.matches(e['topic'], pattern))
        ]
        return out[-limit:] if limit else out

    def close(self) -> None:
        with self._lock:
            self._closed = True
            self._subscribers.clear()


class EventBusClient:
    """Publishes the outbound events of one adapter instance.

    Every call is a single publish on the underlying bus and returns the event
    that was sent. Transport or serialization failures surface as PublishError;
    nothing is retried here. Once capabilities were announced, property, event
    and relationship keys missing from the descriptor are refused the same way.
    """

    def __init__(self, bus: EventBus, adapter_id: str):
        self.bus = bus
        self.adapter_id = adapter_id
        self.descriptor: Optional[CapabilityDescriptor] = None

    def _check_declared(self, category: str, key: str) -> None:
        descriptor = self.descriptor
        if descriptor is None:
            return
        declared = {
            'property': descriptor.property_keys,
            'event': descriptor.event_keys,
            'relationship': frozenset(r.name for r in descriptor.relationships),
        }[category]
        if key not in declared:
            raise PublishError(f"{category} key '{key}' was not announced", topic=self.topic(category, key))

    def topic(self, *parts: str) -> str:
        return '/'.join((self.adapter_id,) + parts)

    def _send(self, topic: str, event: OutboundEvent) -> None:
        try:
            message = event.model_dump(mode='json')
        except (TypeError, ValueError) as e:
            raise PublishError(f"cannot serialize message for {topic}: {e}", topic=topic) from e
        try:
            self.bus.publish(topic, message)
        except PublishError:
            raise
        except Exception as e:
            raise PublishError(f"publish on {topic} failed: {e}", topic=topic) from e

    def publish_property(self, key: str, value: Any) -> PropertyChanged:
        self._check_declared('property', key)
        event = PropertyChanged(key=key, value=value)
        self._send(self.topic('property', key), event)
        return event

    def publish_device_event(self, key: str, body: Any) -> DeviceEvent:
        self._check_declared('event', key)
        event = DeviceEvent(key=key, body=body)
        self._send(self.topic('event', key), event)
        return event

    def publish_relationship_instance(self, instance: RelationshipInstance) -> RelationshipInstanceCreated:
        self._check_declared('relationship', instance.relationship.name)
        event = RelationshipInstanceCreated(instance=instance)
        self._send(self.topic('relationship', instance.relationship.name), event)
        return event

    def announce_capabilities(self, descriptor: CapabilityDescriptor) -> CapabilitiesAnnounced:
        event = CapabilitiesAnnounced(adapter_id=self.adapter_id, descriptor=descriptor)
        self._send(self.topic('capabilities'), event)
        self.descriptor = descriptor
        return event
