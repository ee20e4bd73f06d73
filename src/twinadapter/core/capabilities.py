
from typing import Any, Dict, List, Tuple

from .errors import ValidationError
from .schemas import (
    ActionDescriptor,
    CapabilityDescriptor,
    EventDescriptor,
    PropertyDescriptor,
    RelationshipDescriptor,
)

CONTENT_TYPE_TEXT = 'text/plain'
CONTENT_TYPE_DOUBLE = 'application/x-double'
CONTENT_TYPE_INTEGER = 'application/x-integer'
CONTENT_TYPE_JSON = 'application/json'

# python types accepted as a body for each declared content type
BODY_TYPES: Dict[str, Tuple[type, ...]] = {
    CONTENT_TYPE_TEXT: (str,),
    CONTENT_TYPE_DOUBLE: (float,),
    CONTENT_TYPE_INTEGER: (int,),
    CONTENT_TYPE_JSON: (dict, list),
}


def body_matches(content_type: str, body: Any) -> bool:
    expected = BODY_TYPES.get(content_type)
    if expected is None or body is None:
        return False
    if isinstance(body, bool):
        return False
    return isinstance(body, expected)


class CapabilityBuilder:
    """Collects capability declarations and produces a frozen CapabilityDescriptor.

    Keys must be unique within each category; adding a duplicate raises
    ValidationError immediately so a broken declaration never reaches the bus.
    """

    def __init__(self):
        self._properties: List[PropertyDescriptor] = []
        self._events: List[EventDescriptor] = []
        self._actions: List[ActionDescriptor] = []
        self._relationships: List[RelationshipDescriptor] = []

    @staticmethod
    def _check_unique(category: str, existing, key: str) -> None:
        if not key:
            raise ValidationError(f"empty {category} key")
        if any(key == k for k in existing):
            raise ValidationError(f"duplicate {category} key '{key}'", key=key)

    def add_property(self, key: str, initial_value: Any = None) -> PropertyDescriptor:
        self._check_unique('property', (p.key for p in self._properties), key)
        desc = PropertyDescriptor(key=key, initial_value=initial_value)
        self._properties.append(desc)
        return desc

    def add_event(self, key: str, content_type: str) -> EventDescriptor:
        self._check_unique('event', (e.key for e in self._events), key)
        desc = EventDescriptor(key=key, content_type=content_type)
        self._events.append(desc)
        return desc

    def add_action(self, key: str, action_type: str, content_type: str) -> ActionDescriptor:
        self._check_unique('action', (a.key for a in self._actions), key)
        if content_type not in BODY_TYPES:
            raise ValidationError(f"unsupported content type '{content_type}' for action '{key}'", key=key)
        desc = ActionDescriptor(key=key, action_type=action_type, content_type=content_type)
        self._actions.append(desc)
        return desc

    def add_relationship(self, name: str) -> RelationshipDescriptor:
        self._check_unique('relationship', (r.name for r in self._relationships), name)
        desc = RelationshipDescriptor(name=name)
        self._relationships.append(desc)
        return desc

    def build(self) -> CapabilityDescriptor:
        return CapabilityDescriptor(
            properties=tuple(self._properties),
            events=tuple(self._events),
            actions=tuple(self._actions),
            relationships=tuple(self._relationships),
        )
