
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Dict, FrozenSet, List, Literal, Mapping, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PropertyDescriptor(BaseModel):
    model_config = ConfigDict(frozen=True)

    key: str
    initial_value: Any = None


class EventDescriptor(BaseModel):
    model_config = ConfigDict(frozen=True)

    key: str
    content_type: str


class ActionDescriptor(BaseModel):
    model_config = ConfigDict(frozen=True)

    key: str
    action_type: str
    content_type: str


class RelationshipDescriptor(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str

    def create_instance(self, target: str, metadata: Optional[Dict[str, Any]] = None) -> "RelationshipInstance":
        # copy so later changes to the caller's mapping never reach the instance
        return RelationshipInstance(relationship=self, target=target, metadata=dict(metadata or {}))


class RelationshipInstance(BaseModel):
    model_config = ConfigDict(frozen=True)

    relationship: RelationshipDescriptor
    target: str
    metadata: Mapping[str, Any] = Field(default_factory=dict, validate_default=True)

    @field_validator('metadata', mode='after')
    @classmethod
    def _freeze_metadata(cls, value: Mapping[str, Any]) -> Mapping[str, Any]:
        return MappingProxyType(dict(value))

    @field_serializer('metadata')
    def _dump_metadata(self, value: Mapping[str, Any]) -> Dict[str, Any]:
        return dict(value)


class CapabilityDescriptor(BaseModel):
    """Properties, events, actions and relationships exposed by one device instance."""
    model_config = ConfigDict(frozen=True)

    properties: Tuple[PropertyDescriptor, ...] = ()
    events: Tuple[EventDescriptor, ...] = ()
    actions: Tuple[ActionDescriptor, ...] = ()
    relationships: Tuple[RelationshipDescriptor, ...] = ()

    @property
    def property_keys(self) -> FrozenSet[str]:
        return frozenset(p.key for p in self.properties)

    @property
    def event_keys(self) -> FrozenSet[str]:
        return frozenset(e.key for e in self.events)

    def action(self, key: str) -> Optional[ActionDescriptor]:
        return next((a for a in self.actions if a.key == key), None)

    def relationship(self, name: str) -> Optional[RelationshipDescriptor]:
        return next((r for r in self.relationships if r.name == name), None)


class PropertyChanged(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal['property'] = 'property'
    key: str
    value: Any
    timestamp: datetime = Field(default_factory=utcnow)


class DeviceEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal['event'] = 'event'
    key: str
    body: Any = None
    timestamp: datetime = Field(default_factory=utcnow)


class RelationshipInstanceCreated(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal['relationship'] = 'relationship'
    instance: RelationshipInstance
    timestamp: datetime = Field(default_factory=utcnow)


class CapabilitiesAnnounced(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal['capabilities'] = 'capabilities'
    adapter_id: str
    descriptor: CapabilityDescriptor
    timestamp: datetime = Field(default_factory=utcnow)


class ActionRequest(BaseModel):
    """Inbound command targeting a declared action."""
    key: str
    body: Any = None


OutboundEvent = Union[PropertyChanged, DeviceEvent, RelationshipInstanceCreated, CapabilitiesAnnounced]


class AdapterInfo(BaseModel):
    id: str
    kind: str
    state: str
    bound: bool


class ActionResult(BaseModel):
    key: str
    accepted: bool


class RelationshipInstanceRequest(BaseModel):
    target: str
    metadata: Dict[str, Any] = Field(default_factory=dict)


class BusMessage(BaseModel):
    seq: int
    topic: str
    ts: datetime = Field(..., description="UTC timestamp when the message was published")
    payload: Dict[str, Any]


class EventsResponse(BaseModel):
    messages: List[BusMessage]
