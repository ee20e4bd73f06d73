
import random
import threading
import time
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from twinadapter.core.adapter_base import AbstractPhysicalAdapter
from twinadapter.core.capabilities import CONTENT_TYPE_DOUBLE, CONTENT_TYPE_TEXT, CapabilityBuilder
from twinadapter.core.errors import PublishError
from twinadapter.core.event_bus import EventBus
from twinadapter.core.schemas import ActionDescriptor, ActionRequest, CapabilityDescriptor

TEMPERATURE_PROPERTY_KEY = "temperature-property-key"
OVERHEATING_EVENT_KEY = "overheating-event-key"
SET_TEMPERATURE_ACTION_KEY = "set-temperature-action-key"
SET_TEMPERATURE_ACTION_TYPE = "temperature.actuation"
INSIDE_IN_RELATIONSHIP = "insideIn"

OVERHEATING_NORMAL = "normal"
OVERHEATING_CRITICAL = "critical"


class RelationshipTarget(BaseModel):
    target: str
    metadata: Dict[str, Any] = Field(default_factory=dict)


class DemoAdapterSettings(BaseModel):
    model_config = ConfigDict(extra='forbid')

    announce_delay: float = Field(5.0, ge=0)
    emulation_delay: float = Field(10.0, ge=0)
    update_interval: float = Field(1.0, ge=0)
    update_count: int = Field(10, ge=0)
    temperature_min: float = 20.0
    temperature_max: float = 30.0
    seed: Optional[int] = None
    wait_for_announcement: bool = True
    announcement_timeout: Optional[float] = Field(None, gt=0)
    announcement_poll: float = Field(0.05, gt=0)
    relationship_instances: List[RelationshipTarget] = Field(default_factory=list)

    @model_validator(mode='after')
    def _check_range(self):
        if self.temperature_min > self.temperature_max:
            raise ValueError(
                f"temperature_min {self.temperature_min} is above temperature_max {self.temperature_max}"
            )
        return self


def build_capabilities() -> CapabilityDescriptor:
    builder = CapabilityBuilder()
    builder.add_property(TEMPERATURE_PROPERTY_KEY, 0.0)
    builder.add_event(OVERHEATING_EVENT_KEY, CONTENT_TYPE_TEXT)
    builder.add_action(SET_TEMPERATURE_ACTION_KEY, SET_TEMPERATURE_ACTION_TYPE, CONTENT_TYPE_DOUBLE)
    builder.add_relationship(INSIDE_IN_RELATIONSHIP)
    return builder.build()


class DemoPhysicalAdapter(AbstractPhysicalAdapter):
    """Emulated temperature sensor.

    After a boot delay the adapter announces its capabilities, then streams
    update_count random temperature samples framed by a 'normal' and a
    'critical' overheating event.
    """

    def __init__(self, adapter_id: str, bus: EventBus, kind: str = 'demo',
                 join_timeout: Optional[float] = None, **params):
        super().__init__(adapter_id, bus, kind=kind, join_timeout=join_timeout)
        self.settings = DemoAdapterSettings(**params)
        self.rng = random.Random(self.settings.seed)
        self.requested_temperature: Optional[float] = None
        self._announcement_done = threading.Event()

    def tasks(self):
        return {
            'announcement': self.publish_capabilities,
            'emulation': self.emulate_device,
        }

    def sample_temperature(self) -> float:
        return self.rng.uniform(self.settings.temperature_min, self.settings.temperature_max)

    def on_action(self, request: ActionRequest, action: ActionDescriptor) -> None:
        if action.key == SET_TEMPERATURE_ACTION_KEY:
            self.requested_temperature = request.body

    # ---------------------------------------------------------------- tasks

    def publish_capabilities(self):
        try:
            self._publish_capabilities()
        finally:
            self._announcement_done.set()

    def _publish_capabilities(self):
        self.logger.info("Sleeping %.1fs before publishing capabilities ...", self.settings.announce_delay)
        if not self.sleep(self.settings.announce_delay):
            return

        self.logger.info("Publishing capabilities ...")
        descriptor = build_capabilities()
        try:
            self.notify_bound(descriptor)
        except PublishError as e:
            self.logger.error("Capability announcement failed, not retrying: %s", e)
            return
        self.relationship.set(descriptor.relationship(INSIDE_IN_RELATIONSHIP))

        for rel in self.settings.relationship_instances:
            if self.stopping:
                return
            try:
                self.create_relationship_instance(rel.target, rel.metadata)
            except PublishError as e:
                self.logger.error("Relationship instance towards %s not published: %s", rel.target, e)

    def emulate_device(self):
        s = self.settings
        self.logger.info("Sleeping %.1fs before starting device emulation ...", s.emulation_delay)
        if not self.sleep(s.emulation_delay):
            return
        if s.wait_for_announcement and not self._await_announcement():
            return

        self.logger.info("Starting device emulation ...")
        self._publish_overheating(OVERHEATING_NORMAL)

        for i in range(s.update_count):
            if not self.sleep(s.update_interval):
                self.logger.info("Emulation stopped after %d of %d samples", i, s.update_count)
                return
            value = self.sample_temperature()
            try:
                self.bus.publish_property(TEMPERATURE_PROPERTY_KEY, value)
            except PublishError as e:
                # a lost sample is skipped, the run goes on
                self.logger.error("Temperature sample %d not published: %s", i + 1, e)

        self._publish_overheating(OVERHEATING_CRITICAL)
        self.logger.info("Device emulation finished")

    def _publish_overheating(self, body: str) -> None:
        try:
            self.bus.publish_device_event(OVERHEATING_EVENT_KEY, body)
        except PublishError as e:
            self.logger.error("Overheating event '%s' not published: %s", body, e)

    def _await_announcement(self) -> bool:
        timeout = self.settings.announcement_timeout
        deadline = None if timeout is None else time.monotonic() + timeout
        while not self._announcement_done.is_set():
            if deadline is not None and time.monotonic() >= deadline:
                self.logger.warning("Capabilities not announced within %.1fs, skipping emulation", timeout)
                return False
            if not self.sleep(self.settings.announcement_poll):
                return False
        if not self.bound:
            self.logger.warning("Capabilities were never announced, skipping emulation")
            return False
        return True
