
import logging
import threading
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from .command_handler import CommandHandler
from .errors import LifecycleError
from .event_bus import EventBus, EventBusClient
from .schemas import (
    ActionDescriptor,
    ActionRequest,
    CapabilityDescriptor,
    RelationshipDescriptor,
    RelationshipInstance,
)
from .utils import SetOnce


class AdapterState(str, Enum):
    CREATED = 'created'
    STARTED = 'started'
    STOPPED = 'stopped'


class AbstractPhysicalAdapter(ABC):
    """Lifecycle shared by every physical adapter.

    Subclasses return their long running bodies from tasks(); start() runs each
    one on its own thread and stop() signals them through the stop event and
    joins them. Task bodies suspend only through sleep(), which returns False
    once the adapter is stopping.
    """

    def __init__(self, adapter_id: str, bus: EventBus, kind: str = 'physical',
                 join_timeout: Optional[float] = None):
        self.adapter_id = adapter_id
        self.kind = kind
        self.bus = EventBusClient(bus, adapter_id)
        self.logger = logging.getLogger(f"twinadapter.adapters.{self.__class__.__name__}.{adapter_id}")
        self.capabilities: SetOnce[CapabilityDescriptor] = SetOnce('capability descriptor')
        self.relationship: SetOnce[RelationshipDescriptor] = SetOnce('relationship')
        self.commands = CommandHandler(self.capabilities, on_action=self.on_action, logger=self.logger)
        self.state = AdapterState.CREATED
        self.join_timeout = join_timeout
        self._lock = threading.Lock()
        self._threads: List[threading.Thread] = []
        self._stop = threading.Event()

    @property
    def bound(self) -> bool:
        return self.capabilities.is_set()

    @property
    def stopping(self) -> bool:
        return self._stop.is_set()

    def start(self):
        with self._lock:
            if self.state is not AdapterState.CREATED:
                raise LifecycleError(f"adapter {self.adapter_id} cannot start: already {self.state.value}")
            self._threads = [
                threading.Thread(target=self._run_wrapper, args=(name, body),
                                 name=f"{self.adapter_id}-{name}", daemon=True)
                for name, body in self.tasks().items()
            ]
            self.state = AdapterState.STARTED
            for t in self._threads:
                t.start()
        self.logger.info("Adapter started with tasks: %s", ", ".join(t.name for t in self._threads))

    def stop(self):
        with self._lock:
            if self.state is not AdapterState.STARTED:
                return
            self.state = AdapterState.STOPPED
            self._stop.set()
            threads = list(self._threads)
        for t in threads:
            if t is threading.current_thread():
                continue
            t.join(self.join_timeout)
            if t.is_alive():
                self.logger.warning("Task %s still running after %.1fs", t.name, self.join_timeout)
        self.logger.info("Adapter stopped")

    def on_adapter_start(self):
        self.start()

    def on_adapter_stop(self):
        self.stop()

    def sleep(self, seconds: float) -> bool:
        return not self._stop.wait(seconds)

    def notify_bound(self, descriptor: CapabilityDescriptor) -> None:
        """Announce the capability descriptor; the cell is filled only once the bus accepted it."""
        if self.capabilities.is_set():
            raise LifecycleError("capabilities already announced")
        self.bus.announce_capabilities(descriptor)
        self.capabilities.set(descriptor)

    def create_relationship_instance(self, target: str, metadata: Optional[Dict[str, Any]] = None) -> RelationshipInstance:
        relationship = self.relationship.get()
        instance = relationship.create_instance(target, metadata)
        self.bus.publish_relationship_instance(instance)
        self.logger.info("Published relationship instance %s -> %s", relationship.name, target)
        return instance

    def on_incoming_action(self, request: Optional[ActionRequest]) -> bool:
        return self.commands.on_incoming_action(request)

    def on_action(self, request: ActionRequest, action: ActionDescriptor) -> None:
        """Called for every accepted action; actuation is up to subclasses."""

    def _run_wrapper(self, name: str, body: Callable[[], None]):
        try:
            body()
        except Exception:
            self.logger.exception("Task %s crashed", name)
        else:
            self.logger.debug("Task %s finished", name)

    @abstractmethod
    def tasks(self) -> Dict[str, Callable[[], None]]:
        ...
