
import importlib
import logging
import yaml
from typing import Dict, List, Optional
from pathlib import Path
from .adapter_base import AbstractPhysicalAdapter
from .event_bus import InMemoryEventBus
from .schemas import AdapterInfo

logger = logging.getLogger(__name__)


class AdapterManager:
    def __init__(self, bus: Optional[InMemoryEventBus] = None):
        self.bus = bus or InMemoryEventBus()
        self.adapters: Dict[str, AbstractPhysicalAdapter] = {}

    def load_from_config(self, cfg_path: Path):
        cfg = yaml.safe_load(Path(cfg_path).read_text()) or {}
        for entry in cfg.get('adapters', []):
            module = entry['module']
            class_name = entry['class']
            adapter_id = entry['id']
            kind = entry.get('kind', adapter_id)
            params = entry.get('params') or {}
            mod = importlib.import_module(module)
            cls = getattr(mod, class_name)
            adapter: AbstractPhysicalAdapter = cls(adapter_id=adapter_id, bus=self.bus, kind=kind, **params)
            self.register(adapter)

    def register(self, adapter: AbstractPhysicalAdapter):
        if adapter.adapter_id in self.adapters:
            raise ValueError(f"adapter {adapter.adapter_id} already registered")
        self.adapters[adapter.adapter_id] = adapter
        logger.info("Registered adapter %s (%s)", adapter.adapter_id, adapter.__class__.__name__)
        adapter.on_adapter_start()

    def get(self, adapter_id: str) -> Optional[AbstractPhysicalAdapter]:
        return self.adapters.get(adapter_id)

    def list(self) -> List[AdapterInfo]:
        return [
            AdapterInfo(id=a.adapter_id, kind=a.kind, state=a.state.value, bound=a.bound)
            for a in self.adapters.values()
        ]

    def stop_all(self):
        for a in list(self.adapters.values()):
            a.on_adapter_stop()
        self.adapters.clear()

manager = AdapterManager()
