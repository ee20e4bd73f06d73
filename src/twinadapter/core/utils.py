
import threading
from typing import Generic, Optional, TypeVar

from .errors import LifecycleError

T = TypeVar('T')


class SetOnce(Generic[T]):
    """Cell written exactly once and safely readable from any thread afterwards."""

    def __init__(self, name: str = 'value'):
        self.name = name
        self._lock = threading.Lock()
        self._ready = threading.Event()
        self._value: Optional[T] = None

    def set(self, value: T) -> None:
        with self._lock:
            if self._ready.is_set():
                raise LifecycleError(f"{self.name} already set")
            self._value = value
            self._ready.set()

    def get(self) -> T:
        if not self._ready.is_set():
            raise LifecycleError(f"{self.name} not available yet")
        return self._value

    def peek(self) -> Optional[T]:
        return self._value if self._ready.is_set() else None

    def is_set(self) -> bool:
        return self._ready.is_set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        return self._ready.wait(timeout)
