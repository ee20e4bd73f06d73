
import time

import pytest

from twinadapter.core.event_bus import InMemoryEventBus


@pytest.fixture
def bus():
    return InMemoryEventBus()


@pytest.fixture
def wait_for():
    def _wait(predicate, timeout: float = 5.0, interval: float = 0.01):
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            if predicate():
                return True
            time.sleep(interval)
        return predicate()
    return _wait
