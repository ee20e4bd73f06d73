
from typing import Optional


class AdapterError(Exception):
    """Base class for every error raised by a physical adapter."""


class ValidationError(AdapterError):
    """Inbound request or capability declaration is malformed."""

    def __init__(self, message: str, key: Optional[str] = None):
        super().__init__(message)
        self.key = key


class PublishError(AdapterError):
    """The event bus could not accept a message (transport or serialization failure)."""

    def __init__(self, message: str, topic: Optional[str] = None):
        super().__init__(message)
        self.topic = topic


class LifecycleError(AdapterError):
    """Operation called in the wrong adapter state."""
