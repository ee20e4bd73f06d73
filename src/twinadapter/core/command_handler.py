
import logging
from typing import Callable, Optional

from .capabilities import body_matches
from .errors import ValidationError
from .schemas import ActionDescriptor, ActionRequest, CapabilityDescriptor
from .utils import SetOnce

ActionCallback = Callable[[ActionRequest, ActionDescriptor], None]


class CommandHandler:
    """Validates inbound action requests against the announced actions.

    on_incoming_action never raises: rejected requests are logged and dropped so
    the caller's dispatch loop keeps running.
    """

    def __init__(
        self,
        capabilities: SetOnce[CapabilityDescriptor],
        on_action: Optional[ActionCallback] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.capabilities = capabilities
        self.on_action = on_action
        self.logger = logger or logging.getLogger(__name__)
        self.latest: Optional[ActionRequest] = None

    def validate(self, request: Optional[ActionRequest]) -> ActionDescriptor:
        if request is None:
            raise ValidationError("empty action request")
        descriptor = self.capabilities.peek()
        if descriptor is None:
            raise ValidationError("no actions announced yet", key=request.key)
        action = descriptor.action(request.key)
        if action is None:
            raise ValidationError(f"unknown action '{request.key}'", key=request.key)
        if not body_matches(action.content_type, request.body):
            raise ValidationError(
                f"body {type(request.body).__name__} does not match {action.content_type}",
                key=request.key,
            )
        return action

    def on_incoming_action(self, request: Optional[ActionRequest]) -> bool:
        try:
            action = self.validate(request)
        except ValidationError as e:
            self.logger.warning("Wrong action received: %s", e)
            return False

        self.latest = request
        self.logger.info("Received action request %s with body %r", request.key, request.body)
        if self.on_action:
            try:
                self.on_action(request, action)
            except Exception:
                self.logger.exception("Action callback failed for %s", request.key)
        return True
