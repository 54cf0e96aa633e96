"""Status-change notifications for dependent views (e.g. the pending badge)."""

import inspect
import logging
from typing import Awaitable, Callable, Union

from rx_workflow.schemas.workspace import StatusChange

logger = logging.getLogger(__name__)

Listener = Callable[[StatusChange], Union[None, Awaitable[None]]]


class StatusEvents:
    """Observer list notified after every confirmed dispatch or advance."""

    def __init__(self):
        self._listeners: list[Listener] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a sync or async listener; returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def publish(self, change: StatusChange) -> None:
        """
        Call every listener in subscription order.

        The status change has already happened on the server, so a failing
        listener is logged and does not stop the others.
        """
        logger.debug(
            "Status changed: prescription=%s status=%s",
            change.prescription_id,
            change.status.value,
        )
        for listener in list(self._listeners):
            try:
                result = listener(change)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception("Status listener %r failed", listener)
