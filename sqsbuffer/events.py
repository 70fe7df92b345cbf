"""Notification channel shared by the receiver and the buffers."""

from collections import defaultdict
from typing import Any

from sqsbuffer.logger import logger
from sqsbuffer.types import Listener

ERROR_EVENT = "error"
MESSAGE_RECEIVED_EVENT = "message:received"
PROCESSING_ERROR_EVENT = "processing:error"
MESSAGE_PROCESSED_EVENT = "message:processed"
STOPPED_EVENT = "stopped"
FLUSH_EVENT = "flush"


class EventEmitter:
    """Calls the listeners registered for an event, in registration order."""

    def __init__(self) -> None:
        self._listeners: defaultdict[str, list[Listener]] = defaultdict(list)

    def on(self, event: str, listener: Listener) -> Listener:
        self._listeners[event].append(listener)
        return listener

    def off(self, event: str, listener: Listener) -> None:
        if listener in self._listeners[event]:
            self._listeners[event].remove(listener)

    def listeners(self, event: str) -> list[Listener]:
        return list(self._listeners[event])

    def emit(self, event: str, *args: Any) -> bool:
        """Notifies every listener of the event.

        A failing listener is logged and the remaining listeners are still called.

        Returns:
            True if at least one listener was registered for the event.
        """
        listeners = self.listeners(event)
        for listener in listeners:
            try:
                listener(*args)
            except Exception:
                logger.exception(f"The listener {listener!r} failed on '{event}' event.")

        return bool(listeners)
