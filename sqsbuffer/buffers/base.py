from typing import Any, Protocol, runtime_checkable

from sqsbuffer.types import Listener


@runtime_checkable
class Buffer(Protocol):
    """What a receiver needs from a buffer.

    Items go in through ``add`` and come out, in arrival order, as the payload of
    ``flush`` notifications. A buffer that is also an async context manager is
    entered for as long as the receiver runs, so it can scope its timers and
    flush what is left on exit.
    """

    def add(self, items: Any) -> None: ...

    def on(self, event: str, listener: Listener) -> Listener: ...
