from collections.abc import Awaitable, Callable, Sequence
from typing import Any

from sqsbuffer.datastructures import Message

Acknowledge = Callable[..., Awaitable[None]]
MessageReceiver = Callable[[list[Message], Acknowledge], Awaitable[Any]]

Listener = Callable[..., Any]
Acknowledgeable = Message | Sequence[Message] | BaseException | None
