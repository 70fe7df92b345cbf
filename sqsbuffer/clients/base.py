from collections.abc import Sequence
from typing import Any, Protocol, runtime_checkable

MAX_BATCH_SIZE = 10


@runtime_checkable
class QueueClient(Protocol):
    """The queue operations the receiver, the acknowledger and the sender rely on."""

    async def receive(
        self,
        queue_url: str,
        *,
        max_messages: int,
        wait_time_seconds: int | None = None,
        visibility_timeout: int | None = None,
        attribute_names: Sequence[str] = (),
        message_attribute_names: Sequence[str] = (),
    ) -> list[dict[str, Any]]: ...

    async def delete_one(self, queue_url: str, receipt_handle: str) -> None: ...

    async def delete_batch(
        self, queue_url: str, entries: Sequence[dict[str, str]]
    ) -> list[dict[str, Any]]: ...

    async def send_batch(
        self, queue_url: str, entries: Sequence[dict[str, Any]]
    ) -> dict[str, Any]: ...
