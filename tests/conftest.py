from collections.abc import Callable, Sequence
from typing import Any

import anyio
import pytest

from sqsbuffer.datastructures import Message

QUEUE_URL = "https://sqs.eu-west-1.amazonaws.com/123456789012/orders"


def raw_message(index: int) -> dict[str, Any]:
    return {
        "MessageId": f"id-{index}",
        "ReceiptHandle": f"handle-{index}",
        "Body": f"body-{index}",
        "Attributes": {"ApproximateReceiveCount": "1"},
    }


def raw_messages(start: int, count: int) -> list[dict[str, Any]]:
    return [raw_message(index) for index in range(start, start + count)]


def message(index: int) -> Message:
    return Message(id=f"id-{index}", receipt_handle=f"handle-{index}", body=f"body-{index}")


def messages(count: int) -> list[Message]:
    return [message(index) for index in range(count)]


class FakeQueueClient:
    """Replays the given receive responses, then calls ``on_drained`` on each empty poll."""

    def __init__(self, responses: Sequence[Any] = ()) -> None:
        self.responses = list(responses)
        self.on_drained: Callable[[], None] | None = None

        self.receive_calls: list[dict[str, Any]] = []
        self.receive_times: list[float] = []
        self.deleted: list[str] = []
        self.delete_error: Exception | None = None
        self.batches: list[list[dict[str, str]]] = []
        self.failing_batches: set[int] = set()
        self.raising_batches: set[int] = set()
        self.sent: list[list[dict[str, Any]]] = []

    async def receive(self, queue_url: str, **params: Any) -> list[dict[str, Any]]:
        self.receive_calls.append({"queue_url": queue_url, **params})
        self.receive_times.append(anyio.current_time())
        await anyio.sleep(0)

        if not self.responses:
            if self.on_drained:
                self.on_drained()
            return []

        response = self.responses.pop(0)
        if isinstance(response, BaseException):
            raise response
        return response

    async def delete_one(self, queue_url: str, receipt_handle: str) -> None:
        await anyio.sleep(0)
        if self.delete_error:
            raise self.delete_error
        self.deleted.append(receipt_handle)

    async def delete_batch(
        self, queue_url: str, entries: Sequence[dict[str, str]]
    ) -> list[dict[str, Any]]:
        call_index = len(self.batches)
        self.batches.append(list(entries))
        await anyio.sleep(0)

        if call_index in self.raising_batches:
            raise ConnectionError("connection reset by peer")

        if call_index in self.failing_batches:
            return [{"Id": entries[0]["Id"], "Code": "ReceiptHandleIsInvalid", "SenderFault": True}]

        self.deleted.extend(entry["ReceiptHandle"] for entry in entries)
        return []

    async def send_batch(self, queue_url: str, entries: Sequence[dict[str, Any]]) -> dict[str, Any]:
        self.sent.append(list(entries))
        return {"Successful": [{"Id": entry["Id"]} for entry in entries], "Failed": []}


@pytest.fixture
def client() -> FakeQueueClient:
    return FakeQueueClient()


class EventRecorder:
    def __init__(self, emitter: Any, *events: str) -> None:
        self.calls: list[tuple[str, tuple[Any, ...]]] = []
        for event in events:
            emitter.on(event, self._listener(event))

    def _listener(self, event: str) -> Callable[..., None]:
        def record(*args: Any) -> None:
            self.calls.append((event, args))

        return record

    def payloads(self, event: str) -> list[Any]:
        return [args[0] if args else None for name, args in self.calls if name == event]

    def count(self, event: str) -> int:
        return len(self.payloads(event))
