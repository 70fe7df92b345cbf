from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class Message:
    id: str
    receipt_handle: str
    body: str
    attributes: dict[str, str] = field(default_factory=dict)
    message_attributes: dict[str, Any] = field(default_factory=dict)

    @property
    def receive_count(self) -> int:
        """How many times the queue delivered this message, 0 when not requested."""
        return int(self.attributes.get("ApproximateReceiveCount", 0))


@dataclass(frozen=True)
class ReceivePolicy:
    batch_size: int
    wait_time_seconds: int | None
    visibility_timeout: int | None
    attribute_names: tuple[str, ...]
    message_attribute_names: tuple[str, ...]
    authentication_error_timeout: int


@dataclass(frozen=True)
class BufferPolicy:
    buffer_size: int
    buffer_timeout: int
