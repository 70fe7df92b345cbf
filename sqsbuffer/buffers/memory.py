"""In-memory buffer that batches items by size and by time."""

from types import TracebackType
from typing import Any, Self

import anyio
from anyio import CancelScope, create_task_group
from anyio.abc import TaskGroup

from sqsbuffer.datastructures import BufferPolicy
from sqsbuffer.events import FLUSH_EVENT, EventEmitter
from sqsbuffer.exceptions import ConfigurationError, SQSBufferException
from sqsbuffer.logger import logger


class MemoryBuffer(EventEmitter):
    """Accumulates items and emits them on ``flush``.

    A flush happens as soon as ``buffer_size`` items are stored, or when
    ``buffer_timeout`` milliseconds have passed since the first item landed on the
    empty buffer, whichever comes first. No flush ever carries more than
    ``buffer_size`` items; the overflow of a large ``add`` is carried to the next
    batches in arrival order.

    The timers live in the buffer's own task group, so the buffer must be used as
    an async context manager::

        async with MemoryBuffer(buffer_size=100, buffer_timeout=1000) as buffer:
            buffer.on("flush", handle_batch)
            buffer.add(items)
    """

    def __init__(self, *, buffer_size: int | None = None, buffer_timeout: int | None = None):
        super().__init__()

        for option, value in (("buffer_size", buffer_size), ("buffer_timeout", buffer_timeout)):
            if value is None:
                raise ConfigurationError(f"Missing required option [{option}].")

            if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                raise ConfigurationError(f"Invalid [{option}] ({value}). Must be a positive integer.")

        self.buffer_size: int = buffer_size  # type: ignore[assignment]
        self.buffer_timeout: int = buffer_timeout  # type: ignore[assignment]
        self.items: list[Any] = []

        self._timer: CancelScope | None = None
        self._task_group: TaskGroup | None = None

    @classmethod
    def from_policy(cls, policy: BufferPolicy) -> Self:
        return cls(buffer_size=policy.buffer_size, buffer_timeout=policy.buffer_timeout)

    async def __aenter__(self) -> Self:
        task_group = create_task_group()
        await task_group.__aenter__()
        self._task_group = task_group
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> bool | None:
        task_group = self._task_group
        if task_group is None:
            return None

        try:
            return await task_group.__aexit__(exc_type, exc_value, traceback)
        finally:
            self._task_group = None

    def __len__(self) -> int:
        return len(self.items)

    @property
    def timer_running(self) -> bool:
        return self._timer is not None

    def add(self, items: Any) -> None:
        """Stores one item, or every item of a list or tuple."""
        if self._task_group is None:
            raise SQSBufferException(
                "The buffer is not running. Use it with 'async with' before adding items."
            )

        if not isinstance(items, (list, tuple)):
            self.items.append(items)
            if len(self.items) >= self.buffer_size:
                self._flush()
            else:
                self._start_timer()
            return

        remaining = list(items)
        while remaining:
            available = self.buffer_size - len(self.items)
            self.items.extend(remaining[:available])
            remaining = remaining[available:]

            if len(self.items) >= self.buffer_size:
                self._flush()
            else:
                self._start_timer()

    def _flush(self) -> None:
        self._stop_timer()
        items, self.items = self.items, []

        logger.debug(f"Flushing {len(items)} buffered items.")
        self.emit(FLUSH_EVENT, items)

    def _start_timer(self) -> None:
        if self._timer is not None or self._task_group is None:
            return

        self._timer = CancelScope()
        self._task_group.start_soon(self._flush_on_timeout, self._timer)

    def _stop_timer(self) -> None:
        if self._timer is None:
            return

        self._timer.cancel()
        self._timer = None

    async def _flush_on_timeout(self, scope: CancelScope) -> None:
        with scope:
            await anyio.sleep(self.buffer_timeout / 1000)
            logger.debug(f"The buffer timeout of {self.buffer_timeout}ms expired.")
            self._timer = None
            self._flush()
