"""The SQS receiver: polls a queue and hands the messages to the application."""

import inspect
from collections.abc import Sequence
from contextlib import AbstractAsyncContextManager, nullcontext
from typing import Any

import anyio
from anyio import create_task_group
from anyio.abc import TaskGroup
from anyio.lowlevel import checkpoint

from sqsbuffer.acknowledgment import Acknowledger
from sqsbuffer.buffers.base import Buffer
from sqsbuffer.buffers.memory import MemoryBuffer
from sqsbuffer.classifier import ErrorClassifier
from sqsbuffer.clients.base import MAX_BATCH_SIZE, QueueClient
from sqsbuffer.clients.sqs import SQSClient
from sqsbuffer.datastructures import BufferPolicy, Message, ReceivePolicy
from sqsbuffer.events import (
    FLUSH_EVENT,
    MESSAGE_RECEIVED_EVENT,
    STOPPED_EVENT,
    EventEmitter,
)
from sqsbuffer.exceptions import AuthenticationError, ConfigurationError, SQSBufferException
from sqsbuffer.logger import logger
from sqsbuffer.types import Acknowledgeable, MessageReceiver

REQUIRED_OPTIONS = ("queue_url", "message_receiver")

DEFAULT_AUTHENTICATION_ERROR_TIMEOUT = 10000
DEFAULT_BUFFER_TIMEOUT = 10000


class Receiver(EventEmitter):
    """Long-polls an SQS queue and delivers the messages to ``message_receiver``.

    The receiver is called as ``await message_receiver(messages, ack)`` and must
    call ``await ack(messages)`` once it is done, or ``await ack(error)`` when it
    could not process them. With ``buffer_size`` set, the received messages are
    gathered into batches of up to ``buffer_size`` messages (or whatever arrived
    within ``buffer_timeout`` milliseconds) before being delivered.

    Each batch is delivered in its own task: the next receive never waits for the
    application nor for the delete calls of its acknowledgment.

    Every runtime failure is reported through the notifications below and never
    stops the polling:

    - ``error``: authentication, receive and delete failures.
    - ``message:received``: the messages of a successful receive.
    - ``processing:error``: the application could not process the messages.
    - ``message:processed``: the messages were deleted from the queue.
    - ``flush``: the buffer emitted a batch.
    - ``stopped``: a poll was attempted after ``stop()``.
    """

    def __init__(
        self,
        queue_url: str | None = None,
        message_receiver: MessageReceiver | None = None,
        *,
        batch_size: int = 1,
        wait_time_seconds: int | None = None,
        visibility_timeout: int | None = None,
        attribute_names: Sequence[str] | None = None,
        message_attribute_names: Sequence[str] | None = None,
        authentication_error_timeout: int = DEFAULT_AUTHENTICATION_ERROR_TIMEOUT,
        buffer_size: int | None = None,
        buffer_timeout: int = DEFAULT_BUFFER_TIMEOUT,
        buffer: Buffer | None = None,
        client: QueueClient | None = None,
        region_name: str | None = None,
        endpoint_url: str | None = None,
    ) -> None:
        super().__init__()
        self._validate(
            queue_url=queue_url,
            message_receiver=message_receiver,
            batch_size=batch_size,
            buffer_size=buffer_size,
            authentication_error_timeout=authentication_error_timeout,
        )

        self.queue_url: str = queue_url  # type: ignore[assignment]
        self.message_receiver: MessageReceiver = message_receiver  # type: ignore[assignment]
        self.receive_policy = ReceivePolicy(
            batch_size=batch_size,
            wait_time_seconds=wait_time_seconds,
            visibility_timeout=visibility_timeout,
            attribute_names=tuple(attribute_names or ()),
            message_attribute_names=tuple(message_attribute_names or ()),
            authentication_error_timeout=authentication_error_timeout,
        )

        self.client = client or SQSClient(region_name=region_name, endpoint_url=endpoint_url)
        self.classifier = ErrorClassifier()
        self.acknowledger = Acknowledger(
            client=self.client,
            queue_url=self.queue_url,
            events=self,
            resume=self._resume_polling,
            classifier=self.classifier,
        )

        self.buffer_policy: BufferPolicy | None = None
        self.buffer: Buffer | None = None
        if buffer_size:
            self.buffer_policy = BufferPolicy(buffer_size=buffer_size, buffer_timeout=buffer_timeout)
            self.buffer = buffer or MemoryBuffer.from_policy(self.buffer_policy)
        elif buffer is not None:
            self.buffer = buffer

        if self.buffer is not None:
            self.buffer.on(FLUSH_EVENT, self._on_flush)

        self.stopped = True
        self.running = False
        self.ready = False
        self._task_group: TaskGroup | None = None

    @staticmethod
    def _validate(
        *,
        queue_url: str | None,
        message_receiver: MessageReceiver | None,
        batch_size: int,
        buffer_size: int | None,
        authentication_error_timeout: int,
    ) -> None:
        options: dict[str, Any] = {"queue_url": queue_url, "message_receiver": message_receiver}
        for option in REQUIRED_OPTIONS:
            if not options[option]:
                raise ConfigurationError(f"Missing required option [{option}].")

        if not inspect.iscoroutinefunction(message_receiver):
            raise ConfigurationError(
                f"The [message_receiver] must be an async function but it is {message_receiver}."
            )

        if isinstance(batch_size, bool) or not isinstance(batch_size, int):
            raise ConfigurationError(f"Invalid SQS [batch_size] ({batch_size}). Must be an integer.")

        if batch_size < 1 or batch_size > MAX_BATCH_SIZE:
            raise ConfigurationError(
                f"Invalid SQS [batch_size]. Must be between 1 and {MAX_BATCH_SIZE}."
            )

        if buffer_size is not None and (
            isinstance(buffer_size, bool)
            or not isinstance(buffer_size, int)
            or buffer_size <= batch_size
        ):
            raise ConfigurationError("Invalid SQS [buffer_size]. Must be greater than [batch_size].")

        if authentication_error_timeout < 0:
            raise ConfigurationError(
                "Invalid [authentication_error_timeout]. Must not be negative."
            )

    async def start(self) -> None:
        """Polls the queue until ``stop()`` is called.

        Returns once the poll loop is over and every batch it dispatched, including
        the ones still buffered, has been delivered and acknowledged.
        """
        if not self.stopped or self._task_group is not None:
            logger.debug("The receiver is already running.")
            return

        logger.info(f"Starting SQS receiver for {self.queue_url}")
        self.stopped = False

        with logger.contextualize(queue_url=self.queue_url):
            try:
                async with create_task_group() as tg:
                    self._task_group = tg
                    async with self._buffer_scope():
                        await self._poll_loop()
            finally:
                self._task_group = None

        logger.info(f"The SQS receiver for {self.queue_url} has shutdown.")

    def stop(self) -> None:
        """Stops polling once the receive in flight, if any, is over."""
        logger.info("Stopping SQS receiver...")
        self.stopped = True

    def task_alive(self) -> bool:
        return self.running

    def task_ready(self) -> bool:
        return self.ready

    def _buffer_scope(self) -> AbstractAsyncContextManager[Any]:
        if isinstance(self.buffer, AbstractAsyncContextManager):
            return self.buffer
        return nullcontext()

    async def _poll_loop(self) -> None:
        self.running = True
        try:
            while not self.stopped:
                await self._poll()
                # Buffer timers and acknowledgments run between two polls.
                await checkpoint()
        finally:
            self.running = False
            self.ready = False

        logger.debug("The poll loop is over.")
        self.emit(STOPPED_EVENT)

    async def _poll(self) -> None:
        logger.debug("Polling messages...")
        policy = self.receive_policy
        try:
            received_messages = await self.client.receive(
                self.queue_url,
                max_messages=policy.batch_size,
                wait_time_seconds=policy.wait_time_seconds,
                visibility_timeout=policy.visibility_timeout,
                attribute_names=policy.attribute_names,
                message_attribute_names=policy.message_attribute_names,
            )
            messages = [self._deserialize_message(message) for message in received_messages]
        except Exception as e:
            await self._on_receive_error(e)
            return

        self.ready = True
        if messages:
            self._dispatch(messages)

    def _deserialize_message(self, received_message: dict[str, Any]) -> Message:
        return Message(
            id=received_message["MessageId"],
            receipt_handle=received_message["ReceiptHandle"],
            body=received_message.get("Body", ""),
            attributes=dict(received_message.get("Attributes", {})),
            message_attributes=dict(received_message.get("MessageAttributes", {})),
        )

    def _dispatch(self, messages: list[Message]) -> None:
        logger.debug(f"Received {len(messages)} message(s).")
        self.emit(MESSAGE_RECEIVED_EVENT, messages)

        if self.buffer is not None:
            self.buffer.add(messages)
            return

        self._start_processing(messages)

    def _on_flush(self, messages: list[Message]) -> None:
        logger.debug(f"Flush event received with {len(messages)} message(s).")
        self.emit(FLUSH_EVENT, messages)
        self._start_processing(messages)

    def _start_processing(self, messages: list[Message]) -> None:
        if self._task_group is None:
            raise SQSBufferException("Messages were dispatched while the receiver was not running.")

        self._task_group.start_soon(self._process, messages)

    async def _process(self, messages: list[Message]) -> None:
        acknowledged = False

        async def ack(result: Acknowledgeable = None) -> None:
            nonlocal acknowledged
            acknowledged = True
            await self.acknowledger.acknowledge(result)

        with logger.contextualize(message_count=len(messages)):
            try:
                await self.message_receiver(messages, ack)
            except Exception as e:
                if acknowledged:
                    logger.exception("The message receiver failed after acknowledging.")
                    return

                await self.acknowledger.acknowledge(e)

    async def _on_receive_error(self, exception: Exception) -> None:
        self.ready = False
        error = self.classifier.classify_receive_error(exception)

        if isinstance(error, AuthenticationError):
            delay = self.receive_policy.authentication_error_timeout / 1000
            logger.warning(f"SQS authentication error. Retry in: {delay} seconds.", exc_info=error)
            self.emit(self.classifier.channel_for(error), error)
            await anyio.sleep(delay)
            return

        logger.warning(f"SQS receive error: {exception}", exc_info=error)
        self.emit(self.classifier.channel_for(error), error)

    def _resume_polling(self) -> None:
        # While running, the poll loop is already waiting on the next receive.
        if self.stopped:
            self.emit(STOPPED_EVENT)
