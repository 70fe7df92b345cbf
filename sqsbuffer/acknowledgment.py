"""Deletes processed messages from the queue on behalf of the application."""

from collections.abc import Callable, Sequence

from anyio import create_task_group

from sqsbuffer.classifier import ErrorClassifier
from sqsbuffer.clients.base import MAX_BATCH_SIZE, QueueClient
from sqsbuffer.datastructures import Message
from sqsbuffer.events import MESSAGE_PROCESSED_EVENT, EventEmitter
from sqsbuffer.exceptions import AckError, ProcessingError, SQSBufferException
from sqsbuffer.logger import logger
from sqsbuffer.types import Acknowledgeable


class Acknowledger:
    """Handles the ``ack`` callable given to the message receiver.

    Whatever happens, polling is resumed once the acknowledgment is over: a failed
    delete only means the queue will deliver the message again after its
    visibility timeout.
    """

    def __init__(
        self,
        client: QueueClient,
        queue_url: str,
        events: EventEmitter,
        resume: Callable[[], None],
        classifier: ErrorClassifier | None = None,
    ) -> None:
        self.client = client
        self.queue_url = queue_url
        self.events = events
        self.resume = resume
        self.classifier = classifier or ErrorClassifier()

    async def acknowledge(self, messages: Acknowledgeable = None) -> None:
        """Deletes the messages, or reports the failure the application passed in.

        Args:
            messages: A message, a list of messages, or the exception that
                prevented the application from processing them.
        """
        try:
            await self._acknowledge(messages)
        finally:
            self.resume()

    async def _acknowledge(self, messages: Acknowledgeable) -> None:
        if isinstance(messages, BaseException):
            self._report(self.classifier.classify_processing_error(messages))
            return

        if messages is None or (isinstance(messages, (list, tuple)) and not messages):
            self._report(ProcessingError("No message supplied to be deleted"))
            return

        try:
            if isinstance(messages, Message):
                await self._delete_one(messages)
            elif len(messages) == 1:
                await self._delete_one(messages[0])
            else:
                await self._delete_batch(messages)
        except Exception as e:
            self._report(self.classifier.classify_ack_error(e))
            return

        logger.debug("Message processed.")
        self.events.emit(MESSAGE_PROCESSED_EVENT, messages)

    async def _delete_one(self, message: Message) -> None:
        logger.debug(f"Deleting message {message.id}.")
        await self.client.delete_one(self.queue_url, message.receipt_handle)

    async def _delete_batch(self, messages: Sequence[Message]) -> None:
        chunks = [
            list(messages[start : start + MAX_BATCH_SIZE])
            for start in range(0, len(messages), MAX_BATCH_SIZE)
        ]
        logger.debug(f"Deleting {len(messages)} messages in {len(chunks)} batch(es).")

        failures: list[AckError] = []
        async with create_task_group() as tg:
            for chunk in chunks:
                tg.start_soon(self._delete_chunk, chunk, failures)

        if failures:
            raise failures[0]

    async def _delete_chunk(self, chunk: list[Message], failures: list[AckError]) -> None:
        entries = [{"Id": message.id, "ReceiptHandle": message.receipt_handle} for message in chunk]
        try:
            failed_entries = await self.client.delete_batch(self.queue_url, entries)
        except Exception as e:
            failures.append(self.classifier.classify_ack_error(e))
            return

        if failed_entries:
            failures.append(
                AckError(f"SQS delete message batch failed with errors: {failed_entries}")
            )

    def _report(self, error: SQSBufferException) -> None:
        channel = self.classifier.channel_for(error)
        logger.warning(f"{error}", exc_info=error.cause)
        self.events.emit(channel, error)
