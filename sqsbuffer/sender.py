"""Sender logic."""

import json
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, validate_call

from sqsbuffer.clients.base import MAX_BATCH_SIZE, QueueClient
from sqsbuffer.clients.sqs import SQSClient
from sqsbuffer.exceptions import ConfigurationError, InvalidMessage
from sqsbuffer.logger import logger

OutgoingMessage = str | bytes | dict[str, Any] | BaseModel


class Sender:
    def __init__(
        self,
        queue_url: str | None = None,
        *,
        batch_size: int = MAX_BATCH_SIZE,
        client: QueueClient | None = None,
        region_name: str | None = None,
        endpoint_url: str | None = None,
    ) -> None:
        if not queue_url:
            raise ConfigurationError("Missing required option [queue_url].")

        if isinstance(batch_size, bool) or not isinstance(batch_size, int):
            raise ConfigurationError(f"Invalid SQS [batch_size] ({batch_size}). Must be an integer.")

        if batch_size < 1 or batch_size > MAX_BATCH_SIZE:
            raise ConfigurationError(
                f"SQS batch size must be between 1 and {MAX_BATCH_SIZE}. [{batch_size}] specified."
            )

        self.queue_url = queue_url
        self.batch_size = batch_size
        self.client = client or SQSClient(region_name=region_name, endpoint_url=endpoint_url)

    @staticmethod
    def message_id() -> str:
        return str(uuid4())

    async def send(self, messages: OutgoingMessage | list[OutgoingMessage]) -> dict[str, Any]:
        """Sends one message, or a list of up to ``batch_size`` messages, in one call.

        A message is either its body (``str``, ``bytes`` or a pydantic model) or a
        dict with a ``body`` and, optionally, an ``id`` and ``message_attributes``.

        Returns:
            The send batch response, with its ``Successful`` and ``Failed`` entries.
        """
        batch = messages if isinstance(messages, list) else [messages]
        if not batch:
            raise InvalidMessage("No message supplied to be sent.")

        if len(batch) > self.batch_size:
            raise InvalidMessage(f"Message batch must not be greater than {self.batch_size}.")

        entries = [self._format_message(message) for message in batch]
        logger.debug(f"Sending [{len(entries)}] messages ...")
        try:
            return await self.client.send_batch(self.queue_url, entries)
        except Exception:
            logger.exception("Sender failure", stacklevel=5)
            raise

    @validate_call(config=ConfigDict(strict=True))
    def create_string_attribute(self, value: str) -> dict[str, str]:
        return self._message_attribute("String", value)

    @validate_call(config=ConfigDict(strict=True))
    def create_binary_attribute(self, value: bytes) -> dict[str, Any]:
        return self._message_attribute("Binary", value)

    def _message_attribute(self, data_type: str, value: Any) -> dict[str, Any]:
        return {"DataType": data_type, f"{data_type}Value": value}

    def _format_message(self, message: OutgoingMessage) -> dict[str, Any]:
        if isinstance(message, dict):
            return self._format_object_message(message)

        if isinstance(message, str | bytes | BaseModel):
            return {"Id": self.message_id(), "MessageBody": self._serialize_body(message)}

        raise InvalidMessage(
            f"Message type must be str, bytes, dict or BaseModel, [{type(message).__name__}] given."
        )

    def _format_object_message(self, message: dict[str, Any]) -> dict[str, Any]:
        if not message.get("body"):
            raise InvalidMessage('Object message must include "body" property.')

        entry: dict[str, Any] = {
            "Id": message.get("id") or self.message_id(),
            "MessageBody": self._serialize_body(message["body"]),
        }

        attributes = message.get("message_attributes")
        if attributes is not None:
            if not isinstance(attributes, dict):
                raise InvalidMessage("message.message_attributes must be a dict.")

            entry["MessageAttributes"] = attributes

        return entry

    def _serialize_body(self, body: Any) -> str:
        if isinstance(body, str):
            return body

        if isinstance(body, bytes):
            return body.decode(encoding="utf-8")

        if isinstance(body, dict | list):
            return json.dumps(body, indent=None, separators=(",", ":"))

        if isinstance(body, BaseModel):
            return body.model_dump_json(indent=None)

        raise InvalidMessage(
            f"The message body {body!r} is not serializable. "
            "Please send as one of the following formats: BaseModel, dict, list, str or bytes."
        )
