from collections.abc import Sequence
from typing import Any

import aioboto3

from sqsbuffer.logger import logger


class SQSClient:
    """Amazon SQS access through aioboto3.

    The region is explicit: nothing here falls back to a default region.
    """

    def __init__(self, region_name: str | None = None, endpoint_url: str | None = None) -> None:
        self.region_name = region_name
        self.endpoint_url = endpoint_url
        self.session = aioboto3.Session()

    def _client(self) -> Any:
        return self.session.client(
            "sqs", region_name=self.region_name, endpoint_url=self.endpoint_url
        )

    async def receive(
        self,
        queue_url: str,
        *,
        max_messages: int,
        wait_time_seconds: int | None = None,
        visibility_timeout: int | None = None,
        attribute_names: Sequence[str] = (),
        message_attribute_names: Sequence[str] = (),
    ) -> list[dict[str, Any]]:
        params: dict[str, Any] = {
            "QueueUrl": queue_url,
            "MaxNumberOfMessages": max_messages,
            "AttributeNames": list(attribute_names),
            "MessageAttributeNames": list(message_attribute_names),
        }
        if wait_time_seconds is not None:
            params["WaitTimeSeconds"] = wait_time_seconds

        if visibility_timeout is not None:
            params["VisibilityTimeout"] = visibility_timeout

        async with self._client() as client:
            response = await client.receive_message(**params)

        messages: list[dict[str, Any]] = response.get("Messages", [])
        logger.debug(f"Received {len(messages)} message(s) from {queue_url}")
        return messages

    async def delete_one(self, queue_url: str, receipt_handle: str) -> None:
        async with self._client() as client:
            await client.delete_message(QueueUrl=queue_url, ReceiptHandle=receipt_handle)

        logger.debug(f"Deleted one message from {queue_url}")

    async def delete_batch(
        self, queue_url: str, entries: Sequence[dict[str, str]]
    ) -> list[dict[str, Any]]:
        async with self._client() as client:
            response = await client.delete_message_batch(QueueUrl=queue_url, Entries=list(entries))

        failed: list[dict[str, Any]] = response.get("Failed", [])
        logger.debug(
            f"Deleted {len(entries) - len(failed)} of {len(entries)} messages from {queue_url}"
        )
        return failed

    async def send_batch(
        self, queue_url: str, entries: Sequence[dict[str, Any]]
    ) -> dict[str, Any]:
        async with self._client() as client:
            response: dict[str, Any] = await client.send_message_batch(
                QueueUrl=queue_url, Entries=list(entries)
            )

        logger.debug(f"Sent {len(entries)} message(s) to {queue_url}")
        return response
