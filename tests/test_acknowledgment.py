from unittest.mock import MagicMock

import pytest

from sqsbuffer.acknowledgment import Acknowledger
from sqsbuffer.events import EventEmitter
from sqsbuffer.exceptions import AckError, ProcessingError
from tests.conftest import QUEUE_URL, EventRecorder, FakeQueueClient, message, messages

EVENTS = ("error", "processing:error", "message:processed")


class TestAcknowledger:
    @pytest.fixture
    def events(self) -> EventEmitter:
        return EventEmitter()

    @pytest.fixture
    def recorder(self, events: EventEmitter) -> EventRecorder:
        return EventRecorder(events, *EVENTS)

    @pytest.fixture
    def resume(self) -> MagicMock:
        return MagicMock()

    @pytest.fixture
    def acknowledger(
        self, client: FakeQueueClient, events: EventEmitter, resume: MagicMock
    ) -> Acknowledger:
        return Acknowledger(client=client, queue_url=QUEUE_URL, events=events, resume=resume)

    @pytest.mark.parametrize("malformed", [None, [], ()])
    @pytest.mark.asyncio
    async def test_malformed_acknowledgment(
        self,
        acknowledger: Acknowledger,
        client: FakeQueueClient,
        recorder: EventRecorder,
        resume: MagicMock,
        malformed,
    ):
        await acknowledger.acknowledge(malformed)

        [error] = recorder.payloads("processing:error")
        assert isinstance(error, ProcessingError)
        assert recorder.count("error") == 0
        assert recorder.count("message:processed") == 0
        assert client.deleted == []
        resume.assert_called_once()

    @pytest.mark.asyncio
    async def test_processing_failure_is_not_deleted(
        self,
        acknowledger: Acknowledger,
        client: FakeQueueClient,
        recorder: EventRecorder,
        resume: MagicMock,
    ):
        failure = ValueError("the order does not exist")

        await acknowledger.acknowledge(failure)

        [error] = recorder.payloads("processing:error")
        assert isinstance(error, ProcessingError)
        assert error.cause is failure
        assert recorder.count("error") == 0
        assert recorder.count("message:processed") == 0
        assert client.deleted == []
        assert client.batches == []
        resume.assert_called_once()

    @pytest.mark.asyncio
    async def test_single_message(
        self,
        acknowledger: Acknowledger,
        client: FakeQueueClient,
        recorder: EventRecorder,
        resume: MagicMock,
    ):
        processed = message(1)

        await acknowledger.acknowledge(processed)

        assert client.deleted == ["handle-1"]
        assert client.batches == []
        assert recorder.payloads("message:processed") == [processed]
        resume.assert_called_once()

    @pytest.mark.asyncio
    async def test_one_element_list_uses_single_delete(
        self, acknowledger: Acknowledger, client: FakeQueueClient, recorder: EventRecorder
    ):
        processed = [message(1)]

        await acknowledger.acknowledge(processed)

        assert client.deleted == ["handle-1"]
        assert client.batches == []
        assert recorder.payloads("message:processed") == [processed]

    @pytest.mark.asyncio
    async def test_single_delete_failure(
        self,
        acknowledger: Acknowledger,
        client: FakeQueueClient,
        recorder: EventRecorder,
        resume: MagicMock,
    ):
        client.delete_error = ConnectionError("connection reset by peer")

        await acknowledger.acknowledge(message(1))

        [error] = recorder.payloads("error")
        assert isinstance(error, AckError)
        assert error.cause is client.delete_error
        assert recorder.count("message:processed") == 0
        resume.assert_called_once()

    @pytest.mark.asyncio
    async def test_small_batch(
        self, acknowledger: Acknowledger, client: FakeQueueClient, recorder: EventRecorder
    ):
        processed = messages(2)

        await acknowledger.acknowledge(processed)

        assert client.batches == [
            [
                {"Id": "id-0", "ReceiptHandle": "handle-0"},
                {"Id": "id-1", "ReceiptHandle": "handle-1"},
            ]
        ]
        assert recorder.payloads("message:processed") == [processed]

    @pytest.mark.asyncio
    async def test_large_batch_is_chunked(
        self,
        acknowledger: Acknowledger,
        client: FakeQueueClient,
        recorder: EventRecorder,
        resume: MagicMock,
    ):
        processed = messages(25)

        await acknowledger.acknowledge(processed)

        assert sorted(len(batch) for batch in client.batches) == [5, 10, 10]
        assert [entry["Id"] for entry in client.batches[0]] == [f"id-{i}" for i in range(10)]
        assert sorted(client.deleted) == sorted(f"handle-{i}" for i in range(25))
        assert recorder.payloads("message:processed") == [processed]
        assert recorder.count("error") == 0
        resume.assert_called_once()

    @pytest.mark.asyncio
    async def test_partial_chunk_failure_fails_the_acknowledgment(
        self,
        acknowledger: Acknowledger,
        client: FakeQueueClient,
        recorder: EventRecorder,
        resume: MagicMock,
    ):
        client.failing_batches = {1}

        await acknowledger.acknowledge(messages(30))

        assert len(client.batches) == 3
        [error] = recorder.payloads("error")
        assert isinstance(error, AckError)
        assert "ReceiptHandleIsInvalid" in str(error)
        assert recorder.count("message:processed") == 0
        resume.assert_called_once()

    @pytest.mark.asyncio
    async def test_chunk_call_failure_fails_the_acknowledgment(
        self, acknowledger: Acknowledger, client: FakeQueueClient, recorder: EventRecorder
    ):
        client.raising_batches = {0}

        await acknowledger.acknowledge(messages(11))

        assert len(client.batches) == 2
        [error] = recorder.payloads("error")
        assert isinstance(error, AckError)
        assert isinstance(error.cause, ConnectionError)
        assert recorder.count("message:processed") == 0
