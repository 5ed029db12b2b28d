"""
Test suite for the document event consumer and the dead letter topic.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from docqa.core.exceptions import DLQError, VectorDBError
from docqa.services.dlq import DLQService
from docqa.services.event_consumer import DocumentEventConsumer, unwrap_event


@pytest.fixture
def processor() -> MagicMock:
    processor = MagicMock()
    processor.process_event = AsyncMock()
    return processor


@pytest.fixture
def dlq_service() -> MagicMock:
    dlq = MagicMock()
    dlq.send_failed_event = AsyncMock()
    return dlq


class TestUnwrapEvent:
    """Test suite for unwrap_event."""

    def test_unwrap_should_return_plain_event(self) -> None:
        assert unwrap_event({"op": "c", "document_id": 1}) == {"op": "c", "document_id": 1}

    def test_unwrap_should_open_payload_envelope(self) -> None:
        assert unwrap_event({"schema": {}, "payload": {"__op": "d", "id": 2}}) == {
            "__op": "d", "id": 2}

    @pytest.mark.parametrize("value", [None, "text", [1, 2], {"payload": None}])
    def test_unwrap_should_reject_non_events(self, value) -> None:
        assert unwrap_event(value) is None


class TestDocumentEventConsumer:
    """Test suite for DocumentEventConsumer.handle."""

    @pytest.mark.asyncio
    async def test_handle_should_process_event(
        self, processor: MagicMock, dlq_service: MagicMock
    ) -> None:
        consumer = DocumentEventConsumer(processor, dlq_service)

        await consumer.handle({"payload": {"op": "c", "document_id": 1}}, offset=3)

        processor.process_event.assert_awaited_once_with({"op": "c", "document_id": 1})
        dlq_service.send_failed_event.assert_not_called()

    @pytest.mark.asyncio
    async def test_handle_should_skip_unusable_messages(
        self, processor: MagicMock, dlq_service: MagicMock
    ) -> None:
        consumer = DocumentEventConsumer(processor, dlq_service)

        await consumer.handle(None, offset=4)

        processor.process_event.assert_not_called()

    @pytest.mark.asyncio
    async def test_handle_should_dead_letter_failed_events(
        self, processor: MagicMock, dlq_service: MagicMock
    ) -> None:
        error = VectorDBError("qdrant down")
        processor.process_event.side_effect = error
        consumer = DocumentEventConsumer(processor, dlq_service)

        await consumer.handle({"op": "d", "document_id": 1}, offset=9, partition=0)

        dlq_service.send_failed_event.assert_awaited_once_with(
            event_data={"op": "d", "document_id": 1}, error=error, offset=9, partition=0)

    @pytest.mark.asyncio
    async def test_handle_should_survive_dead_letter_failures(
        self, processor: MagicMock, dlq_service: MagicMock
    ) -> None:
        """Test the consumer keeps running when the dead letter write fails."""
        processor.process_event.side_effect = VectorDBError("qdrant down")
        dlq_service.send_failed_event.side_effect = DLQError("kafka down")
        consumer = DocumentEventConsumer(processor, dlq_service)

        await consumer.handle({"op": "d", "document_id": 1}, offset=9)


class TestDLQService:
    """Test suite for DLQService.send_failed_event."""

    @pytest.mark.asyncio
    async def test_send_should_key_record_by_document(self) -> None:
        dlq = DLQService()
        dlq.producer = MagicMock()
        dlq.producer.send_and_wait = AsyncMock()

        await dlq.send_failed_event(
            {"__op": "u", "id": 12}, VectorDBError("qdrant down"), offset=5, partition=1)

        kwargs = dlq.producer.send_and_wait.await_args.kwargs
        assert kwargs["key"] == b"12"
        assert kwargs["value"]["error_type"] == "VectorDBError"
        assert kwargs["value"]["error"] == "qdrant down"
        assert kwargs["value"]["source"]["offset"] == 5
        assert kwargs["value"]["event"] == {"__op": "u", "id": 12}

    @pytest.mark.asyncio
    async def test_send_should_key_row_image_envelopes_by_document(self) -> None:
        """Test before/after envelopes are keyed by the row id."""
        dlq = DLQService()
        dlq.producer = MagicMock()
        dlq.producer.send_and_wait = AsyncMock()

        await dlq.send_failed_event(
            {"op": "u", "after": {"id": 7}}, VectorDBError("qdrant down"), offset=1)
        await dlq.send_failed_event(
            {"op": "d", "before": {"id": 8}, "after": None}, VectorDBError("qdrant down"))
        await dlq.send_failed_event({"op": "c", "document_id": "abc"}, ValueError("bad id"))

        keys = [call.kwargs["key"] for call in dlq.producer.send_and_wait.await_args_list]
        assert keys == [b"7", b"8", None]

    @pytest.mark.asyncio
    async def test_send_should_drop_when_not_connected(self) -> None:
        dlq = DLQService()

        await dlq.send_failed_event({"op": "c", "document_id": 1}, RuntimeError("x"))

    @pytest.mark.asyncio
    async def test_send_should_raise_when_write_fails(self) -> None:
        dlq = DLQService()
        dlq.producer = MagicMock()
        dlq.producer.send_and_wait = AsyncMock(side_effect=RuntimeError("broker gone"))

        with pytest.raises(DLQError, match="broker gone"):
            await dlq.send_failed_event({"op": "c", "document_id": 1}, RuntimeError("x"))
