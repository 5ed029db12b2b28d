"""Dead letter topic for document events the ingest service gave up on."""

import json
import logging
import time
from typing import Optional

from aiokafka import AIOKafkaProducer

from docqa.core.config import settings
from docqa.core.exceptions import DLQError
from docqa.models.event import DocumentEvent

logger = logging.getLogger(__name__)


def _document_key(event_data: dict) -> Optional[bytes]:
    try:
        event = DocumentEvent.from_payload(event_data)
    except (TypeError, ValueError, AttributeError):
        return None
    return str(event.document_id).encode("utf-8") if event is not None else None


class DLQService:
    """Parks failed document events so they can be replayed later.

    Messages are keyed by document id, so every failure for one document
    lands on the same partition of the dead letter topic in order.
    """

    def __init__(self) -> None:
        self.producer: Optional[AIOKafkaProducer] = None
        self.enabled = settings.dlq_enabled

    async def connect(self) -> None:
        """Start the Kafka producer when dead-lettering is enabled."""
        if not self.enabled:
            return

        producer = AIOKafkaProducer(
            bootstrap_servers=settings.kafka_bootstrap_servers,
            value_serializer=lambda v: json.dumps(v, default=str).encode("utf-8"),
        )
        try:
            await producer.start()
        except Exception as e:
            raise DLQError(f"Cannot start dead letter producer: {str(e)}") from e
        self.producer = producer
        logger.info(f"Dead letter topic ready: {settings.dlq_topic}")

    async def disconnect(self) -> None:
        if self.producer:
            await self.producer.stop()
            self.producer = None

    async def send_failed_event(
        self,
        event_data: dict,
        error: Exception,
        offset: Optional[int] = None,
        partition: Optional[int] = None,
    ) -> None:
        """
        Publish a failed document event with the reason it failed.

        Args:
            event_data: The event as received (after envelope unwrapping).
            error: Exception raised while processing it.
            offset: Offset of the source message.
            partition: Partition of the source message.

        Raises:
            DLQError: If the dead letter message cannot be written.
        """
        if self.producer is None:
            logger.warning(
                f"Dropping failed document event at offset {offset}: dead letter topic disabled")
            return

        record = {
            "event": event_data,
            "error_type": type(error).__name__,
            "error": str(error),
            "source": {
                "topic": settings.kafka_topic_documents,
                "partition": partition,
                "offset": offset,
            },
            "failed_at": time.time(),
        }
        try:
            await self.producer.send_and_wait(
                settings.dlq_topic, value=record, key=_document_key(event_data))
        except Exception as e:
            raise DLQError(f"Cannot write to dead letter topic: {str(e)}") from e

        logger.info(
            f"Dead-lettered document event at offset {offset}: "
            f"{record['error_type']}: {record['error'][:100]}"
        )
