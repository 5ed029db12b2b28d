"""Kafka consumer feeding document events to the event processor."""

import json
import logging
from typing import Any, Optional

from aiokafka import AIOKafkaConsumer

from docqa.core.config import settings
from docqa.core.exceptions import DLQError
from docqa.services.dlq import DLQService
from docqa.services.event_processor import EventProcessor

logger = logging.getLogger(__name__)


def unwrap_event(value: Any) -> Optional[dict]:
    """
    Extract the event body from a Kafka message value.

    Connect-style envelopes carry the row under "payload"; plain events are
    used as they are.

    Args:
        value: Deserialized message value.

    Returns:
        Event dict, or None when the message carries nothing usable.
    """
    if isinstance(value, dict) and "payload" in value:
        value = value["payload"]
    if not isinstance(value, dict):
        return None
    return value


class DocumentEventConsumer:
    """Consumes the document topic until cancelled."""

    def __init__(
        self,
        processor: EventProcessor,
        dlq_service: DLQService,
        group_id: str = "docqa-ingest",
    ) -> None:
        self.processor = processor
        self.dlq_service = dlq_service
        self.group_id = group_id

    async def handle(self, value: Any, offset: int = None, partition: int = None) -> None:
        """
        Process one message value, dead-lettering it on failure.

        Args:
            value: Deserialized message value.
            offset: Message offset, for logging and the dead letter record.
            partition: Message partition.
        """
        event_data = unwrap_event(value)
        if event_data is None:
            logger.warning(f"Skipping message at offset {offset}: not a document event")
            return

        try:
            await self.processor.process_event(event_data)
        except Exception as e:
            logger.error(f"Document event at offset {offset} failed: {str(e)}")
            try:
                await self.dlq_service.send_failed_event(
                    event_data=event_data, error=e, offset=offset, partition=partition)
            except DLQError as dlq_error:
                logger.error(str(dlq_error))

    async def run(self) -> None:
        """Consume the document topic."""
        consumer = AIOKafkaConsumer(
            settings.kafka_topic_documents,
            bootstrap_servers=settings.kafka_bootstrap_servers,
            value_deserializer=lambda m: json.loads(m.decode("utf-8")) if m else None,
            auto_offset_reset="earliest",
            enable_auto_commit=True,
            group_id=self.group_id,
        )

        await consumer.start()
        logger.info(f"Consuming document events from {settings.kafka_topic_documents}")
        try:
            async for message in consumer:
                await self.handle(message.value, message.offset, message.partition)
        finally:
            await consumer.stop()
