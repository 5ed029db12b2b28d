"""Applies document lifecycle events to the vector index."""

import logging
import time

from docqa.models.event import DocumentEvent
from docqa.monitoring.metrics import event_errors_total
from docqa.services.database import DatabaseService
from docqa.services.ingestion import IngestionPipeline

logger = logging.getLogger(__name__)


class EventProcessor:
    """Turns upload and removal events into ingest and remove calls."""

    def __init__(self, database: DatabaseService, pipeline: IngestionPipeline) -> None:
        """
        Initialize event processor.

        Args:
            database: Read-only document store, used to load uploaded documents.
            pipeline: Ingestion pipeline.
        """
        self.database = database
        self.pipeline = pipeline

    async def process_event(self, event_data: dict) -> None:
        """
        Process one document event.

        Events without a document id, or for documents that no longer exist,
        are skipped.

        Args:
            event_data: Event body.

        Raises:
            VectorDBError: If removing a document's vectors fails.
            DatabaseError: If the document store cannot be read.
        """
        event = DocumentEvent.from_payload(event_data)
        if event is None:
            logger.warning(f"Skipping event without document id: {event_data}")
            return

        try:
            if event.is_delete:
                await self.pipeline.remove(event.document_id)
                logger.info(f"Removed vectors of document {event.document_id}")
            elif event.is_upsert:
                await self._index(event)
            else:
                logger.warning(f"Unknown operation {event.op!r} for document {event.document_id}")
        except Exception:
            event_errors_total.inc()
            raise

    async def _index(self, event: DocumentEvent) -> None:
        document = await self.database.get_document(event.document_id)
        if document is None:
            logger.warning(f"Document {event.document_id} no longer exists, skipping")
            return

        stored = await self.pipeline.ingest(document)
        lag = time.time() - event.get_timestamp().timestamp()
        logger.info(
            f"Indexed document {document.id} ({document.file_name}) "
            f"with {stored} chunks, lag: {lag:.2f}s"
        )
