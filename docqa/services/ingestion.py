"""Ingestion pipeline: extract, chunk, embed and index one document."""

import asyncio
import logging
import time
import weakref
from datetime import datetime
from typing import Optional

from docqa.core.config import settings
from docqa.core.exceptions import EmbeddingError, ExtractionError, VectorDBError
from docqa.models.document import DocumentRecord
from docqa.monitoring.metrics import (
    chunks_ingested_total,
    documents_ingested_total,
    ingestion_duration_seconds,
)
from docqa.services.chunking import build_chunker
from docqa.services.embedding import EmbeddingService
from docqa.services.extraction import TextExtractor
from docqa.services.retry import retry_with_backoff
from docqa.services.vector_db import VectorDBService

logger = logging.getLogger(__name__)


class IngestionPipeline:
    """Turns a stored document into indexed chunks.

    Each chunk is embedded and stored as its own unit of work, so one
    failing chunk never aborts its siblings. Ingesting and removing the same
    document are serialized; a removal racing an ingestion waits for the
    ingestion to finish and then deletes everything it wrote.
    """

    def __init__(
        self,
        vector_db: VectorDBService,
        embedding_service: EmbeddingService,
        extractor: TextExtractor,
        chunker=None,
        concurrency: Optional[int] = None,
        max_retries: Optional[int] = None,
    ) -> None:
        """
        Initialize the ingestion pipeline.

        Args:
            vector_db: Vector database service.
            embedding_service: Embedding generation service.
            extractor: Text extraction service.
            chunker: Chunker exposing split(text); built from settings if omitted.
            concurrency: Maximum chunks embedded at once.
            max_retries: Embedding retries per chunk.
        """
        self.vector_db = vector_db
        self.embedding_service = embedding_service
        self.extractor = extractor
        self.chunker = chunker or build_chunker()
        self.concurrency = concurrency or settings.ingest_concurrency
        self.max_retries = max_retries
        self._locks: "weakref.WeakValueDictionary[int, asyncio.Lock]" = (
            weakref.WeakValueDictionary()
        )

    def _lock_for(self, document_id: int) -> asyncio.Lock:
        lock = self._locks.get(document_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[document_id] = lock
        return lock

    async def ingest(self, document: DocumentRecord) -> int:
        """
        Index a document. Never raises; failures are logged.

        Args:
            document: Document record from the document store.

        Returns:
            Number of chunks stored.
        """
        start_time = time.time()
        documents_ingested_total.inc()
        logger.info(f"Starting vector processing for document: {document.file_name}")

        try:
            async with self._lock_for(document.id):
                stored = await self._ingest(document)
        except Exception as e:
            logger.exception(
                f"Error processing document {document.file_name} to vectors: {str(e)}")
            return 0

        ingestion_duration_seconds.observe(time.time() - start_time)
        return stored

    async def _ingest(self, document: DocumentRecord) -> int:
        try:
            text = await asyncio.to_thread(
                self.extractor.extract, document.file_path, document.content_type
            )
        except ExtractionError as e:
            logger.error(f"Text extraction failed for {document.file_name}: {str(e)}")
            return 0

        if not text or not text.strip():
            logger.warning(f"No content extracted from file: {document.file_name}")
            return 0
        logger.info(
            f"Extracted {len(text)} chars from {document.file_name}: {text[:200]!r}")

        chunks = self.chunker.split(text)
        if not chunks:
            logger.warning(f"No chunks created for document: {document.file_name}")
            return 0

        try:
            await self.vector_db.delete_by_document(document.id)
        except VectorDBError as e:
            logger.error(
                f"Could not clear previous vectors of {document.file_name}: {str(e)}")
            return 0

        semaphore = asyncio.Semaphore(self.concurrency)
        upload_time = datetime.now()
        results = await asyncio.gather(
            *[
                self._store_chunk(document, index, content, upload_time, semaphore)
                for index, content in enumerate(chunks)
            ]
        )
        stored = sum(1 for ok in results if ok)

        logger.info(
            f"Successfully processed {stored} of {len(chunks)} chunks "
            f"for document: {document.file_name}"
        )
        return stored

    async def _store_chunk(
        self,
        document: DocumentRecord,
        index: int,
        content: str,
        upload_time: datetime,
        semaphore: asyncio.Semaphore,
    ) -> bool:
        async with semaphore:
            try:
                async def embed():
                    embeddings = await self.embedding_service.generate_embeddings([content])
                    return embeddings[0]

                embedding = await retry_with_backoff(
                    embed,
                    max_retries=self.max_retries,
                    exceptions=(EmbeddingError,),
                    label=f"embed chunk {index} of document {document.id}",
                )
                now = datetime.now()
                await self.vector_db.insert(
                    document_id=document.id,
                    chunk_index=index,
                    content=content,
                    embedding=embedding,
                    metadata=self.build_metadata(document, index, upload_time),
                    created_at=now,
                    updated_at=now,
                )
            except Exception as e:
                logger.error(
                    f"Failed to process chunk {index} of {document.file_name}: {str(e)}")
                chunks_ingested_total.labels(status="failed").inc()
                return False

        chunks_ingested_total.labels(status="stored").inc()
        return True

    @staticmethod
    def build_metadata(
        document: DocumentRecord, chunk_index: int, upload_time: datetime
    ) -> dict:
        """
        Build the metadata bag stored with a chunk.

        Args:
            document: Owning document.
            chunk_index: Position of the chunk.
            upload_time: Ingestion timestamp.

        Returns:
            Metadata dictionary.
        """
        return {
            "document_id": document.id,
            "file_name": document.file_name,
            "category_id": document.category_id,
            "category_name": document.category_name,
            "content_type": document.content_type,
            "file_size": document.file_size,
            "upload_time": upload_time.isoformat(),
            "chunk_index": chunk_index,
        }

    async def remove(self, document_id: int) -> None:
        """
        Delete every indexed chunk of a document. Idempotent.

        Args:
            document_id: Document whose vectors are removed.

        Raises:
            VectorDBError: If the delete fails.
        """
        async with self._lock_for(document_id):
            await self.vector_db.delete_by_document(document_id)
        logger.info(f"Deleted vectors for document {document_id}")
