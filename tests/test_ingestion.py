"""
Test suite for IngestionPipeline.

Uses an in-memory vector index, a keyword embedder and a stubbed text
extractor. Verifies chunk ordinals, per-chunk failure isolation and the
delete/ingest interplay.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from conftest import KeywordEmbedder
from docqa.core.exceptions import ExtractionError, VectorDBError
from docqa.models.document import DocumentRecord
from docqa.services.chunking import SentenceChunker
from docqa.services.ingestion import IngestionPipeline
from docqa.services.vector_db import VectorDBService

REPORT_SENTENCE = "Each employee receives vacation days according to seniority. "


def _extractor(text: str = None, error: Exception = None) -> MagicMock:
    extractor = MagicMock()
    if error is not None:
        extractor.extract.side_effect = error
    else:
        extractor.extract.return_value = text
    return extractor


def _pipeline(vector_db, embedder, extractor) -> IngestionPipeline:
    return IngestionPipeline(
        vector_db=vector_db,
        embedding_service=embedder,
        extractor=extractor,
        chunker=SentenceChunker(max_chunk_size=1000),
        concurrency=4,
        max_retries=0,
    )


class TestIngest:
    """Test suite for IngestionPipeline.ingest."""

    @pytest.mark.asyncio
    async def test_ingest_should_store_contiguous_chunks(
        self, vector_db: VectorDBService, embedder: KeywordEmbedder, document: DocumentRecord
    ) -> None:
        """Test a ~12,000 character document is stored as ordered chunks."""
        text = REPORT_SENTENCE * 200
        pipeline = _pipeline(vector_db, embedder, _extractor(text))

        stored = await pipeline.ingest(document)

        assert stored >= 11
        assert await vector_db.count_by_document(document.id) == stored
        chunks = await vector_db.nearest_by_document(
            embedder.embed("vacation"), document.id, stored + 5)
        assert sorted(chunk.chunk_index for chunk in chunks) == list(range(stored))
        assert all(len(chunk.content) <= 1000 for chunk in chunks)

    @pytest.mark.asyncio
    async def test_ingest_should_store_metadata_bag(
        self, vector_db: VectorDBService, embedder: KeywordEmbedder, document: DocumentRecord
    ) -> None:
        """Test chunk metadata carries document and category details."""
        pipeline = _pipeline(vector_db, embedder, _extractor("Vacation rules apply."))

        await pipeline.ingest(document)

        chunks = await vector_db.nearest_by_category(
            embedder.embed("vacation"), document.category_id, 5)
        metadata = chunks[0].metadata
        assert metadata["file_name"] == "handbook.pdf"
        assert metadata["category_name"] == "HR"
        assert metadata["content_type"] == "application/pdf"
        assert metadata["file_size"] == 2048
        assert metadata["chunk_index"] == 0
        assert "upload_time" in metadata

    @pytest.mark.asyncio
    async def test_ingest_should_return_zero_for_empty_extraction(
        self, document: DocumentRecord
    ) -> None:
        """Test a document without text stores nothing and does not fail."""
        vector_db = AsyncMock()
        embedder = KeywordEmbedder()
        pipeline = _pipeline(vector_db, embedder, _extractor("   "))

        assert await pipeline.ingest(document) == 0
        vector_db.insert.assert_not_called()
        assert embedder.calls == []

    @pytest.mark.asyncio
    async def test_ingest_should_return_zero_when_extraction_fails(
        self, document: DocumentRecord
    ) -> None:
        """Test extraction errors are recovered locally."""
        vector_db = AsyncMock()
        pipeline = _pipeline(
            vector_db, KeywordEmbedder(), _extractor(error=ExtractionError("corrupt pdf")))

        assert await pipeline.ingest(document) == 0
        vector_db.insert.assert_not_called()

    @pytest.mark.asyncio
    async def test_ingest_should_skip_chunks_that_fail_to_embed(
        self, vector_db: VectorDBService, document: DocumentRecord
    ) -> None:
        """Test one embedding failure leaves sibling chunks stored."""
        text = ("A" * 600 + ". ") + ("FAIL " * 100 + ". ") + ("B" * 600 + ".")
        embedder = KeywordEmbedder(fail_on="FAIL")
        pipeline = _pipeline(vector_db, embedder, _extractor(text))

        stored = await pipeline.ingest(document)

        assert stored == 2
        assert await vector_db.count_by_document(document.id) == 2

    @pytest.mark.asyncio
    async def test_ingest_should_skip_chunks_that_fail_to_store(
        self, embedder: KeywordEmbedder, document: DocumentRecord
    ) -> None:
        """Test one storage failure does not abort the document."""
        vector_db = AsyncMock()

        async def insert(**kwargs):
            if kwargs["chunk_index"] == 1:
                raise VectorDBError("write rejected")

        vector_db.insert.side_effect = insert
        text = ("A" * 600 + ". ") * 3
        pipeline = _pipeline(vector_db, embedder, _extractor(text))

        assert await pipeline.ingest(document) == 2
        assert vector_db.insert.await_count == 3

    @pytest.mark.asyncio
    async def test_ingest_should_isolate_unexpected_chunk_errors(
        self, vector_db: VectorDBService, document: DocumentRecord
    ) -> None:
        """Test an unexpected error in one chunk leaves the others stored and counted."""

        class EmptyReplyEmbedder(KeywordEmbedder):
            async def generate_embeddings(self, texts):
                if any("EMPTY" in text for text in texts):
                    return []
                return await super().generate_embeddings(texts)

        text = (
            "A" * 600 + ". " + "EMPTY " * 100 + ". " + "B" * 600 + ". " + "C" * 600 + "."
        )
        pipeline = _pipeline(vector_db, EmptyReplyEmbedder(), _extractor(text))

        stored = await pipeline.ingest(document)

        assert stored == 3
        assert await vector_db.count_by_document(document.id) == 3

    @pytest.mark.asyncio
    async def test_ingest_should_replace_previous_vectors(
        self, vector_db: VectorDBService, embedder: KeywordEmbedder, document: DocumentRecord
    ) -> None:
        """Test re-ingesting a shorter text leaves no stale chunks."""
        extractor = _extractor(REPORT_SENTENCE * 50)
        pipeline = _pipeline(vector_db, embedder, extractor)
        await pipeline.ingest(document)

        extractor.extract.return_value = "Only one sentence now."
        stored = await pipeline.ingest(document)

        assert stored == 1
        assert await vector_db.count_by_document(document.id) == 1


class TestRemove:
    """Test suite for IngestionPipeline.remove."""

    @pytest.mark.asyncio
    async def test_remove_twice_should_be_a_no_op(
        self, vector_db: VectorDBService, embedder: KeywordEmbedder, document: DocumentRecord
    ) -> None:
        """Test a second removal neither fails nor affects later ingestion."""
        pipeline = _pipeline(vector_db, embedder, _extractor(REPORT_SENTENCE * 30))
        first = await pipeline.ingest(document)

        await pipeline.remove(document.id)
        await pipeline.remove(document.id)
        assert await vector_db.count_by_document(document.id) == 0

        second = await pipeline.ingest(document)
        assert second == first
        assert await vector_db.count_by_document(document.id) == first

    @pytest.mark.asyncio
    async def test_remove_should_propagate_storage_failure(
        self, embedder: KeywordEmbedder
    ) -> None:
        """Test explicit removal surfaces delete errors."""
        vector_db = AsyncMock()
        vector_db.delete_by_document.side_effect = VectorDBError("qdrant down")
        pipeline = _pipeline(vector_db, embedder, _extractor(""))

        with pytest.raises(VectorDBError):
            await pipeline.remove(1)

    @pytest.mark.asyncio
    async def test_remove_racing_ingest_should_leave_nothing_behind(
        self, vector_db: VectorDBService, embedder: KeywordEmbedder, document: DocumentRecord
    ) -> None:
        """Test a removal issued during ingestion deletes everything written."""
        pipeline = _pipeline(vector_db, embedder, _extractor(REPORT_SENTENCE * 100))

        stored, _ = await asyncio.gather(
            pipeline.ingest(document), pipeline.remove(document.id))

        assert stored > 0
        assert await vector_db.count_by_document(document.id) == 0
