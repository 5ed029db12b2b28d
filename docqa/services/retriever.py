"""Retriever: embeds a query and fetches the nearest chunks within a scope."""

import logging
from typing import Optional, Sequence

from docqa.models.chunk import RetrievalResult
from docqa.models.scope import CategoryScope, DocumentScope, Scope
from docqa.services.embedding import EmbeddingService
from docqa.services.vector_db import VectorDBService

logger = logging.getLogger(__name__)


class Retriever:
    """Scoped nearest-neighbour retrieval over indexed chunks."""

    def __init__(
        self, vector_db: VectorDBService, embedding_service: EmbeddingService
    ) -> None:
        """
        Initialize the retriever.

        Args:
            vector_db: Vector database service.
            embedding_service: The embedding service used at ingestion time.
        """
        self.vector_db = vector_db
        self.embedding_service = embedding_service

    async def retrieve(
        self,
        query: str,
        scope: Scope,
        top_k: int,
        descendant_ids: Optional[Sequence[int]] = None,
    ) -> RetrievalResult:
        """
        Retrieve the chunks most similar to a query.

        An empty scope yields an empty result.

        Args:
            query: User question.
            scope: Category or document to search.
            top_k: Maximum number of chunks.
            descendant_ids: Sub-categories to include for a category scope.

        Returns:
            Chunks ordered by descending similarity.

        Raises:
            DimensionMismatchError: If the query vector does not fit the index.
        """
        query_embedding = await self.embedding_service.generate_embedding(query)

        if isinstance(scope, CategoryScope):
            chunks = await self.vector_db.nearest_by_category(
                query_embedding, scope.category_id, top_k, descendant_ids or ()
            )
        elif isinstance(scope, DocumentScope):
            chunks = await self.vector_db.nearest_by_document(
                query_embedding, scope.document_id, top_k
            )
        else:
            raise TypeError(f"Unsupported scope: {scope!r}")

        logger.info(f"Retrieved {len(chunks)} chunks for {scope.kind} scope")
        return RetrievalResult(chunks=chunks)
