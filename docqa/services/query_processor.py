"""Query processing: retrieval, synthesis, confidence and source selection."""

import logging
from typing import AsyncIterator, List, Optional, Sequence, Tuple

from docqa.core.config import settings
from docqa.core.exceptions import (
    EmbeddingError,
    ScopeNotFoundError,
    VectorDBError,
)
from docqa.models.chunk import Chunk, RetrievalResult
from docqa.models.document import DocumentRecord, DocumentRef
from docqa.models.response import ContextStyle, SearchResponse, SourceInfo
from docqa.models.scope import CategoryScope, Scope
from docqa.monitoring.metrics import generation_failures_total, retrieved_chunks
from docqa.services.confidence import ConfidenceEstimator
from docqa.services.database import DatabaseService
from docqa.services.disambiguation import DocumentDisambiguator
from docqa.services.retriever import Retriever
from docqa.services.synthesizer import (
    GENERATION_FAILED_MESSAGE,
    NO_INFORMATION_MESSAGE,
    AnswerSynthesizer,
)

logger = logging.getLogger(__name__)

SOURCE_PREVIEW_CHARS = 200


async def _single(message: str) -> AsyncIterator[str]:
    yield message


class QueryProcessor:
    """Answers questions over a category or a single document."""

    def __init__(
        self,
        database: DatabaseService,
        retriever: Retriever,
        synthesizer: AnswerSynthesizer,
        confidence: ConfidenceEstimator,
        disambiguator: DocumentDisambiguator,
    ) -> None:
        """
        Initialize query processor.

        Args:
            database: Read-only document store.
            retriever: Scoped chunk retriever.
            synthesizer: Answer synthesizer.
            confidence: Confidence estimator.
            disambiguator: Primary document selector.
        """
        self.database = database
        self.retriever = retriever
        self.synthesizer = synthesizer
        self.confidence = confidence
        self.disambiguator = disambiguator

    async def _resolve_scope(
        self, scope: Scope
    ) -> Tuple[str, Optional[DocumentRecord], List[int]]:
        """
        Check that the scope exists and describe it.

        Args:
            scope: Category or document scope.

        Returns:
            Tuple of (scope label, document record for document scopes,
            descendant category ids to include).

        Raises:
            ScopeNotFoundError: If the category or document does not exist.
        """
        if isinstance(scope, CategoryScope):
            category = await self.database.get_category(scope.category_id)
            if category is None:
                raise ScopeNotFoundError("category", scope.category_id)
            descendant_ids = []
            if settings.search_subcategories:
                descendant_ids = await self.database.get_descendant_category_ids(
                    category.id)
            return f"documents in category '{category.name}'", None, descendant_ids

        document = await self.database.get_document(scope.document_id)
        if document is None:
            raise ScopeNotFoundError("document", scope.document_id)
        return f"document '{document.file_name}'", document, []

    @staticmethod
    def _truncate(content: str, max_length: int = SOURCE_PREVIEW_CHARS) -> str:
        if len(content) <= max_length:
            return content
        return content[:max_length] + "..."

    def build_sources(self, chunks: Sequence[Chunk]) -> List[SourceInfo]:
        """
        Build citations for the chunks used in an answer.

        Args:
            chunks: Retrieved chunks.

        Returns:
            Source citations in rank order.
        """
        return [
            SourceInfo(
                document_id=chunk.document_id,
                file_name=chunk.file_name,
                chunk_index=chunk.chunk_index,
                content=self._truncate(chunk.content),
            )
            for chunk in chunks
        ]

    async def search_chunks(
        self, query: str, scope: Scope, top_k: int
    ) -> RetrievalResult:
        """
        Return the chunks most similar to a query without generating an answer.

        Args:
            query: User question.
            scope: Category or document scope.
            top_k: Maximum number of chunks.

        Returns:
            Retrieval result.
        """
        _, _, descendant_ids = await self._resolve_scope(scope)
        return await self.retriever.retrieve(query, scope, top_k, descendant_ids)

    async def _retrieve_or_none(
        self, query: str, scope: Scope, top_k: int, descendant_ids: List[int]
    ) -> Optional[RetrievalResult]:
        try:
            result = await self.retriever.retrieve(query, scope, top_k, descendant_ids)
        except (EmbeddingError, VectorDBError) as e:
            logger.error(f"Retrieval failed for {scope.kind} scope: {str(e)}")
            generation_failures_total.inc()
            return None
        retrieved_chunks.observe(len(result))
        return result

    async def process_query(
        self,
        query: str,
        scope: Scope,
        top_k: int,
        context_style: ContextStyle = ContextStyle.LABELED,
    ) -> SearchResponse:
        """
        Answer a question within a scope.

        Args:
            query: User question.
            scope: Category or document scope.
            top_k: Maximum number of chunks to ground the answer on.
            context_style: Context layout for the prompt.

        Returns:
            Search response.

        Raises:
            ScopeNotFoundError: If the scope does not exist.
            DimensionMismatchError: If query and stored vectors are incompatible.
        """
        logger.info(f"Answering question in {scope.kind} scope: {query[:50]}")
        label, document, descendant_ids = await self._resolve_scope(scope)

        result = await self._retrieve_or_none(query, scope, top_k, descendant_ids)
        if result is None:
            return SearchResponse(
                query=query, answer=GENERATION_FAILED_MESSAGE, confidence=0.0
            )
        if result.is_empty:
            return SearchResponse(
                query=query, answer=NO_INFORMATION_MESSAGE, confidence=0.0
            )

        # sources and confidence cover only chunks that fit the context budget
        result = self.synthesizer.fit_context(result, context_style)
        answer = await self.synthesizer.synthesize(query, result, label, context_style)
        confidence = self.confidence.score(result.chunks, answer)

        if document is not None:
            primary = DocumentRef(document_id=document.id, file_name=document.file_name)
        else:
            primary = await self.disambiguator.pick_primary_document(result.chunks, query)

        return SearchResponse(
            query=query,
            answer=answer,
            confidence=confidence,
            document=primary,
            sources=self.build_sources(result.chunks),
            total_chunks=len(result),
        )

    async def stream_query(
        self,
        query: str,
        scope: Scope,
        top_k: int,
        context_style: ContextStyle = ContextStyle.LABELED,
    ) -> AsyncIterator[str]:
        """
        Resolve the scope, retrieve, and return a stream of answer fragments.

        Scope and dimensionality errors are raised here, before any fragment
        is produced.

        Args:
            query: User question.
            scope: Category or document scope.
            top_k: Maximum number of chunks.
            context_style: Context layout for the prompt.

        Returns:
            Async iterator of answer fragments.
        """
        logger.info(f"Streaming answer in {scope.kind} scope: {query[:50]}")
        label, _, descendant_ids = await self._resolve_scope(scope)

        result = await self._retrieve_or_none(query, scope, top_k, descendant_ids)
        if result is None:
            return _single(GENERATION_FAILED_MESSAGE)
        return self.synthesizer.synthesize_stream(query, result, label, context_style)
