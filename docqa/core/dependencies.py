"""Dependency injection for services."""

import logging

from docqa.core.exceptions import CacheError
from docqa.services.cache import CacheService
from docqa.services.confidence import ConfidenceEstimator
from docqa.services.database import DatabaseService
from docqa.services.disambiguation import DocumentDisambiguator
from docqa.services.dlq import DLQService
from docqa.services.embedding import EmbeddingService
from docqa.services.extraction import TextExtractor
from docqa.services.ingestion import IngestionPipeline
from docqa.services.llm import LLMService
from docqa.services.query_processor import QueryProcessor
from docqa.services.retriever import Retriever
from docqa.services.synthesizer import AnswerSynthesizer
from docqa.services.vector_db import VectorDBService

logger = logging.getLogger(__name__)


class ServiceContainer:
    """Container for service instances shared across requests."""

    def __init__(self) -> None:
        """Initialize service container."""
        self.vector_db = VectorDBService()
        self.cache_service = CacheService()
        self.embedding_service = EmbeddingService(cache_service=self.cache_service)
        self.llm_service = LLMService()
        self.dlq_service = DLQService()
        self.database = DatabaseService()
        self.extractor = TextExtractor()

    def build_query_processor(self) -> QueryProcessor:
        """Assemble the query-side pipeline."""
        return QueryProcessor(
            database=self.database,
            retriever=Retriever(self.vector_db, self.embedding_service),
            synthesizer=AnswerSynthesizer(self.llm_service),
            confidence=ConfidenceEstimator(),
            disambiguator=DocumentDisambiguator(self.llm_service),
        )

    def build_ingestion_pipeline(self) -> IngestionPipeline:
        """Assemble the ingestion-side pipeline."""
        return IngestionPipeline(
            vector_db=self.vector_db,
            embedding_service=self.embedding_service,
            extractor=self.extractor,
        )

    async def initialize(self, include_dlq: bool = False) -> None:
        """Initialize all services."""
        await self.vector_db.connect()
        try:
            await self.cache_service.connect()
        except CacheError as e:
            logger.warning(f"Embedding cache unavailable, continuing without it: {str(e)}")
        await self.database.connect()
        if include_dlq and self.dlq_service.enabled:
            await self.dlq_service.connect()

    async def shutdown(self) -> None:
        """Shutdown all services."""
        await self.dlq_service.disconnect()
        await self.database.disconnect()
        await self.vector_db.disconnect()
        await self.cache_service.disconnect()


services = ServiceContainer()
