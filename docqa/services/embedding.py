"""Embedding generation service backed by an OpenAI-compatible API."""

import asyncio
import logging
from typing import List, Optional

from openai import AsyncOpenAI

from docqa.core.config import settings
from docqa.core.exceptions import CacheError, DimensionMismatchError, EmbeddingError
from docqa.services.cache import CacheService

logger = logging.getLogger(__name__)


class EmbeddingService:
    """Service for generating embeddings.

    Ingestion and retrieval share one instance so that corpus and query
    vectors always come from the same model.
    """

    def __init__(self, cache_service: Optional[CacheService] = None) -> None:
        """
        Initialize the embedding service.

        Args:
            cache_service: Optional embedding cache.
        """
        self.client = AsyncOpenAI(
            api_key=settings.openai_api_key, base_url=settings.llm_base_url
        )
        self.model = settings.embedding_model
        self.dimensions = settings.embedding_dimensions
        self.timeout = settings.embedding_timeout_seconds
        self.cache_service = cache_service

    async def generate_embeddings(self, texts: List[str]) -> List[List[float]]:
        """
        Generate embeddings for a list of texts.

        Args:
            texts: List of text strings to embed.

        Returns:
            List of embedding vectors.

        Raises:
            EmbeddingError: If embedding generation fails or times out.
            DimensionMismatchError: If the model returns vectors of the wrong size.
        """
        params = {"model": self.model, "input": texts}
        if settings.embedding_send_dimensions:
            params["dimensions"] = self.dimensions

        try:
            response = await asyncio.wait_for(
                self.client.embeddings.create(**params), timeout=self.timeout
            )
        except asyncio.TimeoutError as e:
            raise EmbeddingError(
                f"Embedding request timed out after {self.timeout}s") from e
        except Exception as e:
            raise EmbeddingError(f"Failed to generate embeddings: {str(e)}") from e

        embeddings = [item.embedding for item in response.data]
        if len(embeddings) != len(texts):
            raise EmbeddingError(
                f"Expected {len(texts)} embeddings, got {len(embeddings)}")
        for embedding in embeddings:
            if len(embedding) != self.dimensions:
                raise DimensionMismatchError(self.dimensions, len(embedding))
        return embeddings

    async def generate_embedding(self, text: str) -> List[float]:
        """
        Generate embedding for a single text, using the cache when available.

        Args:
            text: Text string to embed.

        Returns:
            Embedding vector.
        """
        key = None
        if self.cache_service:
            key = self.cache_service.embedding_key(self.model, self.dimensions, text)
            cached = await self.cache_service.get_embedding(key)
            if cached and len(cached) == self.dimensions:
                return cached

        embeddings = await self.generate_embeddings([text])
        embedding = embeddings[0]

        if key:
            try:
                await self.cache_service.set_embedding(key, embedding)
            except CacheError as e:
                logger.warning(f"Failed to cache embedding: {str(e)}")
        return embedding
