"""Qdrant vector database service.

Both search paths (category and document scoped) rank by cosine similarity,
the single distance the collection is created with.
"""

import uuid
from datetime import datetime
from typing import List, Optional, Sequence

from qdrant_client import AsyncQdrantClient
from qdrant_client.models import (
    Distance,
    FieldCondition,
    Filter,
    FilterSelector,
    MatchAny,
    MatchValue,
    NearestQuery,
    PayloadSchemaType,
    PointStruct,
    VectorParams,
)

from docqa.core.config import settings
from docqa.core.exceptions import DimensionMismatchError, VectorDBError
from docqa.models.chunk import Chunk


class VectorDBService:
    """Service for storing and searching document chunk vectors in Qdrant."""

    def __init__(
        self,
        location: Optional[str] = None,
        collection_name: Optional[str] = None,
        dimensions: Optional[int] = None,
    ) -> None:
        """
        Initialize the vector database service.

        Args:
            location: Qdrant URL, or ":memory:" for an in-process instance.
            collection_name: Collection holding the chunks.
            dimensions: Embedding dimensionality of the deployment.
        """
        self.client: Optional[AsyncQdrantClient] = None
        self.location = location or settings.qdrant_url
        self.collection_name = collection_name or settings.qdrant_collection_name
        self.dimensions = dimensions or settings.embedding_dimensions

    async def connect(self) -> None:
        """Connect to Qdrant."""
        try:
            self.client = AsyncQdrantClient(
                location=self.location,
                timeout=30,
            )
            await self._ensure_collection()
        except DimensionMismatchError:
            raise
        except Exception as e:
            raise VectorDBError(
                f"Failed to connect to Qdrant: {str(e)}") from e

    async def disconnect(self) -> None:
        """Disconnect from Qdrant."""
        if self.client:
            await self.client.close()

    async def _ensure_collection(self) -> None:
        """Ensure the collection exists with the configured vector size."""
        if not self.client:
            raise VectorDBError("Client not connected")

        collections = await self.client.get_collections()
        collection_names = [col.name for col in collections.collections]

        if self.collection_name in collection_names:
            info = await self.client.get_collection(self.collection_name)
            size = info.config.params.vectors.size
            if size != self.dimensions:
                raise DimensionMismatchError(self.dimensions, size)
            return

        await self.client.create_collection(
            collection_name=self.collection_name,
            vectors_config=VectorParams(
                size=self.dimensions,
                distance=Distance.COSINE,
            ),
        )
        for field_name in ("document_id", "category_id"):
            await self.client.create_payload_index(
                collection_name=self.collection_name,
                field_name=field_name,
                field_schema=PayloadSchemaType.INTEGER,
            )

    def _check_dimensions(self, vector: Sequence[float]) -> None:
        if len(vector) != self.dimensions:
            raise DimensionMismatchError(self.dimensions, len(vector))

    @staticmethod
    def point_id(document_id: int, chunk_index: int) -> str:
        """
        Generate a deterministic point id for a chunk.

        Args:
            document_id: ID of the source document.
            chunk_index: Index of the chunk.

        Returns:
            UUID string for the chunk.
        """
        namespace = uuid.UUID("00000000-0000-0000-0000-000000000000")
        return str(uuid.uuid5(namespace, f"{document_id}:{chunk_index}"))

    async def insert(
        self,
        document_id: int,
        chunk_index: int,
        content: str,
        embedding: List[float],
        metadata: dict,
        created_at: datetime,
        updated_at: datetime,
    ) -> None:
        """
        Store one chunk.

        Re-inserting the same (document_id, chunk_index) replaces the point.

        Args:
            document_id: ID of the source document.
            chunk_index: Zero-based position of the chunk in the document.
            content: Chunk text.
            embedding: Chunk embedding vector.
            metadata: Metadata bag stored with the chunk.
            created_at: Creation timestamp.
            updated_at: Last update timestamp.

        Raises:
            DimensionMismatchError: If the embedding has the wrong size.
            VectorDBError: If the write fails.
        """
        if not self.client:
            raise VectorDBError("Client not connected")
        self._check_dimensions(embedding)

        point = PointStruct(
            id=self.point_id(document_id, chunk_index),
            vector=embedding,
            payload={
                "document_id": document_id,
                "category_id": metadata.get("category_id"),
                "chunk_index": chunk_index,
                "content": content,
                "metadata": metadata,
                "created_at": created_at.isoformat(),
                "updated_at": updated_at.isoformat(),
            },
        )
        try:
            await self.client.upsert(
                collection_name=self.collection_name, points=[point], wait=True
            )
        except Exception as e:
            raise VectorDBError(
                f"Failed to insert chunk {chunk_index} of document {document_id}: {str(e)}"
            ) from e

    async def delete_by_document(self, document_id: int) -> None:
        """
        Delete all chunks for a document. A no-op when none exist.

        Args:
            document_id: ID of the document.

        Raises:
            VectorDBError: If the delete fails.
        """
        if not self.client:
            raise VectorDBError("Client not connected")

        try:
            await self.client.delete(
                collection_name=self.collection_name,
                points_selector=FilterSelector(
                    filter=self._document_filter(document_id)),
                wait=True,
            )
        except Exception as e:
            raise VectorDBError(
                f"Failed to delete chunks of document {document_id}: {str(e)}"
            ) from e

    async def count_by_document(self, document_id: int) -> int:
        """
        Count stored chunks for a document.

        Args:
            document_id: ID of the document.

        Returns:
            Number of chunks.
        """
        if not self.client:
            raise VectorDBError("Client not connected")

        try:
            result = await self.client.count(
                collection_name=self.collection_name,
                count_filter=self._document_filter(document_id),
                exact=True,
            )
        except Exception as e:
            raise VectorDBError(f"Failed to count chunks: {str(e)}") from e
        return result.count

    async def nearest_by_category(
        self,
        query_vector: List[float],
        category_id: int,
        k: int,
        descendant_ids: Sequence[int] = (),
    ) -> List[Chunk]:
        """
        Search chunks of documents in a category.

        Args:
            query_vector: Query embedding vector.
            category_id: Category to search.
            k: Maximum number of results.
            descendant_ids: Sub-category ids to include, if already resolved.

        Returns:
            Chunks ordered by descending cosine similarity.
        """
        category_ids = [category_id, *descendant_ids]
        if len(category_ids) == 1:
            match = MatchValue(value=category_id)
        else:
            match = MatchAny(any=category_ids)
        query_filter = Filter(must=[FieldCondition(key="category_id", match=match)])
        return await self._search(query_vector, query_filter, k)

    async def nearest_by_document(
        self, query_vector: List[float], document_id: int, k: int
    ) -> List[Chunk]:
        """
        Search chunks of one document.

        Args:
            query_vector: Query embedding vector.
            document_id: Document to search.
            k: Maximum number of results.

        Returns:
            Chunks ordered by descending cosine similarity.
        """
        return await self._search(query_vector, self._document_filter(document_id), k)

    @staticmethod
    def _document_filter(document_id: int) -> Filter:
        return Filter(
            must=[FieldCondition(key="document_id", match=MatchValue(value=document_id))]
        )

    async def _search(
        self, query_vector: List[float], query_filter: Filter, k: int
    ) -> List[Chunk]:
        if not self.client:
            raise VectorDBError("Client not connected")
        self._check_dimensions(query_vector)
        if k <= 0:
            return []

        try:
            results = await self.client.query_points(
                collection_name=self.collection_name,
                query=NearestQuery(nearest=query_vector),
                query_filter=query_filter,
                limit=k,
                with_payload=True,
            )
        except Exception as e:
            raise VectorDBError(f"Vector search failed: {str(e)}") from e

        chunks = []
        for point in results.points:
            payload = point.payload or {}
            chunks.append(
                Chunk(
                    document_id=payload.get("document_id"),
                    chunk_index=payload.get("chunk_index", 0),
                    content=payload.get("content", ""),
                    metadata=payload.get("metadata") or {},
                    created_at=payload.get("created_at"),
                    updated_at=payload.get("updated_at"),
                    score=point.score,
                )
            )
        return chunks
