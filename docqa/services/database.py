"""Read-only access to the document and category tables in PostgreSQL."""

from typing import List, Optional

import asyncpg

from docqa.core.config import settings
from docqa.core.exceptions import DatabaseError
from docqa.models.document import CategoryRecord, DocumentRecord

DOCUMENT_COLUMNS = """
    d.id, d.file_name, d.file_path, d.content_type, d.file_size,
    d.category_id, c.name AS category_name
"""


class DatabaseService:
    """Service for reading documents and categories owned by the document store."""

    def __init__(self) -> None:
        """Initialize database service."""
        self.pool: Optional[asyncpg.Pool] = None

    async def connect(self) -> None:
        """Create connection pool."""
        try:
            self.pool = await asyncpg.create_pool(
                settings.postgres_url,
                min_size=2,
                max_size=settings.postgres_pool_size,
            )
        except Exception as e:
            raise DatabaseError(
                f"Failed to connect to database: {str(e)}") from e

    async def disconnect(self) -> None:
        """Close connection pool."""
        if self.pool:
            await self.pool.close()

    async def get_document(self, document_id: int) -> Optional[DocumentRecord]:
        """
        Get a single document by ID.

        Args:
            document_id: Document ID.

        Returns:
            Document record or None if not found.
        """
        if not self.pool:
            raise DatabaseError("Database not connected")

        try:
            async with self.pool.acquire() as conn:
                row = await conn.fetchrow(
                    f"""
                    SELECT {DOCUMENT_COLUMNS}
                    FROM documents d
                    LEFT JOIN categories c ON c.id = d.category_id
                    WHERE d.id = $1
                    """,
                    document_id,
                )
        except Exception as e:
            raise DatabaseError(f"Failed to fetch document: {str(e)}") from e
        return DocumentRecord(**dict(row)) if row else None

    async def get_documents(
        self, category_id: Optional[int] = None, limit: int = 100, offset: int = 0
    ) -> List[DocumentRecord]:
        """
        Get documents, optionally restricted to one category.

        Args:
            category_id: Category to list, or None for all documents.
            limit: Maximum number of documents to return.
            offset: Number of documents to skip.

        Returns:
            List of document records.
        """
        if not self.pool:
            raise DatabaseError("Database not connected")

        try:
            async with self.pool.acquire() as conn:
                rows = await conn.fetch(
                    f"""
                    SELECT {DOCUMENT_COLUMNS}
                    FROM documents d
                    LEFT JOIN categories c ON c.id = d.category_id
                    WHERE $1::bigint IS NULL OR d.category_id = $1
                    ORDER BY d.id
                    LIMIT $2 OFFSET $3
                    """,
                    category_id,
                    limit,
                    offset,
                )
        except Exception as e:
            raise DatabaseError(f"Failed to fetch documents: {str(e)}") from e
        return [DocumentRecord(**dict(row)) for row in rows]

    async def get_category(self, category_id: int) -> Optional[CategoryRecord]:
        """
        Get a single category by ID.

        Args:
            category_id: Category ID.

        Returns:
            Category record or None if not found.
        """
        if not self.pool:
            raise DatabaseError("Database not connected")

        try:
            async with self.pool.acquire() as conn:
                row = await conn.fetchrow(
                    "SELECT id, name, parent_id FROM categories WHERE id = $1",
                    category_id,
                )
        except Exception as e:
            raise DatabaseError(f"Failed to fetch category: {str(e)}") from e
        return CategoryRecord(**dict(row)) if row else None

    async def get_descendant_category_ids(self, category_id: int) -> List[int]:
        """
        Resolve all sub-categories below a category.

        Args:
            category_id: Root category ID.

        Returns:
            Descendant category IDs, excluding the root.
        """
        if not self.pool:
            raise DatabaseError("Database not connected")

        try:
            async with self.pool.acquire() as conn:
                rows = await conn.fetch(
                    """
                    WITH RECURSIVE tree AS (
                        SELECT id FROM categories WHERE parent_id = $1
                        UNION ALL
                        SELECT c.id FROM categories c JOIN tree t ON c.parent_id = t.id
                    )
                    SELECT id FROM tree
                    """,
                    category_id,
                )
        except Exception as e:
            raise DatabaseError(
                f"Failed to resolve sub-categories: {str(e)}") from e
        return [row["id"] for row in rows]
