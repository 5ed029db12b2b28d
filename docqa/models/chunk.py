"""Chunk models for indexed document fragments."""

from datetime import datetime
from typing import Iterator, List, Optional

from pydantic import BaseModel, Field


class Chunk(BaseModel):
    """A bounded fragment of a document's extracted text."""

    document_id: int
    chunk_index: int = Field(ge=0)
    content: str
    embedding: Optional[List[float]] = None
    metadata: dict = Field(default_factory=dict)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    score: Optional[float] = None

    @property
    def file_name(self) -> Optional[str]:
        """Name of the owning document, taken from the metadata bag."""
        return self.metadata.get("file_name")


class RetrievalResult(BaseModel):
    """Chunks returned by one query, most similar first."""

    chunks: List[Chunk] = Field(default_factory=list)

    def __len__(self) -> int:
        return len(self.chunks)

    def __iter__(self) -> Iterator[Chunk]:
        return iter(self.chunks)

    @property
    def is_empty(self) -> bool:
        return not self.chunks
