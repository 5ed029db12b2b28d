"""Response models returned to query callers."""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from docqa.models.document import DocumentRef


class ContextStyle(str, Enum):
    """How retrieved chunks are laid out in the grounding context."""

    LABELED = "labeled"
    PLAIN = "plain"


class SourceInfo(BaseModel):
    """Citation of a chunk used to ground the answer."""

    document_id: int
    file_name: Optional[str] = None
    chunk_index: int
    content: str = Field(description="Chunk content, truncated")


class SearchResponse(BaseModel):
    """Answer bundle produced for one query."""

    query: str
    answer: str
    confidence: float = Field(
        ge=0.0, le=1.0, description="Heuristic confidence between 0 and 1"
    )
    document: Optional[DocumentRef] = Field(
        default=None, description="Best-matching source document"
    )
    sources: List[SourceInfo] = Field(default_factory=list)
    total_chunks: int = 0
