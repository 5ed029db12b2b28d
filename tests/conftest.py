"""
Shared test fixtures for the docqa test suite.

Provides: an in-memory Qdrant index, a deterministic keyword embedder,
document records and chunk builders.
"""

import os

os.environ.setdefault("OPENAI_API_KEY", "test-key")

from typing import List  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402

from docqa.core.exceptions import EmbeddingError  # noqa: E402
from docqa.models.chunk import Chunk  # noqa: E402
from docqa.models.document import DocumentRecord  # noqa: E402
from docqa.services.vector_db import VectorDBService  # noqa: E402

VOCABULARY = ["vacation", "salary", "security", "laptop"]
DIMENSIONS = len(VOCABULARY)


class KeywordEmbedder:
    """Embeds text as keyword counts over a tiny vocabulary."""

    def __init__(self, fail_on: str = None) -> None:
        self.fail_on = fail_on
        self.calls: List[str] = []

    def embed(self, text: str) -> List[float]:
        lowered = text.lower()
        return [lowered.count(word) + 0.01 for word in VOCABULARY]

    async def generate_embeddings(self, texts: List[str]) -> List[List[float]]:
        self.calls.extend(texts)
        if self.fail_on and any(self.fail_on in text for text in texts):
            raise EmbeddingError("embedding backend unavailable")
        return [self.embed(text) for text in texts]

    async def generate_embedding(self, text: str) -> List[float]:
        return (await self.generate_embeddings([text]))[0]


@pytest.fixture
def embedder() -> KeywordEmbedder:
    """Provide a deterministic embedder."""
    return KeywordEmbedder()


@pytest_asyncio.fixture
async def vector_db():
    """Provide a connected in-memory vector index."""
    service = VectorDBService(
        location=":memory:", collection_name="test_chunks", dimensions=DIMENSIONS
    )
    await service.connect()
    yield service
    await service.disconnect()


@pytest.fixture
def document() -> DocumentRecord:
    """Provide a sample document record."""
    return DocumentRecord(
        id=1,
        file_name="handbook.pdf",
        file_path="/uploads/20240101000000_handbook.pdf",
        content_type="application/pdf",
        file_size=2048,
        category_id=10,
        category_name="HR",
    )


def make_chunk(
    document_id: int,
    chunk_index: int,
    content: str = "Employees get 25 vacation days.",
    file_name: str = None,
    score: float = 0.9,
) -> Chunk:
    """Build a retrieved chunk."""
    return Chunk(
        document_id=document_id,
        chunk_index=chunk_index,
        content=content,
        metadata={"file_name": file_name or f"doc-{document_id}.pdf"},
        score=score,
    )
