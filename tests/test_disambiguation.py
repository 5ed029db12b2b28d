"""
Test suite for DocumentDisambiguator.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from conftest import make_chunk
from docqa.core.exceptions import LLMError
from docqa.services.disambiguation import DocumentDisambiguator


@pytest.fixture
def llm_service() -> MagicMock:
    service = MagicMock()
    service.complete = AsyncMock()
    return service


@pytest.fixture
def chunks():
    """Chunks from two documents, handbook ranked first."""
    return [
        make_chunk(1, 0, "Vacation days are listed in the handbook.", file_name="handbook.pdf"),
        make_chunk(2, 0, "Vacation carry-over rules.", file_name="policy.docx"),
        make_chunk(1, 1, "More handbook text.", file_name="handbook.pdf"),
    ]


class TestPickPrimaryDocument:
    """Test suite for DocumentDisambiguator.pick_primary_document."""

    @pytest.mark.asyncio
    async def test_pick_should_return_none_without_chunks(self, llm_service: MagicMock) -> None:
        assert await DocumentDisambiguator(llm_service).pick_primary_document([], "q") is None

    @pytest.mark.asyncio
    async def test_pick_should_skip_model_for_single_document(
        self, llm_service: MagicMock
    ) -> None:
        """Test one candidate document is returned without a model call."""
        chunks = [make_chunk(4, 0, file_name="a.pdf"), make_chunk(4, 1, file_name="a.pdf")]

        ref = await DocumentDisambiguator(llm_service).pick_primary_document(chunks, "q")

        assert ref.document_id == 4
        assert ref.file_name == "a.pdf"
        llm_service.complete.assert_not_called()

    @pytest.mark.asyncio
    async def test_pick_should_use_model_choice(
        self, llm_service: MagicMock, chunks
    ) -> None:
        llm_service.complete.return_value = '"policy.docx"\n'

        ref = await DocumentDisambiguator(llm_service).pick_primary_document(
            chunks, "Can I carry over vacation?")

        assert ref.document_id == 2
        prompt = llm_service.complete.await_args.args[0]
        assert "handbook.pdf" in prompt
        assert "policy.docx" in prompt
        assert "Can I carry over vacation?" in prompt

    @pytest.mark.asyncio
    async def test_pick_should_fall_back_to_top_chunk_for_unknown_name(
        self, llm_service: MagicMock, chunks
    ) -> None:
        """Test the model cannot introduce a document that was not retrieved."""
        llm_service.complete.return_value = "secret.pdf"

        ref = await DocumentDisambiguator(llm_service).pick_primary_document(chunks, "q")

        assert ref.document_id == 1

    @pytest.mark.asyncio
    async def test_pick_should_fall_back_to_top_chunk_on_model_error(
        self, llm_service: MagicMock, chunks
    ) -> None:
        llm_service.complete.side_effect = LLMError("timeout")

        ref = await DocumentDisambiguator(llm_service).pick_primary_document(chunks, "q")

        assert ref.document_id == 1
        assert ref.file_name == "handbook.pdf"
