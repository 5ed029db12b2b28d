"""Answer synthesis from retrieved chunks, blocking and streaming."""

import logging
from typing import AsyncIterator, List, Optional, Tuple

from docqa.core.config import settings
from docqa.core.exceptions import LLMError
from docqa.models.chunk import Chunk, RetrievalResult
from docqa.models.response import ContextStyle
from docqa.monitoring.metrics import generation_failures_total
from docqa.services.llm import LLMService

logger = logging.getLogger(__name__)

NO_INFORMATION_MESSAGE = "Sorry, no relevant information was found for your question."
GENERATION_FAILED_MESSAGE = "Sorry, an error occurred while generating the answer."

ANSWER_PROMPT = """Answer the user's question using the information from the {scope_label} below.

Question: {query}

Relevant document excerpts:
{context}

Instructions:
1. Answer only from the document excerpts provided above.
2. Do not guess or add information that is not in the excerpts.
3. If the excerpts do not contain the answer, say clearly that you cannot answer from the provided documents.
4. Be as specific and accurate as possible.
5. If the information comes from several documents, combine it into one answer.

Answer:
"""


class AnswerSynthesizer:
    """Builds grounded prompts and turns completions into answers."""

    def __init__(
        self, llm_service: LLMService, max_context_chars: Optional[int] = None
    ) -> None:
        """
        Initialize the synthesizer.

        Args:
            llm_service: Completion capability.
            max_context_chars: Character budget for the grounding context.
        """
        self.llm_service = llm_service
        self.max_context_chars = max_context_chars or settings.max_context_chars

    @staticmethod
    def _format_chunk(position: int, chunk: Chunk, style: ContextStyle) -> str:
        if style == ContextStyle.LABELED:
            return (
                f"Document {position}:\n"
                f"File: {chunk.file_name or chunk.document_id}\n"
                f"Content: {chunk.content}"
            )
        return chunk.content

    def build_context(
        self, chunks: List[Chunk], style: ContextStyle = ContextStyle.LABELED
    ) -> Tuple[str, List[Chunk]]:
        """
        Build the grounding context within the character budget.

        Args:
            chunks: Retrieved chunks, most similar first.
            style: Labeled per-document blocks or plain concatenation.

        Returns:
            Tuple of (context string, chunks that made it into the context).
        """
        context_parts = []
        total_chars = 0
        used_chunks = []

        for position, chunk in enumerate(chunks, start=1):
            part = self._format_chunk(position, chunk, style)
            separator_length = 2 if context_parts else 0

            if total_chars + len(part) + separator_length <= self.max_context_chars:
                context_parts.append(part)
                total_chars += len(part) + separator_length
                used_chunks.append(chunk)
            else:
                remaining_space = self.max_context_chars - total_chars - separator_length
                if remaining_space > 100:
                    context_parts.append(part[:remaining_space])
                    used_chunks.append(chunk)
                break

        return "\n\n".join(context_parts), used_chunks

    def fit_context(
        self, result: RetrievalResult, style: ContextStyle = ContextStyle.LABELED
    ) -> RetrievalResult:
        """Keep only the chunks that make it into the grounding context."""
        _, used_chunks = self.build_context(result.chunks, style)
        return RetrievalResult(chunks=used_chunks)

    def build_prompt(
        self,
        query: str,
        result: RetrievalResult,
        scope_label: Optional[str] = None,
        context_style: ContextStyle = ContextStyle.LABELED,
    ) -> str:
        """
        Build the grounded prompt for a query.

        Args:
            query: User question, embedded verbatim.
            result: Retrieved chunks.
            scope_label: Description of the searched scope.
            context_style: Context layout.

        Returns:
            Prompt text.
        """
        context, _ = self.build_context(result.chunks, context_style)
        return ANSWER_PROMPT.format(
            scope_label=scope_label or "documents",
            query=query,
            context=context,
        )

    async def synthesize(
        self,
        query: str,
        result: RetrievalResult,
        scope_label: Optional[str] = None,
        context_style: ContextStyle = ContextStyle.LABELED,
    ) -> str:
        """
        Generate an answer. Never raises for completion failures.

        Args:
            query: User question.
            result: Retrieved chunks.
            scope_label: Description of the searched scope.
            context_style: Context layout.

        Returns:
            Answer text, or a fixed message when nothing was found or generation failed.
        """
        if result.is_empty:
            return NO_INFORMATION_MESSAGE

        prompt = self.build_prompt(query, result, scope_label, context_style)
        try:
            return await self.llm_service.complete(prompt)
        except LLMError as e:
            logger.error(f"Answer generation failed: {str(e)}")
            generation_failures_total.inc()
            return GENERATION_FAILED_MESSAGE

    async def synthesize_stream(
        self,
        query: str,
        result: RetrievalResult,
        scope_label: Optional[str] = None,
        context_style: ContextStyle = ContextStyle.LABELED,
    ) -> AsyncIterator[str]:
        """
        Stream an answer as text fragments.

        A failure before the first fragment yields the failure message; a
        failure after that ends the stream and leaves emitted text intact.

        Args:
            query: User question.
            result: Retrieved chunks.
            scope_label: Description of the searched scope.
            context_style: Context layout.

        Yields:
            Answer fragments.
        """
        if result.is_empty:
            yield NO_INFORMATION_MESSAGE
            return

        prompt = self.build_prompt(query, result, scope_label, context_style)
        emitted = False
        fragments = self.llm_service.complete_stream(prompt)
        try:
            async for fragment in fragments:
                emitted = True
                yield fragment
        except LLMError as e:
            logger.error(f"Streaming answer generation failed: {str(e)}")
            generation_failures_total.inc()
            if not emitted:
                yield GENERATION_FAILED_MESSAGE
        finally:
            await fragments.aclose()
