"""Selection of a single primary document when chunks span several."""

import logging
from typing import Dict, List, Optional, Sequence

from docqa.core.exceptions import LLMError
from docqa.models.chunk import Chunk
from docqa.models.document import DocumentRef
from docqa.services.llm import LLMService

logger = logging.getLogger(__name__)

PREVIEW_CHARS = 200

SELECTION_PROMPT = """A user asked the following question:
{query}

These documents contain passages related to the question:
{previews}

Which single document is the most relevant to the question?
Reply with the exact file name only, with no other text.
"""


class DocumentDisambiguator:
    """Picks the document that best answers a query."""

    def __init__(self, llm_service: LLMService) -> None:
        """
        Initialize the disambiguator.

        Args:
            llm_service: Completion capability used for the vote.
        """
        self.llm_service = llm_service

    @staticmethod
    def _ref(chunk: Chunk) -> DocumentRef:
        return DocumentRef(document_id=chunk.document_id, file_name=chunk.file_name)

    @staticmethod
    def _clean(answer: str) -> str:
        first_line = answer.strip().splitlines()[0] if answer.strip() else ""
        return first_line.strip().strip("\"'`*").strip()

    async def pick_primary_document(
        self, chunks: Sequence[Chunk], query: str
    ) -> Optional[DocumentRef]:
        """
        Choose the primary source document for an answer.

        Only documents present in the chunks can be returned. When the model
        names anything else, or fails, the document of the top chunk wins.

        Args:
            chunks: Retrieved chunks, most similar first.
            query: User question.

        Returns:
            Document reference, or None when there are no chunks.
        """
        if not chunks:
            return None

        top = chunks[0]
        # first (best-ranked) chunk per document
        by_document: Dict[int, Chunk] = {}
        for chunk in chunks:
            by_document.setdefault(chunk.document_id, chunk)

        if len(by_document) == 1:
            return self._ref(top)

        candidates: Dict[str, Chunk] = {}
        previews: List[str] = []
        for document_id, chunk in by_document.items():
            name = chunk.file_name or str(document_id)
            if name in candidates:
                continue
            candidates[name] = chunk
            preview = chunk.content[:PREVIEW_CHARS].replace("\n", " ")
            previews.append(f"- {name}: {preview}")

        prompt = SELECTION_PROMPT.format(query=query, previews="\n".join(previews))
        try:
            answer = await self.llm_service.complete(prompt)
        except LLMError as e:
            logger.warning(f"Document selection failed, using top match: {str(e)}")
            return self._ref(top)

        choice = self._clean(answer)
        if choice in candidates:
            return self._ref(candidates[choice])

        logger.info(f"Model chose unknown document {choice!r}, using top match")
        return self._ref(top)
