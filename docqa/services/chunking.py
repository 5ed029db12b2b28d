"""Document chunking service."""

import re
from typing import Callable, List, Optional

from langchain_text_splitters import RecursiveCharacterTextSplitter

from docqa.core.config import settings

SENTENCE_BOUNDARY = re.compile(r"(?<=[.!?])\s+")


class SentenceChunker:
    """Packs whole sentences into chunks of bounded character length."""

    def __init__(self, max_chunk_size: Optional[int] = None) -> None:
        """
        Initialize the sentence chunker.

        Args:
            max_chunk_size: Maximum characters per chunk.
        """
        self.max_chunk_size = max_chunk_size or settings.max_chunk_size

    def split(self, text: str) -> List[str]:
        """
        Split text on sentence boundaries into chunks.

        Sentences longer than the limit are split on word boundaries. A
        single word longer than the limit is emitted whole.

        Args:
            text: Extracted document text.

        Returns:
            Ordered list of chunk strings.
        """
        if not text or not text.strip():
            return []

        chunks: List[str] = []
        current = ""

        for sentence in SENTENCE_BOUNDARY.split(text.strip()):
            sentence = sentence.strip()
            if not sentence:
                continue

            candidate = f"{current} {sentence}" if current else sentence
            if len(candidate) <= self.max_chunk_size:
                current = candidate
                continue

            if current:
                chunks.append(current)
                current = ""

            if len(sentence) <= self.max_chunk_size:
                current = sentence
                continue

            for word in sentence.split():
                candidate = f"{current} {word}" if current else word
                if len(candidate) > self.max_chunk_size and current:
                    chunks.append(current)
                    current = word
                else:
                    current = candidate

        if current:
            chunks.append(current)
        return chunks


class TokenChunker:
    """Token-aware splitter with overlap between neighbouring chunks."""

    def __init__(
        self,
        chunk_tokens: Optional[int] = None,
        chunk_overlap: Optional[int] = None,
        min_chunk_chars: Optional[int] = None,
        max_chunk_chars: Optional[int] = None,
        max_chunks: Optional[int] = None,
        split_text: Optional[Callable[[str], List[str]]] = None,
    ) -> None:
        """
        Initialize the token chunker.

        Args:
            chunk_tokens: Target tokens per chunk.
            chunk_overlap: Tokens shared between consecutive chunks.
            min_chunk_chars: Fragments shorter than this are dropped.
            max_chunk_chars: Hard character ceiling per chunk.
            max_chunks: Maximum number of chunks returned.
            split_text: Replacement for the tiktoken splitter.
        """
        self.min_chunk_chars = min_chunk_chars or settings.min_chunk_chars
        self.max_chunk_chars = max_chunk_chars or settings.max_chunk_chars
        self.max_chunks = max_chunks or settings.max_chunks

        if split_text is None:
            splitter = RecursiveCharacterTextSplitter.from_tiktoken_encoder(
                encoding_name="cl100k_base",
                chunk_size=chunk_tokens or settings.chunk_tokens,
                chunk_overlap=chunk_overlap or settings.chunk_overlap_tokens,
            )
            split_text = splitter.split_text
        self._split_text = split_text

    def split(self, text: str) -> List[str]:
        """
        Split text into overlapping token-bounded chunks.

        Args:
            text: Extracted document text.

        Returns:
            Ordered list of chunk strings.
        """
        if not text or not text.strip():
            return []

        chunks: List[str] = []
        for fragment in self._split_text(text):
            fragment = fragment.strip()
            if len(fragment) < self.min_chunk_chars:
                continue
            for start in range(0, len(fragment), self.max_chunk_chars):
                chunks.append(fragment[start:start + self.max_chunk_chars])
        return chunks[: self.max_chunks]


def build_chunker(mode: Optional[str] = None):
    """
    Create the chunker selected by configuration.

    Args:
        mode: "sentence" or "token"; defaults to settings.chunking_mode.

    Returns:
        Chunker exposing split(text).
    """
    mode = mode or settings.chunking_mode
    if mode == "sentence":
        return SentenceChunker()
    if mode == "token":
        return TokenChunker()
    raise ValueError(f"Unknown chunking mode: {mode}")
