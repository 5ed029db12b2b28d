"""Heuristic confidence score for generated answers.

The score is a crude signal built from how many chunks were retrieved and
how long the answer is. It is not a calibrated probability.
"""

from typing import Sequence

from docqa.models.chunk import Chunk
from docqa.services.synthesizer import GENERATION_FAILED_MESSAGE, NO_INFORMATION_MESSAGE

CHUNK_SATURATION = 5
ANSWER_LENGTH_SATURATION = 100

UNANSWERED_PHRASES = (
    NO_INFORMATION_MESSAGE.lower(),
    GENERATION_FAILED_MESSAGE.lower(),
    "cannot answer from the provided documents",
    "can't answer from the provided documents",
    "unable to answer from the provided documents",
    "cannot find the information",
    "no relevant information was found",
)


class ConfidenceEstimator:
    """Scores an answer between 0.0 and 1.0."""

    def __init__(
        self,
        chunk_saturation: int = CHUNK_SATURATION,
        answer_length_saturation: int = ANSWER_LENGTH_SATURATION,
    ) -> None:
        self.chunk_saturation = chunk_saturation
        self.answer_length_saturation = answer_length_saturation

    @staticmethod
    def is_unanswered(answer: str) -> bool:
        """Whether the answer admits it could not answer."""
        lowered = answer.lower()
        return any(phrase in lowered for phrase in UNANSWERED_PHRASES)

    def score(self, chunks: Sequence[Chunk], answer: str) -> float:
        """
        Score an answer.

        Args:
            chunks: Chunks used to ground the answer.
            answer: Generated answer text.

        Returns:
            Mean of the retrieval and answer-length sub-scores, 0.0 for no
            chunks or an admitted non-answer.
        """
        if not chunks or not answer or self.is_unanswered(answer):
            return 0.0

        chunk_score = min(len(chunks) / self.chunk_saturation, 1.0)
        answer_score = min(len(answer) / self.answer_length_saturation, 1.0)
        return (chunk_score + answer_score) / 2.0
