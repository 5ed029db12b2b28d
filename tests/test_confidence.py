"""
Test suite for ConfidenceEstimator.
"""

import pytest

from conftest import make_chunk
from docqa.services.confidence import ConfidenceEstimator
from docqa.services.synthesizer import GENERATION_FAILED_MESSAGE, NO_INFORMATION_MESSAGE


@pytest.fixture
def estimator() -> ConfidenceEstimator:
    return ConfidenceEstimator()


class TestConfidenceEstimator:
    """Test suite for ConfidenceEstimator.score."""

    def test_score_should_be_zero_without_chunks(self, estimator: ConfidenceEstimator) -> None:
        assert estimator.score([], "A long and confident answer." * 10) == 0.0

    def test_score_should_saturate_at_one(self, estimator: ConfidenceEstimator) -> None:
        chunks = [make_chunk(1, i) for i in range(7)]

        assert estimator.score(chunks, "x" * 250) == 1.0

    def test_score_should_average_sub_scores(self, estimator: ConfidenceEstimator) -> None:
        """Test 2 of 5 chunks and a 50 character answer give 0.45."""
        chunks = [make_chunk(1, 0), make_chunk(1, 1)]

        assert estimator.score(chunks, "x" * 50) == pytest.approx(0.45)

    def test_score_should_grow_with_chunk_count(self, estimator: ConfidenceEstimator) -> None:
        answer = "x" * 60
        scores = [
            estimator.score([make_chunk(1, i) for i in range(n)], answer)
            for n in range(1, 6)
        ]

        assert scores == sorted(scores)
        assert scores[0] < scores[-1]

    def test_score_should_stay_in_unit_interval(self, estimator: ConfidenceEstimator) -> None:
        for n in range(0, 8):
            for length in (0, 1, 99, 100, 5000):
                score = estimator.score([make_chunk(1, i) for i in range(n)], "y" * length)
                assert 0.0 <= score <= 1.0

    @pytest.mark.parametrize(
        "answer",
        [
            NO_INFORMATION_MESSAGE,
            GENERATION_FAILED_MESSAGE,
            "I cannot answer from the provided documents.",
            "Sorry, I cannot find the information in these excerpts.",
        ],
    )
    def test_score_should_be_zero_for_admitted_non_answers(
        self, estimator: ConfidenceEstimator, answer: str
    ) -> None:
        chunks = [make_chunk(1, i) for i in range(5)]

        assert estimator.score(chunks, answer) == 0.0

    def test_score_should_not_zero_answers_that_report_findings(
        self, estimator: ConfidenceEstimator
    ) -> None:
        """Test an answer quoting a negative finding is still an answer."""
        chunks = [make_chunk(1, i) for i in range(5)]
        answer = "The 2023 audit could not find any irregularities: all 14 accounts reconciled."

        assert estimator.score(chunks, answer) == pytest.approx((1.0 + len(answer) / 100) / 2)

    def test_score_should_grow_with_answer_length(self, estimator: ConfidenceEstimator) -> None:
        chunks = [make_chunk(1, 0), make_chunk(1, 1)]
        scores = [estimator.score(chunks, "z" * length) for length in range(0, 151)]

        assert all(earlier <= later for earlier, later in zip(scores, scores[1:]))
        assert scores[0] == 0.0
        assert scores[100] == pytest.approx(0.7)
        assert all(score == scores[100] for score in scores[100:])
