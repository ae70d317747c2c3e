"""
Mock Test Scoring: percent score, per-question verdicts, and the test-taking session.
Scoring is pure: correct = selected option equals the question's correct option;
an unanswered question is never correct.
"""
import logging
from collections.abc import Mapping
from types import MappingProxyType
from typing import Dict, List, Optional, Sequence

from src.errors import InvalidInput
from src.models import Question, QuestionVerdict, ScoreResult

logger = logging.getLogger(__name__)


def score_test(questions: Sequence[Question], answers: Mapping) -> ScoreResult:
    """
    Score one attempt.

    Args:
        questions: Ordered questions of the test
        answers: {question_id: selected_option}; unanswered questions are absent

    Returns:
        ScoreResult with total, correct, score_percent (0 when there are no
        questions) and one verdict per question, in test order

    Option indices are not bounds-checked; an out-of-range index is simply wrong.
    """
    if not isinstance(questions, (list, tuple)):
        raise InvalidInput(f"questions must be a list of Question, got {type(questions).__name__}")
    if not isinstance(answers, Mapping):
        raise InvalidInput(f"answers must be a mapping, got {type(answers).__name__}")

    verdicts: List[QuestionVerdict] = []
    for question in questions:
        if not isinstance(question, Question):
            raise InvalidInput(f"Expected Question, got {type(question).__name__}")
        selected = answers.get(question.id)
        is_correct = type(selected) is int and selected == question.correct_option
        verdicts.append(QuestionVerdict(question.id, selected, is_correct))

    total = len(verdicts)
    correct = sum(1 for v in verdicts if v.is_correct)
    score_percent = (correct / total) * 100 if total > 0 else 0.0

    logger.info(f"Scored attempt: {correct}/{total} ({score_percent:.1f}%)")
    return ScoreResult(total=total, correct=correct, score_percent=score_percent, verdicts=verdicts)


class MockTestSession:
    """Collects answers for one attempt of a mock test and scores it on submit."""

    def __init__(self, test_id: str, questions: Sequence[Question]):
        """
        Args:
            test_id: id of the mock test being taken
            questions: Ordered questions, as fetched for the test
        """
        if not isinstance(questions, (list, tuple)):
            raise InvalidInput(f"questions must be a list of Question, got {type(questions).__name__}")
        self.test_id = test_id
        self.questions: List[Question] = list(questions)
        self._question_ids = {q.id for q in self.questions}
        self._answers: Dict[str, int] = {}
        self.current_question_idx = 0
        self.result: Optional[ScoreResult] = None
        self.saved_score: Optional[Dict] = None

    @property
    def submitted(self) -> bool:
        return self.result is not None

    @property
    def saved(self) -> bool:
        return self.saved_score is not None

    def mark_saved(self, score_row: Dict) -> None:
        """Record the persisted score row. Only a submitted session can be saved."""
        if not self.submitted:
            raise InvalidInput(f"Session for test {self.test_id} has not been submitted")
        self.saved_score = score_row

    @property
    def answers(self) -> Mapping:
        """Answers so far; read-only once submitted."""
        if self.submitted:
            return MappingProxyType(self._answers)
        return dict(self._answers)

    def _check_open(self) -> None:
        if self.submitted:
            raise InvalidInput(f"Session for test {self.test_id} is already submitted")

    def _check_question(self, question_id: str) -> None:
        if question_id not in self._question_ids:
            raise InvalidInput(f"Question {question_id} is not part of test {self.test_id}")

    def select_answer(self, question_id: str, option_index: int) -> None:
        """Record (or replace) the learner's choice for a question."""
        self._check_open()
        self._check_question(question_id)
        self._answers[question_id] = option_index

    def clear_answer(self, question_id: str) -> None:
        self._check_open()
        self._check_question(question_id)
        self._answers.pop(question_id, None)

    @property
    def current_question(self) -> Optional[Question]:
        if self.current_question_idx >= len(self.questions):
            return None
        return self.questions[self.current_question_idx]

    @property
    def is_last_question(self) -> bool:
        return self.current_question_idx >= len(self.questions) - 1

    def next_question(self) -> Optional[Question]:
        if not self.is_last_question:
            self.current_question_idx += 1
        return self.current_question

    def previous_question(self) -> Optional[Question]:
        if self.current_question_idx > 0:
            self.current_question_idx -= 1
        return self.current_question

    @property
    def answered_count(self) -> int:
        return len(self._answers)

    @property
    def progress(self) -> float:
        return self.answered_count / len(self.questions) if self.questions else 0.0

    def selected_options(self) -> Dict[str, int]:
        """{question_id: selected_option} for answered questions, in test order."""
        return {q.id: self._answers[q.id] for q in self.questions if q.id in self._answers}

    def submit(self) -> ScoreResult:
        """Finalize the answers and score them. Repeated calls return the same result."""
        if self.result is None:
            self.result = score_test(self.questions, self._answers)
            logger.info(
                f"Test {self.test_id} submitted: {self.answered_count}/{len(self.questions)} answered, "
                f"score {self.result.score_percent:.1f}%"
            )
        return self.result
