"""
Data records for the scoring and analytics core.

Everything here is transient: built fresh from Supabase rows (or test data) on
each request and handed back as plain records. Rows are the shapes returned by
``db.py``; ``from_row`` is the only place that knows about column names.
"""
import math
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Dict, List, Optional, Tuple

from engine import STATUS_COMPLETED, STATUS_PENDING, UNKNOWN_SUBJECT
from src.errors import InvalidInput


def parse_timestamp(value) -> Optional[datetime]:
    """Parse an ISO date/timestamp (``Z`` accepted) into an aware UTC datetime.

    Naive values are taken to be UTC. ``None`` and empty strings give ``None``.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError as e:
            raise InvalidInput(f"Invalid timestamp: {value!r}") from e
    else:
        raise InvalidInput(f"Invalid timestamp type: {type(value).__name__}")
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _require(row: Dict, *keys: str) -> None:
    if not isinstance(row, dict):
        raise InvalidInput(f"Expected a row dict, got {type(row).__name__}")
    missing = [k for k in keys if k not in row]
    if missing:
        raise InvalidInput(f"Row is missing column(s): {', '.join(missing)}")


def _is_finite_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def _subject_name(row: Dict, default: str = UNKNOWN_SUBJECT) -> str:
    subject = row.get("subjects")
    if isinstance(subject, dict) and subject.get("name"):
        return subject["name"]
    return default


# ============= Questions and results =============

@dataclass(frozen=True)
class Question:
    id: str
    text: str
    options: Tuple[str, ...]
    correct_option: int
    explanation: str = ""

    def __post_init__(self):
        object.__setattr__(self, "options", tuple(self.options))
        if len(self.options) < 2:
            raise InvalidInput(f"Question {self.id} needs at least 2 options, got {len(self.options)}")
        if not isinstance(self.correct_option, int) or not 0 <= self.correct_option < len(self.options):
            raise InvalidInput(f"Question {self.id}: correct_option {self.correct_option!r} is not a valid index")

    @classmethod
    def from_row(cls, row: Dict) -> "Question":
        _require(row, "id", "question_text", "options", "correct_option")
        return cls(
            id=str(row["id"]),
            text=row["question_text"],
            options=row["options"] or [],
            correct_option=row["correct_option"],
            explanation=row.get("explanation") or "",
        )


@dataclass(frozen=True)
class QuestionVerdict:
    question_id: str
    selected_option: Optional[int]
    is_correct: bool


@dataclass(frozen=True)
class ScoreResult:
    total: int
    correct: int
    score_percent: float
    verdicts: List[QuestionVerdict] = field(default_factory=list)

    def to_row(self, mock_test_id: str, user_id: str) -> Dict:
        """Row for the ``scores`` table."""
        return {
            "mock_test_id": mock_test_id,
            "user_id": user_id,
            "total_questions": self.total,
            "correct_answers": self.correct,
            "score_percent": self.score_percent,
        }


# ============= Records from the persistence layer =============

@dataclass(frozen=True)
class TestRecord:
    """A mock test with at most one (the most recent) score percent."""

    __test__ = False  # not a pytest class

    id: str
    title: str
    subject: str
    created_at: datetime
    date_taken: Optional[datetime] = None
    score: Optional[float] = None

    def __post_init__(self):
        if not isinstance(self.created_at, datetime):
            raise InvalidInput(f"Test {self.id}: created_at must be a datetime, got {type(self.created_at).__name__}")
        if self.date_taken is not None and not isinstance(self.date_taken, datetime):
            raise InvalidInput(f"Test {self.id}: date_taken must be a datetime, got {type(self.date_taken).__name__}")
        if self.score is not None and not _is_finite_number(self.score):
            raise InvalidInput(f"Test {self.id}: score {self.score!r} is not a finite number")
        if self.score is not None:
            object.__setattr__(self, "score", float(self.score))

    @property
    def date(self) -> datetime:
        return self.date_taken or self.created_at

    @property
    def is_scored(self) -> bool:
        return self.score is not None

    @classmethod
    def from_row(cls, row: Dict) -> "TestRecord":
        """Build from a ``mock_tests`` row selected with ``*, scores(*), subjects(name)``.

        Scores are expected most recent first; only the first one is kept.
        """
        _require(row, "id", "created_at")
        created_at = parse_timestamp(row["created_at"])
        if created_at is None:
            raise InvalidInput(f"Test {row['id']} has no created_at")
        scores = row.get("scores") or []
        score = None
        if scores:
            first = scores[0]
            if not isinstance(first, dict) or "score_percent" not in first:
                raise InvalidInput(f"Score row for test {row['id']} has no score_percent")
            score = first["score_percent"]
            if isinstance(score, str):
                try:
                    score = float(score)
                except ValueError as e:
                    raise InvalidInput(f"Test {row['id']}: score_percent {score!r} is not a number") from e
        return cls(
            id=str(row["id"]),
            title=row.get("title") or "",
            subject=_subject_name(row),
            created_at=created_at,
            date_taken=parse_timestamp(row.get("date_taken")),
            score=score,
        )


@dataclass(frozen=True)
class StudyPlanRecord:
    id: str
    topic: str
    subject: str  # raw subject name, "" when the plan has none
    status: str
    target_date: Optional[datetime] = None
    subject_id: Optional[str] = None

    @property
    def subject_label(self) -> str:
        return self.subject or UNKNOWN_SUBJECT

    @property
    def is_completed(self) -> bool:
        return self.status == STATUS_COMPLETED

    @property
    def is_pending(self) -> bool:
        return self.status == STATUS_PENDING

    @classmethod
    def from_row(cls, row: Dict) -> "StudyPlanRecord":
        _require(row, "id", "status")
        subject_id = row.get("subject_id")
        return cls(
            id=str(row["id"]),
            topic=row.get("topic") or "",
            subject=_subject_name(row, default=""),
            status=row["status"],
            target_date=parse_timestamp(row.get("target_date")),
            subject_id=str(subject_id) if subject_id is not None else None,
        )


# ============= Analytics output =============

@dataclass(frozen=True)
class TestHistoryEntry:
    __test__ = False

    id: str
    title: str
    subject: str
    score: float
    date: datetime


@dataclass(frozen=True)
class SubjectPerformance:
    subject: str
    average_score: float
    test_count: int


@dataclass(frozen=True)
class MonthlyProgress:
    month: str
    tests_completed: int
    average_score: float


@dataclass(frozen=True)
class StudyPlanProgress:
    completed: int
    pending: int
    total: int

    @property
    def completion_percent(self) -> float:
        return (self.completed / self.total * 100) if self.total > 0 else 0.0


@dataclass(frozen=True)
class OverallStats:
    total_tests: int
    average_score: float
    best_score: float
    improvement_trend: float
    trend_available: bool = False


@dataclass(frozen=True)
class AnalyticsSnapshot:
    study_plan_progress: StudyPlanProgress
    test_history: List[TestHistoryEntry]
    subject_performance: Dict[str, SubjectPerformance]
    monthly_progress: Dict[str, MonthlyProgress]
    overall_stats: OverallStats


@dataclass(frozen=True)
class DashboardSummary:
    total_study_plans: int
    completed_study_plans: int
    total_mock_tests: int
    average_score: float
    recent_tests: List[TestHistoryEntry]
    upcoming_plans: List[StudyPlanRecord]


@dataclass(frozen=True)
class ProfileSummary:
    total_study_plans: int
    completed_study_plans: int
    total_tests: int
    average_score: float
    best_score: float
    completion_percent: float
    activity: int
    level: str
    streak: int
