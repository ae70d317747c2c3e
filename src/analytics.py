"""
Analytics: turns study plans and scored mock tests into progress and trend figures.
All figures are recomputed from the supplied records on every call.

History order is the order the records arrive in (most recent first, as fetched
by db.get_mock_tests); nothing here re-sorts tests by date.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Sequence

from engine import (
    DEFAULT_LEVEL,
    LEVEL_THRESHOLDS,
    MONTH_LABEL_FORMAT,
    MONTHLY_WINDOW_MONTHS,
    RECENT_TESTS_LIMIT,
    SCORE_EXCELLENT,
    SCORE_GOOD,
    STREAK_CAP_DAYS,
    TREND_WINDOW,
    UPCOMING_PLANS_LIMIT,
)
from src.errors import InvalidInput
from src.models import (
    AnalyticsSnapshot,
    DashboardSummary,
    MonthlyProgress,
    OverallStats,
    ProfileSummary,
    StudyPlanProgress,
    StudyPlanRecord,
    SubjectPerformance,
    TestHistoryEntry,
    TestRecord,
    parse_timestamp,
)

logger = logging.getLogger(__name__)


def _check_records(records, record_type, name: str) -> None:
    if not isinstance(records, (list, tuple)):
        raise InvalidInput(f"{name} must be a list of {record_type.__name__}, got {type(records).__name__}")
    for record in records:
        if not isinstance(record, record_type):
            raise InvalidInput(f"{name} must contain {record_type.__name__}, got {type(record).__name__}")


def _mean(values: Sequence[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def months_ago(now: datetime, months: int) -> datetime:
    """Subtract calendar months, keeping day and time.

    A day that does not exist in the target month rolls forward into the next
    month (Aug 31 minus 6 months is Mar 3, or Mar 2 in a leap year).
    """
    month_index = now.month - 1 - months
    year = now.year + month_index // 12
    month = month_index % 12 + 1
    return now.replace(year=year, month=month, day=1) + timedelta(days=now.day - 1)


def score_band(score: float) -> str:
    if score >= SCORE_EXCELLENT:
        return "Excellent"
    if score >= SCORE_GOOD:
        return "Good"
    return "Needs Improvement"


def trend_direction(trend: float) -> str:
    if trend > 0:
        return "up"
    if trend < 0:
        return "down"
    return "flat"


def study_plan_progress(study_plans: Sequence[StudyPlanRecord]) -> StudyPlanProgress:
    """Completed/pending counts. Other statuses count toward total only."""
    return StudyPlanProgress(
        completed=sum(1 for p in study_plans if p.is_completed),
        pending=sum(1 for p in study_plans if p.is_pending),
        total=len(study_plans),
    )


def build_test_history(tests: Sequence[TestRecord]) -> List[TestHistoryEntry]:
    """Scored tests only, in the supplied order. Unscored tests are dropped, not counted as 0."""
    return [
        TestHistoryEntry(id=t.id, title=t.title, subject=t.subject, score=t.score, date=t.date)
        for t in tests
        if t.is_scored
    ]


def subject_performance(history: Sequence[TestHistoryEntry]) -> Dict[str, SubjectPerformance]:
    """Average score and count per subject label (exact, case-sensitive match)."""
    scores_by_subject: Dict[str, List[float]] = {}
    for entry in history:
        scores_by_subject.setdefault(entry.subject, []).append(entry.score)
    return {
        subject: SubjectPerformance(subject=subject, average_score=_mean(scores), test_count=len(scores))
        for subject, scores in scores_by_subject.items()
    }


def monthly_progress(history: Sequence[TestHistoryEntry], now: datetime) -> Dict[str, MonthlyProgress]:
    """Tests completed and average score per month, for entries dated within the monthly window."""
    cutoff = months_ago(now, MONTHLY_WINDOW_MONTHS)
    scores_by_month: Dict[str, List[float]] = {}
    for entry in history:
        if entry.date < cutoff:
            continue
        label = entry.date.strftime(MONTH_LABEL_FORMAT)
        scores_by_month.setdefault(label, []).append(entry.score)
    return {
        month: MonthlyProgress(month=month, tests_completed=len(scores), average_score=_mean(scores))
        for month, scores in scores_by_month.items()
    }


def improvement_trend(scores: Sequence[float]) -> float:
    """
    Mean of the first TREND_WINDOW scores minus mean of the next TREND_WINDOW.

    Returns 0 when there are fewer than 2 * TREND_WINDOW scores.
    """
    if len(scores) < 2 * TREND_WINDOW:
        return 0.0
    recent = scores[:TREND_WINDOW]
    previous = scores[TREND_WINDOW:2 * TREND_WINDOW]
    return _mean(recent) - _mean(previous)


def overall_stats(history: Sequence[TestHistoryEntry]) -> OverallStats:
    """Stats over the entire history, independent of the monthly window."""
    scores = [entry.score for entry in history]
    return OverallStats(
        total_tests=len(scores),
        average_score=_mean(scores),
        best_score=max(scores) if scores else 0.0,
        improvement_trend=improvement_trend(scores),
        trend_available=len(scores) >= 2 * TREND_WINDOW,
    )


def aggregate(
    study_plans: Sequence[StudyPlanRecord],
    tests: Sequence[TestRecord],
    now: Optional[datetime] = None,
) -> AnalyticsSnapshot:
    """
    Compute the full analytics snapshot.

    Args:
        study_plans: All study plans of the learner
        tests: Mock tests, most recent first, each carrying its latest score (if any)
        now: Reference time for the monthly window (default: current UTC time)

    Returns:
        AnalyticsSnapshot
    """
    _check_records(study_plans, StudyPlanRecord, "study_plans")
    _check_records(tests, TestRecord, "tests")
    now = parse_timestamp(now) if now is not None else datetime.now(timezone.utc)

    history = build_test_history(tests)
    snapshot = AnalyticsSnapshot(
        study_plan_progress=study_plan_progress(study_plans),
        test_history=history,
        subject_performance=subject_performance(history),
        monthly_progress=monthly_progress(history, now),
        overall_stats=overall_stats(history),
    )
    logger.debug(
        f"Aggregated {len(study_plans)} plans, {len(tests)} tests ({len(history)} scored): "
        f"{len(snapshot.subject_performance)} subjects, {len(snapshot.monthly_progress)} months"
    )
    return snapshot


def dashboard_summary(study_plans: Sequence[StudyPlanRecord], tests: Sequence[TestRecord]) -> DashboardSummary:
    """Headline numbers, latest scored tests, and the next pending plans by target date."""
    _check_records(study_plans, StudyPlanRecord, "study_plans")
    _check_records(tests, TestRecord, "tests")

    history = build_test_history(tests)
    upcoming = sorted(
        (p for p in study_plans if p.is_pending and p.target_date is not None),
        key=lambda p: p.target_date,
    )
    return DashboardSummary(
        total_study_plans=len(study_plans),
        completed_study_plans=sum(1 for p in study_plans if p.is_completed),
        total_mock_tests=len(tests),
        average_score=_mean([entry.score for entry in history]),
        recent_tests=history[:RECENT_TESTS_LIMIT],
        upcoming_plans=upcoming[:UPCOMING_PLANS_LIMIT],
    )


def learner_level(activity: int) -> str:
    for minimum, level in LEVEL_THRESHOLDS:
        if activity >= minimum:
            return level
    return DEFAULT_LEVEL


def profile_summary(study_plans: Sequence[StudyPlanRecord], tests: Sequence[TestRecord]) -> ProfileSummary:
    _check_records(study_plans, StudyPlanRecord, "study_plans")
    _check_records(tests, TestRecord, "tests")

    progress = study_plan_progress(study_plans)
    scores = [entry.score for entry in build_test_history(tests)]
    activity = progress.completed + len(scores)
    return ProfileSummary(
        total_study_plans=progress.total,
        completed_study_plans=progress.completed,
        total_tests=len(tests),
        average_score=_mean(scores),
        best_score=max(scores) if scores else 0.0,
        completion_percent=progress.completion_percent,
        activity=activity,
        level=learner_level(activity),
        streak=min(activity, STREAK_CAP_DAYS),
    )
