"""Tests for the analytics aggregation."""
from datetime import datetime, timezone

import pytest

from src.analytics import (
    aggregate,
    dashboard_summary,
    improvement_trend,
    learner_level,
    months_ago,
    profile_summary,
    score_band,
    trend_direction,
)
from src.errors import InvalidInput
from src.models import SubjectPerformance, TestRecord


def utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Study plan progress
# ---------------------------------------------------------------------------

def test_other_statuses_count_toward_total_only(make_plan, now):
    plans = [make_plan("Completed"), make_plan("Pending"), make_plan("Archived")]
    progress = aggregate(plans, [], now=now).study_plan_progress
    assert (progress.completed, progress.pending, progress.total) == (1, 1, 3)
    assert progress.completed + progress.pending < progress.total


def test_status_match_is_exact(make_plan, now):
    progress = aggregate([make_plan("completed"), make_plan("PENDING")], [], now=now).study_plan_progress
    assert (progress.completed, progress.pending, progress.total) == (0, 0, 2)


def test_completion_percent(make_plan, now):
    plans = [make_plan("Completed"), make_plan("Pending"), make_plan("Pending"), make_plan("Completed")]
    assert aggregate(plans, [], now=now).study_plan_progress.completion_percent == 50.0
    assert aggregate([], [], now=now).study_plan_progress.completion_percent == 0.0


# ---------------------------------------------------------------------------
# Test history
# ---------------------------------------------------------------------------

def test_unscored_tests_are_excluded_not_zero(make_test, now):
    tests = [make_test(score=None), make_test(score=50.0), make_test(score=None)]
    snapshot = aggregate([], tests, now=now)
    assert [e.score for e in snapshot.test_history] == [50.0]
    assert snapshot.overall_stats.total_tests == 1
    assert snapshot.overall_stats.average_score == 50.0


def test_history_keeps_supplied_order(make_test, now):
    tests = [make_test(score=10.0, date=utc(2026, 1, 1)), make_test(score=20.0, date=utc(2026, 9, 1))]
    history = aggregate([], tests, now=now).test_history
    assert [e.score for e in history] == [10.0, 20.0]
    assert history[0].title == "Test 1"
    assert history[0].subject == "Math"


# ---------------------------------------------------------------------------
# Per-subject performance
# ---------------------------------------------------------------------------

def test_subject_performance(make_test, now):
    tests = [make_test(80.0, "Math"), make_test(60.0, "Math"), make_test(90.0, "SQL")]
    perf = aggregate([], tests, now=now).subject_performance
    assert perf == {
        "Math": SubjectPerformance("Math", 70.0, 2),
        "SQL": SubjectPerformance("SQL", 90.0, 1),
    }


def test_subject_labels_are_case_sensitive(make_test, now):
    tests = [make_test(80.0, "Math"), make_test(60.0, "math"), make_test(40.0, "Math ")]
    perf = aggregate([], tests, now=now).subject_performance
    assert list(perf) == ["Math", "math", "Math "]
    assert all(p.test_count == 1 for p in perf.values())


def test_subjects_without_scored_tests_are_absent(make_test, now):
    tests = [make_test(None, "Physics"), make_test(70.0, "Math")]
    assert list(aggregate([], tests, now=now).subject_performance) == ["Math"]


# ---------------------------------------------------------------------------
# Monthly trend
# ---------------------------------------------------------------------------

def test_monthly_buckets_within_six_months(make_test, now):
    tests = [
        make_test(90.0, date=utc(2026, 10, 2)),
        make_test(70.0, date=utc(2026, 10, 1)),
        make_test(50.0, date=utc(2026, 7, 15)),
        make_test(40.0, date=utc(2026, 1, 15)),
    ]
    monthly = aggregate([], tests, now=now).monthly_progress
    assert list(monthly) == ["Oct 2026", "Jul 2026"]
    assert monthly["Oct 2026"].tests_completed == 2
    assert monthly["Oct 2026"].average_score == 80.0
    assert monthly["Jul 2026"].tests_completed == 1


def test_monthly_window_has_no_zero_filled_gaps(make_test, now):
    monthly = aggregate([], [make_test(60.0, date=utc(2026, 5, 20))], now=now).monthly_progress
    assert list(monthly) == ["May 2026"]


def test_monthly_cutoff_is_calendar_months(make_test, now):
    # now = 2026-10-18 12:00, cutoff = 2026-04-18 12:00
    tests = [
        make_test(10.0, date=utc(2026, 4, 18, 12, 0)),
        make_test(20.0, date=utc(2026, 4, 18, 11, 59)),
    ]
    monthly = aggregate([], tests, now=now).monthly_progress
    assert monthly["Apr 2026"].tests_completed == 1
    assert monthly["Apr 2026"].average_score == 10.0


def test_monthly_window_does_not_limit_overall_stats(make_test, now):
    tests = [make_test(100.0, date=utc(2020, 1, 1)), make_test(50.0, date=utc(2026, 10, 1))]
    snapshot = aggregate([], tests, now=now)
    assert list(snapshot.monthly_progress) == ["Oct 2026"]
    assert snapshot.overall_stats.total_tests == 2
    assert snapshot.overall_stats.best_score == 100.0


@pytest.mark.parametrize(
    "now, expected",
    [
        (utc(2026, 10, 18), utc(2026, 4, 18)),
        (utc(2026, 3, 31), utc(2025, 10, 1)),
        (utc(2026, 8, 31), utc(2026, 3, 3)),
        (utc(2028, 8, 31), utc(2028, 3, 2)),
        (utc(2026, 1, 15, 9, 30), utc(2025, 7, 15, 9, 30)),
    ],
)
def test_months_ago_rolls_missing_days_forward(now, expected):
    assert months_ago(now, 6) == expected


def test_naive_now_is_treated_as_utc(make_test):
    tests = [make_test(60.0, date=utc(2026, 10, 1))]
    monthly = aggregate([], tests, now=datetime(2026, 10, 18)).monthly_progress
    assert list(monthly) == ["Oct 2026"]


# ---------------------------------------------------------------------------
# Overall stats
# ---------------------------------------------------------------------------

def test_improvement_trend_with_seven_tests(make_test, now):
    tests = [make_test(float(s)) for s in [90, 80, 70, 60, 50, 40, 30]]
    stats = aggregate([], tests, now=now).overall_stats
    assert stats.improvement_trend == 30.0
    assert stats.trend_available


def test_improvement_trend_is_zero_below_six_tests(make_test, now):
    tests = [make_test(float(s)) for s in [90, 10, 50]]
    stats = aggregate([], tests, now=now).overall_stats
    assert stats.improvement_trend == 0
    assert not stats.trend_available
    assert stats.total_tests == 3


def test_improvement_trend_can_be_negative():
    assert improvement_trend([10, 20, 30, 70, 80, 90]) == -60.0


def test_improvement_trend_uses_supplied_order_not_dates(make_test, now):
    dates = [utc(2026, 1, d) for d in range(1, 7)]
    tests = [make_test(float(s), date=d) for s, d in zip([100, 100, 100, 0, 0, 0], dates)]
    assert aggregate([], tests, now=now).overall_stats.improvement_trend == 100.0


def test_empty_history_defaults(make_plan, now):
    snapshot = aggregate([make_plan()], [], now=now)
    stats = snapshot.overall_stats
    assert (stats.total_tests, stats.average_score, stats.best_score, stats.improvement_trend) == (0, 0, 0, 0)
    assert snapshot.subject_performance == {}
    assert snapshot.monthly_progress == {}
    assert snapshot.test_history == []


def test_average_and_best(make_test, now):
    stats = aggregate([], [make_test(40.0), make_test(95.5), make_test(60.0)], now=now).overall_stats
    assert stats.average_score == pytest.approx(65.1666666)
    assert stats.best_score == 95.5


def test_aggregate_is_recomputed_each_call(make_test, now):
    tests = [make_test(50.0)]
    first = aggregate([], tests, now=now)
    tests.append(make_test(100.0))
    second = aggregate([], tests, now=now)
    assert first.overall_stats.total_tests == 1
    assert second.overall_stats.total_tests == 2


@pytest.mark.parametrize("plans, tests", [(None, []), ([], None), ("plans", []), ([], [{"score": 10}])])
def test_bad_shapes_raise_invalid_input(plans, tests, now):
    with pytest.raises(InvalidInput):
        aggregate(plans, tests, now=now)


@pytest.mark.parametrize(
    "row",
    [
        {"id": "t1", "created_at": None, "scores": [{"score_percent": 80}]},
        {"id": "t1", "created_at": "2026-10-01", "scores": [{"score_percent": None}]},
        {"id": "t1", "created_at": "2026-10-01", "scores": [{"score_percent": "NaN"}]},
    ],
)
def test_malformed_rows_never_reach_the_averages(row, now):
    with pytest.raises(InvalidInput):
        aggregate([], [TestRecord.from_row(row)], now=now)


# ---------------------------------------------------------------------------
# Bands, direction, dashboard, profile
# ---------------------------------------------------------------------------

@pytest.mark.parametrize(
    "score, band",
    [(100, "Excellent"), (80, "Excellent"), (79.9, "Good"), (60, "Good"), (59.99, "Needs Improvement"), (0, "Needs Improvement")],
)
def test_score_band(score, band):
    assert score_band(score) == band


def test_trend_direction():
    assert trend_direction(0.1) == "up"
    assert trend_direction(-5) == "down"
    assert trend_direction(0) == "flat"


def test_dashboard_summary(make_plan, make_test):
    plans = [
        make_plan("Pending", target_date=utc(2026, 12, 1), topic="Late"),
        make_plan("Pending", target_date=utc(2026, 11, 1), topic="Soon"),
        make_plan("Pending", target_date=None, topic="Undated"),
        make_plan("Completed", target_date=utc(2026, 10, 1), topic="Done"),
    ]
    tests = [make_test(None)] + [make_test(float(s)) for s in [90, 80, 70, 60, 50, 40]]
    summary = dashboard_summary(plans, tests)
    assert summary.total_study_plans == 4
    assert summary.completed_study_plans == 1
    assert summary.total_mock_tests == 7
    assert summary.average_score == 65.0
    assert [t.score for t in summary.recent_tests] == [90, 80, 70, 60, 50]
    assert [p.topic for p in summary.upcoming_plans] == ["Soon", "Late"]


def test_dashboard_summary_empty():
    summary = dashboard_summary([], [])
    assert summary.average_score == 0
    assert summary.recent_tests == []
    assert summary.upcoming_plans == []


@pytest.mark.parametrize("activity, level", [(0, "Beginner"), (4, "Beginner"), (5, "Intermediate"), (10, "Advanced"), (19, "Advanced"), (20, "Expert")])
def test_learner_level(activity, level):
    assert learner_level(activity) == level


def test_profile_summary(make_plan, make_test):
    plans = [make_plan("Completed"), make_plan("Completed"), make_plan("Pending")]
    tests = [make_test(70.0), make_test(90.0), make_test(None)]
    profile = profile_summary(plans, tests)
    assert profile.total_tests == 3
    assert profile.average_score == 80.0
    assert profile.best_score == 90.0
    assert profile.activity == 4
    assert profile.level == "Beginner"
    assert profile.streak == 4
    assert profile.completion_percent == pytest.approx(200 / 3)


def test_profile_streak_is_capped(make_plan):
    profile = profile_summary([make_plan("Completed") for _ in range(40)], [])
    assert profile.level == "Expert"
    assert profile.streak == 30
