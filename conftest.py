"""Shared fixtures for StudyTrack tests."""
import itertools
from datetime import datetime, timezone
from types import SimpleNamespace

import pytest

from src.models import Question, StudyPlanRecord, TestRecord

NOW = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def five_questions():
    """Correct options [0, 2, 2, 1, 1]."""
    correct = [0, 2, 2, 1, 1]
    return [
        Question(id=f"q{i}", text=f"Question {i}", options=["a", "b", "c", "d"], correct_option=c)
        for i, c in enumerate(correct, 1)
    ]


@pytest.fixture
def make_test():
    """Factory for TestRecord with sensible defaults."""
    counter = itertools.count(1)

    def _make(score=None, subject="Math", date=NOW, title=None):
        n = next(counter)
        return TestRecord(
            id=f"t{n}",
            title=title or f"Test {n}",
            subject=subject,
            created_at=date,
            date_taken=date,
            score=score,
        )
    return _make


@pytest.fixture
def make_plan():
    counter = itertools.count(1)

    def _make(status="Pending", target_date=None, topic=None, subject="Math", subject_id="s1"):
        n = next(counter)
        return StudyPlanRecord(
            id=f"p{n}",
            topic=topic or f"Topic {n}",
            subject=subject,
            status=status,
            target_date=target_date,
            subject_id=subject_id,
        )
    return _make


class FakeQuery:
    """Records chained query-builder calls; execute() returns canned rows."""

    def __init__(self, client, table):
        self.client = client
        self.table = table
        self.calls = []

    def __getattr__(self, name):
        def _call(*args, **kwargs):
            self.calls.append((name, args, kwargs))
            return self
        return _call

    def call(self, name):
        return next((c for c in self.calls if c[0] == name), None)

    def execute(self):
        insert = self.call("insert")
        if insert:
            rows = [{"id": f"{self.table}-{i}", **row} for i, row in enumerate(insert[1][0], 1)]
            return SimpleNamespace(data=rows)
        return SimpleNamespace(data=self.client.rows.get(self.table, []))


class FakeSupabase:
    def __init__(self, rows=None):
        self.rows = rows or {}
        self.queries = []

    def table(self, name):
        query = FakeQuery(self, name)
        self.queries.append(query)
        return query

    def queries_for(self, table, method=None):
        return [q for q in self.queries if q.table == table and (method is None or q.call(method))]


@pytest.fixture
def fake_supabase():
    return FakeSupabase
