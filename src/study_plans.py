"""Study plan status text, overdue detection and list filtering."""
import math
from datetime import datetime, timezone
from typing import List, Optional, Sequence, Tuple

from engine import STATUS_COMPLETED
from src.models import StudyPlanRecord, parse_timestamp

SECONDS_PER_DAY = 24 * 60 * 60


def _now(now: Optional[datetime]) -> datetime:
    return parse_timestamp(now) if now is not None else datetime.now(timezone.utc)


def is_overdue(plan: StudyPlanRecord, now: Optional[datetime] = None) -> bool:
    if plan.is_completed or plan.target_date is None:
        return False
    return plan.target_date < _now(now)


def days_until_target(plan: StudyPlanRecord, now: Optional[datetime] = None) -> Optional[int]:
    """Whole days to the target date, rounded up; negative when overdue."""
    if plan.target_date is None:
        return None
    delta = (plan.target_date - _now(now)).total_seconds()
    return math.ceil(delta / SECONDS_PER_DAY)


def display_status(plan: StudyPlanRecord, now: Optional[datetime] = None) -> str:
    if plan.is_completed:
        return STATUS_COMPLETED
    if is_overdue(plan, now):
        return "Overdue"
    return "Pending"


def time_text(plan: StudyPlanRecord, now: Optional[datetime] = None) -> str:
    if plan.is_completed:
        return "Completed"
    days = days_until_target(plan, now)
    if days is None:
        return "No target date"
    if is_overdue(plan, now):
        return f"{abs(days)} days overdue"
    if days == 0:
        return "Due today"
    if days == 1:
        return "Due tomorrow"
    return f"{days} days left"


def filter_plans(
    plans: Sequence[StudyPlanRecord],
    search: str = "",
    status: str = "all",
    subject_id: str = "all",
) -> List[StudyPlanRecord]:
    """Search topic/subject (case-insensitive), then exact status and subject id. "all" skips a filter."""
    filtered = list(plans)
    if search:
        term = search.lower()
        filtered = [p for p in filtered if term in p.topic.lower() or term in p.subject.lower()]
    if status != "all":
        filtered = [p for p in filtered if p.status == status]
    if subject_id != "all":
        filtered = [p for p in filtered if p.subject_id == subject_id]
    return filtered


def split_by_status(plans: Sequence[StudyPlanRecord]) -> Tuple[List[StudyPlanRecord], List[StudyPlanRecord]]:
    """(pending, completed). Plans with any other status are in neither list."""
    pending = [p for p in plans if p.is_pending]
    completed = [p for p in plans if p.is_completed]
    return pending, completed
