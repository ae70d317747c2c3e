"""Supabase CRUD for subjects, study plans, mock tests, questions and scores. Client is cached via Streamlit."""
import logging
import os
from uuid import UUID

import streamlit as st
from dotenv import load_dotenv
from supabase import create_client, Client

from engine import STATUS_PENDING

load_dotenv()

log = logging.getLogger(__name__)


def _env_client() -> Client:
    url = os.environ.get("SUPABASE_URL")
    key = os.environ.get("SUPABASE_KEY")
    if not url or not key:
        raise ValueError("SUPABASE_URL and SUPABASE_KEY must be set")
    return create_client(url, key)


@st.cache_resource
def get_supabase() -> Client:
    return _env_client()


def get_supabase_uncached() -> Client:
    """For CLI/scripts (no Streamlit context)."""
    return _env_client()


def get_user_id() -> str | None:
    """Learner whose rows are read and written (no auth; taken from STUDY_USER_ID)."""
    return os.environ.get("STUDY_USER_ID") or None


# --- Subjects ---

def get_subjects(user_id: UUID | str, client: Client | None = None) -> list[dict]:
    client = client or get_supabase()
    r = client.table("subjects").select("*").eq("created_by", str(user_id)).order("name").execute()
    return r.data or []


def create_subject(user_id: UUID | str, name: str, client: Client | None = None) -> dict:
    client = client or get_supabase()
    r = client.table("subjects").insert([{"name": name, "created_by": str(user_id)}]).execute()
    log.info("Created subject %r", name)
    return (r.data or [{}])[0]


def get_or_create_subject(user_id: UUID | str, name: str, client: Client | None = None) -> dict:
    """Existing subject with this exact name, or a new one."""
    client = client or get_supabase()
    for subject in get_subjects(user_id, client=client):
        if subject.get("name") == name:
            return subject
    return create_subject(user_id, name, client=client)


# --- Study plans ---

def get_study_plans(user_id: UUID | str, client: Client | None = None) -> list[dict]:
    client = client or get_supabase()
    r = (
        client.table("study_plans")
        .select("*, subjects(name)")
        .eq("user_id", str(user_id))
        .order("target_date")
        .execute()
    )
    rows = r.data or []
    log.info("Fetched %d study plans", len(rows))
    return rows


def create_study_plan(user_id: UUID | str, topic: str, subject_id: UUID | str, target_date: str, client: Client | None = None) -> dict:
    if not topic or not subject_id or not target_date:
        raise ValueError("topic, subject_id and target_date are required")
    client = client or get_supabase()
    row = {
        "user_id": str(user_id),
        "topic": topic,
        "subject_id": str(subject_id),
        "target_date": target_date,
        "status": STATUS_PENDING,
    }
    r = client.table("study_plans").insert([row]).execute()
    return (r.data or [{}])[0]


def update_study_plan_status(plan_id: UUID | str, status: str, client: Client | None = None):
    client = client or get_supabase()
    return client.table("study_plans").update({"status": status}).eq("id", str(plan_id)).execute()


def delete_study_plan(plan_id: UUID | str, client: Client | None = None):
    client = client or get_supabase()
    return client.table("study_plans").delete().eq("id", str(plan_id)).execute()


# --- Mock tests ---

def get_mock_tests(user_id: UUID | str, client: Client | None = None) -> list[dict]:
    """Tests with their subject name and scores, most recent first.

    Embedded scores are sorted by date_taken descending, so scores[0] is the latest.
    """
    client = client or get_supabase()
    r = (
        client.table("mock_tests")
        .select("*, scores(*), subjects(name)")
        .eq("user_id", str(user_id))
        .order("created_at", desc=True)
        .execute()
    )
    rows = r.data or []
    for row in rows:
        row["scores"] = sorted(row.get("scores") or [], key=lambda s: s.get("date_taken") or "", reverse=True)
    log.info("Fetched %d mock tests", len(rows))
    return rows


def create_mock_test(user_id: UUID | str, title: str, subject_id: UUID | str | None, date_taken: str | None = None, client: Client | None = None) -> dict:
    client = client or get_supabase()
    row = {"title": title, "user_id": str(user_id), "subject_id": str(subject_id) if subject_id else None}
    if date_taken:
        row["date_taken"] = date_taken
    r = client.table("mock_tests").insert([row]).execute()
    return (r.data or [{}])[0]


def get_test_questions(mock_test_id: UUID | str, client: Client | None = None) -> list[dict]:
    client = client or get_supabase()
    r = client.table("questions").select("*").eq("mock_test_id", str(mock_test_id)).order("created_at").execute()
    return r.data or []


def insert_questions(mock_test_id: UUID | str, rows: list[dict], chunk_size: int = 200, client: Client | None = None) -> int:
    """Insert question rows for a test in chunks. Returns rows inserted."""
    if not rows:
        return 0
    client = client or get_supabase()
    rows = [{**row, "mock_test_id": str(mock_test_id)} for row in rows]
    n_chunks = (len(rows) + chunk_size - 1) // chunk_size
    for i in range(0, len(rows), chunk_size):
        chunk = rows[i : i + chunk_size]
        log.info("Inserting question chunk %d/%d (%d rows)", i // chunk_size + 1, n_chunks, len(chunk))
        client.table("questions").insert(chunk).execute()
    return len(rows)


# --- Attempts ---

def record_selected_options(selected: dict, client: Client | None = None) -> None:
    """Write user_selected_option for each answered question ({question_id: option})."""
    client = client or get_supabase()
    for question_id, option in selected.items():
        client.table("questions").update({"user_selected_option": option}).eq("id", str(question_id)).execute()


def insert_score(row: dict, client: Client | None = None) -> dict:
    client = client or get_supabase()
    r = client.table("scores").insert([row]).execute()
    return (r.data or [{}])[0]


def save_attempt(user_id: UUID | str, session, client: Client | None = None) -> dict:
    """Persist a submitted MockTestSession: selected options, then the score row.

    The writes are not transactional. If one fails, the options written so far
    stay and the session is left unsaved; calling again rewrites the options
    (plain updates) and inserts the score row once. A session that is already
    saved is not written again.
    """
    if not session.submitted:
        raise ValueError(f"Session for test {session.test_id} has not been submitted")
    if session.saved:
        return session.saved_score
    client = client or get_supabase()
    record_selected_options(session.selected_options(), client=client)
    saved = insert_score(session.result.to_row(session.test_id, str(user_id)), client=client)
    session.mark_saved(saved)
    log.info("Saved attempt for test %s (%.1f%%)", session.test_id, session.result.score_percent)
    return saved
