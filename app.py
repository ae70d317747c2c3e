"""StudyTrack: dashboard, study plans, mock tests and analytics."""
import sys
from datetime import date
from pathlib import Path

# Ensure project root is in path
project_root = Path(__file__).resolve().parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

import streamlit as st

from db import (
    create_study_plan,
    create_subject,
    delete_study_plan,
    get_mock_tests,
    get_study_plans,
    get_subjects,
    get_test_questions,
    get_user_id,
    save_attempt,
    update_study_plan_status,
)
from engine import STATUS_COMPLETED, STATUS_PENDING
from importer import SAMPLE_SUBJECT, SAMPLE_TITLE, run_import
from src.analytics import aggregate, dashboard_summary, profile_summary, score_band, trend_direction
from src.models import Question, StudyPlanRecord, TestRecord
from src.scoring import MockTestSession
from src.study_plans import display_status, filter_plans, split_by_status, time_text

PAGES = ["Dashboard", "Study Plans", "Mock Tests", "Analytics", "Profile"]
OPTION_LABELS = "ABCDEFGHIJ"
TREND_ARROWS = {"up": "▲", "down": "▼", "flat": "■"}

st.set_page_config(page_title="StudyTrack", layout="wide")
st.sidebar.title("StudyTrack")
# Allow URL to open a specific page (e.g. after "Take a test")
default_page = st.query_params.get("page", "Dashboard")
if default_page not in PAGES:
    default_page = "Dashboard"
page = st.sidebar.radio("Navigate", PAGES, index=PAGES.index(default_page), label_visibility="collapsed")

user_id = get_user_id() or st.sidebar.text_input("User id", key="user_id")
if not user_id:
    st.info("Set STUDY_USER_ID in .env or enter a user id in the sidebar.")
    st.stop()


def load_records():
    plans = [StudyPlanRecord.from_row(r) for r in get_study_plans(user_id)]
    tests = [TestRecord.from_row(r) for r in get_mock_tests(user_id)]
    return plans, tests


def fmt_score(score: float) -> str:
    return f"{score:.1f}%"


# ----- Dashboard -----
if page == "Dashboard":
    st.header("Dashboard")
    try:
        plans, tests = load_records()
        summary = dashboard_summary(plans, tests)
    except Exception as e:
        st.error(f"Failed to load dashboard data. Check DB and .env (SUPABASE_URL, SUPABASE_KEY). {e}")
        st.stop()

    col1, col2, col3 = st.columns(3)
    with col1:
        st.metric("Study plans", summary.total_study_plans, help=f"{summary.completed_study_plans} completed")
    with col2:
        st.metric("Mock tests", summary.total_mock_tests)
    with col3:
        st.metric("Average score", fmt_score(summary.average_score))
    done = summary.completed_study_plans / summary.total_study_plans if summary.total_study_plans else 0
    st.progress(done, text=f"Study plans: {summary.completed_study_plans}/{summary.total_study_plans}")

    left, right = st.columns(2)
    with left:
        st.subheader("Recent tests")
        if not summary.recent_tests:
            st.caption("No scored tests yet.")
        for entry in summary.recent_tests:
            st.write(f"**{entry.title}** · {fmt_score(entry.score)} ({score_band(entry.score)}) · {entry.date:%Y-%m-%d}")
    with right:
        st.subheader("Upcoming study plans")
        if not summary.upcoming_plans:
            st.caption("No pending plans with a target date.")
        for plan in summary.upcoming_plans:
            st.write(f"**{plan.topic}** · {plan.subject_label} · {time_text(plan)}")
    if st.button("Take a mock test", type="primary"):
        st.query_params["page"] = "Mock Tests"
        st.rerun()

# ----- Study Plans -----
elif page == "Study Plans":
    st.header("Study Plans")
    try:
        subjects = get_subjects(user_id)
        plans = [StudyPlanRecord.from_row(r) for r in get_study_plans(user_id)]
    except Exception as e:
        st.error(f"Failed to load study plans: {e}")
        st.stop()

    with st.expander("New study plan"):
        with st.form("new_plan", clear_on_submit=True):
            topic = st.text_input("Topic")
            subject_names = {s["id"]: s["name"] for s in subjects}
            subject_id = st.selectbox("Subject", list(subject_names), format_func=subject_names.get) if subjects else None
            new_subject = st.text_input("...or a new subject")
            target = st.date_input("Target date", value=date.today())
            if st.form_submit_button("Create"):
                try:
                    if new_subject:
                        subject_id = create_subject(user_id, new_subject).get("id")
                    create_study_plan(user_id, topic, subject_id, target.isoformat())
                    st.success("Study plan created.")
                    st.rerun()
                except Exception as e:
                    st.error(f"Failed to create study plan: {e}")

    col1, col2, col3 = st.columns(3)
    with col1:
        search = st.text_input("Search")
    with col2:
        status = st.selectbox("Status", ["all", STATUS_PENDING, STATUS_COMPLETED])
    with col3:
        subject_options = ["all"] + [s["id"] for s in subjects]
        subject_filter = st.selectbox(
            "Subject",
            subject_options,
            format_func=lambda sid: "All subjects" if sid == "all" else next(s["name"] for s in subjects if s["id"] == sid),
        )
    pending, completed = split_by_status(filter_plans(plans, search, status, subject_filter))

    for title, group in ((f"Pending ({len(pending)})", pending), (f"Completed ({len(completed)})", completed)):
        st.subheader(title)
        for plan in group:
            c1, c2, c3 = st.columns([4, 1, 1])
            with c1:
                st.write(f"**{plan.topic}** · {plan.subject_label} · {display_status(plan)} · {time_text(plan)}")
            with c2:
                new_status = STATUS_PENDING if plan.is_completed else STATUS_COMPLETED
                if st.button(f"Mark {new_status}", key=f"status_{plan.id}"):
                    try:
                        update_study_plan_status(plan.id, new_status)
                        st.rerun()
                    except Exception as e:
                        st.error(f"Failed to update study plan: {e}")
            with c3:
                if st.button("Delete", key=f"delete_{plan.id}"):
                    try:
                        delete_study_plan(plan.id)
                        st.rerun()
                    except Exception as e:
                        st.error(f"Failed to delete study plan: {e}")

# ----- Mock Tests -----
elif page == "Mock Tests":
    st.header("Mock Tests")
    session: MockTestSession | None = st.session_state.get("test_session")

    if session is None:
        try:
            tests = [TestRecord.from_row(r) for r in get_mock_tests(user_id)]
        except Exception as e:
            st.error(f"Failed to load mock tests: {e}")
            st.stop()
        if not tests:
            st.caption("No mock tests yet. Create the sample test below, or import one with `python importer.py`.")
        if st.button("Create sample test", type="primary" if not tests else "secondary"):
            try:
                run_import(None, user_id, SAMPLE_TITLE, SAMPLE_SUBJECT, sample=True)
                st.success("Sample test created.")
                st.rerun()
            except Exception as e:
                st.error(f"Failed to create sample test: {e}")
        for test in tests:
            c1, c2 = st.columns([4, 1])
            with c1:
                scored = f"{fmt_score(test.score)} · {score_band(test.score)}" if test.is_scored else "Not taken"
                st.write(f"**{test.title}** · {test.subject} · {scored}")
            with c2:
                if st.button("Start", key=f"start_{test.id}"):
                    try:
                        questions = [Question.from_row(r) for r in get_test_questions(test.id)]
                        st.session_state["test_session"] = MockTestSession(test.id, questions)
                        st.rerun()
                    except Exception as e:
                        st.error(f"Failed to start test: {e}")
        st.stop()

    if session.submitted and not session.saved:
        result = session.result
        st.warning(f"Your answers are scored ({fmt_score(result.score_percent)}) but not saved yet.")
        if st.session_state.get("save_error"):
            st.error(f"Failed to save attempt: {st.session_state['save_error']}")
        c1, c2 = st.columns(2)
        with c1:
            if st.button("Retry saving", type="primary"):
                try:
                    save_attempt(user_id, session)
                    st.session_state.pop("save_error", None)
                except Exception as e:
                    st.session_state["save_error"] = str(e)
                st.rerun()
        with c2:
            if st.button("Discard attempt"):
                st.session_state.pop("save_error", None)
                del st.session_state["test_session"]
                st.rerun()
        st.stop()

    if session.submitted:
        result = session.result
        st.success(f"Test completed! You scored {fmt_score(result.score_percent)} ({result.correct}/{result.total})")
        by_id = {q.id: q for q in session.questions}
        for i, verdict in enumerate(result.verdicts, 1):
            q = by_id[verdict.question_id]
            mark = "✓" if verdict.is_correct else "✗"
            picked = q.options[verdict.selected_option] if verdict.selected_option is not None else "(not answered)"
            st.write(f"{mark} **Q{i}.** {q.text} · your answer: {picked} · correct: {q.options[q.correct_option]}")
            if q.explanation:
                st.caption(q.explanation)
        if st.button("Close"):
            del st.session_state["test_session"]
            st.rerun()
        st.stop()

    q = session.current_question
    if q is None:
        st.warning("This test has no questions.")
        if st.button("Back"):
            del st.session_state["test_session"]
            st.rerun()
        st.stop()

    n = len(session.questions)
    idx = session.current_question_idx
    st.progress(session.progress, text=f"Question {idx + 1} of {n} · {session.answered_count} answered")
    st.subheader(f"Question {idx + 1}")
    st.write(q.text)

    current = session.answers.get(q.id)
    choice = st.radio(
        "Choose one:",
        range(len(q.options)),
        format_func=lambda i: f"{OPTION_LABELS[i % len(OPTION_LABELS)]}. {q.options[i]}",
        index=current,
        key=f"q_{session.test_id}_{q.id}",
    )
    if choice is not None and choice != current:
        session.select_answer(q.id, choice)

    col1, col2, col3 = st.columns([1, 1, 2])
    with col1:
        if st.button("Previous", disabled=idx == 0):
            session.previous_question()
            st.rerun()
    with col2:
        if st.button("Next", disabled=session.is_last_question):
            session.next_question()
            st.rerun()
    with col3:
        if st.button("Submit test", type="primary"):
            session.submit()
            try:
                save_attempt(user_id, session)
            except Exception as e:
                st.session_state["save_error"] = str(e)
            st.rerun()

# ----- Analytics -----
elif page == "Analytics":
    st.header("Analytics")
    try:
        plans, tests = load_records()
        snapshot = aggregate(plans, tests)
    except Exception as e:
        st.error(f"Failed to load analytics data: {e}")
        st.stop()

    stats = snapshot.overall_stats
    col1, col2, col3, col4 = st.columns(4)
    with col1:
        st.metric("Total tests", stats.total_tests)
    with col2:
        st.metric("Average score", fmt_score(stats.average_score))
    with col3:
        st.metric("Best score", fmt_score(stats.best_score))
    with col4:
        arrow = TREND_ARROWS[trend_direction(stats.improvement_trend)]
        trend = f"{arrow} {stats.improvement_trend:+.1f}%" if stats.trend_available else "—"
        st.metric("Improvement", trend, help="Last 3 tests vs the 3 before them")

    progress = snapshot.study_plan_progress
    st.subheader("Study plan progress")
    st.progress(progress.completion_percent / 100, text=f"{progress.completed} completed · {progress.pending} pending · {progress.total} total")

    left, right = st.columns(2)
    with left:
        st.subheader("Subject performance")
        if snapshot.subject_performance:
            st.bar_chart({"Average score": {s: p.average_score for s, p in snapshot.subject_performance.items()}})
            for subject, perf in snapshot.subject_performance.items():
                st.write(f"**{subject}** · {fmt_score(perf.average_score)} over {perf.test_count} test(s)")
        else:
            st.caption("No scored tests yet.")
    with right:
        st.subheader("Monthly progress (last 6 months)")
        if snapshot.monthly_progress:
            months = list(reversed(snapshot.monthly_progress.values()))
            st.line_chart({"Average score": {m.month: m.average_score for m in months}})
            for m in months:
                st.write(f"**{m.month}** · {m.tests_completed} test(s) · {fmt_score(m.average_score)}")
        else:
            st.caption("No tests in the last 6 months.")

    st.subheader("Test history")
    st.dataframe(
        [
            {"Title": e.title, "Subject": e.subject, "Score": fmt_score(e.score), "Band": score_band(e.score), "Date": f"{e.date:%Y-%m-%d}"}
            for e in snapshot.test_history
        ],
        use_container_width=True,
    )

# ----- Profile -----
elif page == "Profile":
    st.header("Profile")
    try:
        plans, tests = load_records()
        profile = profile_summary(plans, tests)
    except Exception as e:
        st.error(f"Failed to load profile data: {e}")
        st.stop()

    st.subheader(f"Level: {profile.level}")
    st.caption(f"Streak: {profile.streak} days · {profile.activity} completed activities")
    st.progress(profile.completion_percent / 100, text=f"{profile.completed_study_plans} of {profile.total_study_plans} study plans completed")
    col1, col2, col3, col4 = st.columns(4)
    with col1:
        st.metric("Study plans", profile.total_study_plans)
    with col2:
        st.metric("Tests", profile.total_tests)
    with col3:
        st.metric("Average score", fmt_score(profile.average_score))
    with col4:
        st.metric("Best score", fmt_score(profile.best_score))
