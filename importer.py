"""Create a mock test in Supabase from a .jsonl question file, or the built-in sample Mathematics test."""
import json
import argparse
import logging
from pathlib import Path

from db import create_mock_test, get_or_create_subject, get_supabase_uncached, get_user_id, insert_questions
from src.errors import InvalidInput
from src.models import Question

log = logging.getLogger(__name__)

SAMPLE_TITLE = "Sample Mathematics Test"
SAMPLE_SUBJECT = "Mathematics"
SAMPLE_QUESTIONS = [
    {"question_text": "What is 15 + 27?", "options": ["42", "41", "43", "40"], "correct_option": 0, "explanation": "15 + 27 = 42"},
    {"question_text": "What is the square root of 64?", "options": ["6", "7", "8", "9"], "correct_option": 2, "explanation": "√64 = 8 because 8 × 8 = 64"},
    {"question_text": "What is 12 × 8?", "options": ["94", "95", "96", "97"], "correct_option": 2, "explanation": "12 × 8 = 96"},
    {"question_text": "What is 144 ÷ 12?", "options": ["11", "12", "13", "14"], "correct_option": 1, "explanation": "144 ÷ 12 = 12"},
    {"question_text": "What is 25% of 80?", "options": ["15", "20", "25", "30"], "correct_option": 1, "explanation": "25% of 80 = 0.25 × 80 = 20"},
]


def parse_line(line: str, line_no: int = 0) -> dict | None:
    """Parse one JSONL line into a questions row. Returns None if blank or invalid."""
    line = line.strip()
    if not line:
        return None
    try:
        raw = json.loads(line)
    except json.JSONDecodeError:
        log.warning("Line %d: not valid JSON, skipped", line_no)
        return None
    if not isinstance(raw, dict):
        log.warning("Line %d: expected an object, skipped", line_no)
        return None
    text = (raw.get("question_text") or raw.get("text") or "").strip()
    if not text:
        log.warning("Line %d: no question_text, skipped", line_no)
        return None
    row = {
        "question_text": text,
        "options": raw.get("options"),
        "correct_option": raw.get("correct_option"),
        "explanation": raw.get("explanation") or "",
    }
    if not isinstance(row["options"], list):
        log.warning("Line %d: options must be a list, skipped", line_no)
        return None
    try:
        # Same rules the scoring core applies: >= 2 options, valid correct index
        Question(id=f"line-{line_no}", text=text, options=row["options"] or [], correct_option=row["correct_option"])
    except InvalidInput as e:
        log.warning("Line %d: %s, skipped", line_no, e)
        return None
    return row


def load_questions(path: Path) -> list[dict]:
    """Read JSONL and return valid question rows."""
    rows = []
    with path.open("r", encoding="utf-8") as f:
        for line_no, line in enumerate(f, 1):
            row = parse_line(line, line_no)
            if row:
                rows.append(row)
    return rows


def run_import(
    jsonl_path: Path | None,
    user_id: str,
    title: str,
    subject: str,
    sample: bool = False,
    dry_run: bool = False,
) -> dict | None:
    if sample:
        rows, title, subject = [dict(q) for q in SAMPLE_QUESTIONS], SAMPLE_TITLE, SAMPLE_SUBJECT
    else:
        if jsonl_path is None or not jsonl_path.exists():
            raise FileNotFoundError(f"JSONL not found: {jsonl_path}")
        rows = load_questions(jsonl_path)
    if not rows:
        raise ValueError("No valid questions to import")
    if dry_run:
        print(f"Dry run: would create {title!r} ({subject}) with {len(rows)} questions")
        print("Sample row:", rows[0])
        return None
    client = get_supabase_uncached()
    subject_row = get_or_create_subject(user_id, subject, client=client)
    test = create_mock_test(user_id, title, subject_row.get("id"), client=client)
    insert_questions(test["id"], rows, client=client)
    print(f"Created mock test {test['id']} {title!r} with {len(rows)} questions")
    return test


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
    parser = argparse.ArgumentParser(description="Create a mock test from a JSONL question file.")
    parser.add_argument("jsonl", nargs="?", default=None, help="Path to .jsonl (one question per line)")
    parser.add_argument("--user-id", default=get_user_id(), help="Owner of the test (default: $STUDY_USER_ID)")
    parser.add_argument("--title", default="Imported Test", help="Mock test title")
    parser.add_argument("--subject", default="General", help="Subject name (created if missing)")
    parser.add_argument("--sample", action="store_true", help="Create the built-in sample Mathematics test")
    parser.add_argument("--dry-run", action="store_true", help="Parse only, do not insert")
    args = parser.parse_args()
    if not args.user_id and not args.dry_run:
        parser.error("--user-id or STUDY_USER_ID is required")
    path = Path(args.jsonl) if args.jsonl else None
    run_import(path, args.user_id, args.title, args.subject, sample=args.sample, dry_run=args.dry_run)
