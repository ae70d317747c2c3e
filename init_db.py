"""Print the Supabase database schema for StudyTrack (run it in the Supabase SQL Editor)."""
import os
from dotenv import load_dotenv

load_dotenv()

SUPABASE_URL = os.getenv("SUPABASE_URL")

# SQL schema
SCHEMA_SQL = """
-- Subjects (free-text labels owned by a user)
CREATE TABLE IF NOT EXISTS subjects (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    name TEXT NOT NULL,
    created_by UUID NOT NULL,
    created_at TIMESTAMPTZ DEFAULT NOW()
);

-- Study Plans
CREATE TABLE IF NOT EXISTS study_plans (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    user_id UUID NOT NULL,
    subject_id UUID REFERENCES subjects(id) ON DELETE SET NULL,
    topic TEXT NOT NULL,
    target_date DATE,
    status VARCHAR(20) DEFAULT 'Pending',
    created_at TIMESTAMPTZ DEFAULT NOW()
);

-- Mock Tests
CREATE TABLE IF NOT EXISTS mock_tests (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    user_id UUID NOT NULL,
    subject_id UUID REFERENCES subjects(id) ON DELETE SET NULL,
    title TEXT NOT NULL,
    date_taken TIMESTAMPTZ,
    created_at TIMESTAMPTZ DEFAULT NOW()
);

-- Questions (belong to one mock test; immutable apart from the last selection)
CREATE TABLE IF NOT EXISTS questions (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    mock_test_id UUID NOT NULL REFERENCES mock_tests(id) ON DELETE CASCADE,
    question_text TEXT NOT NULL,
    options JSONB NOT NULL,
    correct_option INT NOT NULL CHECK (correct_option >= 0),
    user_selected_option INT,
    explanation TEXT,
    created_at TIMESTAMPTZ DEFAULT NOW()
);

-- Scores (one row per submitted attempt)
CREATE TABLE IF NOT EXISTS scores (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    mock_test_id UUID NOT NULL REFERENCES mock_tests(id) ON DELETE CASCADE,
    user_id UUID NOT NULL,
    total_questions INT NOT NULL,
    correct_answers INT NOT NULL CHECK (correct_answers BETWEEN 0 AND total_questions),
    score_percent DECIMAL(6,3) NOT NULL,
    date_taken TIMESTAMPTZ DEFAULT NOW()
);

-- Create indexes for performance
CREATE INDEX IF NOT EXISTS idx_subjects_created_by ON subjects(created_by);
CREATE INDEX IF NOT EXISTS idx_study_plans_user_id ON study_plans(user_id);
CREATE INDEX IF NOT EXISTS idx_mock_tests_user_id ON mock_tests(user_id);
CREATE INDEX IF NOT EXISTS idx_questions_mock_test_id ON questions(mock_test_id);
CREATE INDEX IF NOT EXISTS idx_scores_mock_test_id ON scores(mock_test_id);
"""


def schema_statements() -> list[str]:
    """SQL statements without their leading comment lines."""
    statements = []
    for chunk in SCHEMA_SQL.split(";"):
        lines = [line for line in chunk.strip().splitlines() if not line.startswith("--")]
        if lines:
            statements.append("\n".join(lines))
    return statements


if __name__ == "__main__":
    print("StudyTrack schema")
    print(f"URL: {SUPABASE_URL or '(SUPABASE_URL not set)'}")
    statements = schema_statements()
    for i, stmt in enumerate(statements, 1):
        print(f"  {i}/{len(statements)}: {stmt.splitlines()[0][:60]}...")
    print("\nNote: the Supabase client cannot run DDL, run this SQL in the Supabase SQL Editor:")
    print(SCHEMA_SQL)
