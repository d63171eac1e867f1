"""Test configuration and fixtures."""

import tempfile
from datetime import timedelta
from pathlib import Path

import pytest

from harvest.config import reset_config
from harvest.db.database import reset_database
from harvest.utils.text import utc_now

SAMPLE_TRANSCRIPT = """USER: Can you help me fix the login flow for the dashboard?
ASSISTANT: Sure, let's look at the session handling first.
TODO: fix the login bug
BUG: payments fail silently
DECISION: use sqlite for the staging store
- [ ] write migration tests for staging
USER: thanks
ASSISTANT: done
"""

CHAD_PROJECT_ID = "7f3c2a10-0000-4000-8000-00000000c4ad"


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture(autouse=True)
def reset_globals():
    """Reset global state between tests."""
    yield
    reset_config()
    reset_database()


@pytest.fixture
def test_db(temp_dir):
    """Create a migrated test database."""
    from harvest.db.database import Database

    db = Database(temp_dir / "test.db")
    db.migrate()
    yield db
    db.close()


@pytest.fixture
def chad_project(test_db):
    """Register the ai-chad project."""
    test_db.upsert_project(CHAD_PROJECT_ID, "ai-chad", "AI Chad")
    return CHAD_PROJECT_ID


@pytest.fixture
def add_session(test_db):
    """Factory inserting a session and, optionally, its clean transcript."""

    def _add(
        session_id,
        slug="ai-chad",
        *,
        status="cleaned",
        age=timedelta(minutes=5),
        text=SAMPLE_TRANSCRIPT,
        summary=None,
        file_refs=None,
    ):
        test_db.insert_session(
            session_id,
            slug,
            status=status,
            created_at=utc_now() - age,
            summary=summary,
        )
        if text is not None:
            test_db.insert_clean_transcript(session_id, text, file_refs=file_refs)
        return session_id

    return _add
