"""Tests for session state transitions."""

import sqlite3
from unittest.mock import MagicMock

from harvest.sessions.state import mark_extracted, mark_extraction_failed


class TestMarkExtracted:
    """Tests for mark_extracted."""

    def test_marks_session(self, test_db, add_session):
        add_session("s1")

        assert mark_extracted("s1", {"items_created": 3, "duplicates_skipped": 1}, db=test_db)

        session = test_db.get_session("s1")
        assert session["status"] == "extracted"
        assert session["extracted_at"] is not None
        metadata = session["extraction_metadata"]
        assert metadata["items_created"] == 3
        assert metadata["duplicates_skipped"] == 1
        assert metadata["extractor"] == "harvest-v1"
        assert metadata["timestamp"] == session["extracted_at"]

    def test_without_metadata(self, test_db, add_session):
        add_session("s1")

        assert mark_extracted("s1", db=test_db)
        assert test_db.get_session("s1")["extraction_metadata"]["extractor"] == "harvest-v1"

    def test_missing_session(self, test_db):
        assert mark_extracted("nope", db=test_db) is False

    def test_store_error(self):
        db = MagicMock()
        db.update_session.side_effect = sqlite3.OperationalError("database is locked")

        assert mark_extracted("s1", db=db) is False


class TestMarkExtractionFailed:
    """Tests for mark_extraction_failed."""

    def test_annotates_without_changing_status(self, test_db, add_session):
        add_session("s1")

        assert mark_extraction_failed("s1", "project_id unresolved", db=test_db)

        session = test_db.get_session("s1")
        assert session["status"] == "cleaned"
        assert session["extracted_at"] is None
        assert session["extraction_metadata"]["failed"] is True
        assert session["extraction_metadata"]["reason"] == "project_id unresolved"

    def test_missing_session(self, test_db):
        assert mark_extraction_failed("nope", "boom", db=test_db) is False

    def test_store_error(self):
        db = MagicMock()
        db.update_session.side_effect = sqlite3.OperationalError("database is locked")

        assert mark_extraction_failed("s1", "boom", db=db) is False
