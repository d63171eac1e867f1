"""Tests for item validation."""

import copy

import pytest

from harvest.extract.items import CandidateItem, Evidence
from harvest.extract.validate import validate_item, validate_items


def make_item(**overrides):
    fields = {
        "bucket": "Todos",
        "title": "Improve retry logic",
        "content": "Improve retry logic in the sync worker",
        "priority": "medium",
        "evidence": [Evidence(session_id="sess-1", excerpt="TODO: improve retry logic")],
    }
    fields.update(overrides)
    return CandidateItem(**fields)


class TestValidateItem:
    """Tests for validate_item."""

    def test_valid_item(self):
        assert validate_item(make_item()) == []

    def test_decision_without_priority_is_valid(self):
        assert validate_item(make_item(bucket="Decisions", priority=None)) == []

    def test_missing_title_is_valid(self):
        assert validate_item(make_item(title=None)) == []

    def test_numbered_reference_title_rejected(self):
        errors = validate_item(make_item(title="[3] see above", content="see above for details"))

        assert errors == ["title appears to be garbage"]

    @pytest.mark.parametrize(
        "title",
        [
            "| col | col |",
            "https://example.com/some/page",
            "ftp://files.example.com",
            "   ",
            "12345 !!",
        ],
    )
    def test_garbage_titles_rejected(self, title):
        assert "title appears to be garbage" in validate_item(make_item(title=title))

    @pytest.mark.parametrize(
        "title",
        ["httpx client leaks sockets", "http handler drops headers", "mailto: the release team"],
    )
    def test_words_starting_like_schemes_accepted(self, title):
        assert validate_item(make_item(title=title)) == []

    @pytest.mark.parametrize("title", ["Improve retry logic", "v2 rollout plan", "Fix [3] refs"])
    def test_ordinary_titles_accepted(self, title):
        assert validate_item(make_item(title=title)) == []

    def test_unknown_bucket_rejected(self):
        errors = validate_item(make_item(bucket="Wishlist"))

        assert len(errors) == 1
        assert errors[0].startswith("/bucket ")

    def test_short_content_rejected(self):
        errors = validate_item(make_item(content="short!"))

        assert errors == ["content too short to be meaningful"]

    def test_very_short_content_fails_schema_too(self):
        errors = validate_item(make_item(content="abc"))

        assert any(e.startswith("/content ") for e in errors)
        assert "content too short to be meaningful" in errors

    def test_whitespace_content_rejected(self):
        errors = validate_item(make_item(content="            "))

        assert "content is empty or whitespace only" in errors

    def test_empty_evidence_rejected(self):
        errors = validate_item(make_item(evidence=[]))

        assert any(e.startswith("/evidence ") for e in errors)
        assert "evidence must include at least one session_id" in errors

    def test_evidence_without_session_rejected(self):
        errors = validate_item(make_item(evidence=[Evidence(session_id=None)]))

        assert "/evidence/0/session_id Input should be a valid string" in errors
        assert "evidence must include at least one session_id" in errors

    def test_overlong_title_rejected(self):
        errors = validate_item(make_item(title="a" * 501))

        assert any(e.startswith("/title ") for e in errors)

    def test_overlong_excerpt_rejected(self):
        errors = validate_item(make_item(evidence=[Evidence(session_id="s", excerpt="x" * 501)]))

        assert any(e.startswith("/evidence/0/excerpt ") for e in errors)

    def test_unknown_priority_rejected(self):
        errors = validate_item(make_item(priority="urgent"))

        assert len(errors) == 1
        assert errors[0].startswith("/priority ")

    def test_item_is_not_modified(self):
        item = make_item(title="[3] see above")
        before = copy.deepcopy(item)

        validate_item(item)

        assert item == before


class TestValidateItems:
    """Tests for validate_items."""

    def test_partitions_in_order(self):
        good_one = make_item(title="First task to do")
        bad = make_item(title="[1] reference", content="tiny")
        good_two = make_item(title="Second task to do")

        result = validate_items([good_one, bad, good_two])

        assert result.valid == [good_one, good_two]
        assert len(result.invalid) == 1
        assert result.invalid[0].item is bad

    def test_reasons_are_joined(self):
        result = validate_items([make_item(title="[1] ref", content="short!")])

        assert result.invalid[0].error == (
            "content too short to be meaningful; title appears to be garbage"
        )

    def test_empty_input(self):
        result = validate_items([])

        assert result.valid == []
        assert result.invalid == []
