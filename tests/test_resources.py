"""Tests for resource descriptors and query encoding."""

from datetime import datetime, timedelta, timezone

import pytest

from wanikani_client import resources
from wanikani_client.resources import PageOptions, format_timestamp
from wanikani_client.types import Assignment, Preferences, Review, StudyMaterial


class TestPageOptions:
    """Tests for PageOptions."""

    def test_to_params(self):
        """Only set cursors become query parameters."""
        assert PageOptions(after_id=100).to_params() == {"page_after_id": "100"}
        assert PageOptions(before_id=5, per_page=500).to_params() == {
            "page_before_id": "5",
            "per_page": "500",
        }

    def test_from_next_url(self):
        """The cursor is read from a collection's next_url."""
        options = PageOptions.from_url(
            "https://api.wanikani.com/v2/subjects?page_after_id=1000&types=kanji"
        )
        assert options == PageOptions(after_id=1000)

    def test_from_url_without_cursor(self):
        """A missing URL or one without a cursor ends the walk."""
        assert PageOptions.from_url(None) is None
        assert PageOptions.from_url("https://api.wanikani.com/v2/subjects?types=kanji") is None


class TestQueryEncoding:
    """Tests for filter encoding."""

    def test_format_timestamp_is_utc(self):
        """Timestamps are sent as UTC with microseconds."""
        jst = timezone(timedelta(hours=9))
        value = datetime(2024, 3, 1, 9, 0, 0, tzinfo=jst)
        assert format_timestamp(value) == "2024-03-01T00:00:00.000000Z"

    def test_naive_timestamp_treated_as_utc(self):
        assert format_timestamp(datetime(2024, 3, 1)) == "2024-03-01T00:00:00.000000Z"

    def test_subjects_filters(self):
        """Lists are comma-joined, booleans lowercase, None omitted."""
        resource = resources.subjects(
            ids=[1, 2, 3],
            types=["kanji", "vocabulary"],
            hidden=False,
            updated_after=datetime(2024, 1, 1, tzinfo=timezone.utc),
        )
        assert resource.method == "GET"
        assert resource.path == "/subjects"
        assert resource.collection is True
        assert resource.query == {
            "ids": "1,2,3",
            "types": "kanji,vocabulary",
            "hidden": "false",
            "updated_after": "2024-01-01T00:00:00.000000Z",
        }

    def test_subjects_without_filters(self):
        assert resources.subjects().query == {}

    def test_single_resource(self):
        resource = resources.subject(440)
        assert resource.path == "/subjects/440"
        assert resource.collection is False

    def test_assignment_filters(self):
        resource = resources.assignments(levels=[3], started=True)
        assert resource.content is Assignment
        assert resource.query == {"levels": "3", "started": "true"}


class TestWriteResources:
    """Tests for endpoints with request bodies."""

    def test_start_assignment(self):
        started = datetime(2024, 1, 1, tzinfo=timezone.utc)
        resource = resources.start_assignment(80463006, started_at=started)
        assert resource.method == "PUT"
        assert resource.path == "/assignments/80463006/start"
        assert resource.body == {"started_at": "2024-01-01T00:00:00.000000Z"}

    def test_create_review_by_assignment(self):
        resource = resources.create_review(
            assignment_id=1422, incorrect_meaning_answers=1, incorrect_reading_answers=2
        )
        assert resource.method == "POST"
        assert resource.content is Review
        assert resource.body["review"]["assignment_id"] == 1422
        assert "subject_id" not in resource.body["review"]

    def test_create_review_needs_exactly_one_target(self):
        with pytest.raises(ValueError):
            resources.create_review()
        with pytest.raises(ValueError):
            resources.create_review(assignment_id=1, subject_id=2)

    def test_update_user_preferences(self):
        resource = resources.update_user(Preferences(lessons_batch_size=3))
        assert resource.method == "PUT"
        assert resource.body["user"]["preferences"]["lessons_batch_size"] == 3

    def test_create_study_material(self):
        resource = resources.create_study_material(
            subject_id=2, meaning_note="The two grounds is too much", meaning_synonyms=["double"]
        )
        assert resource.content is StudyMaterial
        material = resource.body["study_material"]
        assert material["subject_id"] == 2
        assert material["meaning_synonyms"] == ["double"]
