"""Tests for library views."""

from __future__ import annotations

import pytest

from quickbar_storage.library import (
    active_records,
    favorite_records,
    recently_used_records,
    search_records,
)
from quickbar_storage.records import Record


@pytest.fixture
def records() -> list[Record]:
    return [
        Record(id="intro", user_id="u", title="Intro email", body="Hi [Name]", tags=["Sales"]),
        Record(
            id="followup",
            user_id="u",
            title="Follow up",
            body="Just checking in",
            is_favorite=True,
            last_used="2024-02-01T00:00:00+00:00",
        ),
        Record(
            id="old",
            user_id="u",
            title="Old pitch",
            body="Sales pitch",
            is_favorite=True,
            is_archived=True,
            last_used="2024-05-01T00:00:00+00:00",
        ),
        Record(
            id="thanks",
            user_id="u",
            title="Thanks",
            body="Thank you",
            last_used="2024-03-01T00:00:00Z",
        ),
    ]


class TestLibraryViews:
    """Tests for the in-memory template views."""

    def test_active_excludes_archived(self, records: list[Record]) -> None:
        assert [r.id for r in active_records(records)] == ["intro", "followup", "thanks"]

    def test_favorites(self, records: list[Record]) -> None:
        assert [r.id for r in favorite_records(records)] == ["followup"]

    def test_recently_used_newest_first(self, records: list[Record]) -> None:
        assert [r.id for r in recently_used_records(records)] == ["thanks", "followup"]

    def test_search_title_body_and_tags(self, records: list[Record]) -> None:
        assert [r.id for r in search_records(records, "sales")] == ["intro"]
        assert [r.id for r in search_records(records, "CHECKING")] == ["followup"]
        assert [r.id for r in search_records(records, "thank")] == ["thanks"]

    def test_blank_search_returns_active(self, records: list[Record]) -> None:
        assert search_records(records, "   ") == active_records(records)

    def test_no_match(self, records: list[Record]) -> None:
        assert search_records(records, "invoice") == []
