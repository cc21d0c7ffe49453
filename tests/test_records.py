"""Tests for the record type and timestamp normalization."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta, timezone

import pytest

from quickbar_storage.exceptions import ValidationError
from quickbar_storage.records import (
    Record,
    created_sort_key,
    editable_fields,
    normalize_timestamp,
    parse_timestamp,
)


class TestNormalizeTimestamp:
    """Tests for normalize_timestamp."""

    def test_none_and_empty(self) -> None:
        assert normalize_timestamp(None) is None
        assert normalize_timestamp("") is None

    def test_aware_datetime(self) -> None:
        value = datetime(2024, 3, 1, 12, 0, tzinfo=UTC)
        assert normalize_timestamp(value) == "2024-03-01T12:00:00+00:00"

    def test_naive_datetime_taken_as_utc(self) -> None:
        assert normalize_timestamp(datetime(2024, 3, 1)) == "2024-03-01T00:00:00+00:00"

    def test_other_offset_converted_to_utc(self) -> None:
        value = datetime(2024, 3, 1, 12, 0, tzinfo=timezone(timedelta(hours=2)))
        assert normalize_timestamp(value) == "2024-03-01T10:00:00+00:00"

    def test_epoch_seconds(self) -> None:
        """Cosmos _ts values are epoch seconds."""
        assert normalize_timestamp(0) == "1970-01-01T00:00:00+00:00"

    def test_javascript_iso_string(self) -> None:
        assert normalize_timestamp("2024-03-01T10:00:00.000Z") == "2024-03-01T10:00:00+00:00"

    def test_date_only_string(self) -> None:
        assert normalize_timestamp("2024-02-01") == "2024-02-01T00:00:00+00:00"

    def test_unparseable_string_passed_through(self) -> None:
        assert normalize_timestamp("yesterday") == "yesterday"

    def test_parse_timestamp_rejects_garbage(self) -> None:
        assert parse_timestamp("not a date") is None
        assert parse_timestamp(None) is None


class TestRecord:
    """Tests for Record serialization."""

    def test_round_trip(self) -> None:
        record = Record(
            id="t-1",
            user_id="u1",
            title="Intro",
            body="Hello [Name]",
            tags=["intro", "cold"],
            is_favorite=True,
            copy_count=3,
            last_used="2024-03-01T00:00:00+00:00",
            created_at="2024-01-01T00:00:00+00:00",
            project_id="p-1",
        )

        assert Record.from_dict(record.to_dict()) == record

    def test_from_dict_ignores_system_fields(self) -> None:
        record = Record.from_dict(
            {"id": "t-1", "user_id": "u1", "_rid": "abc", "_ts": 1, "type": "template"}
        )

        assert record.id == "t-1"
        assert record.title == ""
        assert record.tags == []

    def test_missing_created_at_defaults_to_now(self) -> None:
        before = datetime.now(UTC)
        record = Record.from_dict({"id": "t-1", "user_id": "u1"})

        created = parse_timestamp(record.created_at)
        assert created is not None
        assert created >= before.replace(microsecond=0)

    def test_missing_last_used_stays_none(self) -> None:
        record = Record.from_dict({"id": "t-1", "user_id": "u1"})
        assert record.last_used is None

    def test_missing_id_rejected(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            Record.from_dict({"user_id": "u1"})
        assert exc_info.value.field == "id"

    def test_bad_tags_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Record.from_dict({"id": "t-1", "tags": "intro"})

    def test_bad_copy_count_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Record.from_dict({"id": "t-1", "copy_count": "many"})

    @pytest.mark.parametrize("name", ["is_favorite", "is_archived"])
    def test_string_flag_rejected(self, name: str) -> None:
        """A stored "false" must not read back as True."""
        with pytest.raises(ValidationError) as exc_info:
            Record.from_dict({"id": "t-1", name: "false"})
        assert exc_info.value.field == name

    def test_null_flags_default_false(self) -> None:
        record = Record.from_dict({"id": "t-1", "is_favorite": None, "is_archived": None})
        assert record.is_favorite is False
        assert record.is_archived is False

    def test_timestamps_kept_verbatim_without_normalize(self) -> None:
        record = Record.from_dict(
            {"id": "t-1", "created_at": "2024-01-01", "last_used": "2024-03-01T10:00:00.000Z"},
            normalize=False,
        )

        assert record.created_at == "2024-01-01"
        assert record.last_used == "2024-03-01T10:00:00.000Z"

    def test_merged_keeps_protected_fields(self) -> None:
        record = Record(id="t-1", user_id="u1", title="Old", created_at="2024-01-01T00:00:00+00:00")

        merged = record.merged(
            {"title": "New", "user_id": "u2", "id": "t-2", "created_at": "2030-01-01"}
        )

        assert merged.title == "New"
        assert merged.id == "t-1"
        assert merged.user_id == "u1"
        assert merged.created_at == "2024-01-01T00:00:00+00:00"

    def test_editable_fields_drops_unknown_and_protected(self) -> None:
        assert editable_fields({"title": "A", "user_id": "x", "color": "red"}) == {"title": "A"}

    def test_created_sort_key_puts_unparseable_last(self) -> None:
        records = [
            Record(id="a", user_id="u", created_at="garbage"),
            Record(id="b", user_id="u", created_at="2024-01-01"),
        ]
        records.sort(key=created_sort_key, reverse=True)
        assert [r.id for r in records] == ["b", "a"]
