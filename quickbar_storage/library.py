"""In-memory views over a list of templates."""

from __future__ import annotations

from collections.abc import Iterable

from .records import Record, parse_timestamp


def active_records(records: Iterable[Record]) -> list[Record]:
    """Records that are not archived, in their given order."""
    return [r for r in records if not r.is_archived]


def favorite_records(records: Iterable[Record]) -> list[Record]:
    return [r for r in records if not r.is_archived and r.is_favorite]


def recently_used_records(records: Iterable[Record]) -> list[Record]:
    """Unarchived records that have been used, most recent use first."""
    used = [
        (parsed, r)
        for r in records
        if not r.is_archived and (parsed := parse_timestamp(r.last_used)) is not None
    ]
    used.sort(key=lambda pair: pair[0], reverse=True)
    return [r for _, r in used]


def search_records(records: Iterable[Record], query: str) -> list[Record]:
    """Case-insensitive search over title, body and tags.

    A blank query returns all active records.
    """
    active = active_records(records)
    needle = query.strip().lower()
    if not needle:
        return active
    return [
        r
        for r in active
        if needle in r.title.lower()
        or needle in r.body.lower()
        or any(needle in tag.lower() for tag in r.tags)
    ]
