"""
Template record type and timestamp normalization.

A Record is one reusable message template owned by a single user.
Both backends hand Records to callers with timestamps already
converted to the canonical text form (``datetime.isoformat()`` in UTC).
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import UTC, datetime
from typing import Any

from .exceptions import ValidationError

# Fields a caller may never set through create/update payloads.
PROTECTED_FIELDS = frozenset({"id", "user_id", "created_at"})


def utc_now() -> str:
    """Current time as a canonical timestamp."""
    return datetime.now(UTC).isoformat()


def normalize_timestamp(value: Any) -> str | None:
    """Convert a stored timestamp to canonical ISO 8601 text.

    Accepts datetimes, epoch seconds (the ``_ts`` form Cosmos uses)
    and strings. Naive values are taken as UTC. Returns None for
    missing or empty values; unparseable strings are passed through
    unchanged so no data is lost.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC).isoformat()
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value, UTC).isoformat()
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str):
        parsed = parse_timestamp(value)
        return parsed.isoformat() if parsed is not None else value
    return None


def parse_timestamp(value: str | None) -> datetime | None:
    """Parse a timestamp string into an aware UTC datetime."""
    if not value:
        return None
    text = value.strip()
    # fromisoformat only learned the Z suffix in 3.11
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


def _stored_timestamp(value: Any) -> str | None:
    """Keep a stored timestamp string verbatim; convert anything else."""
    if isinstance(value, str):
        return value or None
    return normalize_timestamp(value)


def _flag(data: dict[str, Any], name: str) -> bool:
    value = data.get(name)
    if value is None:
        return False
    if not isinstance(value, bool):
        raise ValidationError(name, "expected a boolean", repr(value))
    return value


_EPOCH = datetime.fromtimestamp(0, UTC)


def created_sort_key(record: Record) -> datetime:
    """Sort key ordering records by creation time (unparseable sorts oldest)."""
    return parse_timestamp(record.created_at) or _EPOCH


@dataclass
class Record:
    """A persisted template.

    Attributes:
        id: Unique identifier within a store
        user_id: Owning user; never changed after creation
        title: Template title
        body: Template text
        tags: Ordered list of tags
        is_favorite: Favorite flag
        copy_count: How many times the template was used
        last_used: When it was last used, or None
        created_at: Set once at creation
        is_archived: Soft-delete flag
        project_id: Optional project/client the template belongs to
    """

    id: str
    user_id: str
    title: str = ""
    body: str = ""
    tags: list[str] = field(default_factory=list)
    is_favorite: bool = False
    copy_count: int = 0
    last_used: str | None = None
    created_at: str = field(default_factory=utc_now)
    is_archived: bool = False
    project_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for storage."""
        return {
            "id": self.id,
            "user_id": self.user_id,
            "title": self.title,
            "body": self.body,
            "tags": list(self.tags),
            "is_favorite": self.is_favorite,
            "copy_count": self.copy_count,
            "last_used": self.last_used,
            "created_at": self.created_at,
            "is_archived": self.is_archived,
            "project_id": self.project_id,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any], normalize: bool = True) -> Record:
        """Deserialize from a stored dictionary.

        Unknown keys (e.g. Cosmos system properties) are ignored.
        A missing creation time defaults to now; a missing last-used
        time stays None.

        Args:
            data: Stored record fields
            normalize: Convert timestamps to canonical text. When False,
                timestamp strings are kept exactly as stored.
        """
        stamp = normalize_timestamp if normalize else _stored_timestamp
        if not isinstance(data, dict):
            raise ValidationError("record", "expected a mapping", type(data).__name__)
        record_id = data.get("id")
        if not record_id or not isinstance(record_id, str):
            raise ValidationError("id", "missing or not a string")

        tags = data.get("tags") or []
        if not isinstance(tags, list):
            raise ValidationError("tags", "expected a list")

        try:
            copy_count = int(data.get("copy_count") or 0)
        except (TypeError, ValueError):
            raise ValidationError("copy_count", "expected an integer") from None

        return cls(
            id=record_id,
            user_id=data.get("user_id") or "",
            title=data.get("title") or "",
            body=data.get("body") or "",
            tags=[str(t) for t in tags],
            is_favorite=_flag(data, "is_favorite"),
            copy_count=copy_count,
            last_used=stamp(data.get("last_used")),
            created_at=stamp(data.get("created_at")) or utc_now(),
            is_archived=_flag(data, "is_archived"),
            project_id=data.get("project_id"),
        )

    def merged(self, updates: dict[str, Any]) -> Record:
        """Return a copy with ``updates`` applied.

        Protected fields (id, owner, creation time) are left untouched.
        """
        data = self.to_dict()
        data.update(editable_fields(updates))
        result = Record.from_dict(data)
        result.created_at = self.created_at
        return result


_RECORD_FIELDS = frozenset(f.name for f in fields(Record))


def editable_fields(updates: dict[str, Any]) -> dict[str, Any]:
    """Keep only known, caller-editable record fields."""
    return {
        key: value
        for key, value in updates.items()
        if key in _RECORD_FIELDS and key not in PROTECTED_FIELDS
    }
