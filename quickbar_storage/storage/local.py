"""
Local file-based template cache.

Stores two namespaced keys as JSON files in a single directory:

{base_path}/
  quickbar-library-templates.json   # list of record dicts
  quickbar-library-settings.json    # settings mapping

Every operation is synchronous and best-effort. A failing medium
(missing directory, permissions, full disk, corrupt payload) turns a
read into an empty result and a write into a no-op, with a warning
logged. Nothing is raised to the caller.
"""

from __future__ import annotations

import json
import os
import tempfile
import uuid
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from ..config import LOCAL_PATH_VARIABLE
from ..exceptions import LocalStorageFailure, RecordNotFoundError, ValidationError
from ..identity import UserIdentity
from ..logging_utils import StoreLoggerAdapter, get_store_logger
from ..records import Record, editable_fields, utc_now
from .base import TemplateBackend

logger = get_store_logger("local")

RECORDS_KEY = "quickbar-library-templates"
SETTINGS_KEY = "quickbar-library-settings"


def default_local_path() -> Path:
    """Cache directory from the environment, or ~/.quickbar/storage."""
    configured = os.environ.get(LOCAL_PATH_VARIABLE)
    if configured:
        return Path(configured)
    return Path.home() / ".quickbar" / "storage"


class LocalCacheStore:
    """Synchronous key-namespaced persistence for records and settings."""

    def __init__(self, base_path: str | Path | None = None) -> None:
        """Initialize local cache.

        Args:
            base_path: Directory holding the key files. Created lazily
                on first write.
        """
        self.base_path = Path(base_path) if base_path else default_local_path()
        self._log = StoreLoggerAdapter(logger, {"cache_dir": str(self.base_path)})

    def _key_file(self, key: str) -> Path:
        return self.base_path / f"{key}.json"

    # -- records ---------------------------------------------------------

    def get_records(self) -> list[Record]:
        """Load all records, or an empty list if absent or unreadable.

        Records come back exactly as saved. An item stored without a
        creation time is stamped on first read and written back, so the
        stamp does not change on later reads.
        """
        try:
            payload = self._read_key(RECORDS_KEY)
            if payload is None:
                return []
            if not isinstance(payload, list):
                raise LocalStorageFailure(
                    "read", RECORDS_KEY, ValueError("expected a JSON array")
                )
            records = [Record.from_dict(item, normalize=False) for item in payload]
        except (LocalStorageFailure, ValidationError) as e:
            self._log.warning(f"Failed to load templates from local storage: {e}")
            return []

        if any(not item.get("created_at") for item in payload):
            self.save_records(records)
        return records

    def save_records(self, records: Sequence[Record]) -> None:
        """Replace the stored collection with ``records``."""
        try:
            self._write_key(RECORDS_KEY, [r.to_dict() for r in records])
        except LocalStorageFailure as e:
            self._log.warning(f"Failed to save templates to local storage: {e}")

    # -- settings --------------------------------------------------------

    def get_settings(self) -> dict[str, Any]:
        """Load the settings mapping, or an empty dict if absent or unreadable."""
        try:
            payload = self._read_key(SETTINGS_KEY)
            if payload is None:
                return {}
            if not isinstance(payload, dict):
                raise LocalStorageFailure(
                    "read", SETTINGS_KEY, ValueError("expected a JSON object")
                )
            return payload
        except LocalStorageFailure as e:
            self._log.warning(f"Failed to load settings from local storage: {e}")
            return {}

    def save_settings(self, settings: dict[str, Any]) -> None:
        """Replace the stored settings mapping."""
        try:
            self._write_key(SETTINGS_KEY, dict(settings))
        except LocalStorageFailure as e:
            self._log.warning(f"Failed to save settings to local storage: {e}")

    def clear_all(self) -> None:
        """Remove both keys."""
        for key in (RECORDS_KEY, SETTINGS_KEY):
            try:
                self._key_file(key).unlink(missing_ok=True)
            except OSError as e:
                self._log.warning(f"Failed to clear local storage key {key}: {e}")

    # -- medium ----------------------------------------------------------

    def _read_key(self, key: str) -> Any:
        """Read and parse a key file; None if the key is absent."""
        path = self._key_file(key)
        try:
            content = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            raise LocalStorageFailure("read", key, e) from e
        if not content.strip():
            return None
        try:
            return json.loads(content)
        except json.JSONDecodeError as e:
            raise LocalStorageFailure("parse", key, e) from e

    def _write_key(self, key: str, data: Any) -> None:
        """Write a key file atomically using temp file + rename."""
        path = self._key_file(key)
        try:
            serialized = json.dumps(data, indent=2)
        except (TypeError, ValueError) as e:
            raise LocalStorageFailure("serialize", key, e) from e

        temp_path: str | None = None
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, temp_path = tempfile.mkstemp(dir=path.parent, prefix=".tmp_", suffix=".json")
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(serialized)
                f.flush()
                os.fsync(f.fileno())
            os.replace(temp_path, path)
        except OSError as e:
            if temp_path is not None:
                try:
                    os.remove(temp_path)
                except OSError:
                    pass
            raise LocalStorageFailure("write", key, e) from e


class LocalBackend(TemplateBackend):
    """Template backend served entirely by a LocalCacheStore.

    Used when the remote store is not configured. The cache holds one
    flat collection, so owner filtering does not apply. New records are
    prepended, keeping the collection newest first.

    Every method runs to completion without awaiting, so each call is
    atomic with respect to other tasks on the event loop.
    """

    mode = "local"

    def __init__(self, cache: LocalCacheStore) -> None:
        self.cache = cache

    def _new_id(self, records: Sequence[Record]) -> str:
        taken = {r.id for r in records}
        while True:
            record_id = f"template-{uuid.uuid4().hex}"
            if record_id not in taken:
                return record_id

    def _find(self, records: list[Record], record_id: str) -> int:
        for index, record in enumerate(records):
            if record.id == record_id:
                return index
        raise RecordNotFoundError(record_id)

    async def list_records(self, owner_id: str, project_id: str | None = None) -> list[Record]:
        records = self.cache.get_records()
        if project_id is not None:
            records = [r for r in records if r.project_id == project_id]
        return records

    async def get_record(self, owner_id: str, record_id: str) -> Record:
        records = self.cache.get_records()
        return records[self._find(records, record_id)]

    async def create_record(self, owner_id: str, fields: dict[str, Any]) -> Record:
        records = self.cache.get_records()
        record = Record.from_dict(
            {
                **editable_fields(fields),
                "id": self._new_id(records),
                "user_id": owner_id,
                "created_at": utc_now(),
            }
        )
        self.cache.save_records([record, *records])
        return record

    async def upsert_record(self, owner_id: str, record: Record) -> Record:
        records = self.cache.get_records()
        try:
            index = self._find(records, record.id)
        except RecordNotFoundError:
            stored = Record.from_dict({**record.to_dict(), "user_id": owner_id})
            self.cache.save_records([stored, *records])
            return stored

        existing = records[index]
        data = record.to_dict()
        data["user_id"] = existing.user_id
        stored = Record.from_dict(data)
        stored.created_at = existing.created_at
        records[index] = stored
        self.cache.save_records(records)
        return stored

    async def update_record(self, owner_id: str, record_id: str, fields: dict[str, Any]) -> Record:
        records = self.cache.get_records()
        index = self._find(records, record_id)
        updated = records[index].merged(fields)
        records[index] = updated
        self.cache.save_records(records)
        return updated

    async def record_usage(self, owner_id: str, record_id: str) -> Record:
        records = self.cache.get_records()
        index = self._find(records, record_id)
        current = records[index]
        return await self.update_record(
            owner_id,
            record_id,
            {"copy_count": current.copy_count + 1, "last_used": utc_now()},
        )

    async def ensure_user(self, identity: UserIdentity) -> None:
        """No profile is kept locally."""

    async def close(self) -> None:
        """Close storage (no-op for local storage)."""
        pass
