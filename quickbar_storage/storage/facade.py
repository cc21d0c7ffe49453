"""
Template store facade.

The single entry point callers use. Chooses the backend once, at
construction:

- No StoreConfig (remote not configured): LocalBackend over the local
  cache. No network I/O is ever attempted.
- StoreConfig present: CosmosTemplateStore, with listings going through
  the ordered-query fallback.

A TemplateStore never reads from one backend and writes to the other,
and never migrates data between them. Remote failures are not retried;
they reach the caller as RemoteUnavailableError and the caller decides
whether to fall back to local behavior for that action.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from ..config import ConfigurationGate, StoreConfig
from ..identity import UserIdentity
from ..logging_utils import configure_logging_from_environment
from ..records import Record
from .base import TemplateBackend
from .cosmos import CosmosTemplateStore
from .local import LocalBackend, LocalCacheStore

logger = logging.getLogger(__name__)


class TemplateStore:
    """Dual-mode persistence facade for templates.

    Example:
        >>> store = TemplateStore.from_environment()
        >>> async with store:
        ...     created = await store.create_record("user-1", {"title": "Intro"})
        ...     records = await store.list_records("user-1")
    """

    def __init__(
        self,
        config: StoreConfig | None,
        local: LocalCacheStore | None = None,
        remote: TemplateBackend | None = None,
    ) -> None:
        """Initialize the facade.

        Args:
            config: Remote store configuration, or None when absent
            local: Local cache (settings always live here; records too
                when config is None)
            remote: Remote backend to use instead of building a
                CosmosTemplateStore from ``config``
        """
        self.config = config
        self.local = local or LocalCacheStore()

        self._backend: TemplateBackend
        if config is None:
            self._backend = LocalBackend(self.local)
        else:
            self._backend = remote or CosmosTemplateStore(config)

        logger.debug(f"Template store using {self._backend.mode} backend")

    @classmethod
    def from_environment(
        cls,
        gate: ConfigurationGate | None = None,
        local_path: str | Path | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> TemplateStore:
        """Build a store from the configuration gate.

        Args:
            gate: Gate to consult (a new one over ``environ`` if None)
            local_path: Directory for the local cache
            environ: Environment mapping for a new gate and for the
                logging switches (default os.environ)
        """
        configure_logging_from_environment(environ)
        gate = gate or ConfigurationGate(environ)
        return cls(gate.config, local=LocalCacheStore(local_path))

    @property
    def mode(self) -> str:
        """Which backend serves records: "local" or "remote"."""
        return self._backend.mode

    @property
    def backend(self) -> TemplateBackend:
        return self._backend

    # -- CRUD ------------------------------------------------------------

    async def list_records(self, owner_id: str, project_id: str | None = None) -> list[Record]:
        """List the owner's records, newest first."""
        return await self._backend.list_records(owner_id, project_id)

    async def get_record(self, owner_id: str, record_id: str) -> Record:
        return await self._backend.get_record(owner_id, record_id)

    async def create_record(self, owner_id: str, fields: dict[str, Any]) -> Record:
        """Create a record; the backend assigns id and creation time."""
        return await self._backend.create_record(owner_id, fields)

    async def upsert_record(self, owner_id: str, record: Record) -> Record:
        """Write a record at its own id."""
        return await self._backend.upsert_record(owner_id, record)

    async def update_record(self, owner_id: str, record_id: str, fields: dict[str, Any]) -> Record:
        """Merge fields into a record. Ownership and creation time never change."""
        return await self._backend.update_record(owner_id, record_id, fields)

    # -- template actions ------------------------------------------------

    async def archive_record(self, owner_id: str, record_id: str) -> Record:
        """Soft delete: the record stays stored with is_archived set."""
        return await self._backend.update_record(owner_id, record_id, {"is_archived": True})

    async def record_usage(self, owner_id: str, record_id: str) -> Record:
        """Count one use of the template and stamp last_used."""
        return await self._backend.record_usage(owner_id, record_id)

    async def toggle_favorite(self, owner_id: str, record_id: str) -> Record:
        current = await self._backend.get_record(owner_id, record_id)
        return await self._backend.update_record(
            owner_id, record_id, {"is_favorite": not current.is_favorite}
        )

    async def duplicate_record(self, owner_id: str, record_id: str) -> Record:
        """Create an unarchived copy titled "<title> (Copy)"."""
        source = await self._backend.get_record(owner_id, record_id)
        return await self._backend.create_record(
            owner_id,
            {
                "title": f"{source.title} (Copy)",
                "body": source.body,
                "tags": list(source.tags),
                "is_favorite": source.is_favorite,
                "is_archived": False,
                "project_id": source.project_id,
            },
        )

    async def ensure_user(self, identity: UserIdentity) -> None:
        """Record the user's profile remotely (no-op in local mode)."""
        await self._backend.ensure_user(identity)

    # -- local cache -----------------------------------------------------

    def clear_local(self) -> None:
        """Remove all locally cached records and settings."""
        self.local.clear_all()

    def get_settings(self) -> dict[str, Any]:
        return self.local.get_settings()

    def save_settings(self, settings: dict[str, Any]) -> None:
        self.local.save_settings(settings)

    # -- lifecycle -------------------------------------------------------

    async def close(self) -> None:
        await self._backend.close()

    async def __aenter__(self) -> TemplateStore:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()
