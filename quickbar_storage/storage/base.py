"""
Abstract template backend interface.

Defines the contract both backends (local cache and Cosmos DB)
implement. TemplateStore picks exactly one per instance.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from ..identity import UserIdentity
from ..records import Record


class TemplateBackend(ABC):
    """Abstract interface for template persistence.

    All operations are async. Remote failures raise
    RemoteUnavailableError; a missing record raises RecordNotFoundError.
    """

    #: "local" or "remote"
    mode: str

    @abstractmethod
    async def list_records(self, owner_id: str, project_id: str | None = None) -> list[Record]:
        """List records, newest first.

        Args:
            owner_id: Owner of the records (ignored by the local backend)
            project_id: Optional - only records of this project

        Returns:
            List of records ordered by created_at descending
        """
        ...

    @abstractmethod
    async def get_record(self, owner_id: str, record_id: str) -> Record:
        """Get one record.

        Raises:
            RecordNotFoundError: If the record does not exist
        """
        ...

    @abstractmethod
    async def create_record(self, owner_id: str, fields: dict[str, Any]) -> Record:
        """Create a record with a new id and creation time.

        Args:
            owner_id: Owner of the new record
            fields: Initial field values (id, user_id, created_at ignored)

        Returns:
            The created record including its assigned id
        """
        ...

    @abstractmethod
    async def upsert_record(self, owner_id: str, record: Record) -> Record:
        """Write a record at its own id, keeping an existing creation time."""
        ...

    @abstractmethod
    async def update_record(self, owner_id: str, record_id: str, fields: dict[str, Any]) -> Record:
        """Merge fields into an existing record without changing its owner.

        Raises:
            RecordNotFoundError: If the record does not exist
        """
        ...

    @abstractmethod
    async def record_usage(self, owner_id: str, record_id: str) -> Record:
        """Increment the usage counter and stamp last_used.

        Raises:
            RecordNotFoundError: If the record does not exist
        """
        ...

    @abstractmethod
    async def ensure_user(self, identity: UserIdentity) -> None:
        """Create or refresh the owner's profile, where the backend keeps one."""
        ...

    @abstractmethod
    async def close(self) -> None:
        """Release connections and other resources."""
        ...
