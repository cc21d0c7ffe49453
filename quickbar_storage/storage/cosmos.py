"""
Cosmos DB template store.

Stores templates in an Azure Cosmos DB container, one document per
record, partitioned by owner so every owner-scoped query stays within a
single partition.

Authentication uses a service principal (tenant id, client id and
client secret from StoreConfig).
"""

from __future__ import annotations

import asyncio
import uuid
from typing import Any

from azure.core.exceptions import AzureError, ClientAuthenticationError
from azure.cosmos import PartitionKey
from azure.cosmos.aio import ContainerProxy, CosmosClient, DatabaseProxy
from azure.cosmos.exceptions import CosmosHttpResponseError, CosmosResourceNotFoundError
from azure.identity.aio import ClientSecretCredential

from ..config import StoreConfig
from ..exceptions import (
    AuthenticationError,
    IndexMissingError,
    RecordNotFoundError,
    RemoteUnavailableError,
    ValidationError,
)
from ..identity import UserIdentity
from ..logging_utils import StoreLoggerAdapter, get_store_logger
from ..records import Record, editable_fields, normalize_timestamp, utc_now
from .base import TemplateBackend
from .fallback import list_with_fallback

logger = get_store_logger("cosmos")

# Document types (type discriminator)
DOC_TYPE_TEMPLATE = "template"
DOC_TYPE_USER = "user"


def is_missing_index_error(error: CosmosHttpResponseError) -> bool:
    """Whether Cosmos rejected an ORDER BY because no index can serve it.

    Cosmos answers such queries with 400 and a message along the lines
    of "The order by query does not have a corresponding composite
    index that it can be served from."
    """
    if error.status_code != 400:
        return False
    text = str(error).lower()
    return "index" in text and ("order by" in text or "composite" in text)


class CosmosTemplateStore(TemplateBackend):
    """Cosmos DB template store.

    Container schema:
    {
        "id": "{record_id}",
        "type": "template",
        "partition_key": "{user_id}",
        "user_id": "{user_id}",
        "title": "...",
        "body": "...",
        "tags": ["..."],
        "is_favorite": false,
        "copy_count": 0,
        "last_used": "{iso_timestamp}" | null,
        "created_at": "{iso_timestamp}",
        "is_archived": false,
        "project_id": "{project_id}" | null
    }

    User profile documents share the container with ``type = "user"``.
    """

    mode = "remote"

    def __init__(self, config: StoreConfig) -> None:
        """Initialize Cosmos DB storage.

        Args:
            config: Validated remote store configuration
        """
        self.config = config
        self._credential: ClientSecretCredential | None = None
        self._client: CosmosClient | None = None
        self._database: DatabaseProxy | None = None
        self._container: ContainerProxy | None = None
        self._initialized = False
        self._init_lock = asyncio.Lock()
        self._log = StoreLoggerAdapter(
            logger, {"container": config.container, "database": config.database}
        )

    async def _ensure_initialized(self) -> ContainerProxy:
        """Ensure client and container are initialized.

        Concurrent first calls share one client; only the first builds it.
        """
        if self._initialized and self._container is not None:
            return self._container

        async with self._init_lock:
            if self._initialized and self._container is not None:
                return self._container
            return await self._connect()

    async def _connect(self) -> ContainerProxy:
        try:
            self._credential = ClientSecretCredential(
                tenant_id=self.config.tenant_id,
                client_id=self.config.client_id,
                client_secret=self.config.client_secret,
            )
            self._client = CosmosClient(self.config.endpoint, credential=self._credential)

            self._database = await self._client.create_database_if_not_exists(
                id=self.config.database
            )
            self._container = await self._database.create_container_if_not_exists(
                id=self.config.container,
                partition_key=PartitionKey(path=self.config.partition_key_path),
                indexing_policy=self._get_indexing_policy(),
            )
        except ClientAuthenticationError as e:
            await self.close()
            raise AuthenticationError(self.config.endpoint, str(e)) from e
        except CosmosHttpResponseError as e:
            await self.close()
            if e.status_code in (401, 403):
                raise AuthenticationError(self.config.endpoint, str(e)) from e
            raise RemoteUnavailableError("connect", e) from e
        except (AzureError, OSError, ValueError) as e:
            # ValueError: malformed tenant id or endpoint rejected by the SDK
            await self.close()
            raise RemoteUnavailableError("connect", e) from e

        self._initialized = True
        self._log.info(f"Connected to Cosmos DB: {self.config.endpoint}")
        return self._container

    def _get_indexing_policy(self) -> dict[str, Any]:
        """Get the indexing policy for a newly created container."""
        return {
            "indexingMode": "consistent",
            "automatic": True,
            "includedPaths": [
                {"path": "/type/?"},
                {"path": "/user_id/?"},
                {"path": "/project_id/?"},
                {"path": "/created_at/?"},
            ],
            "excludedPaths": [
                {"path": "/body/?"},  # Template text is never queried
                {"path": "/*"},
            ],
            "compositeIndexes": [
                # Owner's templates, newest first
                [
                    {"path": "/user_id", "order": "ascending"},
                    {"path": "/created_at", "order": "descending"},
                ],
                # Owner's templates within a project, newest first
                [
                    {"path": "/user_id", "order": "ascending"},
                    {"path": "/project_id", "order": "ascending"},
                    {"path": "/created_at", "order": "descending"},
                ],
            ],
        }

    def _remote_error(self, operation: str, error: Exception) -> RemoteUnavailableError:
        """Translate an SDK failure into the store's error taxonomy."""
        if isinstance(error, ClientAuthenticationError):
            return AuthenticationError(self.config.endpoint, str(error))
        if isinstance(error, CosmosHttpResponseError) and error.status_code in (401, 403):
            return AuthenticationError(self.config.endpoint, str(error))
        return RemoteUnavailableError(operation, error)

    # -- reads -----------------------------------------------------------

    async def query_records(
        self,
        owner_id: str,
        project_id: str | None = None,
        ordered: bool = True,
    ) -> list[Record]:
        """Run the owner-scoped template query.

        Raises:
            IndexMissingError: If ``ordered`` and no index can serve ORDER BY
            RemoteUnavailableError: On any other failure
        """
        container = await self._ensure_initialized()

        query = "SELECT * FROM c WHERE c.type = @type AND c.user_id = @user_id"
        params: list[dict[str, Any]] = [
            {"name": "@type", "value": DOC_TYPE_TEMPLATE},
            {"name": "@user_id", "value": owner_id},
        ]
        if project_id is not None:
            query += " AND c.project_id = @project_id"
            params.append({"name": "@project_id", "value": project_id})
        if ordered:
            query += " ORDER BY c.created_at DESC"

        records: list[Record] = []
        try:
            async for doc in container.query_items(
                query=query,
                parameters=params,
                partition_key=owner_id,
            ):
                try:
                    records.append(self._document_to_record(doc))
                except ValidationError as e:
                    self._log.warning(f"Skipping malformed template document: {e}")
        except CosmosHttpResponseError as e:
            if ordered and is_missing_index_error(e):
                raise IndexMissingError(query, e) from e
            raise self._remote_error("list_records", e) from e
        except (AzureError, OSError) as e:
            raise self._remote_error("list_records", e) from e

        return records

    async def list_records(self, owner_id: str, project_id: str | None = None) -> list[Record]:
        """List templates owned by ``owner_id``, newest first."""
        return await list_with_fallback(self, owner_id, project_id)

    async def _read_document(self, owner_id: str, item_id: str) -> dict[str, Any] | None:
        """Read one document in the owner's partition; None if absent."""
        container = await self._ensure_initialized()
        try:
            return await container.read_item(item=item_id, partition_key=owner_id)
        except CosmosResourceNotFoundError:
            return None
        except (AzureError, OSError) as e:
            raise self._remote_error("read_record", e) from e

    async def get_record(self, owner_id: str, record_id: str) -> Record:
        """Get one of the owner's templates."""
        doc = await self._read_document(owner_id, record_id)
        if doc is None or doc.get("type") != DOC_TYPE_TEMPLATE:
            raise RecordNotFoundError(record_id, owner_id)
        return self._document_to_record(doc)

    # -- writes ----------------------------------------------------------

    async def create_record(self, owner_id: str, fields: dict[str, Any]) -> Record:
        """Create a template with a new id and creation timestamp.

        ``id``, ``user_id`` and ``created_at`` in ``fields`` are ignored.
        """
        container = await self._ensure_initialized()

        record = Record.from_dict(
            {
                **editable_fields(fields),
                "id": uuid.uuid4().hex,
                "user_id": owner_id,
                "created_at": utc_now(),
            }
        )
        try:
            created = await container.create_item(body=self._record_to_document(record))
        except (AzureError, OSError) as e:
            raise self._remote_error("create_record", e) from e

        return self._document_to_record(created)

    async def upsert_record(self, owner_id: str, record: Record) -> Record:
        """Write ``record`` at its own id, owned by ``owner_id``.

        The creation time of an existing document is kept; otherwise the
        record's own creation time is used.
        """
        container = await self._ensure_initialized()

        existing = await self._read_document(owner_id, record.id)
        created_at = None
        if existing is not None:
            created_at = normalize_timestamp(existing.get("created_at"))

        data = record.to_dict()
        data["user_id"] = owner_id
        data["created_at"] = created_at or record.created_at or utc_now()
        stored = Record.from_dict(data)

        try:
            written = await container.upsert_item(body=self._record_to_document(stored))
        except (AzureError, OSError) as e:
            raise self._remote_error("upsert_record", e) from e

        return self._document_to_record(written)

    async def update_record(self, owner_id: str, record_id: str, fields: dict[str, Any]) -> Record:
        """Merge ``fields`` into an existing template.

        Runs as one patch operation. The owner is re-asserted on every
        update; ``id``, ``user_id`` and ``created_at`` cannot be changed.

        Raises:
            RecordNotFoundError: If the owner has no record with this id
            ValidationError: If a field has the wrong type; nothing is written
        """
        container = await self._ensure_initialized()

        updates = editable_fields(fields)
        # Validated and normalized values; raises before anything is written
        checked = Record.from_dict({**updates, "id": record_id, "user_id": owner_id}).to_dict()

        operations = [
            {"op": "set", "path": f"/{key}", "value": checked[key]} for key in updates
        ]
        operations.append({"op": "set", "path": "/user_id", "value": owner_id})

        try:
            patched = await container.patch_item(
                item=record_id,
                partition_key=owner_id,
                patch_operations=operations,
            )
        except CosmosResourceNotFoundError as e:
            raise RecordNotFoundError(record_id, owner_id) from e
        except (AzureError, OSError) as e:
            raise self._remote_error("update_record", e) from e

        return self._document_to_record(patched)

    async def record_usage(self, owner_id: str, record_id: str) -> Record:
        """Increment copy_count and stamp last_used in one patch."""
        container = await self._ensure_initialized()

        operations = [
            {"op": "incr", "path": "/copy_count", "value": 1},
            {"op": "set", "path": "/last_used", "value": utc_now()},
            {"op": "set", "path": "/user_id", "value": owner_id},
        ]
        try:
            patched = await container.patch_item(
                item=record_id,
                partition_key=owner_id,
                patch_operations=operations,
            )
        except CosmosResourceNotFoundError as e:
            raise RecordNotFoundError(record_id, owner_id) from e
        except (AzureError, OSError) as e:
            raise self._remote_error("record_usage", e) from e

        return self._document_to_record(patched)

    async def ensure_user(self, identity: UserIdentity) -> None:
        """Create or refresh the user's profile document."""
        container = await self._ensure_initialized()

        doc_id = f"user-{identity.user_id}"
        existing = await self._read_document(identity.user_id, doc_id)
        now = utc_now()
        doc = {
            "id": doc_id,
            "type": DOC_TYPE_USER,
            "partition_key": identity.user_id,
            "user_id": identity.user_id,
            "email": identity.email,
            "display_name": identity.display_name,
            "created_at": (existing or {}).get("created_at") or now,
            "last_login_at": now,
        }
        try:
            await container.upsert_item(body=doc)
        except (AzureError, OSError) as e:
            raise self._remote_error("ensure_user", e) from e

    async def close(self) -> None:
        """Close the Cosmos client and credential."""
        if self._client:
            await self._client.close()
            self._client = None
            self._database = None
            self._container = None
            self._initialized = False

        if self._credential:
            await self._credential.close()
            self._credential = None

    # -- conversion ------------------------------------------------------

    def _record_to_document(self, record: Record) -> dict[str, Any]:
        """Convert a record to a Cosmos document."""
        doc = record.to_dict()
        doc["type"] = DOC_TYPE_TEMPLATE
        doc["partition_key"] = record.user_id
        return doc

    def _document_to_record(self, doc: dict[str, Any]) -> Record:
        """Convert a Cosmos document to a record (system fields dropped)."""
        return Record.from_dict(doc)
