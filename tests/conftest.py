"""
Shared test configuration and fixtures.

Provides an in-memory stand-in for an azure.cosmos.aio ContainerProxy
so the Cosmos template store can be exercised without a live account.
"""

from __future__ import annotations

import copy
import time
from collections.abc import AsyncIterator, Iterator
from pathlib import Path
from typing import Any

import pytest
from azure.cosmos.exceptions import CosmosHttpResponseError, CosmosResourceNotFoundError

from quickbar_storage.config import StoreConfig
from quickbar_storage.storage import CosmosTemplateStore, LocalCacheStore

MISSING_INDEX_MESSAGE = (
    "The order by query does not have a corresponding composite index "
    "that it can be served from."
)

FULL_ENVIRONMENT = {
    "QUICKBAR_COSMOS_ENDPOINT": "https://test.documents.azure.com:443/",
    "QUICKBAR_COSMOS_DATABASE": "quickbar-db",
    "QUICKBAR_COSMOS_CONTAINER": "templates",
    "AZURE_TENANT_ID": "tenant-123",
    "AZURE_CLIENT_ID": "client-456",
    "AZURE_CLIENT_SECRET": "secret-789",
}


def cosmos_error(status_code: int, message: str) -> CosmosHttpResponseError:
    """Build the error the Cosmos SDK raises for an HTTP failure."""
    if status_code == 404:
        return CosmosResourceNotFoundError(status_code=404, message=message)
    return CosmosHttpResponseError(status_code=status_code, message=message)


class FakeContainer:
    """
    In-memory ContainerProxy supporting the calls the template store makes.

    Documents are keyed by (partition key, id). Ordered queries fail with
    the Cosmos missing-index error while ``index_available`` is False.
    """

    def __init__(self, index_available: bool = True):
        self.index_available = index_available
        self.items: dict[tuple[str, str], dict[str, Any]] = {}
        self.queries: list[str] = []
        self.fail_with: Exception | None = None
        self.calls: list[str] = []

    def _check(self, operation: str) -> None:
        self.calls.append(operation)
        if self.fail_with is not None:
            raise self.fail_with

    def _system_fields(self, doc: dict[str, Any]) -> dict[str, Any]:
        result = copy.deepcopy(doc)
        result["_rid"] = f"rid-{doc['id']}"
        result["_etag"] = '"0000"'
        result["_ts"] = int(time.time())
        return result

    def query_items(
        self,
        query: str,
        parameters: list[dict[str, Any]] | None = None,
        partition_key: str | None = None,
        **kwargs: Any,
    ) -> AsyncIterator[dict[str, Any]]:
        self.queries.append(query)
        return self._run_query(query, parameters or [], partition_key)

    async def _run_query(
        self, query: str, parameters: list[dict[str, Any]], partition_key: str | None
    ) -> AsyncIterator[dict[str, Any]]:
        self._check("query_items")
        ordered = "ORDER BY" in query
        if ordered and not self.index_available:
            raise cosmos_error(400, MISSING_INDEX_MESSAGE)

        params = {p["name"]: p["value"] for p in parameters}
        docs = [
            doc
            for (pk, _), doc in self.items.items()
            if pk == partition_key
            and doc.get("type") == params["@type"]
            and doc.get("user_id") == params["@user_id"]
        ]
        if "@project_id" in params:
            docs = [d for d in docs if d.get("project_id") == params["@project_id"]]
        if ordered:
            docs.sort(key=lambda d: d["created_at"], reverse=True)

        for doc in docs:
            yield self._system_fields(doc)

    async def create_item(self, body: dict[str, Any], **kwargs: Any) -> dict[str, Any]:
        self._check("create_item")
        key = (body["partition_key"], body["id"])
        if key in self.items:
            raise cosmos_error(409, "Entity with the specified id already exists in the system.")
        self.items[key] = copy.deepcopy(body)
        return self._system_fields(body)

    async def upsert_item(self, body: dict[str, Any], **kwargs: Any) -> dict[str, Any]:
        self._check("upsert_item")
        self.items[(body["partition_key"], body["id"])] = copy.deepcopy(body)
        return self._system_fields(body)

    async def read_item(self, item: str, partition_key: str, **kwargs: Any) -> dict[str, Any]:
        self._check("read_item")
        doc = self.items.get((partition_key, item))
        if doc is None:
            raise cosmos_error(404, "Entity with the specified id does not exist in the system.")
        return self._system_fields(doc)

    async def patch_item(
        self,
        item: str,
        partition_key: str,
        patch_operations: list[dict[str, Any]],
        **kwargs: Any,
    ) -> dict[str, Any]:
        self._check("patch_item")
        doc = self.items.get((partition_key, item))
        if doc is None:
            raise cosmos_error(404, "Entity with the specified id does not exist in the system.")
        for operation in patch_operations:
            field = operation["path"].lstrip("/")
            if operation["op"] == "set":
                doc[field] = copy.deepcopy(operation["value"])
            elif operation["op"] == "incr":
                doc[field] = doc.get(field, 0) + operation["value"]
            else:
                raise cosmos_error(400, f"Unsupported patch operation {operation['op']}")
        return self._system_fields(doc)

    def seed(self, owner_id: str, doc: dict[str, Any]) -> None:
        """Insert a template document directly."""
        stored = {"type": "template", "partition_key": owner_id, "user_id": owner_id, **doc}
        self.items[(owner_id, stored["id"])] = stored


@pytest.fixture
def store_config() -> StoreConfig:
    """A complete remote configuration."""
    config = StoreConfig.from_environment(FULL_ENVIRONMENT)
    assert config is not None
    return config


@pytest.fixture
def fake_container() -> FakeContainer:
    return FakeContainer()


@pytest.fixture
async def cosmos_store(
    store_config: StoreConfig, fake_container: FakeContainer
) -> AsyncIterator[CosmosTemplateStore]:
    """Cosmos template store wired to the in-memory container."""
    store = CosmosTemplateStore(store_config)
    store._container = fake_container  # type: ignore[assignment]
    store._initialized = True
    yield store
    await store.close()


@pytest.fixture
def cache_dir(tmp_path: Path) -> Iterator[Path]:
    """Directory for a local cache."""
    path = tmp_path / "cache"
    yield path


@pytest.fixture
def local_cache(cache_dir: Path) -> LocalCacheStore:
    return LocalCacheStore(cache_dir)
