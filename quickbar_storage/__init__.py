"""
Quickbar Storage

Dual-mode persistence for the quickbar template library.

Provides:
- A Cosmos DB template store, owner-scoped and ordered by creation time
- A local JSON cache used when the remote store is not configured
- One facade (TemplateStore) that picks a backend once and never mixes them

Usage:

    >>> from quickbar_storage import TemplateStore
    >>> async with TemplateStore.from_environment() as store:
    ...     record = await store.create_record(owner_id, {"title": "Intro", "body": "Hi"})
    ...     records = await store.list_records(owner_id)

Configuration:

    The remote store is used only when QUICKBAR_COSMOS_ENDPOINT,
    QUICKBAR_COSMOS_DATABASE, QUICKBAR_COSMOS_CONTAINER, AZURE_TENANT_ID,
    AZURE_CLIENT_ID and AZURE_CLIENT_SECRET are all set.
"""

from .config import ConfigurationGate, StoreConfig

# Exceptions
from .exceptions import (
    AuthenticationError,
    IndexMissingError,
    LocalStorageFailure,
    RecordNotFoundError,
    RemoteUnavailableError,
    TemplateStoreError,
    ValidationError,
)

# Identity module
from .identity import ConfigFileIdentityProvider, IdentityProvider, UserIdentity
from .library import active_records, favorite_records, recently_used_records, search_records
from .logging_utils import configure_logging_from_environment, configure_structured_logging
from .records import Record, normalize_timestamp
from .storage import (
    CosmosTemplateStore,
    LocalBackend,
    LocalCacheStore,
    TemplateBackend,
    TemplateStore,
)

__all__ = [
    # Configuration
    "StoreConfig",
    "ConfigurationGate",
    # Records
    "Record",
    "normalize_timestamp",
    # Storage
    "TemplateStore",
    "TemplateBackend",
    "LocalBackend",
    "LocalCacheStore",
    "CosmosTemplateStore",
    # Library views
    "active_records",
    "favorite_records",
    "recently_used_records",
    "search_records",
    # Identity
    "IdentityProvider",
    "UserIdentity",
    "ConfigFileIdentityProvider",
    # Logging
    "configure_logging_from_environment",
    "configure_structured_logging",
    # Exceptions
    "TemplateStoreError",
    "RemoteUnavailableError",
    "AuthenticationError",
    "IndexMissingError",
    "RecordNotFoundError",
    "LocalStorageFailure",
    "ValidationError",
]

__version__ = "0.1.0"
