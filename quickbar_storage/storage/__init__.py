"""
Template storage backends.

Provides a local file cache and a Cosmos DB store behind one
facade with a consistent interface.

Example:
    >>> from quickbar_storage.storage import TemplateStore
    >>> store = TemplateStore.from_environment()
    >>> store.mode
    'local'
"""

from .base import TemplateBackend
from .cosmos import CosmosTemplateStore, is_missing_index_error
from .facade import TemplateStore
from .fallback import QueryMode, list_with_fallback, list_with_mode
from .local import RECORDS_KEY, SETTINGS_KEY, LocalBackend, LocalCacheStore

__all__ = [
    # Facade
    "TemplateStore",
    # Backends
    "TemplateBackend",
    "LocalBackend",
    "LocalCacheStore",
    "CosmosTemplateStore",
    # Query fallback
    "QueryMode",
    "list_with_fallback",
    "list_with_mode",
    "is_missing_index_error",
    # Local keys
    "RECORDS_KEY",
    "SETTINGS_KEY",
]
