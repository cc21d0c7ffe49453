"""
Remote store configuration.

The remote template store is only used when a complete service
principal identity for Cosmos DB is present in the environment:

Environment Variables:
    QUICKBAR_COSMOS_ENDPOINT: Cosmos DB endpoint URL
    QUICKBAR_COSMOS_DATABASE: Database name
    QUICKBAR_COSMOS_CONTAINER: Container holding template documents
    AZURE_TENANT_ID: Azure tenant ID
    AZURE_CLIENT_ID: Azure client/app ID
    AZURE_CLIENT_SECRET: Azure client secret

    QUICKBAR_LOCAL_STORAGE_PATH: Directory for the local cache (optional)

If any required variable is missing or blank the configuration is
absent and every call is served by the local cache.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

# (StoreConfig field, environment variable)
REQUIRED_SETTINGS: tuple[tuple[str, str], ...] = (
    ("endpoint", "QUICKBAR_COSMOS_ENDPOINT"),
    ("database", "QUICKBAR_COSMOS_DATABASE"),
    ("container", "QUICKBAR_COSMOS_CONTAINER"),
    ("tenant_id", "AZURE_TENANT_ID"),
    ("client_id", "AZURE_CLIENT_ID"),
    ("client_secret", "AZURE_CLIENT_SECRET"),
)

LOCAL_PATH_VARIABLE = "QUICKBAR_LOCAL_STORAGE_PATH"


@dataclass(frozen=True)
class StoreConfig:
    """Validated credentials for the remote template store.

    Instances are immutable. Build one at startup with from_environment()
    (or a ConfigurationGate) and pass it to TemplateStore.

    Attributes:
        endpoint: Cosmos DB endpoint URL
        database: Cosmos DB database name
        container: Cosmos DB container name
        tenant_id: Azure tenant ID for the service principal
        client_id: Azure client ID for the service principal
        client_secret: Azure client secret (hidden from repr)
        partition_key_path: Partition key path in the container
    """

    endpoint: str
    database: str
    container: str
    tenant_id: str
    client_id: str
    client_secret: str = field(repr=False)
    partition_key_path: str = "/partition_key"

    @staticmethod
    def missing_variables(environ: Mapping[str, str] | None = None) -> list[str]:
        """Names of required variables that are unset or blank."""
        env = os.environ if environ is None else environ
        return [var for _, var in REQUIRED_SETTINGS if not (env.get(var) or "").strip()]

    @classmethod
    def from_environment(cls, environ: Mapping[str, str] | None = None) -> StoreConfig | None:
        """Create configuration from environment variables.

        Returns:
            StoreConfig, or None when any required variable is missing.
            The full list of missing variables is logged as one warning.
        """
        env = os.environ if environ is None else environ
        missing = cls.missing_variables(env)
        if missing:
            logger.warning(
                "Remote template store not configured; using local storage only. "
                f"Missing environment variables: {', '.join(missing)}",
                extra={"missing_variables": missing},
            )
            return None

        return cls(**{name: env[var].strip() for name, var in REQUIRED_SETTINGS})


class ConfigurationGate:
    """Decides once whether the remote backend is configured.

    The first call to is_backend_configured() reads the environment and
    latches the result for the lifetime of the gate. There is no
    re-check; a changed environment takes effect on restart.
    """

    _UNSET = object()

    def __init__(self, environ: Mapping[str, str] | None = None) -> None:
        self._environ = environ
        self._config: StoreConfig | None | object = self._UNSET

    @property
    def config(self) -> StoreConfig | None:
        """The latched configuration (None when absent)."""
        if self._config is self._UNSET:
            self._config = StoreConfig.from_environment(self._environ)
        return self._config  # type: ignore[return-value]

    def is_backend_configured(self) -> bool:
        """Whether the remote store can be used."""
        return self.config is not None
