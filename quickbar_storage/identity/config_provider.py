"""
Config file identity provider.

Reads identity from a local settings file for development
and local-only usage.
"""

import getpass
import logging
import socket
from pathlib import Path
from typing import Any

import yaml

from .provider import IdentityProvider
from .types import AuthenticationRequiredError, AuthProvider, UserIdentity

logger = logging.getLogger(__name__)


class ConfigFileIdentityProvider(IdentityProvider):
    """Identity provider that reads from local config.

    Configuration in ~/.quickbar/settings.yaml:

    ```yaml
    identity:
      user_id: "user-abc123"
      display_name: "Alice"
      email: "alice@example.com"
    ```

    If the identity section is missing, a local identity is derived
    from the host name.
    """

    def __init__(self, config_path: Path | None = None):
        """Initialize the config file provider.

        Args:
            config_path: Path to settings.yaml. Defaults to ~/.quickbar/settings.yaml
        """
        self.config_path = config_path or Path.home() / ".quickbar" / "settings.yaml"
        self._identity: UserIdentity | None = None
        self._signed_out = False

    async def get_current_identity(self) -> UserIdentity:
        """Get the current user identity from config.

        Returns the cached identity if available, otherwise loads from config.
        """
        if self._signed_out:
            raise AuthenticationRequiredError("Signed out; call sign_in() to resume")
        if self._identity is not None:
            return self._identity

        identity_config = self._load_config().get("identity") or {}

        self._identity = UserIdentity(
            user_id=identity_config.get("user_id") or f"local-{self._get_hostname()}",
            display_name=identity_config.get("display_name") or self._get_default_display_name(),
            email=identity_config.get("email"),
            auth_provider=AuthProvider.CONFIG,
        )
        return self._identity

    async def sign_out(self) -> None:
        """Clear cached identity. The config file is not modified."""
        self._identity = None
        self._signed_out = True

    def sign_in(self) -> None:
        """Allow identity resolution again after sign_out()."""
        self._signed_out = False

    @property
    def provider_type(self) -> AuthProvider:
        """Return CONFIG provider type."""
        return AuthProvider.CONFIG

    def _load_config(self) -> dict[str, Any]:
        """Load configuration from YAML file."""
        if not self.config_path.exists():
            return {}

        try:
            loaded = yaml.safe_load(self.config_path.read_text(encoding="utf-8"))
        except (OSError, yaml.YAMLError) as e:
            logger.warning(f"Could not read identity config {self.config_path}: {e}")
            return {}
        return loaded if isinstance(loaded, dict) else {}

    def _get_hostname(self) -> str:
        try:
            return socket.gethostname() or "unknown-device"
        except OSError:
            return "unknown-device"

    def _get_default_display_name(self) -> str:
        try:
            return getpass.getuser().title()
        except (KeyError, OSError):
            return "Local User"
