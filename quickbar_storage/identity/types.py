"""
Identity types.

Defines the user identity handed to the template store as the owner
of every record it reads or writes.
"""

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import Any


class AuthProvider(Enum):
    """Supported authentication providers."""

    CONFIG = "config"  # Local config file (dev/offline)
    OAUTH = "oauth"  # Hosted sign-in (bearer token)


@dataclass
class UserIdentity:
    """Identity of the current user.

    ``user_id`` is the owner id passed to every remote store call.
    ``auth_token`` is an opaque bearer credential; the storage layer
    never inspects it.
    """

    user_id: str
    display_name: str
    email: str | None = None
    auth_provider: AuthProvider = AuthProvider.CONFIG
    auth_token: str | None = None
    token_expiry: datetime | None = None

    def is_authenticated(self) -> bool:
        """Check if we have valid authentication.

        Config provider is always "authenticated" (local-only).
        Token-based providers check expiry.
        """
        if self.auth_token is None:
            return self.auth_provider == AuthProvider.CONFIG
        if self.token_expiry is None:
            return True
        return datetime.now(UTC) < self.token_expiry

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "user_id": self.user_id,
            "display_name": self.display_name,
            "email": self.email,
            "auth_provider": self.auth_provider.value,
            "token_expiry": self.token_expiry.isoformat() if self.token_expiry else None,
            # Note: auth_token intentionally excluded
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "UserIdentity":
        """Deserialize from dictionary."""
        token_expiry = None
        if data.get("token_expiry"):
            token_expiry = datetime.fromisoformat(data["token_expiry"])

        return cls(
            user_id=data["user_id"],
            display_name=data["display_name"],
            email=data.get("email"),
            auth_provider=AuthProvider(data.get("auth_provider", "config")),
            token_expiry=token_expiry,
        )


class AuthenticationRequiredError(Exception):
    """Raised when authentication is required but not present."""

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message)
        self.message = message
