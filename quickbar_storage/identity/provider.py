"""
Identity provider abstract interface.
"""

from abc import ABC, abstractmethod

from .types import AuthProvider, UserIdentity


class IdentityProvider(ABC):
    """Abstract identity provider.

    Implementations resolve who the current user is. The template
    store's owner filter must always equal the provider's current
    user_id; the store does not check this itself.
    """

    @abstractmethod
    async def get_current_identity(self) -> UserIdentity:
        """Get the current authenticated user identity.

        Raises:
            AuthenticationRequiredError: If not authenticated
        """
        ...

    @abstractmethod
    async def sign_out(self) -> None:
        """Clear cached credentials."""
        ...

    @property
    @abstractmethod
    def provider_type(self) -> AuthProvider:
        """Get the provider type."""
        ...
