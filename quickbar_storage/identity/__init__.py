"""
Identity collaborators for the template store.

The storage layer trusts the caller to pass the authenticated owner;
these types are how a host resolves that owner.
"""

from .config_provider import ConfigFileIdentityProvider
from .provider import IdentityProvider
from .types import AuthenticationRequiredError, AuthProvider, UserIdentity

__all__ = [
    # Types
    "AuthProvider",
    "UserIdentity",
    # Errors
    "AuthenticationRequiredError",
    # Providers
    "IdentityProvider",
    "ConfigFileIdentityProvider",
]
