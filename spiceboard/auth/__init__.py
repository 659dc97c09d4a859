"""Authentication and admin authorization."""

from spiceboard.auth.dependencies import get_identity_provider, require_admin
from spiceboard.auth.identity import AdminPolicy, Identity, IdentityProvider

__all__ = [
    "AdminPolicy",
    "Identity",
    "IdentityProvider",
    "get_identity_provider",
    "require_admin",
]
