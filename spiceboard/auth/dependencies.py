"""FastAPI dependencies for admin-only routes."""

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from spiceboard.auth.identity import AdminPolicy, Identity, IdentityProvider
from spiceboard.config import Settings, get_settings
from spiceboard.errors import AuthenticationError

bearer_scheme = HTTPBearer(auto_error=False)


def get_identity_provider(
    settings: Settings = Depends(get_settings),
) -> IdentityProvider:
    return IdentityProvider(settings)


async def require_admin(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    provider: IdentityProvider = Depends(get_identity_provider),
    settings: Settings = Depends(get_settings),
) -> Identity:
    """Resolve the bearer token and check it against the admin policy."""

    if credentials is None or credentials.scheme.lower() != "bearer":
        raise AuthenticationError("Missing token")
    if not credentials.credentials:
        raise AuthenticationError("Missing token")

    identity = await provider.resolve(credentials.credentials)
    return AdminPolicy.from_settings(settings).check(identity)
