"""Bearer token resolution against the hosted auth service and admin policy."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

import httpx

from spiceboard.config import Settings, get_settings
from spiceboard.errors import (
    AuthenticationError,
    AuthorizationError,
    ConfigurationError,
    UpstreamError,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Identity:
    """Authenticated actor."""

    email: str
    roles: frozenset[str] = field(default_factory=frozenset)


def _roles_from_user(user: dict) -> frozenset[str]:
    app_metadata = user.get("app_metadata") or {}
    if not isinstance(app_metadata, dict):
        raise AuthenticationError("Invalid token")

    roles: set[str] = set()
    raw_roles = app_metadata.get("roles") or []
    if isinstance(raw_roles, str):
        raw_roles = [raw_roles]
    elif not isinstance(raw_roles, list):
        raw_roles = []
    for role in [*raw_roles, app_metadata.get("role")]:
        if isinstance(role, str) and role.strip():
            roles.add(role.strip().lower())
    return frozenset(roles)


class IdentityProvider:
    """Resolve bearer tokens through ``GET {auth_api_url}/auth/v1/user``."""

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings or get_settings()

    async def resolve(self, token: str) -> Identity:
        if not self._settings.auth_api_url:
            raise ConfigurationError("Auth service not configured")

        url = f"{self._settings.auth_api_url.rstrip('/')}/auth/v1/user"
        headers = {"Authorization": f"Bearer {token}"}
        if self._settings.auth_api_key:
            headers["apikey"] = self._settings.auth_api_key

        timeout = httpx.Timeout(self._settings.auth_request_timeout_seconds)
        try:
            async with httpx.AsyncClient(timeout=timeout) as client:
                response = await client.get(url, headers=headers)
        except httpx.HTTPError as e:
            logger.warning(f"Auth service request failed: {e!r}")
            raise UpstreamError("Auth service unavailable") from e

        if response.status_code in (400, 401, 403, 404):
            raise AuthenticationError("Invalid token")
        if not response.is_success:
            logger.warning(f"Auth service returned HTTP {response.status_code}")
            raise UpstreamError("Auth service unavailable")

        try:
            user = response.json()
        except ValueError as e:
            logger.warning(f"Auth service returned a non-JSON body: {e!r}")
            raise UpstreamError("Auth service unavailable") from e

        email = user.get("email") if isinstance(user, dict) else None
        if not email:
            raise AuthenticationError("Invalid token")
        return Identity(email=str(email).strip().lower(), roles=_roles_from_user(user))


class AdminPolicy:
    """Allow identities listed by email or holding an admin role."""

    def __init__(
        self, emails: list[str] | None = None, roles: list[str] | None = None
    ) -> None:
        self._emails = frozenset(email.lower() for email in emails or [])
        self._roles = frozenset(role.lower() for role in roles or [])

    @classmethod
    def from_settings(cls, settings: Settings) -> AdminPolicy:
        return cls(emails=settings.admin_emails, roles=settings.admin_roles)

    def check(self, identity: Identity) -> Identity:
        if not self._emails and not self._roles:
            raise ConfigurationError()
        if identity.email.lower() in self._emails:
            return identity
        if identity.roles & self._roles:
            return identity
        logger.info(f"Rejected admin request from {identity.email}")
        raise AuthorizationError()
