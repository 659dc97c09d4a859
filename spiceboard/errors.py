"""Request-scoped error taxonomy shared by services and the HTTP layer."""

from __future__ import annotations


class ServiceError(Exception):
    """Base error carrying an HTTP status and a machine-readable kind."""

    status_code: int = 500
    kind: str = "internal"
    default_message: str = "Internal error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_payload(self) -> dict[str, object]:
        return {"error": self.message, "kind": self.kind}


class ValidationError(ServiceError):
    status_code = 400
    kind = "validation"
    default_message = "Invalid body"


class AuthenticationError(ServiceError):
    status_code = 401
    kind = "unauthenticated"
    default_message = "Missing token"


class AuthorizationError(ServiceError):
    status_code = 403
    kind = "unauthorized"
    default_message = "Not authorized"


class NotFoundError(ServiceError):
    status_code = 404
    kind = "not_found"
    default_message = "Not found"


class UpstreamError(ServiceError):
    """An external dependency was unreachable or answered with a failure."""

    status_code = 502
    kind = "upstream_fetch_failed"
    default_message = "Upstream request failed"


class NoTableFoundError(ServiceError):
    status_code = 500
    kind = "no_table_found"
    default_message = "Could not locate archive table on page"


class PersistenceError(ServiceError):
    status_code = 500
    kind = "persistence"
    default_message = "Database write failed"


class ConfigurationError(ServiceError):
    status_code = 500
    kind = "server_misconfigured"
    default_message = "Server not configured"
