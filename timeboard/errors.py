"""Error taxonomy for the team-member registry.

Every error carries the HTTP status it maps to and a stable machine code, so
the transport layer can translate them without knowing the domain.
"""

from __future__ import annotations


class RegistryError(Exception):
    """Base class for registry failures surfaced to callers."""

    status_code: int = 500
    code: str = "registry_error"
    retryable: bool = False
    default_detail: str = "registry error"

    def __init__(self, detail: str | None = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class ValidationError(RegistryError):
    """Missing or unresolvable input field."""

    status_code = 400
    code = "validation_error"
    default_detail = "invalid input"


class Unauthorized(RegistryError):
    """No principal where one is required."""

    status_code = 401
    code = "unauthorized"
    default_detail = "unauthorized"


class Forbidden(RegistryError):
    """Authenticated but not permitted."""

    status_code = 403
    code = "forbidden"
    default_detail = "forbidden"


class NotFound(RegistryError):
    """Unknown team member id."""

    status_code = 404
    code = "not_found"
    default_detail = "team member not found"


class Conflict(RegistryError):
    """Write rejected because the stored state changed underneath it."""

    status_code = 409
    code = "conflict"
    default_detail = "conflict"


class QuotaExceeded(Conflict):
    """Creator already owns an active team member."""

    code = "quota_exceeded"
    default_detail = "quota exceeded"


class StorageError(RegistryError):
    """Storage backend unreachable or timed out."""

    status_code = 503
    code = "storage_error"
    default_detail = "storage unavailable"
    retryable = True
