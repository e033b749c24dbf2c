"""Identity boundary — turn trusted proxy headers into a Principal.

Authentication happens upstream (OAuth sign-in at the edge). The proxy
forwards the caller as ``X-Principal-*`` headers and proves itself with
``X-Identity-Key``. Requests without principal headers are anonymous.
"""

from __future__ import annotations

import logging
import secrets

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from timeboard.config import settings
from timeboard.schemas.members import Principal, Role

logger = logging.getLogger(__name__)

PRINCIPAL_ID_HEADER = "X-Principal-Id"
PRINCIPAL_EMAIL_HEADER = "X-Principal-Email"
PRINCIPAL_ROLE_HEADER = "X-Principal-Role"
IDENTITY_KEY_HEADER = "X-Identity-Key"


class InvalidIdentity(Exception):
    pass


def principal_from_headers(headers) -> Principal | None:
    """Build a Principal from forwarded headers, normalizing the role.

    Unknown role strings are rejected instead of being trusted; emails listed
    in ``TIMEBOARD_ADMIN_EMAILS`` are promoted to admin.
    """
    principal_id = (headers.get(PRINCIPAL_ID_HEADER) or "").strip()
    if not principal_id:
        return None

    email = (headers.get(PRINCIPAL_EMAIL_HEADER) or "").strip()
    raw_role = (headers.get(PRINCIPAL_ROLE_HEADER) or Role.USER.value).strip().lower()
    try:
        role = Role(raw_role)
    except ValueError:
        raise InvalidIdentity(f"Unsupported principal role {raw_role!r}") from None

    if email and email.lower() in settings.admin_email_set:
        role = Role.ADMIN

    return Principal(id=principal_id, email=email, role=role)


class IdentityMiddleware(BaseHTTPMiddleware):
    """Attach ``request.state.principal`` (a Principal or None)."""

    async def dispatch(self, request: Request, call_next) -> Response:
        request.state.principal = None

        if not request.headers.get(PRINCIPAL_ID_HEADER):
            return await call_next(request)

        expected_key = settings.identity_key
        if expected_key:
            provided_key = request.headers.get(IDENTITY_KEY_HEADER, "")
            if not provided_key or not secrets.compare_digest(provided_key, expected_key):
                return JSONResponse(
                    status_code=401,
                    content={"detail": "Invalid or missing X-Identity-Key", "code": "unauthorized"},
                )
        elif not settings.debug:
            return JSONResponse(
                status_code=500,
                content={"detail": "TIMEBOARD_IDENTITY_KEY not configured", "code": "misconfigured"},
            )

        try:
            request.state.principal = principal_from_headers(request.headers)
        except InvalidIdentity as exc:
            logger.warning("Rejected forwarded identity: %s", exc)
            return JSONResponse(
                status_code=401, content={"detail": str(exc), "code": "unauthorized"}
            )

        return await call_next(request)


def get_principal(request: Request) -> Principal | None:
    """FastAPI dependency returning the caller resolved by IdentityMiddleware."""
    return getattr(request.state, "principal", None)
