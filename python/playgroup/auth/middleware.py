"""Caller identity middleware and dependencies for FastAPI.

Authentication itself happens in the front end. It forwards the already
resolved caller in X-Playgroup-Fid or X-Playgroup-User-Id; this module only
checks the internal secret and turns those headers into an Identity.

Provides:
- IdentityMiddleware: internal header check + identity parsing on every request
- get_identity / get_optional_identity: route dependencies
- require_admin: dependency guarding administrative routes
"""

import hmac
from typing import Annotated

from fastapi import Depends, Header, Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from playgroup.auth.identity import Identity, parse_identity_headers, require_identity
from playgroup.config import get_settings
from playgroup.errors import ApiError, ApiErrorCode, ForbiddenError
from playgroup.logging import get_logger, set_identity_context
from playgroup.responses import error_response

logger = get_logger(__name__)

# Header names
INTERNAL_HEADER = "x-playgroup-internal"
FID_HEADER = "x-playgroup-fid"
USER_ID_HEADER = "x-playgroup-user-id"
ADMIN_HEADER = "x-playgroup-admin"

# Paths that skip the internal header check
PUBLIC_PATHS = {"/health", "/docs", "/redoc", "/openapi.json"}


class IdentityMiddleware(BaseHTTPMiddleware):
    """Resolve the caller for every request.

    Order of checks:
    1. Skip if public path
    2. Verify internal header (if required)
    3. Parse identity headers; malformed values are rejected with 401
    4. Attach the Identity (or None for anonymous reads) to request state
    """

    def __init__(
        self,
        app: ASGIApp,
        requires_internal_header: bool = False,
        internal_secret: str | None = None,
    ):
        super().__init__(app)
        self.requires_internal_header = requires_internal_header
        self.internal_secret = internal_secret

    async def dispatch(self, request: Request, call_next) -> JSONResponse:
        if request.url.path in PUBLIC_PATHS:
            return await call_next(request)

        if self.requires_internal_header:
            rejected = self._verify_internal_header(request)
            if rejected:
                return rejected

        try:
            identity = parse_identity_headers(
                request.headers.get(FID_HEADER),
                request.headers.get(USER_ID_HEADER),
            )
        except ApiError as e:
            logger.warning("identity_rejected", reason=e.message)
            return JSONResponse(
                status_code=e.status_code, content=error_response(e.code, e.message)
            )

        request.state.identity = identity
        if identity is not None:
            set_identity_context(identity.label)

        return await call_next(request)

    def _verify_internal_header(self, request: Request) -> JSONResponse | None:
        """Constant-time check of the internal header.

        Returns:
            JSONResponse if verification fails, None if successful.
        """
        header_value = request.headers.get(INTERNAL_HEADER)

        if header_value is None or not self.internal_secret:
            logger.warning("internal_header_rejected", reason="missing")
            return JSONResponse(
                status_code=403,
                content=error_response(ApiErrorCode.E_FORBIDDEN, "Internal API access required"),
            )

        if not hmac.compare_digest(header_value.encode(), self.internal_secret.encode()):
            logger.warning("internal_header_rejected", reason="mismatch")
            return JSONResponse(
                status_code=403,
                content=error_response(ApiErrorCode.E_FORBIDDEN, "Internal API access required"),
            )

        return None


def get_optional_identity(request: Request) -> Identity | None:
    """Identity of the caller, or None for anonymous reads."""
    return getattr(request.state, "identity", None)


def get_identity(request: Request) -> Identity:
    """Identity of the caller.

    Raises:
        AuthenticationRequiredError: If no identity headers were supplied.
    """
    return require_identity(get_optional_identity(request))


def require_admin(
    admin_secret: Annotated[str | None, Header(alias=ADMIN_HEADER)] = None,
) -> None:
    """Guard administrative routes with PLAYGROUP_ADMIN_SECRET.

    With no secret configured, admin routes are closed.
    """
    expected = get_settings().playgroup_admin_secret
    if not expected or admin_secret is None:
        raise ForbiddenError(message="Admin access required")
    if not hmac.compare_digest(admin_secret.encode(), expected.encode()):
        logger.warning("admin_access_rejected")
        raise ForbiddenError(message="Admin access required")


IdentityDep = Depends(get_identity)
