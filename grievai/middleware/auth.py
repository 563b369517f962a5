"""Bearer credential authentication for the analysis endpoint.

Provides a FastAPI dependency that validates the ``Authorization: Bearer``
header with the configured Identity Provider.  Rejections raise
:class:`UnauthorizedError`, rendered by :func:`unauthorized_handler` as
``401 {"error": "Unauthorized"}`` before any classification work starts.
"""

from __future__ import annotations

import structlog
from fastapi import Request, Security
from fastapi.responses import ORJSONResponse
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from grievai.services.identity import AuthenticatedUser, IdentityProviderError

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

_bearer = HTTPBearer(auto_error=False)


class UnauthorizedError(Exception):
    """The request carries no usable credential."""


async def unauthorized_handler(request: Request, exc: Exception) -> ORJSONResponse:
    return ORJSONResponse(
        status_code=401,
        content={"error": "Unauthorized"},
        headers={"WWW-Authenticate": "Bearer"},
    )


async def require_authenticated_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Security(_bearer),
) -> AuthenticatedUser | None:
    """FastAPI dependency that enforces bearer authentication.

    Returns the authenticated user, or ``None`` when authentication is
    disabled in settings.

    Usage::

        @router.post("/analyze-grievance")
        async def analyze(user = Depends(require_authenticated_user)): ...
    """
    settings = request.app.state.settings
    if not settings.require_auth:
        return None

    client_ip = request.client.host if request.client else "unknown"

    if credentials is None or not credentials.credentials:
        logger.warning("auth.missing_bearer", path=request.url.path, client_ip=client_ip)
        raise UnauthorizedError()

    identity = getattr(request.app.state, "identity", None)
    if identity is None:
        # Without a provider the token cannot be checked; only development accepts it.
        if settings.is_production:
            logger.error("auth.identity_not_configured_production")
            raise UnauthorizedError()
        logger.warning(
            "auth.identity_not_configured",
            note="Identity provider not set; accepting bearer token in development mode",
        )
        return AuthenticatedUser(id="anonymous-dev")

    try:
        user = await identity.get_user(credentials.credentials)
    except IdentityProviderError as exc:
        logger.warning("auth.identity_unavailable", error=str(exc), path=request.url.path)
        raise UnauthorizedError() from exc

    if user is None:
        logger.warning("auth.invalid_token", path=request.url.path, client_ip=client_ip)
        raise UnauthorizedError()

    structlog.contextvars.bind_contextvars(user_id=user.id, role=user.role.value)
    return user
