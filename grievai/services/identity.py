"""Bearer-token validation against Supabase Auth.

The service never issues or stores credentials; it only asks the
Identity Provider, through the ``supabase`` client, who a token
belongs to.
"""

from __future__ import annotations

from dataclasses import dataclass

import httpx
import structlog
from supabase import AsyncClient, AuthApiError, AuthError, acreate_client

from grievai.models.enums import AppRole

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)


class IdentityProviderError(Exception):
    """The Identity Provider could not be reached or answered unexpectedly."""


@dataclass(frozen=True, slots=True)
class AuthenticatedUser:
    id: str
    email: str | None = None
    role: AppRole = AppRole.CITIZEN


def role_from_metadata(app_metadata: object) -> AppRole:
    """Custom roles are carried in ``app_metadata``; anything else is a citizen."""
    if not isinstance(app_metadata, dict):
        return AppRole.CITIZEN
    try:
        return AppRole(app_metadata.get("role", AppRole.CITIZEN.value))
    except ValueError:
        return AppRole.CITIZEN


class IdentityProvider:
    """Resolve access tokens to users with ``client.auth.get_user``.

    Build one with :meth:`connect`; the constructor takes an existing
    Supabase client so tests can pass a stand-in.
    """

    def __init__(self, client: AsyncClient) -> None:
        self._client = client

    @classmethod
    async def connect(cls, supabase_url: str, anon_key: str) -> IdentityProvider:
        """Create the Supabase client.

        Raises
        ------
        IdentityProviderError
            When the URL or key is rejected by the client.
        """
        try:
            client = await acreate_client(supabase_url, anon_key)
        except Exception as exc:
            raise IdentityProviderError(f"Failed to create Supabase client: {exc}") from exc
        return cls(client)

    async def get_user(self, access_token: str) -> AuthenticatedUser | None:
        """Return the token's user, or ``None`` if the token is rejected.

        Raises
        ------
        IdentityProviderError
            When the provider is unreachable or fails on its side.
        """
        try:
            response = await self._client.auth.get_user(access_token)
        except AuthApiError as exc:
            if exc.status is not None and exc.status >= 500:
                raise IdentityProviderError(f"Identity provider error: {exc.status}") from exc
            logger.info("identity.token_rejected", status=exc.status, code=getattr(exc, "code", None))
            return None
        except (AuthError, httpx.HTTPError) as exc:
            raise IdentityProviderError(f"Identity provider unreachable: {exc.__class__.__name__}") from exc

        user = response.user if response is not None else None
        if user is None or not user.id:
            return None

        return AuthenticatedUser(
            id=str(user.id),
            email=user.email,
            role=role_from_metadata(user.app_metadata),
        )
