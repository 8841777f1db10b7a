# src/bosschat/api_server/auth.py
"""
Bearer-token authentication for the bosschat API server.

Tokens are issued by the external identity provider (Supabase Auth). They are
verified on every request by asking the provider's user-lookup endpoint who
the token belongs to; nothing is cached and no signature is checked locally.
"""

import logging
from typing import Optional

import httpx
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel, Field

from ..exceptions import AuthError

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


class AuthenticatedUser(BaseModel):
    """The caller as reported by the identity provider."""
    id: str = Field(description="Identity provider user id")
    email: Optional[str] = Field(default=None)


class SupabaseTokenVerifier:
    """
    Resolves access tokens to users through ``GET {url}/auth/v1/user``.

    Example:
        verifier = SupabaseTokenVerifier(settings.supabase_url, settings.supabase_anon_key)
        user = await verifier.verify(token)
    """

    def __init__(
        self,
        supabase_url: str,
        anon_key: str,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 10.0,
    ):
        self.user_endpoint = f"{supabase_url.rstrip('/')}/auth/v1/user"
        self.anon_key = anon_key
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def verify(self, token: str) -> AuthenticatedUser:
        """
        Look up the user owning `token`.

        Raises:
            AuthError: If the provider rejects the token or cannot be reached.
        """
        headers = {"apikey": self.anon_key, "Authorization": f"Bearer {token}"}
        try:
            response = await self._client.get(self.user_endpoint, headers=headers)
        except httpx.HTTPError as e:
            logger.error(f"Identity provider lookup failed: {e}")
            raise AuthError("Identity provider unreachable")

        if response.status_code != 200:
            logger.warning(f"Identity provider rejected token (status {response.status_code})")
            raise AuthError("Invalid or expired token")

        try:
            data = response.json()
        except ValueError as e:
            logger.error(f"Identity provider returned a non-JSON body: {e}")
            raise AuthError("Identity provider returned an unreadable response")
        user_id = data.get("id") if isinstance(data, dict) else None
        if not user_id:
            raise AuthError("Identity provider returned no user id")
        return AuthenticatedUser(id=str(user_id), email=data.get("email"))

    async def close(self) -> None:
        await self._client.aclose()


async def get_optional_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Optional[AuthenticatedUser]:
    """
    FastAPI dependency: the authenticated caller, or None when no token was sent.

    A token that is present but invalid is still rejected with 401.
    """
    if credentials is None or not credentials.credentials:
        return None

    verifier: Optional[SupabaseTokenVerifier] = getattr(request.app.state, "token_verifier", None)
    if verifier is None:
        logger.warning("Bearer token received but no identity provider is configured")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication is not configured on this server",
        )

    try:
        user = await verifier.verify(credentials.credentials)
    except AuthError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e),
            headers={"WWW-Authenticate": "Bearer"},
        )

    request.state.user = user
    logger.debug(f"Authenticated user {user.id}")
    return user


async def get_current_user(
    user: Optional[AuthenticatedUser] = Depends(get_optional_user),
) -> AuthenticatedUser:
    """FastAPI dependency for routes that require a signed-in caller."""
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user
