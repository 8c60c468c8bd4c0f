# This project was developed with assistance from AI tools.
"""
Keycloak bearer-token authentication for the admin API.

Every mutating endpoint records the acting admin, so the dependency here
resolves the token into a :class:`UserContext` whose ``user_id`` is
threaded into approval, bulk and queue operations. Dashboard roles are
read from realm roles and, when ``KEYCLOAK_CLIENT_ID`` is set, from that
client's roles as well.

Set AUTH_DISABLED=true to bypass validation (tests / local dev without Keycloak).
"""

import asyncio
import logging
import time
from typing import Annotated

import httpx
import jwt
from db.enums import UserRole
from fastapi import Depends, HTTPException, Request, status

from ..core.config import settings
from ..schemas.auth import TokenPayload, UserContext

logger = logging.getLogger(__name__)


def _issuer() -> str:
    return f"{settings.KEYCLOAK_URL}/realms/{settings.KEYCLOAK_REALM}"


class _JwksCache:
    """Signing keys fetched from Keycloak, refreshed after ``JWKS_CACHE_TTL``."""

    def __init__(self):
        self._keys: dict[str, jwt.PyJWK] = {}
        self._fetched_at = 0.0
        self._lock = asyncio.Lock()

    def _stale(self) -> bool:
        return not self._keys or time.monotonic() - self._fetched_at > settings.JWKS_CACHE_TTL

    async def _refresh(self) -> None:
        url = f"{_issuer()}/protocol/openid-connect/certs"
        async with httpx.AsyncClient(timeout=5) as client:
            response = await client.get(url)
            response.raise_for_status()
        key_set = jwt.PyJWKSet.from_dict(response.json())
        self._keys = {key.key_id: key for key in key_set.keys if key.key_id}
        self._fetched_at = time.monotonic()
        logger.debug("Loaded %d signing keys from %s", len(self._keys), url)

    async def key_for(self, kid: str | None) -> jwt.PyJWK:
        """Return the key for ``kid``; an unknown kid forces one refresh."""
        try:
            async with self._lock:
                if self._stale() or kid not in self._keys:
                    await self._refresh()
        except httpx.HTTPError as exc:
            logger.error("Failed to fetch JWKS from Keycloak: %s", exc)
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Authentication service unavailable",
            ) from exc

        key = self._keys.get(kid) if kid else None
        if key is None:
            raise jwt.InvalidTokenError(f"No matching key found for kid={kid}")
        return key


_jwks = _JwksCache()


def _bearer_token(request: Request) -> str | None:
    scheme, _, token = request.headers.get("Authorization", "").partition(" ")
    if scheme.lower() != "bearer" or not token:
        return None
    return token


async def _decode_token(token: str) -> TokenPayload:
    """Verify signature and issuer, then return the token claims."""
    kid = jwt.get_unverified_header(token).get("kid")
    signing_key = await _jwks.key_for(kid)
    claims = jwt.decode(
        token,
        signing_key.key,
        algorithms=["RS256"],
        issuer=_issuer(),
        options={"verify_aud": False},
    )
    return TokenPayload(**claims)


def _granted_roles(payload: TokenPayload) -> set[str]:
    roles = set(payload.realm_access.get("roles", []))
    if settings.KEYCLOAK_CLIENT_ID:
        client = payload.resource_access.get(settings.KEYCLOAK_CLIENT_ID, {})
        roles.update(client.get("roles", []))
    return roles


def _resolve_role(token_payload: TokenPayload) -> UserRole:
    """Map granted roles to a dashboard role; admin wins over sub_admin."""
    granted = _granted_roles(token_payload)
    for role in (UserRole.ADMIN, UserRole.SUB_ADMIN):
        if role.value in granted:
            return role

    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail="No recognized role assigned",
    )


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


_DISABLED_USER = UserContext(
    user_id="dev-admin",
    role=UserRole.ADMIN,
    email="dev@subx-admin.local",
    name="Dev Admin",
)


async def get_current_user(request: Request) -> UserContext:
    """FastAPI dependency: the admin acting on this request."""
    if settings.AUTH_DISABLED:
        return _DISABLED_USER

    token = _bearer_token(request)
    if token is None:
        raise _unauthorized("Missing authentication token")

    try:
        payload = await _decode_token(token)
    except jwt.ExpiredSignatureError as exc:
        raise _unauthorized("Token has expired") from exc
    except jwt.InvalidTokenError as exc:
        logger.info("Rejected bearer token: %s", exc)
        raise _unauthorized("Invalid token") from exc

    return UserContext(
        user_id=payload.sub,
        role=_resolve_role(payload),
        email=payload.email,
        name=payload.name or payload.preferred_username,
    )


CurrentUser = Annotated[UserContext, Depends(get_current_user)]


def require_roles(*allowed_roles: UserRole):
    """Dependency factory restricting a route to ``allowed_roles``.

    Sub admins may read and verify; transitions that move money or
    inventory are admin only.
    """

    async def _check(user: CurrentUser) -> UserContext:
        if user.role not in allowed_roles:
            logger.warning(
                "Denied %s (%s): route requires %s",
                user.user_id,
                user.role.value,
                ", ".join(r.value for r in allowed_roles),
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )
        return user

    return _check
