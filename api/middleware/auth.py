"""
Authentication for the Teams AI Agent API.

Validates the bearer token sent by the Teams tab. Production tokens are
Azure AD RS256 tokens checked against the tenant's JWKS; a shared-secret
HS256 mode (JWT_SECRET_KEY) exists for development and tests.
"""

import logging
import time
from typing import Any, Dict, List, Optional

import httpx
from fastapi import HTTPException, Security, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from config.settings import Settings, get_settings

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)

JWKS_CACHE_SECONDS = 3600

_jwks_cache: Dict[str, Any] = {"keys": [], "fetched_at": 0.0}


# ── Azure AD ──────────────────────────────────────────────────────

async def _get_signing_keys(settings: Settings) -> List[Dict[str, Any]]:
    """Fetch (and cache) the tenant's JWKS signing keys."""
    if _jwks_cache["keys"] and time.time() - _jwks_cache["fetched_at"] < JWKS_CACHE_SECONDS:
        return _jwks_cache["keys"]

    url = f"{settings.azure_authority}/discovery/v2.0/keys"
    async with httpx.AsyncClient() as client:
        resp = await client.get(url, timeout=10)
        resp.raise_for_status()
        keys = resp.json().get("keys", [])

    _jwks_cache["keys"] = keys
    _jwks_cache["fetched_at"] = time.time()
    return keys


async def _decode_azure_token(token: str, settings: Settings) -> Dict[str, Any]:
    header = jwt.get_unverified_header(token)
    try:
        keys = await _get_signing_keys(settings)
    except httpx.HTTPError as e:
        logger.error(f"Failed to fetch Azure AD signing keys: {e}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Token validation unavailable",
        )

    key = next((k for k in keys if k.get("kid") == header.get("kid")), None)
    if key is None:
        raise JWTError("Unknown signing key")

    claims = jwt.decode(
        token,
        key,
        algorithms=["RS256"],
        audience=settings.azure_client_id,
        issuer=f"{settings.azure_authority}/v2.0",
    )
    if claims.get("tid") != settings.azure_tenant_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid tenant")
    return claims


# ── Shared secret ─────────────────────────────────────────────────

def create_jwt_token(data: Dict[str, Any], expires_in: int = 3600) -> str:
    """Issue an HS256 token (development and tests only)."""
    settings = get_settings()
    if not settings.jwt_secret_key:
        raise RuntimeError("JWT_SECRET_KEY is not configured")
    payload = {**data, "exp": int(time.time()) + expires_in}
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def _decode_shared_secret_token(token: str, settings: Settings) -> Dict[str, Any]:
    return jwt.decode(
        token,
        settings.jwt_secret_key,
        algorithms=[settings.jwt_algorithm],
        options={"verify_aud": False},
    )


# ── Dependencies ──────────────────────────────────────────────────

async def decode_token(token: str, settings: Optional[Settings] = None) -> Dict[str, Any]:
    """Validate a bearer token and return its claims."""
    settings = settings or get_settings()
    try:
        if settings.jwt_secret_key:
            return _decode_shared_secret_token(token, settings)
        if settings.azure_tenant_id and settings.azure_client_id:
            return await _decode_azure_token(token, settings)
    except JWTError as e:
        logger.warning(f"Token verification error: {e}")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid or expired token",
        )

    logger.error("No token validation configured (set AZURE_TENANT_ID/AZURE_CLIENT_ID)")
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid or expired token")


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Security(bearer_scheme),
) -> Dict[str, Any]:
    """
    Get current user claims from the bearer token.

    Raises 401 when no token is sent, 403 when it does not validate.
    """
    if not credentials or not credentials.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Access token required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return await decode_token(credentials.credentials)
