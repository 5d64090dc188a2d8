"""
============================================================================
FILE: auth.py
LOCATION: api/auth.py
============================================================================

PURPOSE:
    Bearer token issuance and verification for KeliLink accounts.

ROLE IN PROJECT:
    Login endpoints call create_access_token(); every protected endpoint
    declares `Depends(get_current_principal)` (or a role-specific variant)
    to obtain the caller's TokenClaims.

KEY COMPONENTS:
    - create_access_token(): Sign an HS256 JWT with JWT_SECRET
    - decode_access_token(): Verify signature and expiry
    - get_current_principal(): FastAPI dependency for any signed-in caller
    - require_peddler(): Dependency restricting to peddler/vendor accounts

DEPENDENCIES:
    - External: python-jose, fastapi
    - Internal: config.py (secret, expiry), errors.py, models.py

USAGE:
    from api.auth import get_current_principal

    @router.get("/profile")
    async def get_profile(principal: TokenClaims = Depends(require_peddler)):
        ...
============================================================================
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

try:
    from config import JWT_ALGORITHM, JWT_EXPIRES_DAYS, get_jwt_secret
    from errors import UnauthorizedError
    from logging_config import get_logger
    from models import TokenClaims
except ImportError:
    from api.config import JWT_ALGORITHM, JWT_EXPIRES_DAYS, get_jwt_secret
    from api.errors import UnauthorizedError
    from api.logging_config import get_logger
    from api.models import TokenClaims


logger = get_logger("auth")

# auto_error=False so a missing header yields our 401 body, not FastAPI's 403
security = HTTPBearer(auto_error=False)


def create_access_token(
    claims: Dict[str, Any],
    expires_delta: Optional[timedelta] = None,
) -> str:
    """
    Sign a bearer token for the given claims.

    Args:
        claims: Payload; must include "uid". None values are dropped.
        expires_delta: Lifetime, defaults to JWT_EXPIRES_DAYS.

    Returns:
        str: Encoded JWT
    """
    now = datetime.now(timezone.utc)
    payload = {key: value for key, value in claims.items() if value is not None}
    payload["iat"] = now
    payload["exp"] = now + (expires_delta or timedelta(days=JWT_EXPIRES_DAYS))
    return jwt.encode(payload, get_jwt_secret(), algorithm=JWT_ALGORITHM)


def decode_access_token(token: Optional[str]) -> TokenClaims:
    """
    Verify a bearer token and return its claims.

    Raises:
        UnauthorizedError: If the token is missing, malformed, forged or expired
    """
    if not token:
        raise UnauthorizedError("Unauthorized: No token provided")

    try:
        payload = jwt.decode(token, get_jwt_secret(), algorithms=[JWT_ALGORITHM])
    except JWTError as exc:
        logger.debug(f"Rejected token: {exc}")
        raise UnauthorizedError("Unauthorized: Invalid token")

    if not payload.get("uid"):
        raise UnauthorizedError("Unauthorized: Invalid token")

    return TokenClaims(**payload)


async def get_current_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> TokenClaims:
    """Extract and verify the caller from the Authorization header."""
    token = credentials.credentials if credentials else None
    return decode_access_token(token)


async def require_peddler(
    principal: TokenClaims = Depends(get_current_principal),
) -> TokenClaims:
    """Dependency that requires a peddler (vendor) token."""
    if principal.role != "peddler":
        raise UnauthorizedError("Unauthorized: Peddler account required")
    return principal
