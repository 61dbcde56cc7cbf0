"""
Tubely Authentication Module

Bearer token authentication for the upload endpoints. Tokens are HS256 JWTs
signed with the configured secret; the subject claim carries the user UUID.

- get_bearer_token: extract the token from an `Authorization: Bearer` header
- validate_jwt: verify signature, expiry and issuer, return the user UUID
- make_jwt: mint a token (seed script and tests)
- get_current_user_id: FastAPI dependency protecting a route

Usage:
    ```python
    from fastapi import Depends
    from app.core.auth import get_current_user_id

    @router.get("/protected")
    async def protected_route(user_id: UUID = Depends(get_current_user_id)):
        return {"user_id": str(user_id)}
    ```
"""

import logging

from collections.abc import Mapping
from datetime import UTC, datetime, timedelta
from uuid import UUID

from fastapi import Depends, HTTPException, Request, status
from jose import ExpiredSignatureError, JWTError, jwt

from app.core.context import ServiceContext, get_context


# Configure module logger
logger = logging.getLogger(__name__)

JWT_ALGORITHM = "HS256"
BEARER_SCHEME = "bearer"


class AuthenticationError(Exception):
    """Raised when a request cannot be authenticated."""


# =============================================================================
# Token Helpers
# =============================================================================


def get_bearer_token(headers: Mapping[str, str]) -> str:
    """
    Extract the bearer token from request headers.

    Args:
        headers: Request headers (any case-insensitive mapping works,
                 e.g. starlette's Headers).

    Returns:
        str: The raw token string.

    Raises:
        AuthenticationError: If the header is missing, uses another scheme,
                             or carries an empty token.
    """
    authorization = headers.get("Authorization") or headers.get("authorization")
    if not authorization:
        raise AuthenticationError("Authorization header is missing")

    scheme, _, token = authorization.strip().partition(" ")
    if scheme.lower() != BEARER_SCHEME:
        raise AuthenticationError("Authorization header must use the Bearer scheme")

    token = token.strip()
    if not token:
        raise AuthenticationError("Bearer token is empty")
    return token


def make_jwt(
    user_id: UUID,
    secret: str,
    expires_in: timedelta,
    issuer: str = "tubely-access",
) -> str:
    """
    Create an HS256 access token for a user.

    Token claims:
    - iss: issuer
    - sub: user UUID
    - iat: issued at
    - exp: expiry (now + expires_in)

    Args:
        user_id: The user's UUID.
        secret: Signing secret.
        expires_in: Token lifetime.
        issuer: Issuer claim.

    Returns:
        str: The encoded JWT.
    """
    now = datetime.now(UTC)
    payload = {
        "iss": issuer,
        "sub": str(user_id),
        "iat": now,
        "exp": now + expires_in,
    }
    return jwt.encode(payload, secret, algorithm=JWT_ALGORITHM)


def validate_jwt(token: str, secret: str, issuer: str = "tubely-access") -> UUID:
    """
    Validate an HS256 access token and return the user UUID.

    Args:
        token: The JWT string.
        secret: Secret used for signature verification.
        issuer: Expected issuer claim.

    Returns:
        UUID: The user id from the subject claim.

    Raises:
        AuthenticationError: If the token is expired, has a bad signature,
                             wrong issuer, or a subject that is not a UUID.
    """
    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=[JWT_ALGORITHM],
            issuer=issuer,
            options={"require_exp": True, "require_iss": True, "require_sub": True},
        )
    except ExpiredSignatureError as e:
        logger.warning("JWT has expired")
        raise AuthenticationError("Token has expired") from e
    except JWTError as e:
        logger.warning("JWT validation failed: %s", str(e))
        raise AuthenticationError("Invalid token") from e

    try:
        return UUID(payload["sub"])
    except (KeyError, TypeError, ValueError) as e:
        raise AuthenticationError("Token subject is not a valid user id") from e


# =============================================================================
# Authentication Dependency
# =============================================================================


async def get_current_user_id(
    request: Request,
    context: ServiceContext = Depends(get_context),
) -> UUID:
    """
    Authenticate the request and return the caller's user UUID.

    Raises:
        HTTPException: 401 when the token is missing or fails validation.
    """
    try:
        token = get_bearer_token(request.headers)
    except AuthenticationError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"error": "not_authenticated", "message": f"Couldn't find JWT: {e}"},
            headers={"WWW-Authenticate": "Bearer"},
        ) from e

    settings = context.settings
    try:
        return validate_jwt(token, settings.jwt_secret, settings.jwt_issuer)
    except AuthenticationError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"error": "invalid_token", "message": f"Couldn't validate JWT: {e}"},
            headers={"WWW-Authenticate": "Bearer"},
        ) from e
