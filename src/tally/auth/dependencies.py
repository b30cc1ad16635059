"""FastAPI dependencies for Clerk session authentication."""

import logging

import httpx
from fastapi import Depends, HTTPException, Request, status
from jose import JWTError
from jose.exceptions import JWKError

from src.tally.auth.clerk import ClerkClient
from src.tally.auth.exceptions import IdentityProviderError
from src.tally.auth.jwt_validator import JWTValidator
from src.tally.auth.models import Principal, SessionClaims

logger = logging.getLogger(__name__)

SESSION_COOKIE = "__session"

# Global instances (initialized in main.py lifespan)
_jwt_validator: JWTValidator | None = None
_clerk_client: ClerkClient | None = None


def set_jwt_validator(validator: JWTValidator | None) -> None:
    """Set the global JWT validator instance."""
    global _jwt_validator
    _jwt_validator = validator


def get_jwt_validator() -> JWTValidator:
    """
    Get the global JWT validator instance.

    Raises:
        RuntimeError: If JWT validator not initialized
    """
    if _jwt_validator is None:
        raise RuntimeError(
            "JWT validator not initialized. "
            "Ensure application startup calls set_jwt_validator()."
        )
    return _jwt_validator


def set_clerk_client(client: ClerkClient | None) -> None:
    """Set the global Clerk client instance."""
    global _clerk_client
    _clerk_client = client


def get_clerk_client() -> ClerkClient:
    """
    Get the global Clerk client instance.

    Raises:
        RuntimeError: If Clerk client not initialized
    """
    if _clerk_client is None:
        raise RuntimeError(
            "Clerk client not initialized. Ensure application startup calls set_clerk_client()."
        )
    return _clerk_client


def extract_session_token(request: Request) -> str | None:
    """Read the session token from the Authorization header, else the __session cookie."""
    authorization = request.headers.get("authorization", "")
    scheme, _, credentials = authorization.partition(" ")
    if scheme.lower() == "bearer" and credentials.strip():
        return credentials.strip()
    return request.cookies.get(SESSION_COOKIE) or None


async def authenticate_request(request: Request) -> SessionClaims | None:
    """
    Verify the request's session token.

    Never raises: an absent or invalid token, and an unreachable or
    unconfigured identity provider, all yield None so callers fail closed.

    Returns:
        SessionClaims for a valid session, otherwise None
    """
    token = extract_session_token(request)
    if token is None:
        return None

    try:
        claims = await get_jwt_validator().verify_token(token)
    except JWTError as e:
        logger.info(f"Rejected session token: {e}", extra={"error_type": "invalid_session"})
        return None
    except (httpx.HTTPError, JWKError, ValueError, RuntimeError) as e:
        # JWKError: the JWKS served a key that cannot be loaded
        logger.error(
            f"Session verification unavailable, denying request: {e}",
            extra={"error_type": "identity_gateway_unavailable", "path": request.url.path},
        )
        return None

    return SessionClaims(user_id=claims["sub"], session_id=claims.get("sid"), claims=claims)


async def get_session(request: Request) -> SessionClaims | None:
    """
    Current session, or None for anonymous requests.

    Reuses the session the route guard attached to request.state when present.
    """
    if hasattr(request.state, "session"):
        return request.state.session
    session = await authenticate_request(request)
    request.state.session = session
    return session


async def get_current_principal(
    session: SessionClaims | None = Depends(get_session),
) -> Principal | None:
    """
    Fetch the identity record behind the current session from Clerk.

    Returns:
        Principal, or None for anonymous requests

    Raises:
        HTTPException: 503 if Clerk can't be reached
    """
    if session is None:
        return None

    try:
        return await get_clerk_client().get_user(session.user_id)
    except IdentityProviderError as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Identity provider unavailable. Please try again.",
        ) from e
