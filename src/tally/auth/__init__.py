"""Authentication module for Clerk session authentication."""

from src.tally.auth.clerk import ClerkClient
from src.tally.auth.dependencies import (
    get_clerk_client,
    get_current_principal,
    get_jwt_validator,
    get_session,
    set_clerk_client,
    set_jwt_validator,
)
from src.tally.auth.exceptions import (
    ConfigurationError,
    IdentityProviderError,
)
from src.tally.auth.jwks import JWKSCache
from src.tally.auth.jwt_validator import JWTValidator
from src.tally.auth.middleware import RouteGuardMiddleware
from src.tally.auth.models import EmailAddress, Principal, SessionClaims
from src.tally.auth.routes import RouteMatcher, should_guard

__all__ = [
    "ClerkClient",
    "get_clerk_client",
    "get_current_principal",
    "get_jwt_validator",
    "get_session",
    "set_clerk_client",
    "set_jwt_validator",
    "ConfigurationError",
    "IdentityProviderError",
    "JWKSCache",
    "JWTValidator",
    "RouteGuardMiddleware",
    "EmailAddress",
    "Principal",
    "SessionClaims",
    "RouteMatcher",
    "should_guard",
]
