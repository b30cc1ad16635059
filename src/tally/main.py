"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel
from sqlalchemy.exc import OperationalError

from src.tally.auth import (
    ClerkClient,
    ConfigurationError,
    JWKSCache,
    JWTValidator,
    RouteGuardMiddleware,
    RouteMatcher,
    set_clerk_client,
    set_jwt_validator,
)
from src.tally.config import settings
from src.tally.database import Base, dispose_engine, get_engine
from src.tally.features.expenses import router as expenses_router
from src.tally.features.pages import router as pages_router

logger = logging.getLogger(__name__)

# Global instances for cleanup
_jwks_cache: JWKSCache | None = None
_clerk_client: ClerkClient | None = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle (startup and shutdown)."""
    global _jwks_cache, _clerk_client

    # Startup: missing identity keys must stop the process, not the first request
    if not settings.clerk_secret_key:
        raise ConfigurationError("CLERK_SECRET_KEY is not set")
    if settings.clerk_frontend_api is None:
        raise ConfigurationError("CLERK_PUBLISHABLE_KEY is missing or malformed")

    logger.info("Initializing Clerk session verification")
    _jwks_cache = JWKSCache(
        jwks_url=settings.clerk_jwks_url, cache_ttl=settings.jwks_cache_ttl_seconds
    )
    try:
        await _jwks_cache.refresh_keys()
    except Exception as e:
        # Not fatal: the cache retries on the next request and the guard fails closed meanwhile
        logger.warning(
            f"Initial JWKS fetch failed: {e}",
            extra={"error_type": "jwks_prefetch_failed", "jwks_url": settings.clerk_jwks_url},
        )

    set_jwt_validator(
        JWTValidator(
            jwks_cache=_jwks_cache,
            issuer=settings.clerk_issuer,
            authorized_parties=settings.authorized_party_list,
            leeway=settings.jwt_leeway_seconds,
        )
    )
    _clerk_client = ClerkClient(secret_key=settings.clerk_secret_key, api_url=settings.clerk_api_url)
    set_clerk_client(_clerk_client)

    logger.info(
        "Clerk session verification initialized",
        extra={"jwks_url": settings.clerk_jwks_url, "issuer": settings.clerk_issuer},
    )

    if settings.database_auto_create:
        Base.metadata.create_all(get_engine())
        logger.info("Database tables created")

    yield

    # Shutdown
    set_jwt_validator(None)
    set_clerk_client(None)
    if _jwks_cache is not None:
        await _jwks_cache.close()
    if _clerk_client is not None:
        await _clerk_client.close()
    dispose_engine()
    logger.info("Shutdown completed")


app = FastAPI(
    title="Tally",
    description="Expense tracking for authenticated users",
    version="0.1.0",
    debug=settings.debug,
    lifespan=lifespan,
)

app.add_middleware(
    RouteGuardMiddleware,
    protected=RouteMatcher(settings.protected_route_list),
    sign_in_url=settings.clerk_sign_in_url,
    public_paths=[settings.clerk_sign_in_url, settings.clerk_sign_up_url],
)

app.mount("/static", StaticFiles(directory=Path(__file__).parent / "static"), name="static")

app.include_router(pages_router)
app.include_router(expenses_router)


@app.exception_handler(OperationalError)
async def database_unavailable_handler(request: Request, exc: OperationalError) -> JSONResponse:
    """Database connectivity failures end the request with a 503; nothing is retried."""
    logger.error(
        f"Database unavailable: {exc}",
        exc_info=exc,
        extra={"error_type": "database_unavailable", "path": request.url.path},
    )
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": "Database unavailable. Please try again."},
    )


class HealthCheckResponse(BaseModel):
    """Health check response."""

    status: str


@app.get("/health", response_model=HealthCheckResponse)
async def health_check() -> HealthCheckResponse:
    """Health check endpoint."""
    return HealthCheckResponse(status="healthy")
