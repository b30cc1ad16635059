"""Route guard middleware requiring a session on protected paths."""

import logging
from urllib.parse import urlencode

from fastapi import Request, status
from fastapi.responses import JSONResponse, RedirectResponse, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.types import ASGIApp

from src.tally.auth import dependencies
from src.tally.auth.routes import RouteMatcher, should_guard

logger = logging.getLogger(__name__)


class RouteGuardMiddleware(BaseHTTPMiddleware):
    """
    Intercepts every request and enforces a session on protected paths.

    Anonymous requests to a protected path never reach the route handler:
    browsers are redirected to the sign-in page, other clients get a 401.
    The verified session (or None) is stored on request.state.session.

    Args:
        app: Wrapped ASGI app
        protected: Matcher for protected paths
        sign_in_url: Where anonymous browsers are sent
        public_paths: Paths that are never protected (sign-in, sign-up),
            whatever the protected patterns say
    """

    def __init__(
        self,
        app: ASGIApp,
        protected: RouteMatcher,
        sign_in_url: str,
        public_paths: list[str] | None = None,
    ):
        super().__init__(app)
        self.protected = protected
        self.sign_in_url = sign_in_url
        self.public_paths = [p.rstrip("/") or "/" for p in public_paths or [sign_in_url]]

    def is_protected(self, path: str) -> bool:
        for public in self.public_paths:
            if path == public or path.startswith(f"{public}/"):
                return False
        return self.protected.matches(path)

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        path = request.url.path
        if not should_guard(path):
            return await call_next(request)

        session = await dependencies.authenticate_request(request)
        request.state.session = session

        if session is None and self.is_protected(path):
            logger.info(
                f"Blocked anonymous request to protected path {path}",
                extra={"path": path, "method": request.method},
            )
            return self._authentication_required(request)

        return await call_next(request)

    def _authentication_required(self, request: Request) -> Response:
        if "text/html" in request.headers.get("accept", ""):
            query = urlencode({"redirect_url": str(request.url)})
            return RedirectResponse(
                f"{self.sign_in_url}?{query}", status_code=status.HTTP_307_TEMPORARY_REDIRECT
            )
        return JSONResponse(
            status_code=status.HTTP_401_UNAUTHORIZED,
            content={"detail": "Authentication required"},
        )
