"""Tests for the route guard middleware."""

from unittest.mock import AsyncMock, Mock, patch

import pytest
from fastapi import FastAPI, Request
from fastapi.testclient import TestClient

from src.tally.auth.dependencies import set_jwt_validator
from src.tally.auth.jwks import JWKSCache
from src.tally.auth.jwt_validator import JWTValidator
from src.tally.auth.middleware import RouteGuardMiddleware
from src.tally.auth.models import SessionClaims
from src.tally.auth.routes import RouteMatcher

HTML = {"accept": "text/html,application/xhtml+xml"}


@pytest.fixture
def handled() -> list[str]:
    """Paths whose handlers actually ran."""
    return []


@pytest.fixture
def guarded_app(handled: list[str]) -> FastAPI:
    app = FastAPI()
    app.add_middleware(
        RouteGuardMiddleware,
        protected=RouteMatcher(["/", "/dashboard(.*)", "/expenses(.*)"]),
        sign_in_url="/sign-in",
        public_paths=["/sign-in", "/sign-up"],
    )

    @app.get("/{path:path}")
    async def catch_all(path: str, request: Request) -> dict:
        handled.append(f"/{path}")
        session = request.state.session if hasattr(request.state, "session") else "unset"
        return {"session": session.user_id if isinstance(session, SessionClaims) else session}

    return app


@pytest.fixture
def anonymous():
    with patch(
        "src.tally.auth.dependencies.authenticate_request", AsyncMock(return_value=None)
    ) as mock:
        yield mock


@pytest.fixture
def authenticated():
    session = SessionClaims(user_id="user_2abc", session_id="sess_1")
    with patch(
        "src.tally.auth.dependencies.authenticate_request", AsyncMock(return_value=session)
    ) as mock:
        yield mock


class TestRouteGuardMiddleware:
    """Tests for RouteGuardMiddleware."""

    def test_protected_path_redirects_browser_to_sign_in(self, guarded_app, handled, anonymous):
        client = TestClient(guarded_app)

        response = client.get("/dashboard", headers=HTML, follow_redirects=False)

        assert response.status_code == 307
        location = response.headers["location"]
        assert location.startswith("/sign-in?redirect_url=")
        assert "dashboard" in location
        assert handled == []

    def test_protected_path_returns_401_for_api_clients(self, guarded_app, handled, anonymous):
        client = TestClient(guarded_app)

        response = client.get("/expenses", headers={"accept": "application/json"})

        assert response.status_code == 401
        assert response.json() == {"detail": "Authentication required"}
        assert handled == []

    def test_root_is_protected(self, guarded_app, handled, anonymous):
        client = TestClient(guarded_app)

        response = client.get("/", headers=HTML, follow_redirects=False)

        assert response.status_code == 307
        assert handled == []

    def test_sign_in_served_without_session(self, guarded_app, handled, anonymous):
        client = TestClient(guarded_app)

        response = client.get("/sign-in", headers=HTML, follow_redirects=False)

        assert response.status_code == 200
        assert handled == ["/sign-in"]
        assert response.json() == {"session": None}

    def test_sign_in_never_protected_even_by_catch_all(self, handled, anonymous):
        """A catch-all protected pattern must not cause a redirect loop."""
        app = FastAPI()
        app.add_middleware(
            RouteGuardMiddleware,
            protected=RouteMatcher(["/(.*)"]),
            sign_in_url="/sign-in",
            public_paths=["/sign-in", "/sign-up"],
        )

        @app.get("/{path:path}")
        async def catch_all(path: str) -> dict:
            handled.append(f"/{path}")
            return {}

        client = TestClient(app)

        assert client.get("/sign-in/factor-one", headers=HTML).status_code == 200
        assert client.get("/sign-up", headers=HTML).status_code == 200
        assert client.get("/other", headers=HTML, follow_redirects=False).status_code == 307
        assert handled == ["/sign-in/factor-one", "/sign-up"]

    def test_public_path_passes_through(self, guarded_app, handled, anonymous):
        client = TestClient(guarded_app)

        assert client.get("/about").status_code == 200
        assert handled == ["/about"]

    def test_static_assets_skip_session_check(self, guarded_app, handled, anonymous):
        client = TestClient(guarded_app)

        response = client.get("/dashboard/chart.png")

        assert response.status_code == 200
        assert response.json() == {"session": "unset"}
        anonymous.assert_not_called()

    def test_authenticated_request_reaches_handler(self, guarded_app, handled, authenticated):
        client = TestClient(guarded_app)

        response = client.get("/dashboard", headers=HTML)

        assert response.status_code == 200
        assert response.json() == {"session": "user_2abc"}
        assert handled == ["/dashboard"]

    def test_unreachable_identity_provider_fails_closed(self, guarded_app, handled):
        """With no validator configured, verification is unavailable and access is denied."""
        client = TestClient(guarded_app)

        response = client.get(
            "/dashboard",
            headers={**HTML, "authorization": "Bearer some.session.token"},
            follow_redirects=False,
        )

        assert response.status_code == 307
        assert handled == []

    def test_unloadable_jwks_key_fails_closed(self, guarded_app, handled, make_token):
        """A JWKS entry python-jose cannot load denies access instead of erroring."""
        jwks_response = Mock()
        jwks_response.json.return_value = {"keys": [{"kid": "ins_test_key", "kty": "bogus"}]}
        jwks_response.raise_for_status = Mock()
        cache = JWKSCache("https://clerk.example.com/.well-known/jwks.json")
        cache._http_client.get = AsyncMock(return_value=jwks_response)
        set_jwt_validator(JWTValidator(cache, issuer="https://clerk.example.com"))
        client = TestClient(guarded_app)

        try:
            response = client.get(
                "/dashboard",
                headers={**HTML, "authorization": f"Bearer {make_token()}"},
                follow_redirects=False,
            )
        finally:
            set_jwt_validator(None)

        assert response.status_code == 307
        assert response.headers["location"].startswith("/sign-in?redirect_url=")
        assert handled == []
