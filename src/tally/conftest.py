"""Pytest configuration and shared fixtures."""

from collections.abc import Iterator
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import Engine
from sqlalchemy.orm import Session, sessionmaker

from src.tally.auth.models import EmailAddress, Principal, SessionClaims
from src.tally.database import Base, build_engine, get_db
from src.tally.main import app


@pytest.fixture
def engine(tmp_path: Path) -> Iterator[Engine]:
    """SQLite database file with the full schema, foreign keys enforced."""
    engine = build_engine(f"sqlite:///{tmp_path / 'tally.db'}")
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, expire_on_commit=False)


@pytest.fixture
def db_session(session_factory: sessionmaker[Session]) -> Iterator[Session]:
    with session_factory() as session:
        yield session


@pytest.fixture
def principal() -> Principal:
    """Clerk identity used by most tests."""
    return Principal(
        external_id="idp_42",
        email_addresses=[EmailAddress(id="idn_1", email_address="a@x.com")],
        primary_email_address_id="idn_1",
        first_name="Ann",
        last_name="Lee",
        image_url="https://img.clerk.com/ann.png",
    )


@pytest.fixture
def client(session_factory: sessionmaker[Session]) -> Iterator[TestClient]:
    """
    Provide FastAPI test client backed by the test database.

    Example:
        >>> def test_health(client):
        >>>     response = client.get("/health")
        >>>     assert response.status_code == 200
    """

    def override_get_db() -> Iterator[Session]:
        with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides = {}


@pytest.fixture
def signed_in(principal: Principal) -> Iterator[Principal]:
    """Make every request carry a valid session for `principal`."""
    session = SessionClaims(user_id=principal.external_id, session_id="sess_1")
    with (
        patch(
            "src.tally.auth.dependencies.authenticate_request",
            AsyncMock(return_value=session),
        ),
        patch("src.tally.auth.dependencies.get_clerk_client") as mock_get_client,
    ):
        mock_get_client.return_value.get_user = AsyncMock(return_value=principal)
        yield principal
