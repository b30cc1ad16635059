"""Shared fixtures for authentication tests."""

import time
from collections.abc import Callable
from typing import Any

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from jose import jwk, jwt

ISSUER = "https://clerk.example.com"
KID = "ins_test_key"


@pytest.fixture(scope="session")
def private_key_pem() -> bytes:
    """RSA private key used to sign test session tokens."""
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    return key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )


@pytest.fixture(scope="session")
def public_jwk(private_key_pem: bytes) -> dict[str, Any]:
    """Public half of the signing key, as published in a JWKS document."""
    public = jwk.construct(private_key_pem, algorithm="RS256").public_key().to_dict()
    return {**public, "kid": KID, "use": "sig", "alg": "RS256"}


@pytest.fixture
def jwks_document(public_jwk: dict[str, Any]) -> dict[str, Any]:
    return {"keys": [public_jwk]}


@pytest.fixture
def make_token(private_key_pem: bytes) -> Callable[..., str]:
    """Factory for signed Clerk-style session tokens; keyword args override claims."""

    def _make(kid: str = KID, **overrides: Any) -> str:
        now = int(time.time())
        claims = {
            "sub": "user_2abc",
            "sid": "sess_2abc",
            "iss": ISSUER,
            "azp": "http://localhost:3000",
            "iat": now,
            "nbf": now,
            "exp": now + 60,
        }
        claims.update(overrides)
        claims = {k: v for k, v in claims.items() if v is not None}
        return jwt.encode(claims, private_key_pem.decode(), algorithm="RS256", headers={"kid": kid})

    return _make
