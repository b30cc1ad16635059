"""Tests for the Clerk Backend API client and principal model."""

import httpx
import pytest

from src.tally.auth.clerk import ClerkClient
from src.tally.auth.exceptions import IdentityProviderError
from src.tally.auth.models import EmailAddress, Principal

CLERK_USER = {
    "id": "user_2abc",
    "primary_email_address_id": "idn_2",
    "email_addresses": [
        {"id": "idn_1", "email_address": "old@example.com"},
        {"id": "idn_2", "email_address": "ann@example.com"},
    ],
    "first_name": "Ann",
    "last_name": "Lee",
    "image_url": "https://img.clerk.com/ann.png",
}


def clerk_with(handler) -> ClerkClient:
    return ClerkClient(secret_key="sk_test_123", transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
class TestClerkClient:
    async def test_get_user(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=CLERK_USER)

        client = clerk_with(handler)
        principal = await client.get_user("user_2abc")
        await client.close()

        assert principal.external_id == "user_2abc"
        assert principal.primary_email == "ann@example.com"
        assert principal.display_name == "Ann Lee"
        assert principal.image_url == "https://img.clerk.com/ann.png"
        assert str(seen[0].url) == "https://api.clerk.com/v1/users/user_2abc"
        assert seen[0].headers["authorization"] == "Bearer sk_test_123"

    async def test_unknown_user_returns_none(self):
        client = clerk_with(lambda request: httpx.Response(404, json={"errors": []}))

        assert await client.get_user("user_gone") is None

    async def test_api_error_raises(self):
        client = clerk_with(lambda request: httpx.Response(500))

        with pytest.raises(IdentityProviderError):
            await client.get_user("user_2abc")

    async def test_network_error_raises(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        client = clerk_with(handler)

        with pytest.raises(IdentityProviderError, match="unreachable"):
            await client.get_user("user_2abc")


class TestPrincipal:
    def test_primary_email_falls_back_to_first_address(self):
        principal = Principal(
            external_id="u",
            email_addresses=[EmailAddress(email_address="first@example.com")],
        )

        assert principal.primary_email == "first@example.com"

    def test_no_email_is_empty_string(self):
        assert Principal(external_id="u").primary_email == ""

    @pytest.mark.parametrize(
        ("first", "last", "expected"),
        [
            ("Ann", "Lee", "Ann Lee"),
            ("Ann", None, "Ann"),
            (None, "Lee", "Lee"),
            ("  ", "", None),
            (None, None, None),
        ],
    )
    def test_display_name(self, first, last, expected):
        principal = Principal(external_id="u", first_name=first, last_name=last)

        assert principal.display_name == expected

    def test_from_clerk_user_skips_blank_addresses(self):
        data = {**CLERK_USER, "email_addresses": [{"id": "idn_9", "email_address": ""}]}

        assert Principal.from_clerk_user(data).email_addresses == []
