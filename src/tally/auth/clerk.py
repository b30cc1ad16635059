"""Clerk Backend API client for fetching user records."""

import logging

import httpx

from src.tally.auth.exceptions import IdentityProviderError
from src.tally.auth.models import Principal

logger = logging.getLogger(__name__)


class ClerkClient:
    """
    Minimal async client for the Clerk Backend API.

    Authenticates with the instance secret key. Only the user lookup the
    app needs is implemented.

    Example:
        >>> client = ClerkClient(secret_key="sk_test_...")
        >>> principal = await client.get_user("user_2abc")
        >>> await client.close()
    """

    def __init__(
        self,
        secret_key: str,
        api_url: str = "https://api.clerk.com",
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_url = api_url.rstrip("/")
        self._http_client = httpx.AsyncClient(
            base_url=f"{self.api_url}/v1",
            headers={"Authorization": f"Bearer {secret_key}"},
            timeout=httpx.Timeout(10.0, connect=5.0),
            transport=transport,
        )

    async def get_user(self, user_id: str) -> Principal | None:
        """
        Fetch a user by id.

        Args:
            user_id: Clerk user id (the session token's 'sub' claim)

        Returns:
            Principal, or None if Clerk doesn't know the user

        Raises:
            IdentityProviderError: If Clerk is unreachable or answers with an error
        """
        try:
            response = await self._http_client.get(f"/users/{user_id}")
        except httpx.HTTPError as e:
            logger.error(
                f"Failed to reach Clerk for user {user_id}: {e}",
                extra={"error_type": "clerk_unreachable", "user_id": user_id},
            )
            raise IdentityProviderError(f"Clerk unreachable: {e}") from e

        if response.status_code == 404:
            logger.warning(f"Clerk user {user_id} not found", extra={"user_id": user_id})
            return None

        if response.is_error:
            logger.error(
                f"Clerk returned {response.status_code} for user {user_id}",
                extra={"error_type": "clerk_api_error", "status_code": response.status_code},
            )
            raise IdentityProviderError(f"Clerk API error: {response.status_code}")

        return Principal.from_clerk_user(response.json())

    async def close(self) -> None:
        """Close the HTTP client. Called during application shutdown."""
        await self._http_client.aclose()
        logger.info("Clerk client closed")
