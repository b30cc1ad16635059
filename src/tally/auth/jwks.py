"""JWKS (JSON Web Key Set) fetching and caching for session token verification."""

import logging
from datetime import datetime, timezone

import httpx
from jose import jwk
from jose.backends.base import Key

logger = logging.getLogger(__name__)


class JWKSCache:
    """
    Fetches Clerk's public signing keys and caches them in-memory with a TTL.

    Keys are refreshed when the cache has expired or when a token carries a
    key ID that isn't cached yet (key rotation).

    Attributes:
        jwks_url: URL to fetch JWKS from (https://<frontend-api>/.well-known/jwks.json)
        cache_ttl: Cache time-to-live in seconds

    Example:
        >>> cache = JWKSCache("https://clerk.example.com/.well-known/jwks.json")
        >>> await cache.refresh_keys()
        >>> signing_key = await cache.get_signing_key("ins_2abc")
    """

    def __init__(self, jwks_url: str, cache_ttl: int = 3600):
        self.jwks_url = jwks_url
        self.cache_ttl = cache_ttl
        self._keys: dict[str, Key] = {}
        self._last_refresh: datetime | None = None
        self._http_client = httpx.AsyncClient(
            timeout=httpx.Timeout(10.0, read=30.0, connect=10.0, write=10.0)
        )

    async def get_signing_key(self, kid: str) -> Key:
        """
        Get signing key by key ID (kid), refreshing the cache if needed.

        Args:
            kid: Key ID from the token header

        Returns:
            Public key for signature verification

        Raises:
            ValueError: If key ID not found after refresh
            httpx.HTTPError: If JWKS fetch fails
        """
        if self._needs_refresh():
            await self.refresh_keys()

        key = self._keys.get(kid)

        # Unknown kid: the provider may have rotated keys since the last fetch
        if key is None:
            logger.warning(
                f"Key ID '{kid}' not found in cache, refreshing JWKS",
                extra={"kid": kid, "cached_kids": list(self._keys.keys())},
            )
            await self.refresh_keys()
            key = self._keys.get(kid)

        if key is None:
            raise ValueError(
                f"Key ID '{kid}' not found in JWKS. Available keys: {list(self._keys.keys())}"
            )

        return key

    async def refresh_keys(self) -> None:
        """
        Fetch JWKS from the identity provider and replace the cache.

        Raises:
            httpx.HTTPError: If HTTP request fails
            ValueError: If JWKS response is invalid
        """
        try:
            logger.info(f"Fetching JWKS from {self.jwks_url}")
            response = await self._http_client.get(self.jwks_url)
            response.raise_for_status()

            keys_list = response.json().get("keys", [])

            if not keys_list:
                logger.warning(
                    "JWKS response contains no keys. Token verification will fail "
                    "until keys are available.",
                    extra={"jwks_url": self.jwks_url},
                )
                self._keys = {}
                self._last_refresh = datetime.now(timezone.utc)
                return

            new_keys: dict[str, Key] = {}
            for key_data in keys_list:
                kid = key_data.get("kid")
                if not kid:
                    logger.warning("JWKS key missing 'kid', skipping")
                    continue

                algorithm = key_data.get("alg", "RS256")
                new_keys[kid] = jwk.construct(key_data, algorithm=algorithm)

                logger.debug(
                    f"Loaded key {kid} (algorithm: {algorithm})",
                    extra={"kid": kid, "alg": algorithm},
                )

            self._keys = new_keys
            self._last_refresh = datetime.now(timezone.utc)

            logger.info(
                "JWKS cache refreshed successfully",
                extra={
                    "key_count": len(new_keys),
                    "key_ids": list(new_keys.keys()),
                    "ttl_seconds": self.cache_ttl,
                },
            )

        except httpx.HTTPError as e:
            logger.error(
                f"Failed to fetch JWKS from {self.jwks_url}: {e}",
                exc_info=True,
                extra={"error_type": "jwks_fetch_failed"},
            )
            raise

        except Exception as e:
            logger.error(
                f"Failed to parse JWKS: {e}",
                exc_info=True,
                extra={"error_type": "jwks_parse_failed"},
            )
            raise

    def _needs_refresh(self) -> bool:
        if self._last_refresh is None:
            return True

        age = (datetime.now(timezone.utc) - self._last_refresh).total_seconds()
        return age >= self.cache_ttl

    async def close(self) -> None:
        """Close the HTTP client. Called during application shutdown."""
        await self._http_client.aclose()
        logger.info("JWKS cache closed")
