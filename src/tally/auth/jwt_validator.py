"""Local session token verification using JWKS for signature validation."""

import logging
from typing import Any

from jose import JWTError, jwt

from src.tally.auth.jwks import JWKSCache

logger = logging.getLogger(__name__)


class JWTValidator:
    """
    Verifies Clerk session tokens locally.

    Uses cached JWKS to verify token signatures, then validates expiration,
    not-before, issuer and (when configured) the authorized party claim.

    Attributes:
        jwks_cache: JWKS cache instance for fetching signing keys
        issuer: Expected issuer (iss claim), the Clerk frontend API URL
        authorized_parties: Accepted values for the azp claim (empty = accept any)
        leeway: Clock skew tolerance in seconds

    Example:
        >>> validator = JWTValidator(jwks_cache, "https://clerk.example.com")
        >>> claims = await validator.verify_token(session_token)
        >>> user_id = claims["sub"]
    """

    def __init__(
        self,
        jwks_cache: JWKSCache,
        issuer: str,
        authorized_parties: list[str] | None = None,
        leeway: int = 10,
    ):
        self.jwks_cache = jwks_cache
        self.issuer = issuer
        self.authorized_parties = authorized_parties or []
        self.leeway = leeway

    async def verify_token(self, token: str) -> dict[str, Any]:
        """
        Verify a session token and return its claims.

        Args:
            token: Session token string (without "Bearer " prefix)

        Returns:
            Dictionary of verified claims (sub, sid, iss, azp, exp, iat, ...)

        Raises:
            JWTError: If the token is invalid, expired, or signed by an unknown key
            ValueError: If the signing key isn't published in the JWKS
            httpx.HTTPError: If the JWKS can't be fetched
        """
        unverified_header = jwt.get_unverified_header(token)
        kid = unverified_header.get("kid")

        if not kid:
            raise JWTError("JWT header missing 'kid' (key ID)")

        signing_key = await self.jwks_cache.get_signing_key(kid)

        try:
            claims = jwt.decode(
                token,
                signing_key,
                algorithms=["RS256"],
                issuer=self.issuer,
                options={
                    "verify_signature": True,
                    "verify_exp": True,
                    "verify_nbf": True,
                    "verify_iat": True,
                    "verify_aud": False,
                    "verify_iss": True,
                    "require_exp": True,
                    "require_iat": True,
                    "require_sub": True,
                    "leeway": self.leeway,
                },
            )
        except JWTError as e:
            logger.warning(
                f"JWT verification failed: {e}",
                extra={"error_type": "jwt_verification_failed", "error": str(e)},
            )
            raise

        azp = claims.get("azp")
        if self.authorized_parties and azp not in self.authorized_parties:
            logger.warning(
                f"JWT rejected: unauthorized party {azp!r}",
                extra={"error_type": "jwt_invalid_azp", "azp": azp},
            )
            raise JWTError(f"Invalid authorized party: {azp}")

        logger.debug(
            "JWT verified successfully",
            extra={"user_id": claims.get("sub"), "kid": kid, "exp": claims.get("exp")},
        )
        return claims
