"""Application configuration using Pydantic Settings."""

import base64
import binascii

from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_PROTECTED_ROUTES = "/,/dashboard(.*),/expenses(.*)"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # System Configuration
    debug: bool = False
    protected_routes: str = DEFAULT_PROTECTED_ROUTES

    # Database Configuration
    database_url: str = "postgresql+psycopg://localhost:5432/tally"
    database_pool_size: int = 5
    database_echo: bool = False
    database_auto_create: bool = False

    # Clerk Configuration
    clerk_publishable_key: str = ""
    clerk_secret_key: str = ""
    clerk_api_url: str = "https://api.clerk.com"
    clerk_authorized_parties: str = ""
    clerk_sign_in_url: str = "/sign-in"
    clerk_sign_up_url: str = "/sign-up"
    clerk_after_sign_in_url: str = "/"
    clerk_after_sign_up_url: str = "/"

    # JWT Verification Configuration
    jwks_cache_ttl_seconds: int = 3600  # 1 hour
    jwt_leeway_seconds: int = 10  # Clock skew tolerance

    # PostHog Configuration
    posthog_api_key: str | None = None
    posthog_host: str = "https://app.posthog.com"

    @property
    def clerk_frontend_api(self) -> str | None:
        """
        Frontend API host encoded in the publishable key.

        Publishable keys look like ``pk_test_<base64("<host>$")>``. Returns
        None when the key is missing or malformed.
        """
        key = self.clerk_publishable_key
        if not key.startswith(("pk_test_", "pk_live_")):
            return None

        encoded = key[len("pk_test_") :]
        encoded += "=" * (-len(encoded) % 4)
        try:
            decoded = base64.b64decode(encoded, validate=True).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError):
            return None

        if not decoded.endswith("$") or len(decoded) == 1:
            return None
        return decoded[:-1]

    @property
    def clerk_issuer(self) -> str:
        return f"https://{self.clerk_frontend_api}"

    @property
    def clerk_jwks_url(self) -> str:
        return f"{self.clerk_issuer}/.well-known/jwks.json"

    @property
    def authorized_party_list(self) -> list[str]:
        return [p.strip() for p in self.clerk_authorized_parties.split(",") if p.strip()]

    @property
    def protected_route_list(self) -> list[str]:
        return [p.strip() for p in self.protected_routes.split(",") if p.strip()]


settings = Settings()
