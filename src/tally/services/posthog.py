"""PostHog analytics service for product event tracking."""

import posthog

from src.tally.config import settings


class PostHogService:
    """Service for tracking analytics events via PostHog. No-op without an API key."""

    def __init__(self) -> None:
        if settings.posthog_api_key:
            posthog.api_key = settings.posthog_api_key
            posthog.host = settings.posthog_host

    def capture(self, distinct_id: str, event: str, properties: dict | None = None) -> None:
        """
        Track an event.

        Args:
            distinct_id: External identity id of the user
            event: Event name (e.g., "user_provisioned", "expense_created")
            properties: Optional event properties

        Example:
            >>> service = PostHogService()
            >>> service.capture("user_2abc", "expense_created", {"category": "Food"})
        """
        if not settings.posthog_api_key:
            return

        posthog.capture(distinct_id=distinct_id, event=event, properties=properties or {})
