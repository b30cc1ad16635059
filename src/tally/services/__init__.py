"""Shared services module for external integrations."""

from src.tally.services.posthog import PostHogService

__all__ = [
    "PostHogService",
]
