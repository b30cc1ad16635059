"""Server-rendered pages."""

from src.tally.features.pages.handlers import router

__all__ = ["router"]
