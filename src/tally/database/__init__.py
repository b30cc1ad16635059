"""Database connection and models."""

from src.tally.database.connection import (
    build_engine,
    dispose_engine,
    get_db,
    get_engine,
    get_session_factory,
)
from src.tally.database.models import DEFAULT_CATEGORY, Base, ExpenseEntry, User

__all__ = [
    "build_engine",
    "dispose_engine",
    "get_db",
    "get_engine",
    "get_session_factory",
    "Base",
    "DEFAULT_CATEGORY",
    "ExpenseEntry",
    "User",
]
