"""Expense entries feature."""

from src.tally.features.expenses.handlers import router

__all__ = ["router"]
