"""Database operations on a user's expense entries."""

import logging
from datetime import date, datetime, time, timezone
from typing import Any
from uuid import UUID

from sqlalchemy import Select, func, select
from sqlalchemy.orm import Session

from src.tally.database.models import DEFAULT_CATEGORY, ExpenseEntry, User
from src.tally.features.expenses.schemas import (
    CategoryTotal,
    ExpenseCreate,
    ExpenseSummary,
    ExpenseUpdate,
)

logger = logging.getLogger(__name__)


def _day_bounds(start: date | None, end: date | None) -> list[Any]:
    conditions = []
    if start is not None:
        conditions.append(ExpenseEntry.date >= datetime.combine(start, time.min, timezone.utc))
    if end is not None:
        conditions.append(ExpenseEntry.date <= datetime.combine(end, time.max, timezone.utc))
    return conditions


def _owned_by(user: User) -> Select[tuple[ExpenseEntry]]:
    return select(ExpenseEntry).where(ExpenseEntry.user_id == user.external_id)


def list_expenses(
    db: Session,
    user: User,
    category: str | None = None,
    start: date | None = None,
    end: date | None = None,
    limit: int = 100,
    offset: int = 0,
) -> list[ExpenseEntry]:
    """
    List a user's expenses, most recent first.

    Args:
        db: Database session
        user: Owner
        category: Only this category
        start: Earliest day (inclusive)
        end: Latest day (inclusive)
        limit: Maximum entries to return
        offset: Entries to skip

    Returns:
        Expense entries ordered by date descending
    """
    query = _owned_by(user).where(*_day_bounds(start, end))
    if category is not None:
        query = query.where(ExpenseEntry.category == category)
    query = query.order_by(ExpenseEntry.date.desc(), ExpenseEntry.created_at.desc())
    return list(db.scalars(query.limit(limit).offset(offset)))


def get_expense(db: Session, user: User, entry_id: UUID) -> ExpenseEntry | None:
    """Fetch one of the user's entries; None if it doesn't exist or belongs to someone else."""
    return db.scalars(_owned_by(user).where(ExpenseEntry.id == entry_id)).one_or_none()


def create_expense(db: Session, user: User, data: ExpenseCreate) -> ExpenseEntry:
    """Record a new expense for the user."""
    entry = ExpenseEntry(
        text=data.text,
        amount=data.amount,
        category=data.category or DEFAULT_CATEGORY,
        date=data.date,
        user_id=user.external_id,
    )
    db.add(entry)
    db.commit()
    logger.info(
        f"Created expense {entry.id} for user {user.external_id}",
        extra={"entry_id": str(entry.id), "external_id": user.external_id},
    )
    return entry


def update_expense(db: Session, entry: ExpenseEntry, data: ExpenseUpdate) -> ExpenseEntry:
    """Apply the fields present in a partial update."""
    changes = data.model_dump(exclude_unset=True)
    # Explicit nulls can't clear required columns
    for field, value in changes.items():
        if value is not None:
            setattr(entry, field, value)
    db.commit()
    return entry


def delete_expense(db: Session, entry: ExpenseEntry) -> None:
    db.delete(entry)
    db.commit()
    logger.info(f"Deleted expense {entry.id}", extra={"entry_id": str(entry.id)})


def summarize_expenses(
    db: Session, user: User, start: date | None = None, end: date | None = None
) -> ExpenseSummary:
    """
    Total and per-category sums of the user's expenses.

    Categories are ordered by total, largest first.
    """
    query = (
        select(
            ExpenseEntry.category,
            func.coalesce(func.sum(ExpenseEntry.amount), 0).label("total"),
            func.count(ExpenseEntry.id).label("entries"),
        )
        .where(ExpenseEntry.user_id == user.external_id, *_day_bounds(start, end))
        .group_by(ExpenseEntry.category)
        .order_by(func.sum(ExpenseEntry.amount).desc())
    )
    by_category = [
        CategoryTotal(category=row.category, total=float(row.total), count=row.entries)
        for row in db.execute(query)
    ]
    return ExpenseSummary(
        total=sum(item.total for item in by_category),
        count=sum(item.count for item in by_category),
        by_category=by_category,
        start=start,
        end=end,
    )
