"""SQLAlchemy models for database entities."""

import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import DateTime, Float, ForeignKey, String, Text, Uuid, event, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

DEFAULT_CATEGORY = "Other"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Declarative base for all tables."""


class TimestampMixin:
    """Adds created_at / updated_at columns."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        server_default=func.now(),
        nullable=False,
    )


class User(TimestampMixin, Base):
    """
    Local user row mirroring an identity-provider account.

    Created lazily on first authenticated request. Expense entries join on
    external_id (the provider's user id), not on the internal id.
    """

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    external_id: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    email: Mapped[str] = mapped_column(String(320), unique=True, nullable=False)
    name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    avatar_url: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Rely on DB-level ON DELETE CASCADE; don't load entries just to delete them.
    expenses: Mapped[list["ExpenseEntry"]] = relationship(
        back_populates="user", passive_deletes=True
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, external_id={self.external_id}, email={self.email})>"


class ExpenseEntry(TimestampMixin, Base):
    """A single expense recorded by a user."""

    __tablename__ = "expense_entries"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    text: Mapped[str] = mapped_column(Text, nullable=False)
    amount: Mapped[float] = mapped_column(Float, nullable=False)
    category: Mapped[str] = mapped_column(
        String(64), nullable=False, default=DEFAULT_CATEGORY, server_default=DEFAULT_CATEGORY
    )
    date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now(), index=True
    )
    user_id: Mapped[str] = mapped_column(
        String(255),
        ForeignKey("users.external_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    user: Mapped[User] = relationship(back_populates="expenses")

    def __repr__(self) -> str:
        return f"<ExpenseEntry(id={self.id}, amount={self.amount}, category={self.category})>"


@event.listens_for(ExpenseEntry, "before_insert")
def _default_entry_date(mapper: Any, connection: Any, target: ExpenseEntry) -> None:
    # An entry without an explicit date happened when it was recorded
    if target.created_at is None:
        target.created_at = utcnow()
    if target.updated_at is None:
        target.updated_at = target.created_at
    if target.date is None:
        target.date = target.created_at
