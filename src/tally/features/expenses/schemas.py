"""Pydantic schemas for the expenses feature."""

import math
from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ExpenseCreate(BaseModel):
    """Request body for recording an expense. Category and date are optional."""

    text: str = Field(max_length=500, description="What the money was spent on")
    amount: float = Field(description="Signed amount")
    category: str | None = Field(None, min_length=1, max_length=64)
    date: datetime | None = Field(None, description="When it happened (defaults to now)")

    @field_validator("text")
    @classmethod
    def text_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("text must not be blank")
        return value

    @field_validator("amount")
    @classmethod
    def amount_finite(cls, value: float) -> float:
        if not math.isfinite(value):
            raise ValueError("amount must be a finite number")
        return value

    model_config = ConfigDict(
        json_schema_extra={
            "example": {"text": "Lunch with Sam", "amount": 18.5, "category": "Food"}
        }
    )


class ExpenseUpdate(BaseModel):
    """Partial update. Only fields that are sent are changed."""

    text: str | None = Field(None, max_length=500)
    amount: float | None = None
    category: str | None = Field(None, min_length=1, max_length=64)
    date: datetime | None = None

    @field_validator("text")
    @classmethod
    def text_not_blank(cls, value: str | None) -> str | None:
        if value is None:
            return value
        value = value.strip()
        if not value:
            raise ValueError("text must not be blank")
        return value

    @field_validator("amount")
    @classmethod
    def amount_finite(cls, value: float | None) -> float | None:
        if value is not None and not math.isfinite(value):
            raise ValueError("amount must be a finite number")
        return value


class ExpenseResponse(BaseModel):
    """Expense entry as returned by the API."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    text: str
    amount: float
    category: str
    date: datetime
    created_at: datetime
    updated_at: datetime


class CategoryTotal(BaseModel):
    category: str
    total: float
    count: int


class ExpenseSummary(BaseModel):
    """Totals for a user's expenses, overall and per category."""

    total: float
    count: int
    by_category: list[CategoryTotal] = Field(default_factory=list)
    start: date | None = None
    end: date | None = None
