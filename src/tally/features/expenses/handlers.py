"""API handlers for expense entries."""

import logging
from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from src.tally.database import User, get_db
from src.tally.features.expenses import service
from src.tally.features.expenses.schemas import (
    ExpenseCreate,
    ExpenseResponse,
    ExpenseSummary,
    ExpenseUpdate,
)
from src.tally.features.users import require_user
from src.tally.services import PostHogService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/expenses", tags=["expenses"])


def _validate_range(start: date | None, end: date | None) -> None:
    if start is not None and end is not None and start > end:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_CONTENT,
            detail="start must not be after end",
        )


@router.get("", response_model=list[ExpenseResponse])
async def list_expenses(
    category: str | None = Query(None, description="Only entries in this category"),
    start: date | None = Query(None, description="Earliest day (inclusive)"),
    end: date | None = Query(None, description="Latest day (inclusive)"),
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
) -> list[ExpenseResponse]:
    """
    List the current user's expenses, most recent first.

    Example Response:
        [
            {
                "id": "0b5e...",
                "text": "Lunch with Sam",
                "amount": 18.5,
                "category": "Food",
                "date": "2024-05-01T12:30:00Z",
                ...
            }
        ]
    """
    _validate_range(start, end)
    entries = service.list_expenses(
        db, user, category=category, start=start, end=end, limit=limit, offset=offset
    )
    return [ExpenseResponse.model_validate(entry) for entry in entries]


@router.post("", response_model=ExpenseResponse, status_code=status.HTTP_201_CREATED)
async def create_expense(
    body: ExpenseCreate,
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
) -> ExpenseResponse:
    """
    Record an expense.

    Category defaults to "Other" and date defaults to the moment of creation.
    """
    try:
        entry = service.create_expense(db, user, body)
    except OperationalError:
        # Mapped to 503 by the app-wide handler
        raise
    except Exception as e:
        db.rollback()
        logger.error(
            f"Error creating expense for user {user.external_id}: {e}",
            exc_info=True,
            extra={"error_type": "expense_create_failed", "user_id": user.external_id},
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to save expense. Please try again.",
        ) from e

    PostHogService().capture(
        distinct_id=user.external_id,
        event="expense_created",
        properties={"category": entry.category},
    )
    return ExpenseResponse.model_validate(entry)


@router.get("/summary", response_model=ExpenseSummary)
async def get_summary(
    start: date | None = Query(None, description="Earliest day (inclusive)"),
    end: date | None = Query(None, description="Latest day (inclusive)"),
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
) -> ExpenseSummary:
    """Totals for the current user, overall and per category."""
    _validate_range(start, end)
    return service.summarize_expenses(db, user, start=start, end=end)


@router.get("/{entry_id}", response_model=ExpenseResponse)
async def get_expense(
    entry_id: UUID,
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
) -> ExpenseResponse:
    """
    Get one expense.

    Raises:
        HTTPException: 404 if the entry doesn't exist or isn't the user's
    """
    entry = service.get_expense(db, user, entry_id)
    if entry is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Expense not found")
    return ExpenseResponse.model_validate(entry)


@router.patch("/{entry_id}", response_model=ExpenseResponse)
async def update_expense(
    entry_id: UUID,
    body: ExpenseUpdate,
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
) -> ExpenseResponse:
    """Change some fields of an expense."""
    entry = service.get_expense(db, user, entry_id)
    if entry is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Expense not found")
    try:
        entry = service.update_expense(db, entry, body)
    except OperationalError:
        raise
    except Exception as e:
        db.rollback()
        logger.error(
            f"Error updating expense {entry_id}: {e}",
            exc_info=True,
            extra={"error_type": "expense_update_failed", "user_id": user.external_id},
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update expense. Please try again.",
        ) from e
    return ExpenseResponse.model_validate(entry)


@router.delete("/{entry_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_expense(
    entry_id: UUID,
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
) -> Response:
    """Delete an expense."""
    entry = service.get_expense(db, user, entry_id)
    if entry is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Expense not found")
    service.delete_expense(db, entry)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
