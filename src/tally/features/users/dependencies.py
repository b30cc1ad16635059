"""FastAPI dependencies resolving the current user row."""

from fastapi import Depends, HTTPException, status
from sqlalchemy.orm import Session

from src.tally.auth.dependencies import get_current_principal
from src.tally.auth.models import Principal
from src.tally.database import User, get_db
from src.tally.features.users.exceptions import UserProvisioningError
from src.tally.features.users.service import provision_user


async def get_current_user(
    principal: Principal | None = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> User | None:
    """
    Provisioned user for the current session, or None when anonymous.

    Raises:
        HTTPException: 409 if the principal's email belongs to another account
    """
    try:
        return provision_user(db, principal)
    except UserProvisioningError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e)) from e


async def require_user(user: User | None = Depends(get_current_user)) -> User:
    """Like get_current_user, but anonymous requests get a 401."""
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
        )
    return user
