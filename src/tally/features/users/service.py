"""Find-or-create provisioning of local user rows from identity-provider principals."""

import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from src.tally.auth.models import Principal
from src.tally.database.models import User
from src.tally.features.users.exceptions import UserProvisioningError
from src.tally.services import PostHogService

logger = logging.getLogger(__name__)


def get_user_by_external_id(db: Session, external_id: str) -> User | None:
    """Fetch a user by the identity provider's user id."""
    return db.scalars(select(User).where(User.external_id == external_id)).one_or_none()


def provision_user(db: Session, principal: Principal | None) -> User | None:
    """
    Return the local user for a principal, creating the row on first sight.

    Concurrent first logins (two tabs) race on the unique external_id
    constraint. The loser's insert fails with an IntegrityError, which is
    handled by rolling back and reading the winner's row.

    Args:
        db: Database session
        principal: Verified identity, or None for anonymous requests

    Returns:
        Existing or newly created user; None for anonymous requests

    Raises:
        UserProvisioningError: If the email belongs to another identity
        sqlalchemy.exc.OperationalError: If the database is unreachable

    Example:
        >>> user = provision_user(db, principal)
        >>> user.external_id == principal.external_id
        True
    """
    if principal is None:
        return None

    user = get_user_by_external_id(db, principal.external_id)
    if user is not None:
        return user

    user = User(
        external_id=principal.external_id,
        email=principal.primary_email,
        name=principal.display_name,
        avatar_url=principal.image_url,
    )
    db.add(user)

    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.info(
            f"User {principal.external_id} created concurrently, re-fetching",
            extra={"external_id": principal.external_id},
        )
        existing = get_user_by_external_id(db, principal.external_id)
        if existing is None:
            logger.error(
                f"Cannot provision user {principal.external_id}: email already in use",
                extra={"error_type": "email_conflict", "external_id": principal.external_id},
            )
            raise UserProvisioningError(
                principal.external_id,
                f"Email {principal.primary_email!r} is registered to another account",
            )
        return existing

    logger.info(
        f"Provisioned user {user.external_id}",
        extra={"external_id": user.external_id, "user_id": str(user.id)},
    )
    PostHogService().capture(
        distinct_id=user.external_id,
        event="user_provisioned",
        properties={"has_name": user.name is not None},
    )
    return user
