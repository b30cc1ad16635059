"""User provisioning."""

from src.tally.features.users.dependencies import get_current_user, require_user
from src.tally.features.users.exceptions import UserProvisioningError
from src.tally.features.users.service import get_user_by_external_id, provision_user

__all__ = [
    "get_current_user",
    "require_user",
    "UserProvisioningError",
    "get_user_by_external_id",
    "provision_user",
]
