"""Custom exceptions for user provisioning."""


class UserProvisioningError(Exception):
    """
    Raised when a user row can neither be created nor found.

    Happens when the principal's email is already owned by a different
    external identity.
    """

    def __init__(self, external_id: str, message: str):
        self.external_id = external_id
        super().__init__(message)
