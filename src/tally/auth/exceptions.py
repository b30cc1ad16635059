"""Custom exceptions for authentication and identity-provider access."""


class ConfigurationError(Exception):
    """Raised at startup when identity-provider keys are missing or malformed."""

    pass


class IdentityProviderError(Exception):
    """Raised when the identity provider cannot be reached or returns an error."""

    pass
