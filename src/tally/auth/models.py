"""Data models for authentication."""

from typing import Any

from pydantic import BaseModel, Field


class SessionClaims(BaseModel):
    """
    Verified session extracted from a Clerk session token.

    Attributes:
        user_id: External identity id from the 'sub' claim
        session_id: Clerk session id from the 'sid' claim
        claims: Full verified claim set
    """

    user_id: str
    session_id: str | None = None
    claims: dict[str, Any] = Field(default_factory=dict)


class EmailAddress(BaseModel):
    """One email address attached to a Clerk user."""

    id: str | None = None
    email_address: str


class Principal(BaseModel):
    """
    Identity record for an authenticated user, as served by Clerk.

    Example:
        >>> principal = Principal(
        ...     external_id="user_2abc",
        ...     email_addresses=[EmailAddress(email_address="ann@example.com")],
        ...     first_name="Ann",
        ...     last_name="Lee",
        ... )
        >>> principal.display_name
        'Ann Lee'
    """

    external_id: str
    email_addresses: list[EmailAddress] = Field(default_factory=list)
    primary_email_address_id: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    image_url: str | None = None

    @property
    def primary_email(self) -> str:
        """Primary email address, else the first listed one, else an empty string."""
        for address in self.email_addresses:
            if address.id is not None and address.id == self.primary_email_address_id:
                return address.email_address
        if self.email_addresses:
            return self.email_addresses[0].email_address
        return ""

    @property
    def display_name(self) -> str | None:
        """First and last name joined by a space, skipping missing parts."""
        parts = [part.strip() for part in (self.first_name, self.last_name) if part and part.strip()]
        return " ".join(parts) or None

    @classmethod
    def from_clerk_user(cls, data: dict[str, Any]) -> "Principal":
        """Build a principal from a Clerk Backend API user object."""
        return cls(
            external_id=data["id"],
            email_addresses=[
                EmailAddress(id=item.get("id"), email_address=item["email_address"])
                for item in data.get("email_addresses") or []
                if item.get("email_address")
            ],
            primary_email_address_id=data.get("primary_email_address_id"),
            first_name=data.get("first_name"),
            last_name=data.get("last_name"),
            image_url=data.get("image_url"),
        )
