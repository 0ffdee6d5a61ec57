"""Pydantic schemas for authentication."""

from uuid import UUID

from pydantic import BaseModel, ConfigDict


class AuthenticatedUser(BaseModel):
    """Identity read from an access token."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    email: str
    name: str = ""

    @property
    def display_name(self) -> str:
        """Name shown next to a comment; the email local part as fallback."""
        return self.name or self.email.split("@")[0]
