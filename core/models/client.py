"""Client (billed party) domain models."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field, EmailStr


class ClientCreate(BaseModel):
    """Data required to create a client."""

    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr | None = None
    phone: str | None = Field(None, max_length=50)
    address: str | None = Field(None, max_length=500)
    company: str | None = Field(None, max_length=255)


class ClientUpdate(BaseModel):
    """Data that can be updated on a client. All fields optional."""

    name: str | None = Field(None, min_length=1, max_length=255)
    email: EmailStr | None = None
    phone: str | None = Field(None, max_length=50)
    address: str | None = Field(None, max_length=500)
    company: str | None = Field(None, max_length=255)


class Client(BaseModel):
    """Full client entity as stored."""

    id: UUID
    user_id: UUID
    name: str
    email: str | None
    phone: str | None
    address: str | None
    company: str | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

    @property
    def display_name(self) -> str:
        """Human-readable name for documents and emails."""
        if self.company and self.company != self.name:
            return f"{self.name} ({self.company})"
        return self.name
