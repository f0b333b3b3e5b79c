"""Pydantic schemas for the contact API."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ContactSubmission(BaseModel):
    """A validated, sanitized contact form submission ready to be stored."""
    name: str = Field(..., min_length=1)
    email: str = Field(..., min_length=1)
    subject: str = Field(..., min_length=1)
    message: str = Field(..., min_length=1)
    user_id: Optional[str] = None

    @field_validator('name', 'email', 'subject', 'message')
    @classmethod
    def reject_markup(cls, v):
        """Stored text must never contain raw angle brackets."""
        if "<" in v or ">" in v:
            raise ValueError("Value must be sanitized before storing")
        return v


class ContactRecord(BaseModel):
    """A contact message as stored in the record store."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    email: str
    subject: str
    message: str
    read: bool = False
    created_at: datetime
    user_id: Optional[str] = None


class ContactResponse(BaseModel):
    """Schema for a successful submission."""
    message: str


class ErrorResponse(BaseModel):
    """Schema for a failed submission."""
    error: str


class CsrfTokenResponse(BaseModel):
    """Schema for an issued CSRF token."""
    csrf_token: str
    expires_in: Optional[int] = None  # Seconds, only set for signed tokens
