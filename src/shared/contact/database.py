"""Database models for contact submissions and contact form rate limiting."""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Float, Index, Integer, String, Text

from src.shared.database import Base


class Contact(Base):
    """A message submitted through the public contact form."""
    __tablename__ = "contacts"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String, nullable=False)
    email = Column(String, nullable=False)
    subject = Column(String, nullable=False)
    message = Column(Text, nullable=False)
    read = Column(Boolean, default=False, nullable=False)  # Toggled from the admin dashboard
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    user_id = Column(String, nullable=True)  # Owning user, if the site has one


class ContactRateLimit(Base):
    """Shared rate-limit counter for deployments running more than one instance."""
    __tablename__ = "contact_rate_limits"

    id = Column(String, primary_key=True)  # Client identity (IP address or "unknown")
    count = Column(Integer, default=0, nullable=False)
    window_start = Column(Float, nullable=False)  # Epoch seconds
    last_seen = Column(Float, nullable=False, index=True)  # Epoch seconds, drives LRU eviction

    __table_args__ = (
        Index('idx_contact_rate_limit_window_start', 'window_start'),
    )
