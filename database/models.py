"""
SQLAlchemy ORM models.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Index,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class Integration(Base):
    """One user's connection to one integration type.  Never hard-deleted."""

    __tablename__ = "integrations"
    __table_args__ = (
        UniqueConstraint("user_id", "type", name="uq_integrations_user_type"),
        Index("ix_integrations_user_enabled", "user_id", "enabled"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(String(255), nullable=False)     # opaque id from the session
    type = Column(String(32), nullable=False)
    oauth_token = Column(Text)              # encrypted access token
    refresh_token = Column(Text)            # encrypted, null when the provider issues none
    token_expires_at = Column(DateTime(timezone=True))
    enabled = Column(Boolean, nullable=False, default=False)
    connected_at = Column(DateTime(timezone=True))
    last_used_at = Column(DateTime(timezone=True))
    extra = Column(JSON().with_variant(JSONB(), "postgresql"), nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow)
