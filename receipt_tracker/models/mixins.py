"""Mixins for SQLAlchemy models."""

from datetime import UTC, datetime

from sqlalchemy import Column, String


def utc_now_iso() -> str:
    """Current UTC time as ISO-8601 text."""
    return datetime.now(UTC).isoformat()


class IsoTimestampMixin:
    """Mixin to add created_at and updated_at columns stored as ISO-8601 text."""

    created_at = Column(String(40), default=utc_now_iso, nullable=False)
    updated_at = Column(String(40), default=utc_now_iso, onupdate=utc_now_iso, nullable=False)
