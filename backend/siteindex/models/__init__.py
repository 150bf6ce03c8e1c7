"""
Site Index Database Models

SQLAlchemy models for the PostgreSQL schema.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import JSON, CheckConstraint, DateTime, Index, Integer, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.sql import func


class Base(DeclarativeBase):
    """Canonical Base class for all database models."""

    pass


class TimestampMixin:
    """Mixin for timestamp fields."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )


class IndexItem(Base, TimestampMixin):
    """A single A-Z index entry pointing at a district web resource."""

    __tablename__ = "index_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    letter: Mapped[str] = mapped_column(String(1), nullable=False)
    url: Mapped[str] = mapped_column(String(2048), nullable=False)
    campus: Mapped[str] = mapped_column(String(100), nullable=False)

    __table_args__ = (
        CheckConstraint("char_length(letter) = 1", name="check_letter_length"),
        Index("ix_index_items_letter_title", "letter", "title"),
        Index("ix_index_items_campus_letter", "campus", "letter"),
    )

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the listing record shape stored in caches."""
        return {
            "id": self.id,
            "title": self.title,
            "letter": self.letter,
            "url": self.url,
            "campus": self.campus,
        }

    def __repr__(self) -> str:
        return f"<IndexItem(id={self.id}, letter={self.letter}, campus={self.campus})>"


class ActivityLog(Base):
    """An audited admin or write request."""

    __tablename__ = "activity_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_email: Mapped[Optional[str]] = mapped_column(String(255))
    action: Mapped[str] = mapped_column(String(100), nullable=False)
    resource: Mapped[Optional[str]] = mapped_column(String(100))
    resource_id: Mapped[Optional[str]] = mapped_column(String(100))
    details: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON)
    ip_address: Mapped[Optional[str]] = mapped_column(String(64))
    user_agent: Mapped[Optional[str]] = mapped_column(String(512))
    method: Mapped[Optional[str]] = mapped_column(String(10))
    path: Mapped[Optional[str]] = mapped_column(String(2048))
    status_code: Mapped[Optional[int]] = mapped_column(Integer)
    duration_ms: Mapped[Optional[int]] = mapped_column(Integer)
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (
        Index("ix_activity_logs_action", "action"),
        Index("ix_activity_logs_resource", "resource"),
        Index("ix_activity_logs_user_email", "user_email"),
        Index("ix_activity_logs_timestamp", "timestamp"),
    )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "user_email": self.user_email,
            "action": self.action,
            "resource": self.resource,
            "resource_id": self.resource_id,
            "details": self.details,
            "ip_address": self.ip_address,
            "user_agent": self.user_agent,
            "method": self.method,
            "path": self.path,
            "status_code": self.status_code,
            "duration_ms": self.duration_ms,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
        }

    def __repr__(self) -> str:
        return f"<ActivityLog(id={self.id}, action={self.action}, user={self.user_email})>"


__all__ = ["Base", "TimestampMixin", "IndexItem", "ActivityLog"]
