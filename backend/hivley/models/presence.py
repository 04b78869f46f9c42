"""Presence model."""
from sqlalchemy import JSON, CheckConstraint, Column, DateTime, String

from hivley.models.base import Base
from hivley.utils.helpers import utcnow


class UserPresence(Base):
    """Last-known presence; one row per profile, overwritten on every heartbeat."""

    __tablename__ = "user_presence"

    profile_id = Column(String(36), primary_key=True)
    status = Column(String(20), nullable=False, default="offline")
    last_seen_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    metadata_ = Column("metadata", JSON, nullable=False, default=dict)

    __table_args__ = (
        CheckConstraint("status IN ('online', 'away', 'offline')", name="user_presence_status_check"),
    )
