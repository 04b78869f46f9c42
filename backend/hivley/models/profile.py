"""Profile model."""
from sqlalchemy import Column, DateTime, String

from hivley.models.base import Base
from hivley.utils.helpers import utcnow


class Profile(Base):
    """Public profile of a user, written by the identity provider."""

    __tablename__ = "profiles"

    id = Column(String(36), primary_key=True)
    full_name = Column(String(200), nullable=True)
    role = Column(String(20), nullable=False, default="client")
    avatar_url = Column(String(500), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
