"""Conversation models."""
from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from hivley.models.base import Base
from hivley.utils.helpers import new_id, utcnow


class Conversation(Base):
    __tablename__ = "conversations"

    id = Column(String(36), primary_key=True, default=new_id)
    type = Column(String(20), nullable=False, default="direct")
    title = Column(String(200), nullable=True)
    created_by = Column(String(36), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)
    last_message_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    metadata_ = Column("metadata", JSON, nullable=False, default=dict)
    # Sorted "low:high" participant ids; only set for direct conversations
    pair_key = Column(String(80), nullable=True, unique=True)
    last_seq = Column(Integer, nullable=False, default=0)

    participants = relationship(
        "ConversationParticipant",
        back_populates="conversation",
        cascade="all, delete-orphan"
    )
    messages = relationship("Message", back_populates="conversation")

    __table_args__ = (
        CheckConstraint("type IN ('direct', 'group')", name="conversation_type_check"),
    )


class ConversationParticipant(Base):
    __tablename__ = "conversation_participants"

    id = Column(String(36), primary_key=True, default=new_id)
    conversation_id = Column(
        String(36),
        ForeignKey("conversations.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    profile_id = Column(String(36), nullable=False, index=True)
    joined_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    last_read_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    is_admin = Column(Boolean, nullable=False, default=False)
    notifications_enabled = Column(Boolean, nullable=False, default=True)

    conversation = relationship("Conversation", back_populates="participants")

    __table_args__ = (
        UniqueConstraint("conversation_id", "profile_id", name="unique_conversation_participant"),
    )
