"""Message models."""
from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from hivley.models.base import Base
from hivley.utils.helpers import new_id, utcnow

DELETED_MARKER = "[Message deleted]"

STATUS_RANK = {"sent": 0, "delivered": 1, "read": 2}


class Message(Base):
    __tablename__ = "messages"

    id = Column(String(36), primary_key=True, default=new_id)
    conversation_id = Column(
        String(36),
        ForeignKey("conversations.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    sender_id = Column(String(36), nullable=False, index=True)
    content = Column(Text, nullable=False, default="")
    reply_to_id = Column(String(36), ForeignKey("messages.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)
    edited_at = Column(DateTime(timezone=True), nullable=True)
    is_system_message = Column(Boolean, nullable=False, default=False)
    client_generated_id = Column(String(100), nullable=True)
    metadata_ = Column("metadata", JSON, nullable=False, default=dict)
    seq = Column(Integer, nullable=False)

    conversation = relationship("Conversation", back_populates="messages")
    attachments = relationship("MessageAttachment", back_populates="message", order_by="MessageAttachment.created_at")
    statuses = relationship("MessageStatus", back_populates="message")
    reactions = relationship("MessageReaction", back_populates="message", order_by="MessageReaction.created_at")

    __table_args__ = (
        UniqueConstraint("conversation_id", "seq", name="unique_conversation_seq"),
        Index("idx_messages_conversation_created", "conversation_id", "created_at"),
    )

    @property
    def is_deleted(self) -> bool:
        return self.content == DELETED_MARKER


class MessageAttachment(Base):
    __tablename__ = "message_attachments"

    id = Column(String(36), primary_key=True, default=new_id)
    message_id = Column(
        String(36),
        ForeignKey("messages.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    file_name = Column(String(255), nullable=False)
    file_type = Column(String(100), nullable=False)
    file_size = Column(BigInteger, nullable=False)
    file_path = Column(String(500), nullable=False)
    thumbnail_path = Column(String(500), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    metadata_ = Column("metadata", JSON, nullable=False, default=dict)

    message = relationship("Message", back_populates="attachments")


class MessageStatus(Base):
    __tablename__ = "message_status"

    id = Column(String(36), primary_key=True, default=new_id)
    message_id = Column(
        String(36),
        ForeignKey("messages.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    profile_id = Column(String(36), nullable=False)
    status = Column(String(20), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    message = relationship("Message", back_populates="statuses")

    __table_args__ = (
        CheckConstraint("status IN ('sent', 'delivered', 'read')", name="message_status_check"),
        UniqueConstraint("message_id", "profile_id", name="unique_message_profile_status"),
    )


class MessageReaction(Base):
    __tablename__ = "message_reactions"

    id = Column(String(36), primary_key=True, default=new_id)
    message_id = Column(
        String(36),
        ForeignKey("messages.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    profile_id = Column(String(36), nullable=False)
    emoji = Column(String(16), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    message = relationship("Message", back_populates="reactions")

    __table_args__ = (
        UniqueConstraint("message_id", "profile_id", "emoji", name="unique_message_profile_reaction"),
    )
