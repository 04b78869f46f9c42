from hivley.models.base import Base
from hivley.models.conversation import Conversation, ConversationParticipant
from hivley.models.message import (
    DELETED_MARKER,
    STATUS_RANK,
    Message,
    MessageAttachment,
    MessageReaction,
    MessageStatus,
)
from hivley.models.presence import UserPresence
from hivley.models.profile import Profile

__all__ = [
    "Base",
    "Conversation",
    "ConversationParticipant",
    "DELETED_MARKER",
    "STATUS_RANK",
    "Message",
    "MessageAttachment",
    "MessageReaction",
    "MessageStatus",
    "Profile",
    "UserPresence",
]
