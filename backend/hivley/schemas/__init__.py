from hivley.schemas.conversation import (
    ChatNavigation,
    ConversationCreate,
    ConversationOut,
    ConversationSummary,
    DirectConversationCreate,
    NotificationsUpdate,
    ParticipantOut,
    ParticipantsAdd,
    ServiceConversationCreate,
)
from hivley.schemas.message import (
    AttachmentOut,
    AttachmentResult,
    AttachmentUpload,
    MessageCreate,
    MessageEdit,
    MessageOut,
    MessagePage,
    ReactionCreate,
    ReactionOut,
    SendResult,
    StatusOut,
    StatusUpdate,
)
from hivley.schemas.presence import HeartbeatIn, PresenceOut
from hivley.schemas.profile import CurrentUser, ProfileOut, ProfileSummary, SignUpIn

__all__ = [
    "AttachmentOut",
    "AttachmentResult",
    "AttachmentUpload",
    "ChatNavigation",
    "ConversationCreate",
    "ConversationOut",
    "ConversationSummary",
    "CurrentUser",
    "DirectConversationCreate",
    "HeartbeatIn",
    "MessageCreate",
    "MessageEdit",
    "MessageOut",
    "MessagePage",
    "NotificationsUpdate",
    "ParticipantOut",
    "ParticipantsAdd",
    "PresenceOut",
    "ProfileOut",
    "ProfileSummary",
    "ReactionCreate",
    "ReactionOut",
    "SendResult",
    "ServiceConversationCreate",
    "SignUpIn",
    "StatusOut",
    "StatusUpdate",
]
