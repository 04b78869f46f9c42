"""Conversation DTOs."""
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from hivley.schemas.message import AggregateStatus
from hivley.schemas.presence import EffectivePresence
from hivley.schemas.profile import ProfileOut

ConversationType = Literal["direct", "group"]


class ParticipantOut(BaseModel):
    id: str
    conversation_id: str
    profile_id: str
    joined_at: datetime
    last_read_at: datetime
    is_admin: bool = False
    notifications_enabled: bool = True
    profile: Optional[ProfileOut] = None


class ConversationOut(BaseModel):
    id: str
    type: ConversationType
    title: Optional[str] = None
    created_by: str
    created_at: datetime
    updated_at: datetime
    last_message_at: datetime
    metadata: Dict[str, Any] = Field(default_factory=dict)
    last_seq: int = 0
    participants: List[ParticipantOut] = Field(default_factory=list)

    def participant_ids(self) -> List[str]:
        return [p.profile_id for p in self.participants]

    def other_participants(self, viewer_id: str) -> List[ParticipantOut]:
        return [p for p in self.participants if p.profile_id != viewer_id]


class ConversationSummary(BaseModel):
    """One row of a viewer's conversation list."""

    id: str
    type: ConversationType
    title: str
    preview: str
    last_message_at: datetime
    unread_count: int = 0
    last_message_status: Optional[AggregateStatus] = None
    presence: Optional[EffectivePresence] = None
    participants: List[ParticipantOut] = Field(default_factory=list)
    metadata: Dict[str, Any] = Field(default_factory=dict)


class ChatNavigation(BaseModel):
    """Where the client should go after starting a conversation."""

    path: str
    conversation_id: str
    conversation: ConversationOut


class ConversationCreate(BaseModel):
    type: ConversationType = "direct"
    title: Optional[str] = None
    participant_ids: List[str]
    metadata: Dict[str, Any] = Field(default_factory=dict)


class DirectConversationCreate(BaseModel):
    participant_id: str
    metadata: Dict[str, Any] = Field(default_factory=dict)


class ServiceConversationCreate(BaseModel):
    provider_id: str
    service_id: str
    service_title: str


class ParticipantsAdd(BaseModel):
    participant_ids: List[str]


class NotificationsUpdate(BaseModel):
    enabled: bool
