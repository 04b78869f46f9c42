"""Message DTOs."""
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

StatusValue = Literal["sent", "delivered", "read"]
AggregateStatus = Literal["sending", "sent", "delivered", "read"]


class AttachmentOut(BaseModel):
    id: str
    message_id: str
    file_name: str
    file_type: str
    file_size: int
    file_path: str
    thumbnail_path: Optional[str] = None
    created_at: datetime
    metadata: Dict[str, Any] = Field(default_factory=dict)


class StatusOut(BaseModel):
    message_id: str
    profile_id: str
    status: StatusValue
    updated_at: datetime


class ReactionOut(BaseModel):
    message_id: str
    profile_id: str
    emoji: str
    created_at: datetime


class MessageOut(BaseModel):
    id: str
    conversation_id: str
    sender_id: str
    content: str
    reply_to_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    edited_at: Optional[datetime] = None
    is_system_message: bool = False
    client_generated_id: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    seq: int
    is_deleted: bool = False
    attachments: List[AttachmentOut] = Field(default_factory=list)
    statuses: List[StatusOut] = Field(default_factory=list)
    reactions: List[ReactionOut] = Field(default_factory=list)
    status: Optional[AggregateStatus] = None


class AttachmentUpload(BaseModel):
    """A file handed to the pipeline for upload."""

    file_name: str
    content_type: str = "application/octet-stream"
    data: bytes


class AttachmentResult(BaseModel):
    file_name: str
    ok: bool
    attachment: Optional[AttachmentOut] = None
    error: Optional[str] = None


class SendResult(BaseModel):
    message: MessageOut
    attachments: List[AttachmentResult] = Field(default_factory=list)

    @property
    def failed_attachments(self) -> List[AttachmentResult]:
        return [a for a in self.attachments if not a.ok]


class MessagePage(BaseModel):
    messages: List[MessageOut]
    has_more: bool
    next_before: Optional[datetime] = None
    next_before_seq: Optional[int] = None


class MessageCreate(BaseModel):
    content: str = ""
    reply_to_id: Optional[str] = None
    client_generated_id: Optional[str] = None


class MessageEdit(BaseModel):
    content: str


class StatusUpdate(BaseModel):
    status: StatusValue


class ReactionCreate(BaseModel):
    emoji: str
