"""Read models for the conversation list and thread screens."""
from datetime import datetime
from typing import List, Optional

from hivley.gateway import PersistenceGateway
from hivley.schemas import ConversationOut, ConversationSummary, MessagePage
from hivley.services.conversation import ConversationManager, compute_preview, compute_title, is_visible
from hivley.services.message import MessagePipeline
from hivley.services.presence import PresenceTracker
from hivley.services.status import aggregate_status


def matches_query(summary: ConversationSummary, query: Optional[str]) -> bool:
    """Case-insensitive match on the title or any participant name."""
    if not query or not query.strip():
        return True
    needle = query.strip().lower()
    if needle in summary.title.lower():
        return True
    return any(
        p.profile and p.profile.full_name and needle in p.profile.full_name.lower()
        for p in summary.participants
    )


class ConversationListView:
    """Builds what the sidebar and the open thread display."""

    def __init__(
        self,
        gateway: PersistenceGateway,
        conversations: ConversationManager,
        messages: MessagePipeline,
        presence: PresenceTracker
    ):
        self.gateway = gateway
        self.conversations = conversations
        self.messages = messages
        self.presence = presence

    async def list_for(self, viewer_id: str, query: Optional[str] = None) -> List[ConversationSummary]:
        """Visible conversations with title, preview, unread count and presence."""
        conversations = [
            c for c in await self.conversations.list_for(viewer_id)
            if is_visible(c, viewer_id)
        ]

        # Presence is only shown for the other side of direct chats
        others = [
            p.profile_id
            for c in conversations if c.type == "direct"
            for p in c.other_participants(viewer_id)
        ]
        presence = await self.presence.get_presence(others)

        summaries = []
        for conversation in conversations:
            summary = await self._summarize(conversation, viewer_id, presence)
            if matches_query(summary, query):
                summaries.append(summary)
        return summaries

    async def thread_for(
        self,
        conversation_id: str,
        viewer_id: str,
        limit: Optional[int] = None,
        before: Optional[datetime] = None,
        before_seq: Optional[int] = None
    ) -> MessagePage:
        """A page of the thread with the aggregate status on the viewer's own messages."""
        page = await self.messages.fetch_page(conversation_id, viewer_id, limit, before, before_seq)
        for message in page.messages:
            if message.sender_id == viewer_id and not message.is_system_message:
                message.status = aggregate_status(message)
        return page

    async def _summarize(self, conversation: ConversationOut, viewer_id: str, presence) -> ConversationSummary:
        last_message = await self.gateway.get_last_message(conversation.id)

        unread = 0
        viewer = next((p for p in conversation.participants if p.profile_id == viewer_id), None)
        if viewer is not None:
            unread = await self.gateway.count_unread(conversation.id, viewer_id, viewer.last_read_at)

        status = None
        if last_message and last_message.sender_id == viewer_id and not last_message.is_system_message:
            status = aggregate_status(last_message)

        effective = None
        if conversation.type == "direct":
            other = next(iter(conversation.other_participants(viewer_id)), None)
            if other is not None:
                effective = self.presence.effective(presence.get(other.profile_id))

        return ConversationSummary(
            id=conversation.id,
            type=conversation.type,
            title=compute_title(conversation, viewer_id),
            preview=compute_preview(last_message),
            last_message_at=conversation.last_message_at,
            unread_count=unread,
            last_message_status=status,
            presence=effective,
            participants=conversation.participants,
            metadata=conversation.metadata
        )
