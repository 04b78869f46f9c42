"""Delivery status and reaction tracking."""
from typing import List, Optional

from hivley.errors import NotFoundError, ValidationError
from hivley.gateway import PersistenceGateway
from hivley.models import STATUS_RANK
from hivley.schemas import MessageOut, ReactionOut, StatusOut
from hivley.services.conversation import ConversationManager
from hivley.utils.logger import setup_logger

logger = setup_logger(__name__)

MAX_EMOJI_LENGTH = 16


def aggregate_status(message: MessageOut, statuses: Optional[List[StatusOut]] = None) -> str:
    """Fold recipient status rows into the single status a sender sees.

    ``read`` once every recipient row is read, ``delivered`` once every row
    has at least been delivered, ``sent`` otherwise, and ``sending`` while
    no recipient has reported anything.
    """
    rows = message.statuses if statuses is None else statuses
    rows = [s for s in rows if s.profile_id != message.sender_id]
    if not rows:
        return "sending"
    if all(s.status == "read" for s in rows):
        return "read"
    if all(STATUS_RANK[s.status] >= STATUS_RANK["delivered"] for s in rows):
        return "delivered"
    return "sent"


def validate_emoji(emoji: str) -> str:
    emoji = (emoji or "").strip()
    if not emoji:
        raise ValidationError("Reaction emoji is required", fields={"emoji": "Required"})
    if len(emoji) > MAX_EMOJI_LENGTH:
        raise ValidationError(
            f"Reaction emoji must be at most {MAX_EMOJI_LENGTH} characters",
            fields={"emoji": "Too long"}
        )
    return emoji


class StatusTracker:
    """Per-recipient delivery state and per-user reactions."""

    def __init__(self, gateway: PersistenceGateway, conversations: ConversationManager):
        self.gateway = gateway
        self.conversations = conversations

    async def mark_status(self, message_id: str, recipient_id: str, status: str) -> StatusOut:
        """Record a recipient's status; a lower status never overwrites a higher one."""
        if status not in STATUS_RANK:
            raise ValidationError(f"Unknown status: {status}", fields={"status": "Must be sent, delivered or read"})

        message = await self._message(message_id)
        await self.conversations.require_participant(message.conversation_id, recipient_id)
        if message.sender_id == recipient_id:
            raise ValidationError("Senders do not report status on their own messages", code="OWN_MESSAGE")

        stored = await self.gateway.upsert_status(message_id, recipient_id, status)
        if stored.status != status:
            logger.debug(f"Ignoring {status} for message {message_id}, already {stored.status}")
        return stored

    async def aggregate(self, message_id: str) -> str:
        message = await self._message(message_id)
        return aggregate_status(message)

    async def mark_conversation_read(self, conversation_id: str, viewer_id: str) -> int:
        """Mark every message from others as read and stamp last_read_at."""
        await self.conversations.require_participant(conversation_id, viewer_id)

        message_ids = await self.gateway.list_unread_message_ids(conversation_id, viewer_id)
        for message_id in message_ids:
            await self.gateway.upsert_status(message_id, viewer_id, "read")

        await self.conversations.mark_read(conversation_id, viewer_id)
        if message_ids:
            logger.info(f"{viewer_id} read {len(message_ids)} messages in conversation {conversation_id}")
        return len(message_ids)

    async def add_reaction(self, message_id: str, profile_id: str, emoji: str) -> ReactionOut:
        emoji = validate_emoji(emoji)
        message = await self._message(message_id)
        await self.conversations.require_participant(message.conversation_id, profile_id)
        return await self.gateway.insert_reaction(message_id, profile_id, emoji)

    async def remove_reaction(self, message_id: str, profile_id: str, emoji: str) -> bool:
        emoji = validate_emoji(emoji)
        message = await self._message(message_id)
        await self.conversations.require_participant(message.conversation_id, profile_id)
        return await self.gateway.delete_reaction(message_id, profile_id, emoji)

    async def reactions_for(self, message_id: str) -> List[ReactionOut]:
        return await self.gateway.get_reactions(message_id)

    async def _message(self, message_id: str) -> MessageOut:
        message = await self.gateway.get_message(message_id)
        if message is None:
            raise NotFoundError(f"Message {message_id} not found", code="MESSAGE_NOT_FOUND")
        return message
