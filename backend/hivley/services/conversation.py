"""Conversation service."""
from typing import Any, Awaitable, Callable, Dict, List, Optional

from hivley.errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from hivley.gateway import PersistenceGateway
from hivley.models import DELETED_MARKER
from hivley.schemas import (
    ChatNavigation,
    ConversationOut,
    CurrentUser,
    MessageOut,
    ParticipantOut,
)
from hivley.utils.helpers import dedupe, pair_key, utcnow
from hivley.utils.logger import setup_logger

logger = setup_logger(__name__)

UNKNOWN_USER = "Unknown User"
NO_MESSAGES = "No messages yet"
DELETED_PREVIEW = "Message deleted"
EMPTY_PREVIEW = "Empty message"

Announcer = Callable[[str, str, str], Awaitable[Any]]


def compute_title(conversation: ConversationOut, viewer_id: str) -> str:
    """Group title, or the other participant's name for direct chats."""
    if conversation.type == "group":
        return conversation.title or ""

    for participant in conversation.other_participants(viewer_id):
        if participant.profile and participant.profile.full_name:
            return participant.profile.full_name
    return UNKNOWN_USER


def compute_preview(last_message: Optional[MessageOut]) -> str:
    """One-line preview of the latest message."""
    if last_message is None:
        return NO_MESSAGES

    if last_message.content == DELETED_MARKER:
        return DELETED_PREVIEW

    if not last_message.content and last_message.attachments:
        count = len(last_message.attachments)
        return f"{count} attachment{'' if count == 1 else 's'}"

    return last_message.content or EMPTY_PREVIEW


def is_visible(conversation: ConversationOut, viewer_id: str) -> bool:
    """Display-layer integrity filter for a viewer's conversation list."""
    if conversation.type == "group" and not conversation.title:
        return False

    return any(
        p.profile is not None and p.profile.full_name
        for p in conversation.other_participants(viewer_id)
    )


class ConversationManager:
    """Creates, finds and administers conversations."""

    def __init__(self, gateway: PersistenceGateway, announcer: Optional[Announcer] = None):
        self.gateway = gateway
        # Posts system messages; wired to MessagePipeline.send_system_message
        self.announcer = announcer

    async def create_or_get_direct_conversation(
        self,
        initiator_id: str,
        other_id: str,
        metadata: Optional[Dict[str, Any]] = None
    ) -> ConversationOut:
        """Return the direct conversation for the pair, creating it if needed.

        The unique pair key makes check-then-create safe under concurrency:
        a caller that loses the insert race gets the winner's conversation.
        """
        if not other_id:
            raise ValidationError("A direct conversation needs another participant", fields={"participant_id": "Required"})
        if initiator_id == other_id:
            raise ValidationError("Cannot start a conversation with yourself", code="SELF_CONVERSATION")

        key = pair_key(initiator_id, other_id)
        existing = await self.gateway.find_direct_conversation(key)
        if existing:
            return existing

        try:
            conversation = await self.gateway.insert_conversation(
                type="direct",
                created_by=initiator_id,
                participants=[(initiator_id, True), (other_id, False)],
                metadata=metadata,
                pair_key=key
            )
        except ConflictError:
            existing = await self.gateway.find_direct_conversation(key)
            if existing is None:
                raise
            logger.info(f"Direct conversation {key} created concurrently, returning {existing.id}")
            return existing

        logger.info(f"Direct conversation {conversation.id} created by {initiator_id}")
        return conversation

    async def create_group_conversation(
        self,
        initiator_id: str,
        participant_ids: List[str],
        title: Optional[str],
        metadata: Optional[Dict[str, Any]] = None
    ) -> ConversationOut:
        title = (title or "").strip()
        if not title:
            raise ValidationError("Group conversations need a title", fields={"title": "Required"})

        members = dedupe(participant_ids, exclude=(initiator_id,))
        if not members:
            raise ValidationError(
                "Group conversations need at least one other participant",
                fields={"participant_ids": "Required"}
            )

        conversation = await self.gateway.insert_conversation(
            type="group",
            created_by=initiator_id,
            participants=[(initiator_id, True)] + [(m, False) for m in members],
            title=title,
            metadata=metadata
        )
        logger.info(f"Group conversation {conversation.id} created by {initiator_id} with {len(members)} members")
        return conversation

    async def create_conversation(
        self,
        initiator_id: str,
        type: str,
        participant_ids: List[str],
        title: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None
    ) -> ConversationOut:
        """Single entry point for both conversation types."""
        if type == "group":
            return await self.create_group_conversation(initiator_id, participant_ids, title, metadata)
        if type != "direct":
            raise ValidationError(f"Unknown conversation type: {type}", fields={"type": "Must be direct or group"})

        others = dedupe(participant_ids, exclude=(initiator_id,))
        if len(others) != 1:
            raise ValidationError(
                "A direct conversation has exactly one other participant",
                fields={"participant_ids": "Exactly one other participant required"}
            )
        return await self.create_or_get_direct_conversation(initiator_id, others[0], metadata)

    async def start_service_conversation(
        self,
        client: CurrentUser,
        provider_id: str,
        service_id: str,
        service_title: str
    ) -> ChatNavigation:
        """Open a direct chat about a service listing ("Message Provider")."""
        conversation = await self.create_or_get_direct_conversation(
            client.id,
            provider_id,
            metadata={"service_id": service_id, "service_title": service_title}
        )
        role = client.profile.role if client.profile else "client"
        return ChatNavigation(
            path=f"/dashboard/{role}/messages",
            conversation_id=conversation.id,
            conversation=conversation
        )

    async def get(self, conversation_id: str) -> ConversationOut:
        conversation = await self.gateway.get_conversation(conversation_id)
        if conversation is None:
            raise NotFoundError(f"Conversation {conversation_id} not found", code="CONVERSATION_NOT_FOUND")
        return conversation

    async def require_participant(self, conversation_id: str, profile_id: str) -> ConversationOut:
        """Get the conversation, or raise if the profile is not a member."""
        conversation = await self.get(conversation_id)
        if profile_id not in conversation.participant_ids():
            logger.warning(f"{profile_id} denied access to conversation {conversation_id}")
            raise AuthorizationError("You are not a participant in this conversation", code="NOT_PARTICIPANT")
        return conversation

    async def list_for(self, profile_id: str) -> List[ConversationOut]:
        return await self.gateway.list_conversations_for(profile_id)

    async def add_participants(
        self,
        conversation_id: str,
        actor_id: str,
        profile_ids: List[str]
    ) -> List[ParticipantOut]:
        """Admins add members to a group."""
        conversation = await self._require_group_admin(conversation_id, actor_id)
        new_ids = dedupe(profile_ids, exclude=tuple(conversation.participant_ids()))
        if not new_ids:
            return []

        added = await self.gateway.add_participants(conversation_id, new_ids)
        names = [p.profile.full_name if p.profile and p.profile.full_name else UNKNOWN_USER for p in added]
        await self._announce(conversation_id, actor_id, f"{await self._name(actor_id)} added {', '.join(names)}")
        return added

    async def remove_participant(self, conversation_id: str, actor_id: str, profile_id: str) -> bool:
        """Admins remove members; any member may leave."""
        conversation = await self.require_participant(conversation_id, actor_id)
        if conversation.type != "group":
            raise ValidationError("Direct conversations always have two participants", code="DIRECT_CONVERSATION")

        if actor_id != profile_id and not self._is_admin(conversation, actor_id):
            raise AuthorizationError("Only admins can remove participants", code="NOT_ADMIN")

        removed = await self.gateway.remove_participant(conversation_id, profile_id)
        if removed:
            name = await self._name(profile_id)
            text = f"{name} left" if actor_id == profile_id else f"{await self._name(actor_id)} removed {name}"
            await self._announce(conversation_id, actor_id, text)
        return removed

    async def set_notifications(self, conversation_id: str, profile_id: str, enabled: bool) -> ParticipantOut:
        await self.require_participant(conversation_id, profile_id)
        return await self.gateway.update_participant(conversation_id, profile_id, notifications_enabled=enabled)

    async def mark_read(self, conversation_id: str, profile_id: str) -> ParticipantOut:
        """Stamp last_read_at; unread counts are measured from it."""
        await self.require_participant(conversation_id, profile_id)
        return await self.gateway.update_participant(conversation_id, profile_id, last_read_at=utcnow())

    async def _require_group_admin(self, conversation_id: str, actor_id: str) -> ConversationOut:
        conversation = await self.require_participant(conversation_id, actor_id)
        if conversation.type != "group":
            raise ValidationError("Direct conversations always have two participants", code="DIRECT_CONVERSATION")
        if not self._is_admin(conversation, actor_id):
            raise AuthorizationError("Only admins can change participants", code="NOT_ADMIN")
        return conversation

    @staticmethod
    def _is_admin(conversation: ConversationOut, profile_id: str) -> bool:
        return any(p.profile_id == profile_id and p.is_admin for p in conversation.participants)

    async def _name(self, profile_id: str) -> str:
        profile = await self.gateway.get_profile(profile_id)
        return profile.full_name if profile and profile.full_name else UNKNOWN_USER

    async def _announce(self, conversation_id: str, actor_id: str, text: str) -> None:
        if self.announcer is None:
            return
        await self.announcer(conversation_id, actor_id, text)
