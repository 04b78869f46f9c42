"""Persistence gateway.

All reads and writes of conversation state go through PersistenceGateway.
Each method runs in its own session and returns DTOs from hivley.schemas,
so callers never see ORM rows or query shapes.
"""
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple

from sqlalchemy import and_, case, delete, desc, func, insert, literal, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from hivley.database import Database
from hivley.errors import ConflictError, NotFoundError
from hivley.models import (
    DELETED_MARKER,
    STATUS_RANK,
    Conversation,
    ConversationParticipant,
    Message,
    MessageAttachment,
    MessageReaction,
    MessageStatus,
    Profile,
    UserPresence,
)
from hivley.schemas import (
    AttachmentOut,
    ConversationOut,
    MessageOut,
    ParticipantOut,
    PresenceOut,
    ProfileOut,
    ReactionOut,
    StatusOut,
)
from hivley.utils.helpers import ensure_utc, new_id, utcnow
from hivley.utils.logger import setup_logger

logger = setup_logger(__name__)

_HYDRATE = (
    selectinload(Message.attachments),
    selectinload(Message.statuses),
    selectinload(Message.reactions),
)


def to_profile(row: Profile) -> ProfileOut:
    return ProfileOut(
        id=row.id,
        full_name=row.full_name,
        role=row.role,
        avatar_url=row.avatar_url
    )


def to_participant(
    row: ConversationParticipant,
    profiles: Optional[Dict[str, ProfileOut]] = None
) -> ParticipantOut:
    return ParticipantOut(
        id=row.id,
        conversation_id=row.conversation_id,
        profile_id=row.profile_id,
        joined_at=ensure_utc(row.joined_at),
        last_read_at=ensure_utc(row.last_read_at),
        is_admin=bool(row.is_admin),
        notifications_enabled=bool(row.notifications_enabled),
        profile=(profiles or {}).get(row.profile_id)
    )


def to_conversation(
    row: Conversation,
    participants: Iterable[ConversationParticipant] = (),
    profiles: Optional[Dict[str, ProfileOut]] = None
) -> ConversationOut:
    return ConversationOut(
        id=row.id,
        type=row.type,
        title=row.title,
        created_by=row.created_by,
        created_at=ensure_utc(row.created_at),
        updated_at=ensure_utc(row.updated_at),
        last_message_at=ensure_utc(row.last_message_at),
        metadata=dict(row.metadata_ or {}),
        last_seq=row.last_seq or 0,
        participants=[to_participant(p, profiles) for p in participants]
    )


def to_attachment(row: MessageAttachment) -> AttachmentOut:
    return AttachmentOut(
        id=row.id,
        message_id=row.message_id,
        file_name=row.file_name,
        file_type=row.file_type,
        file_size=row.file_size,
        file_path=row.file_path,
        thumbnail_path=row.thumbnail_path,
        created_at=ensure_utc(row.created_at),
        metadata=dict(row.metadata_ or {})
    )


def to_status(row: MessageStatus) -> StatusOut:
    return StatusOut(
        message_id=row.message_id,
        profile_id=row.profile_id,
        status=row.status,
        updated_at=ensure_utc(row.updated_at)
    )


def to_reaction(row: MessageReaction) -> ReactionOut:
    return ReactionOut(
        message_id=row.message_id,
        profile_id=row.profile_id,
        emoji=row.emoji,
        created_at=ensure_utc(row.created_at)
    )


def to_message(row: Message, hydrated: bool = False) -> MessageOut:
    """Map a message row; relationships are only read when eagerly loaded."""
    message = MessageOut(
        id=row.id,
        conversation_id=row.conversation_id,
        sender_id=row.sender_id,
        content=row.content,
        reply_to_id=row.reply_to_id,
        created_at=ensure_utc(row.created_at),
        updated_at=ensure_utc(row.updated_at),
        edited_at=ensure_utc(row.edited_at),
        is_system_message=bool(row.is_system_message),
        client_generated_id=row.client_generated_id,
        metadata=dict(row.metadata_ or {}),
        seq=row.seq,
        is_deleted=row.content == DELETED_MARKER
    )
    if hydrated:
        message.attachments = [to_attachment(a) for a in row.attachments]
        message.statuses = [to_status(s) for s in row.statuses]
        message.reactions = [to_reaction(r) for r in row.reactions]
    return message


def to_presence(row: UserPresence) -> PresenceOut:
    return PresenceOut(
        profile_id=row.profile_id,
        status=row.status,
        last_seen_at=ensure_utc(row.last_seen_at),
        metadata=dict(row.metadata_ or {})
    )


class PersistenceGateway:
    """Typed access to the relational store."""

    def __init__(self, database: Database):
        self.database = database

    # Profiles

    async def upsert_profile(self, profile: ProfileOut) -> ProfileOut:
        async with self.database.session() as session:
            row = await session.get(Profile, profile.id)
            if row is None:
                row = Profile(id=profile.id)
                session.add(row)
            row.full_name = profile.full_name
            row.role = profile.role
            row.avatar_url = profile.avatar_url
            await session.commit()
            return to_profile(row)

    async def get_profile(self, profile_id: str) -> Optional[ProfileOut]:
        profiles = await self.get_profiles([profile_id])
        return profiles.get(profile_id)

    async def get_profiles(self, profile_ids: Iterable[str]) -> Dict[str, ProfileOut]:
        async with self.database.session() as session:
            return await self._load_profiles(session, profile_ids)

    async def _load_profiles(
        self,
        session: AsyncSession,
        profile_ids: Iterable[str]
    ) -> Dict[str, ProfileOut]:
        ids = list(set(profile_ids))
        if not ids:
            return {}
        result = await session.execute(select(Profile).where(Profile.id.in_(ids)))
        return {row.id: to_profile(row) for row in result.scalars()}

    # Conversations

    async def get_conversation(self, conversation_id: str) -> Optional[ConversationOut]:
        async with self.database.session() as session:
            result = await session.execute(
                select(Conversation)
                .options(selectinload(Conversation.participants))
                .where(Conversation.id == conversation_id)
            )
            row = result.scalar_one_or_none()
            if row is None:
                return None
            profiles = await self._load_profiles(session, [p.profile_id for p in row.participants])
            return to_conversation(row, row.participants, profiles)

    async def find_direct_conversation(self, key: str) -> Optional[ConversationOut]:
        """Get the direct conversation stored under a pair key."""
        async with self.database.session() as session:
            result = await session.execute(
                select(Conversation)
                .options(selectinload(Conversation.participants))
                .where(
                    and_(
                        Conversation.pair_key == key,
                        Conversation.type == "direct"
                    )
                )
            )
            row = result.scalar_one_or_none()
            if row is None:
                return None
            profiles = await self._load_profiles(session, [p.profile_id for p in row.participants])
            return to_conversation(row, row.participants, profiles)

    async def insert_conversation(
        self,
        type: str,
        created_by: str,
        participants: List[Tuple[str, bool]],
        title: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
        pair_key: Optional[str] = None
    ) -> ConversationOut:
        """Insert a conversation and its participants in one transaction.

        ``participants`` holds (profile_id, is_admin) pairs. Raises
        ConflictError when another direct conversation already owns the
        pair key.
        """
        async with self.database.session() as session:
            conversation = Conversation(
                type=type,
                title=title,
                created_by=created_by,
                metadata_=metadata or {},
                pair_key=pair_key,
                last_seq=0
            )
            session.add(conversation)
            try:
                await session.flush()
                rows = []
                for profile_id, is_admin in participants:
                    row = ConversationParticipant(
                        conversation_id=conversation.id,
                        profile_id=profile_id,
                        is_admin=is_admin
                    )
                    session.add(row)
                    rows.append(row)
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                raise ConflictError(
                    f"Conversation already exists for {pair_key or created_by}",
                    code="CONVERSATION_EXISTS"
                ) from e

            profiles = await self._load_profiles(session, [p for p, _ in participants])
            return to_conversation(conversation, rows, profiles)

    async def list_conversations_for(self, profile_id: str) -> List[ConversationOut]:
        """Conversations the profile belongs to, most recent activity first."""
        async with self.database.session() as session:
            member_of = (
                select(ConversationParticipant.conversation_id)
                .where(ConversationParticipant.profile_id == profile_id)
            )
            result = await session.execute(
                select(Conversation)
                .options(selectinload(Conversation.participants))
                .where(Conversation.id.in_(member_of))
                .order_by(desc(Conversation.last_message_at), desc(Conversation.created_at))
            )
            rows = result.scalars().unique().all()
            profile_ids = [p.profile_id for row in rows for p in row.participants]
            profiles = await self._load_profiles(session, profile_ids)
            return [to_conversation(row, row.participants, profiles) for row in rows]

    async def list_conversation_ids_for(self, profile_id: str) -> List[str]:
        async with self.database.session() as session:
            result = await session.execute(
                select(ConversationParticipant.conversation_id)
                .where(ConversationParticipant.profile_id == profile_id)
            )
            return [row[0] for row in result]

    # Participants

    async def get_participant(
        self,
        conversation_id: str,
        profile_id: str
    ) -> Optional[ParticipantOut]:
        async with self.database.session() as session:
            row = await self._participant_row(session, conversation_id, profile_id)
            return to_participant(row) if row else None

    async def _participant_row(
        self,
        session: AsyncSession,
        conversation_id: str,
        profile_id: str
    ) -> Optional[ConversationParticipant]:
        result = await session.execute(
            select(ConversationParticipant)
            .where(
                and_(
                    ConversationParticipant.conversation_id == conversation_id,
                    ConversationParticipant.profile_id == profile_id
                )
            )
        )
        return result.scalar_one_or_none()

    async def add_participants(
        self,
        conversation_id: str,
        profile_ids: Iterable[str]
    ) -> List[ParticipantOut]:
        """Add profiles that are not already members; returns the new rows."""
        async with self.database.session() as session:
            result = await session.execute(
                select(ConversationParticipant.profile_id)
                .where(ConversationParticipant.conversation_id == conversation_id)
            )
            existing = {row[0] for row in result}
            rows = []
            for profile_id in profile_ids:
                if profile_id in existing:
                    continue
                existing.add(profile_id)
                row = ConversationParticipant(conversation_id=conversation_id, profile_id=profile_id)
                session.add(row)
                rows.append(row)
            await session.commit()
            profiles = await self._load_profiles(session, [r.profile_id for r in rows])
            return [to_participant(r, profiles) for r in rows]

    async def remove_participant(self, conversation_id: str, profile_id: str) -> bool:
        async with self.database.session() as session:
            result = await session.execute(
                delete(ConversationParticipant)
                .where(
                    and_(
                        ConversationParticipant.conversation_id == conversation_id,
                        ConversationParticipant.profile_id == profile_id
                    )
                )
            )
            await session.commit()
            return result.rowcount > 0

    async def update_participant(
        self,
        conversation_id: str,
        profile_id: str,
        **fields: Any
    ) -> Optional[ParticipantOut]:
        """Update last_read_at, is_admin or notifications_enabled."""
        async with self.database.session() as session:
            row = await self._participant_row(session, conversation_id, profile_id)
            if row is None:
                return None
            for name, value in fields.items():
                setattr(row, name, value)
            await session.commit()
            return to_participant(row)

    # Messages

    async def insert_message(
        self,
        conversation_id: str,
        sender_id: str,
        content: str,
        reply_to_id: Optional[str] = None,
        client_generated_id: Optional[str] = None,
        is_system_message: bool = False,
        metadata: Optional[Dict[str, Any]] = None
    ) -> MessageOut:
        """Insert a message and advance the conversation counters atomically.

        The conversation row update takes the write lock, so sequence numbers
        are handed out in commit order and last_message_at never moves back.
        """
        async with self.database.session() as session:
            now = utcnow()
            result = await session.execute(
                update(Conversation)
                .where(Conversation.id == conversation_id)
                .values(
                    last_seq=Conversation.last_seq + 1,
                    last_message_at=case(
                        (Conversation.last_message_at > now, Conversation.last_message_at),
                        else_=now
                    ),
                    updated_at=now
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                await session.rollback()
                raise NotFoundError(f"Conversation {conversation_id} not found", code="CONVERSATION_NOT_FOUND")

            seq = (await session.execute(
                select(Conversation.last_seq).where(Conversation.id == conversation_id)
            )).scalar_one()

            message = Message(
                conversation_id=conversation_id,
                sender_id=sender_id,
                content=content,
                reply_to_id=reply_to_id,
                client_generated_id=client_generated_id,
                is_system_message=is_system_message,
                metadata_=metadata or {},
                seq=seq,
                created_at=now,
                updated_at=now
            )
            session.add(message)
            await session.commit()
            return to_message(message)

    async def get_message(self, message_id: str) -> Optional[MessageOut]:
        async with self.database.session() as session:
            result = await session.execute(
                select(Message).options(*_HYDRATE).where(Message.id == message_id)
            )
            row = result.scalar_one_or_none()
            return to_message(row, hydrated=True) if row else None

    async def update_message_content(
        self,
        message_id: str,
        content: str,
        edited_at: datetime
    ) -> Optional[MessageOut]:
        async with self.database.session() as session:
            row = await session.get(Message, message_id)
            if row is None:
                return None
            row.content = content
            row.edited_at = edited_at
            await session.commit()
        return await self.get_message(message_id)

    async def fetch_messages(
        self,
        conversation_id: str,
        limit: int,
        before: Optional[datetime] = None,
        before_seq: Optional[int] = None
    ) -> List[MessageOut]:
        """Newest-first page of messages strictly older than the anchor."""
        query = (
            select(Message)
            .options(*_HYDRATE)
            .where(Message.conversation_id == conversation_id)
        )
        if before_seq is not None:
            query = query.where(Message.seq < before_seq)
        elif before is not None:
            query = query.where(Message.created_at < ensure_utc(before))

        query = query.order_by(desc(Message.created_at), desc(Message.seq)).limit(limit)

        async with self.database.session() as session:
            result = await session.execute(query)
            return [to_message(row, hydrated=True) for row in result.scalars().unique().all()]

    async def get_last_message(self, conversation_id: str) -> Optional[MessageOut]:
        messages = await self.fetch_messages(conversation_id, limit=1)
        return messages[0] if messages else None

    async def count_unread(
        self,
        conversation_id: str,
        profile_id: str,
        since: datetime
    ) -> int:
        """Messages from others created after the participant's last_read_at."""
        async with self.database.session() as session:
            result = await session.execute(
                select(func.count(Message.id))
                .where(
                    and_(
                        Message.conversation_id == conversation_id,
                        Message.sender_id != profile_id,
                        Message.created_at > ensure_utc(since)
                    )
                )
            )
            return result.scalar() or 0

    async def list_unread_message_ids(self, conversation_id: str, profile_id: str) -> List[str]:
        """Messages from others that the profile has not marked read."""
        async with self.database.session() as session:
            result = await session.execute(
                select(Message.id)
                .outerjoin(
                    MessageStatus,
                    and_(
                        MessageStatus.message_id == Message.id,
                        MessageStatus.profile_id == profile_id
                    )
                )
                .where(
                    and_(
                        Message.conversation_id == conversation_id,
                        Message.sender_id != profile_id,
                        or_(
                            MessageStatus.status.is_(None),
                            MessageStatus.status != "read"
                        )
                    )
                )
                .order_by(Message.seq)
            )
            return [row[0] for row in result]

    # Attachments

    async def insert_attachment(
        self,
        message_id: str,
        file_name: str,
        file_type: str,
        file_size: int,
        file_path: str,
        thumbnail_path: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None
    ) -> AttachmentOut:
        async with self.database.session() as session:
            row = MessageAttachment(
                message_id=message_id,
                file_name=file_name,
                file_type=file_type,
                file_size=file_size,
                file_path=file_path,
                thumbnail_path=thumbnail_path,
                metadata_=metadata or {}
            )
            session.add(row)
            await session.commit()
            return to_attachment(row)

    # Statuses

    async def get_status(self, message_id: str, profile_id: str) -> Optional[StatusOut]:
        async with self.database.session() as session:
            row = await self._status_row(session, message_id, profile_id)
            return to_status(row) if row else None

    async def _status_row(
        self,
        session: AsyncSession,
        message_id: str,
        profile_id: str
    ) -> Optional[MessageStatus]:
        result = await session.execute(
            select(MessageStatus).where(
                and_(
                    MessageStatus.message_id == message_id,
                    MessageStatus.profile_id == profile_id
                )
            )
        )
        return result.scalar_one_or_none()

    async def upsert_status(self, message_id: str, profile_id: str, status: str) -> StatusOut:
        """Record a status for (message, profile), only ever moving it forward.

        The insert only fires when no row exists and the update only fires
        when the stored rank is lower, so racing writers cannot turn ``read``
        back into ``delivered``.
        """
        now = utcnow()
        stored_rank = case(STATUS_RANK, value=MessageStatus.status, else_=-1)
        same_key = and_(
            MessageStatus.message_id == message_id,
            MessageStatus.profile_id == profile_id
        )
        for attempt in range(2):
            async with self.database.session() as session:
                try:
                    await session.execute(
                        insert(MessageStatus.__table__).from_select(
                            ["id", "message_id", "profile_id", "status", "updated_at"],
                            select(
                                literal(new_id()),
                                literal(message_id),
                                literal(profile_id),
                                literal(status),
                                literal(now, MessageStatus.updated_at.type)
                            ).where(~select(MessageStatus.id).where(same_key).exists())
                        )
                    )
                    await session.execute(
                        update(MessageStatus)
                        .where(same_key, stored_rank < STATUS_RANK[status])
                        .values(status=status, updated_at=now)
                        .execution_options(synchronize_session=False)
                    )
                    await session.commit()
                except IntegrityError:
                    # Another writer inserted the row first; the retry only updates
                    await session.rollback()
                    if attempt:
                        raise
                    continue
                return to_status(await self._status_row(session, message_id, profile_id))

    async def get_statuses(self, message_id: str) -> List[StatusOut]:
        async with self.database.session() as session:
            result = await session.execute(
                select(MessageStatus).where(MessageStatus.message_id == message_id)
            )
            return [to_status(row) for row in result.scalars()]

    # Reactions

    async def insert_reaction(self, message_id: str, profile_id: str, emoji: str) -> ReactionOut:
        """Insert a reaction; an identical existing reaction is returned as is."""
        async with self.database.session() as session:
            existing = await self._reaction_row(session, message_id, profile_id, emoji)
            if existing is not None:
                return to_reaction(existing)
            row = MessageReaction(message_id=message_id, profile_id=profile_id, emoji=emoji)
            session.add(row)
            try:
                await session.commit()
            except IntegrityError:
                await session.rollback()
                existing = await self._reaction_row(session, message_id, profile_id, emoji)
                return to_reaction(existing)
            return to_reaction(row)

    async def _reaction_row(
        self,
        session: AsyncSession,
        message_id: str,
        profile_id: str,
        emoji: str
    ) -> Optional[MessageReaction]:
        result = await session.execute(
            select(MessageReaction).where(
                and_(
                    MessageReaction.message_id == message_id,
                    MessageReaction.profile_id == profile_id,
                    MessageReaction.emoji == emoji
                )
            )
        )
        return result.scalar_one_or_none()

    async def delete_reaction(self, message_id: str, profile_id: str, emoji: str) -> bool:
        async with self.database.session() as session:
            result = await session.execute(
                delete(MessageReaction).where(
                    and_(
                        MessageReaction.message_id == message_id,
                        MessageReaction.profile_id == profile_id,
                        MessageReaction.emoji == emoji
                    )
                )
            )
            await session.commit()
            return result.rowcount > 0

    async def get_reactions(self, message_id: str) -> List[ReactionOut]:
        async with self.database.session() as session:
            result = await session.execute(
                select(MessageReaction)
                .where(MessageReaction.message_id == message_id)
                .order_by(MessageReaction.created_at)
            )
            return [to_reaction(row) for row in result.scalars()]

    # Presence

    async def upsert_presence(
        self,
        profile_id: str,
        status: str,
        last_seen_at: datetime,
        metadata: Optional[Dict[str, Any]] = None
    ) -> PresenceOut:
        """Overwrite the single presence row for a profile (last writer wins)."""
        for attempt in range(2):
            async with self.database.session() as session:
                row = await session.get(UserPresence, profile_id)
                if row is None:
                    row = UserPresence(profile_id=profile_id)
                    session.add(row)
                row.status = status
                row.last_seen_at = last_seen_at
                if metadata is not None:
                    row.metadata_ = metadata
                elif row.metadata_ is None:
                    row.metadata_ = {}
                try:
                    await session.commit()
                except IntegrityError:
                    await session.rollback()
                    if attempt:
                        raise
                    continue
                return to_presence(row)

    async def get_presence(self, profile_ids: Iterable[str]) -> Dict[str, PresenceOut]:
        ids = list(set(profile_ids))
        if not ids:
            return {}
        async with self.database.session() as session:
            result = await session.execute(
                select(UserPresence).where(UserPresence.profile_id.in_(ids))
            )
            return {row.profile_id: to_presence(row) for row in result.scalars()}
