"""Presence tracking."""
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional

from hivley.errors import ValidationError
from hivley.gateway import PersistenceGateway
from hivley.realtime import RealtimeNotifier
from hivley.schemas import PresenceOut
from hivley.utils.helpers import ensure_utc, utcnow
from hivley.utils.logger import setup_logger

logger = setup_logger(__name__)

PRESENCE_STATUSES = ("online", "away", "offline")


def effective_status(
    presence: Optional[PresenceOut],
    heartbeat_seconds: int,
    now: Optional[datetime] = None
) -> str:
    """Status a viewer should show.

    An ``online`` row whose last heartbeat is older than the heartbeat
    interval is reported as ``stale``; a missing row is ``offline``.
    """
    if presence is None:
        return "offline"
    now = ensure_utc(now) if now else utcnow()
    if presence.status == "online" and now - ensure_utc(presence.last_seen_at) > timedelta(seconds=heartbeat_seconds):
        return "stale"
    return presence.status


class PresenceTracker:
    """Heartbeats, offline beacons and presence snapshots."""

    def __init__(
        self,
        gateway: PersistenceGateway,
        notifier: Optional[RealtimeNotifier] = None,
        heartbeat_seconds: int = 300
    ):
        self.gateway = gateway
        self.notifier = notifier
        self.heartbeat_seconds = heartbeat_seconds

    async def heartbeat(
        self,
        user_id: str,
        status: str = "online",
        metadata: Optional[Dict[str, Any]] = None
    ) -> PresenceOut:
        """Refresh the user's presence row and push it to open conversations."""
        if status not in PRESENCE_STATUSES:
            raise ValidationError(f"Unknown presence status: {status}", fields={"status": "Must be online, away or offline"})

        presence = await self.gateway.upsert_presence(user_id, status, utcnow(), metadata)
        await self._broadcast(user_id)
        return presence

    async def go_offline(self, user_id: str) -> None:
        """Best-effort offline write on page unload; failures are only logged."""
        try:
            await self.heartbeat(user_id, "offline")
        except Exception as e:
            logger.warning(f"Could not mark {user_id} offline: {e}")

    async def get_presence(self, profile_ids: Iterable[str]) -> Dict[str, PresenceOut]:
        return await self.gateway.get_presence(profile_ids)

    async def snapshot(self, conversation_id: str) -> List[PresenceOut]:
        """Presence rows of every participant in a conversation."""
        conversation = await self.gateway.get_conversation(conversation_id)
        if conversation is None:
            return []
        presence = await self.gateway.get_presence(conversation.participant_ids())
        return list(presence.values())

    def effective(self, presence: Optional[PresenceOut], now: Optional[datetime] = None) -> str:
        return effective_status(presence, self.heartbeat_seconds, now)

    async def _broadcast(self, user_id: str) -> None:
        if self.notifier is None:
            return
        for conversation_id in await self.gateway.list_conversation_ids_for(user_id):
            # Nobody is watching
            if not self.notifier.subscriber_count(conversation_id):
                continue
            await self.notifier.publish_presence(conversation_id, await self.snapshot(conversation_id))
