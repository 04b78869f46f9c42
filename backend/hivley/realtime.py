"""Realtime fan-out of conversation events."""
import asyncio
import inspect
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from hivley.schemas import MessageOut, PresenceOut
from hivley.utils.logger import setup_logger

logger = setup_logger(__name__)

Callback = Callable[[Any], Union[None, Awaitable[None]]]


class Subscription:
    """Handle returned by RealtimeNotifier.subscribe."""

    def __init__(
        self,
        notifier: "RealtimeNotifier",
        conversation_id: str,
        on_message: Callback,
        on_presence: Optional[Callback] = None,
        on_typing: Optional[Callback] = None
    ):
        self.notifier = notifier
        self.conversation_id = conversation_id
        self.on_message = on_message
        self.on_presence = on_presence
        self.on_typing = on_typing
        self.active = True

    def unsubscribe(self) -> None:
        """Release the channel; safe to call more than once."""
        if not self.active:
            return
        self.active = False
        self.notifier._remove(self)


class RealtimeNotifier:
    """In-process publisher keyed by conversation id.

    Subscribers of one conversation receive events in publish order. Events
    carry the message ``seq`` so a client can spot gaps after a reconnect.
    """

    def __init__(self):
        self._subscriptions: Dict[str, List[Subscription]] = {}
        # One lock per conversation; ordering is only kept within a conversation
        self._locks: Dict[str, asyncio.Lock] = {}

    def subscribe(
        self,
        conversation_id: str,
        on_message: Callback,
        on_presence: Optional[Callback] = None,
        on_typing: Optional[Callback] = None
    ) -> Subscription:
        subscription = Subscription(self, conversation_id, on_message, on_presence, on_typing)
        self._subscriptions.setdefault(conversation_id, []).append(subscription)
        logger.debug(f"Subscribed to conversation {conversation_id}")
        return subscription

    def _remove(self, subscription: Subscription) -> None:
        conversation_id = subscription.conversation_id
        subscriptions = self._subscriptions.get(conversation_id, [])
        if subscription in subscriptions:
            subscriptions.remove(subscription)
        if not subscriptions:
            self._subscriptions.pop(conversation_id, None)
            lock = self._locks.get(conversation_id)
            if lock is not None and not lock.locked():
                del self._locks[conversation_id]
        logger.debug(f"Unsubscribed from conversation {conversation_id}")

    def _lock_for(self, conversation_id: str) -> asyncio.Lock:
        return self._locks.setdefault(conversation_id, asyncio.Lock())

    def subscriber_count(self, conversation_id: str) -> int:
        return len(self._subscriptions.get(conversation_id, []))

    async def publish_message(self, message: MessageOut) -> int:
        """Deliver a newly inserted message; returns the number of deliveries."""
        if not self.subscriber_count(message.conversation_id):
            return 0
        async with self._lock_for(message.conversation_id):
            return await self._deliver(message.conversation_id, "on_message", message)

    async def publish_presence(self, conversation_id: str, snapshot: List[PresenceOut]) -> int:
        """Deliver each presence record of a conversation snapshot."""
        if not self.subscriber_count(conversation_id):
            return 0
        delivered = 0
        async with self._lock_for(conversation_id):
            for presence in snapshot:
                delivered += await self._deliver(conversation_id, "on_presence", presence)
        return delivered

    async def publish_typing(self, conversation_id: str, profile_id: str, is_typing: bool) -> int:
        if not self.subscriber_count(conversation_id):
            return 0
        event = {"conversation_id": conversation_id, "profile_id": profile_id, "is_typing": is_typing}
        async with self._lock_for(conversation_id):
            return await self._deliver(conversation_id, "on_typing", event)

    async def _deliver(self, conversation_id: str, kind: str, payload: Any) -> int:
        delivered = 0
        # Copy: callbacks may unsubscribe while we iterate
        for subscription in list(self._subscriptions.get(conversation_id, [])):
            callback = getattr(subscription, kind)
            if callback is None or not subscription.active:
                continue
            try:
                result = callback(payload)
                if inspect.isawaitable(result):
                    await result
                delivered += 1
            except Exception as e:
                logger.error(f"Realtime {kind} delivery failed for conversation {conversation_id}: {e}")
        return delivered
