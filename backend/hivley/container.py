"""Service wiring."""
from dataclasses import dataclass
from typing import Optional

from hivley.auth import IdentityProvider
from hivley.config import Settings
from hivley.database import Database
from hivley.gateway import PersistenceGateway
from hivley.realtime import RealtimeNotifier
from hivley.services.conversation import ConversationManager
from hivley.services.file import LocalBlobStore
from hivley.services.message import MessagePipeline
from hivley.services.presence import PresenceTracker
from hivley.services.status import StatusTracker
from hivley.views import ConversationListView


@dataclass
class Services:
    settings: Settings
    database: Database
    gateway: PersistenceGateway
    notifier: RealtimeNotifier
    blob_store: LocalBlobStore
    conversations: ConversationManager
    messages: MessagePipeline
    statuses: StatusTracker
    presence: PresenceTracker
    views: ConversationListView
    identity: IdentityProvider


def build_services(settings: Settings, database: Optional[Database] = None) -> Services:
    """Construct every service around one database and one notifier."""
    database = database or Database(settings.DATABASE_URL, echo=settings.DATABASE_ECHO)
    gateway = PersistenceGateway(database)
    notifier = RealtimeNotifier()
    blob_store = LocalBlobStore(settings.UPLOAD_DIR, settings.PUBLIC_FILES_URL, settings.MAX_UPLOAD_BYTES)

    conversations = ConversationManager(gateway)
    messages = MessagePipeline(gateway, conversations, blob_store, notifier, settings)
    conversations.announcer = messages.send_system_message

    presence = PresenceTracker(gateway, notifier, settings.PRESENCE_HEARTBEAT_SECONDS)
    return Services(
        settings=settings,
        database=database,
        gateway=gateway,
        notifier=notifier,
        blob_store=blob_store,
        conversations=conversations,
        messages=messages,
        statuses=StatusTracker(gateway, conversations),
        presence=presence,
        views=ConversationListView(gateway, conversations, messages, presence),
        identity=IdentityProvider(settings, gateway)
    )
