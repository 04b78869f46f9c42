"""Message service."""
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from hivley.config import Settings, settings as default_settings
from hivley.errors import AuthorizationError, HivleyError, NotFoundError, ValidationError
from hivley.gateway import PersistenceGateway
from hivley.models import DELETED_MARKER
from hivley.realtime import RealtimeNotifier
from hivley.schemas import (
    AttachmentResult,
    AttachmentUpload,
    MessageOut,
    MessagePage,
    SendResult,
)
from hivley.services.conversation import ConversationManager
from hivley.services.file import LocalBlobStore, attachment_path
from hivley.utils.helpers import utcnow
from hivley.utils.logger import setup_logger

logger = setup_logger(__name__)


class MessagePipeline:
    """Validates, persists and publishes messages."""

    def __init__(
        self,
        gateway: PersistenceGateway,
        conversations: ConversationManager,
        blob_store: Optional[LocalBlobStore] = None,
        notifier: Optional[RealtimeNotifier] = None,
        settings: Optional[Settings] = None
    ):
        self.gateway = gateway
        self.conversations = conversations
        self.blob_store = blob_store
        self.notifier = notifier
        self.settings = settings or default_settings

    async def send(
        self,
        conversation_id: str,
        sender_id: str,
        content: str,
        reply_to_id: Optional[str] = None,
        client_generated_id: Optional[str] = None,
        attachments: Optional[List[AttachmentUpload]] = None,
        metadata: Optional[Dict[str, Any]] = None
    ) -> SendResult:
        """Send a message with optional attachments.

        The message row is written first; each attachment is then uploaded
        and recorded on its own, so one failed file never rolls back the
        message or its sibling files.
        """
        content = (content or "").strip()
        attachments = list(attachments or [])

        if not content and not attachments:
            raise ValidationError("Message must have content or attachments", code="EMPTY_MESSAGE")
        if len(content) > self.settings.MAX_MESSAGE_LENGTH:
            raise ValidationError(
                f"Message exceeds {self.settings.MAX_MESSAGE_LENGTH} characters",
                code="MESSAGE_TOO_LONG"
            )
        if attachments and self.blob_store is None:
            raise ValidationError("Attachments are not supported", code="ATTACHMENTS_DISABLED")

        await self.conversations.require_participant(conversation_id, sender_id)

        if reply_to_id:
            parent = await self.gateway.get_message(reply_to_id)
            if parent is None or parent.conversation_id != conversation_id:
                raise ValidationError(
                    "Replies must reference a message in the same conversation",
                    fields={"reply_to_id": "Unknown message"}
                )

        message = await self.gateway.insert_message(
            conversation_id=conversation_id,
            sender_id=sender_id,
            content=content,
            reply_to_id=reply_to_id,
            client_generated_id=client_generated_id,
            metadata=metadata
        )

        results = []
        for upload in attachments:
            results.append(await self._store_attachment(message, sender_id, upload))
        message.attachments = [r.attachment for r in results if r.ok]

        failed = len(results) - len(message.attachments)
        if failed:
            logger.warning(f"Message {message.id} sent with {failed} of {len(results)} attachments failed")
        else:
            logger.info(f"Message {message.id} sent to conversation {conversation_id}")

        await self._publish(message)
        return SendResult(message=message, attachments=results)

    async def send_system_message(self, conversation_id: str, actor_id: str, content: str) -> MessageOut:
        """Post a non-user-authored entry, e.g. membership changes."""
        content = (content or "").strip()
        if not content:
            raise ValidationError("System message must have content", code="EMPTY_MESSAGE")

        message = await self.gateway.insert_message(
            conversation_id=conversation_id,
            sender_id=actor_id,
            content=content,
            is_system_message=True
        )
        await self._publish(message)
        return message

    async def edit(self, message_id: str, editor_id: str, new_content: str) -> MessageOut:
        new_content = (new_content or "").strip()
        if not new_content:
            raise ValidationError("Message content cannot be empty", fields={"content": "Required"})
        if len(new_content) > self.settings.MAX_MESSAGE_LENGTH:
            raise ValidationError(
                f"Message exceeds {self.settings.MAX_MESSAGE_LENGTH} characters",
                code="MESSAGE_TOO_LONG"
            )

        message = await self._owned_message(message_id, editor_id, "edit")
        if message.is_deleted:
            raise ValidationError("Deleted messages cannot be edited", code="MESSAGE_DELETED")

        updated = await self.gateway.update_message_content(message_id, new_content, utcnow())
        logger.info(f"Message {message_id} edited by {editor_id}")
        return updated

    async def soft_delete(self, message_id: str, requester_id: str) -> MessageOut:
        """Replace the content with the deletion marker; the row stays in place."""
        message = await self._owned_message(message_id, requester_id, "delete")
        if message.is_deleted:
            return message

        deleted = await self.gateway.update_message_content(message_id, DELETED_MARKER, utcnow())
        logger.info(f"Message {message_id} deleted by {requester_id}")
        return deleted

    async def fetch_page(
        self,
        conversation_id: str,
        viewer_id: str,
        limit: Optional[int] = None,
        before: Optional[datetime] = None,
        before_seq: Optional[int] = None
    ) -> MessagePage:
        """Newest-first page for reverse infinite scroll."""
        await self.conversations.require_participant(conversation_id, viewer_id)

        limit = limit or self.settings.DEFAULT_PAGE_SIZE
        limit = max(1, min(limit, self.settings.MAX_PAGE_SIZE))

        # One extra row tells us whether an older page exists
        rows = await self.gateway.fetch_messages(conversation_id, limit + 1, before, before_seq)
        has_more = len(rows) > limit
        messages = rows[:limit]

        oldest = messages[-1] if messages else None
        return MessagePage(
            messages=messages,
            has_more=has_more,
            next_before=oldest.created_at if oldest else None,
            next_before_seq=oldest.seq if oldest else None
        )

    async def _owned_message(self, message_id: str, actor_id: str, action: str) -> MessageOut:
        message = await self.gateway.get_message(message_id)
        if message is None:
            raise NotFoundError(f"Message {message_id} not found", code="MESSAGE_NOT_FOUND")
        if message.sender_id != actor_id:
            logger.warning(f"{actor_id} tried to {action} message {message_id} owned by {message.sender_id}")
            raise AuthorizationError(f"Only the sender can {action} this message", code="NOT_SENDER")
        return message

    async def _store_attachment(
        self,
        message: MessageOut,
        sender_id: str,
        upload: AttachmentUpload
    ) -> AttachmentResult:
        path = attachment_path(sender_id, message.id, upload.file_name)
        try:
            uploaded = await self.blob_store.upload(path, upload.data, upload.content_type)
            attachment = await self.gateway.insert_attachment(
                message_id=message.id,
                file_name=upload.file_name,
                file_type=upload.content_type,
                file_size=uploaded.size,
                file_path=uploaded.public_url,
                thumbnail_path=uploaded.thumbnail_url
            )
        except HivleyError as e:
            logger.error(f"Attachment {upload.file_name} failed for message {message.id}: {e.message}")
            return AttachmentResult(file_name=upload.file_name, ok=False, error=e.message)
        except SQLAlchemyError as e:
            logger.error(f"Attachment {upload.file_name} could not be recorded for message {message.id}: {e}")
            return AttachmentResult(file_name=upload.file_name, ok=False, error="Could not save attachment")
        except Exception as e:
            logger.exception(f"Unexpected error storing {upload.file_name} for message {message.id}: {e}")
            return AttachmentResult(file_name=upload.file_name, ok=False, error="Could not save attachment")

        return AttachmentResult(file_name=upload.file_name, ok=True, attachment=attachment)

    async def _publish(self, message: MessageOut) -> None:
        if self.notifier is not None:
            await self.notifier.publish_message(message)
