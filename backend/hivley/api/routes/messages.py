"""Message, status and reaction routes."""
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status

from hivley.api.deps import current_user, get_services
from hivley.container import Services
from hivley.schemas import (
    AttachmentUpload,
    CurrentUser,
    MessageCreate,
    MessageEdit,
    MessageOut,
    MessagePage,
    ReactionCreate,
    ReactionOut,
    SendResult,
    StatusOut,
    StatusUpdate,
)

router = APIRouter()


@router.get("/conversations/{conversation_id}/messages", response_model=MessagePage)
async def get_messages(
    conversation_id: str,
    limit: Optional[int] = Query(None),
    before: Optional[datetime] = Query(None),
    before_seq: Optional[int] = Query(None),
    user: CurrentUser = Depends(current_user),
    services: Services = Depends(get_services)
):
    return await services.views.thread_for(conversation_id, user.id, limit, before, before_seq)


@router.post(
    "/conversations/{conversation_id}/messages",
    response_model=SendResult,
    status_code=status.HTTP_201_CREATED
)
async def send_message(
    conversation_id: str,
    body: MessageCreate,
    user: CurrentUser = Depends(current_user),
    services: Services = Depends(get_services)
):
    return await services.messages.send(
        conversation_id,
        user.id,
        body.content,
        reply_to_id=body.reply_to_id,
        client_generated_id=body.client_generated_id
    )


@router.post(
    "/conversations/{conversation_id}/messages/upload",
    response_model=SendResult,
    status_code=status.HTTP_201_CREATED
)
async def send_message_with_files(
    conversation_id: str,
    content: str = Form(""),
    reply_to_id: Optional[str] = Form(None),
    client_generated_id: Optional[str] = Form(None),
    files: List[UploadFile] = File(default=[]),
    user: CurrentUser = Depends(current_user),
    services: Services = Depends(get_services)
):
    """Send a message with attachments as multipart form data."""
    attachments = []
    for upload in files:
        attachments.append(AttachmentUpload(
            file_name=upload.filename or "file",
            content_type=upload.content_type or "application/octet-stream",
            data=await upload.read()
        ))

    return await services.messages.send(
        conversation_id,
        user.id,
        content,
        reply_to_id=reply_to_id,
        client_generated_id=client_generated_id,
        attachments=attachments
    )


@router.patch("/messages/{message_id}", response_model=MessageOut)
async def edit_message(
    message_id: str,
    body: MessageEdit,
    user: CurrentUser = Depends(current_user),
    services: Services = Depends(get_services)
):
    return await services.messages.edit(message_id, user.id, body.content)


@router.delete("/messages/{message_id}", response_model=MessageOut)
async def delete_message(
    message_id: str,
    user: CurrentUser = Depends(current_user),
    services: Services = Depends(get_services)
):
    return await services.messages.soft_delete(message_id, user.id)


@router.put("/messages/{message_id}/status", response_model=StatusOut)
async def mark_status(
    message_id: str,
    body: StatusUpdate,
    user: CurrentUser = Depends(current_user),
    services: Services = Depends(get_services)
):
    return await services.statuses.mark_status(message_id, user.id, body.status)


@router.post("/messages/{message_id}/reactions", response_model=ReactionOut)
async def add_reaction(
    message_id: str,
    body: ReactionCreate,
    user: CurrentUser = Depends(current_user),
    services: Services = Depends(get_services)
):
    return await services.statuses.add_reaction(message_id, user.id, body.emoji)


@router.delete("/messages/{message_id}/reactions/{emoji}")
async def remove_reaction(
    message_id: str,
    emoji: str,
    user: CurrentUser = Depends(current_user),
    services: Services = Depends(get_services)
):
    removed = await services.statuses.remove_reaction(message_id, user.id, emoji)
    return {"removed": removed}
