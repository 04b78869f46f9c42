"""Conversation routes."""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from hivley.api.deps import current_user, get_services
from hivley.container import Services
from hivley.schemas import (
    ChatNavigation,
    ConversationCreate,
    ConversationOut,
    ConversationSummary,
    CurrentUser,
    DirectConversationCreate,
    NotificationsUpdate,
    ParticipantOut,
    ParticipantsAdd,
    ServiceConversationCreate,
)

router = APIRouter()


@router.get("/conversations", response_model=List[ConversationSummary])
async def list_conversations(
    q: Optional[str] = Query(None),
    user: CurrentUser = Depends(current_user),
    services: Services = Depends(get_services)
):
    return await services.views.list_for(user.id, q)


@router.post("/conversations", response_model=ConversationOut, status_code=status.HTTP_201_CREATED)
async def create_conversation(
    body: ConversationCreate,
    user: CurrentUser = Depends(current_user),
    services: Services = Depends(get_services)
):
    return await services.conversations.create_conversation(
        user.id, body.type, body.participant_ids, body.title, body.metadata
    )


@router.post("/conversations/direct", response_model=ConversationOut)
async def create_or_get_direct_conversation(
    body: DirectConversationCreate,
    user: CurrentUser = Depends(current_user),
    services: Services = Depends(get_services)
):
    return await services.conversations.create_or_get_direct_conversation(
        user.id, body.participant_id, body.metadata
    )


@router.post("/conversations/service", response_model=ChatNavigation)
async def message_provider(
    body: ServiceConversationCreate,
    user: CurrentUser = Depends(current_user),
    services: Services = Depends(get_services)
):
    return await services.conversations.start_service_conversation(
        user, body.provider_id, body.service_id, body.service_title
    )


@router.get("/conversations/{conversation_id}", response_model=ConversationOut)
async def get_conversation(
    conversation_id: str,
    user: CurrentUser = Depends(current_user),
    services: Services = Depends(get_services)
):
    return await services.conversations.require_participant(conversation_id, user.id)


@router.post("/conversations/{conversation_id}/participants", response_model=List[ParticipantOut])
async def add_participants(
    conversation_id: str,
    body: ParticipantsAdd,
    user: CurrentUser = Depends(current_user),
    services: Services = Depends(get_services)
):
    return await services.conversations.add_participants(conversation_id, user.id, body.participant_ids)


@router.delete("/conversations/{conversation_id}/participants/{profile_id}")
async def remove_participant(
    conversation_id: str,
    profile_id: str,
    user: CurrentUser = Depends(current_user),
    services: Services = Depends(get_services)
):
    removed = await services.conversations.remove_participant(conversation_id, user.id, profile_id)
    return {"removed": removed}


@router.patch("/conversations/{conversation_id}/notifications", response_model=ParticipantOut)
async def set_notifications(
    conversation_id: str,
    body: NotificationsUpdate,
    user: CurrentUser = Depends(current_user),
    services: Services = Depends(get_services)
):
    return await services.conversations.set_notifications(conversation_id, user.id, body.enabled)


@router.post("/conversations/{conversation_id}/read")
async def mark_conversation_read(
    conversation_id: str,
    user: CurrentUser = Depends(current_user),
    services: Services = Depends(get_services)
):
    marked = await services.statuses.mark_conversation_read(conversation_id, user.id)
    return {"marked": marked}
