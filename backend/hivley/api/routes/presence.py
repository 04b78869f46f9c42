"""Presence routes."""
from typing import List

from fastapi import APIRouter, Depends, Query, Response, status

from hivley.api.deps import current_user, get_services
from hivley.container import Services
from hivley.schemas import CurrentUser, HeartbeatIn, PresenceOut

router = APIRouter()


@router.post("/presence/heartbeat", response_model=PresenceOut)
async def heartbeat(
    body: HeartbeatIn,
    user: CurrentUser = Depends(current_user),
    services: Services = Depends(get_services)
):
    return await services.presence.heartbeat(user.id, body.status)


@router.post("/presence/offline", status_code=status.HTTP_204_NO_CONTENT)
async def go_offline(
    user: CurrentUser = Depends(current_user),
    services: Services = Depends(get_services)
):
    """Page-unload beacon."""
    await services.presence.go_offline(user.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/presence")
async def get_presence(
    ids: List[str] = Query(default=[]),
    user: CurrentUser = Depends(current_user),
    services: Services = Depends(get_services)
):
    presence = await services.presence.get_presence(ids)
    return {
        profile_id: {
            "status": presence[profile_id].status if profile_id in presence else "offline",
            "effective": services.presence.effective(presence.get(profile_id)),
            "last_seen_at": presence[profile_id].last_seen_at if profile_id in presence else None
        }
        for profile_id in ids
    }
