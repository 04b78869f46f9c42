"""Conversation websocket."""
import json

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect

from hivley.errors import HivleyError
from hivley.schemas import MessageOut, PresenceOut
from hivley.utils.logger import setup_logger

logger = setup_logger(__name__)

router = APIRouter()


@router.websocket("/ws/conversations/{conversation_id}")
async def conversation_socket(websocket: WebSocket, conversation_id: str, token: str = Query(...)):
    services = websocket.app.state.services

    user = await services.identity.get_current_user(token)
    if user is None:
        await websocket.close(code=4001, reason="Invalid token")
        return

    try:
        await services.conversations.require_participant(conversation_id, user.id)
    except HivleyError as e:
        await websocket.close(code=4003, reason=e.message)
        return

    await websocket.accept()

    async def on_message(message: MessageOut):
        await websocket.send_json({"type": "message", "message": message.model_dump(mode="json")})

    async def on_presence(presence: PresenceOut):
        await websocket.send_json({
            "type": "presence",
            "presence": presence.model_dump(mode="json"),
            "effective": services.presence.effective(presence)
        })

    async def on_typing(event: dict):
        if event["profile_id"] == user.id:
            return
        await websocket.send_json({"type": "typing", **event})

    subscription = services.notifier.subscribe(conversation_id, on_message, on_presence, on_typing)
    logger.info(f"{user.id} connected to conversation {conversation_id}")

    try:
        # Presence sync on join
        for presence in await services.presence.snapshot(conversation_id):
            await on_presence(presence)

        while True:
            try:
                data = json.loads(await websocket.receive_text())
            except ValueError:
                data = None
            if not isinstance(data, dict):
                await websocket.send_json({"type": "error", "message": "Frames must be JSON objects"})
                continue
            message_type = data.get("type")

            if message_type == "typing":
                await services.notifier.publish_typing(conversation_id, user.id, bool(data.get("is_typing", False)))

            elif message_type in ("delivered", "read"):
                try:
                    await services.statuses.mark_status(data.get("message_id") or "", user.id, message_type)
                except HivleyError as e:
                    await websocket.send_json({"type": "error", "message": e.message, "code": e.code})

            else:
                await websocket.send_json({"type": "error", "message": f"Unknown frame type: {message_type}"})

    except WebSocketDisconnect:
        logger.info(f"{user.id} disconnected from conversation {conversation_id}")
    finally:
        subscription.unsubscribe()
