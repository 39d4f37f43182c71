from fastapi import APIRouter, WebSocket, WebSocketDisconnect, HTTPException
from app.database.supabase_client import get_supabase
from app.modules.auth.service import AuthService
from app.modules.profiles.service import ProfileService
from app.modules.realtime.hub import manager
import logging

logger = logging.getLogger(__name__)

router = APIRouter(tags=["realtime"])


@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket) -> None:
    """Change feed for the authenticated user. Send "ping" to keep the socket alive."""
    token = websocket.query_params.get("token")
    if not token:
        await websocket.close(code=4001, reason="Missing token")
        return

    supabase = get_supabase()
    try:
        user_data = AuthService(supabase).get_current_user(token)
    except HTTPException:
        await websocket.close(code=4003, reason="Invalid token")
        return

    user_id = user_data["id"]
    try:
        volunteer_ready = bool(ProfileService(supabase).get_profile_row(user_id).get("is_volunteer_ready"))
    except HTTPException:
        volunteer_ready = False

    await manager.connect(user_id, websocket, volunteer_ready)
    try:
        while True:
            data = await websocket.receive_text()
            if data == "ping":
                await websocket.send_json({"event": "pong"})
    except WebSocketDisconnect:
        pass
    finally:
        manager.disconnect(user_id, websocket)
