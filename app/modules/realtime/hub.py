import asyncio
import logging
from collections import defaultdict
from typing import Dict, Set, Iterable, Any
from fastapi import WebSocket
from app.modules.realtime.schemas import ChangeEvent
from app.modules.notifications.service import should_refresh

logger = logging.getLogger(__name__)

TABLE_EVENTS = {
    "sos_requests": "sos.changed",
    "help_offers": "offers.changed",
}


class ConnectionManager:
    """Open websockets per user id, plus the volunteer flag used by the refresh rules"""

    def __init__(self) -> None:
        self.active: Dict[str, Set[WebSocket]] = defaultdict(set)
        self.volunteer_ready: Dict[str, bool] = {}

    async def connect(self, user_id: str, websocket: WebSocket, volunteer_ready: bool = False) -> None:
        await websocket.accept()
        self.active[user_id].add(websocket)
        self.volunteer_ready[user_id] = volunteer_ready
        logger.debug("Websocket connected for %s (%d open)", user_id, len(self.active[user_id]))

    def disconnect(self, user_id: str, websocket: WebSocket) -> None:
        self.active.get(user_id, set()).discard(websocket)
        if not self.active.get(user_id):
            self.active.pop(user_id, None)
            self.volunteer_ready.pop(user_id, None)

    def set_volunteer_ready(self, user_id: str, ready: bool) -> None:
        if user_id in self.active:
            self.volunteer_ready[user_id] = ready

    def connected_users(self) -> Set[str]:
        return set(self.active.keys())

    async def send_to_user(self, user_id: str, event: str, data: Dict[str, Any]) -> None:
        payload = {"event": event, "data": data}
        for ws in list(self.active.get(user_id, set())):
            try:
                await ws.send_json(payload)
            except Exception as e:
                logger.info("Dropping websocket for %s: %s", user_id, e)
                self.disconnect(user_id, ws)

    async def send_to_users(self, user_ids: Iterable[str], event: str, data: Dict[str, Any]) -> None:
        await asyncio.gather(
            *[self.send_to_user(user_id, event, data) for user_id in set(user_ids) if user_id],
            return_exceptions=True,
        )

    async def broadcast(self, event: str, data: Dict[str, Any]) -> None:
        await self.send_to_users(self.connected_users(), event, data)

    async def publish(self, change: ChangeEvent) -> None:
        """Fan a row change out to subscribers and nudge users whose notifications changed"""
        data = change.model_dump(mode="json")

        if change.table in TABLE_EVENTS:
            await self.broadcast(TABLE_EVENTS[change.table], data)
        elif change.table == "chat_messages" and change.event == "INSERT":
            await self.send_to_users(
                [change.new.get("sender_id"), change.new.get("receiver_id")], "chat.message", data
            )

        refresh = [
            user_id for user_id in self.connected_users()
            if should_refresh(change, user_id, self.volunteer_ready.get(user_id, False))
        ]
        if refresh:
            await self.send_to_users(refresh, "notifications.refresh", {"table": change.table})


manager = ConnectionManager()
