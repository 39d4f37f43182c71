from supabase import Client
from app.config.settings import settings
from app.modules.notifications.schemas import (
    NotificationItem, NotificationListResponse, NotificationState
)
from app.modules.notifications.store import NotificationStateStore
from app.modules.realtime.schemas import ChangeEvent
from app.modules.sos.schemas import STATUS_ACTIVE, STATUS_HELPING, STATUS_COMPLETED
from typing import List, Optional, Dict, Any
from fastapi import HTTPException
from datetime import datetime, timezone
import logging
import math

logger = logging.getLogger(__name__)

NEARBY_LIMIT = 10
ACCEPTED_LIMIT = 5
MESSAGE_LIMIT = 10
COMPLETED_LIMIT = 5
PREVIEW_LENGTH = 50
BADGE_MAX = 9

DEFAULT_USER_NAME = "Người dùng"
DEFAULT_HELPER_NAME = "Người hỗ trợ"


def haversine_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    r = 6371.0
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lng2 - lng1)
    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    return r * (2 * math.atan2(math.sqrt(a), math.sqrt(1 - a)))


def preview(content: str) -> str:
    return content[:PREVIEW_LENGTH] + ("..." if len(content) > PREVIEW_LENGTH else "")


def badge_for(unread_count: int) -> Optional[str]:
    if unread_count <= 0:
        return None
    return f"{BADGE_MAX}+" if unread_count > BADGE_MAX else str(unread_count)


def _as_utc(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def _name(row: Dict[str, Any], key: str = "profiles") -> Optional[str]:
    embedded = row.get(key)
    return embedded.get("name") if isinstance(embedded, dict) else None


def apply_overlay(items: List[NotificationItem], states: Dict[str, NotificationState]) -> List[NotificationItem]:
    """Drop deleted ids, copy read flags, newest first"""
    visible = []
    for item in items:
        state = states.get(item.id, NotificationState())
        if state.is_deleted:
            continue
        visible.append(item.model_copy(update={"is_read": state.is_read}))
    visible.sort(key=lambda n: _as_utc(n.created_at), reverse=True)
    return visible


def should_refresh(change: ChangeEvent, user_id: str, is_volunteer_ready: bool) -> bool:
    """Whether a row change can alter the notification list of this user"""
    new, old = change.new, change.old
    if change.table == "sos_requests":
        if change.event == "INSERT":
            return is_volunteer_ready and new.get("user_id") != user_id
        if change.event == "UPDATE" and new.get("user_id") == user_id:
            if old.get("status") == STATUS_ACTIVE and new.get("status") == STATUS_HELPING:
                return True
            return new.get("status") == STATUS_COMPLETED and old.get("status") != STATUS_COMPLETED
        return False
    if change.table == "chat_messages" and change.event == "INSERT":
        return new.get("receiver_id") == user_id
    return False


class NotificationService:
    def __init__(self, supabase: Client, store: Optional[NotificationStateStore] = None):
        self.supabase = supabase
        self.store = store or NotificationStateStore()

    def _nearby_sos(
        self,
        user_id: str,
        latitude: Optional[float],
        longitude: Optional[float],
        radius_km: Optional[float],
    ) -> List[NotificationItem]:
        result = self.supabase.table("sos_requests")\
            .select("id, type, urgency, created_at, latitude, longitude, profiles!sos_requests_user_id_fkey(name)")\
            .eq("status", STATUS_ACTIVE)\
            .neq("user_id", user_id)\
            .order("created_at", desc=True)\
            .limit(NEARBY_LIMIT)\
            .execute()

        items = []
        for sos in result.data or []:
            if radius_km and latitude is not None and longitude is not None:
                if sos.get("latitude") is None or sos.get("longitude") is None:
                    continue
                distance = haversine_km(latitude, longitude, float(sos["latitude"]), float(sos["longitude"]))
                if distance > radius_km:
                    continue
            items.append(NotificationItem(
                id=f"sos-{sos['id']}",
                type="sos_nearby",
                title="SOS gần bạn",
                description=f"{sos['type']} - {sos.get('urgency')} từ {_name(sos) or DEFAULT_USER_NAME}",
                created_at=sos["created_at"],
                sos_request_id=sos["id"],
            ))
        return items

    def _accepted_sos(self, user_id: str) -> List[NotificationItem]:
        result = self.supabase.table("sos_requests")\
            .select("id, type, created_at, profiles!sos_requests_helper_id_fkey(name)")\
            .eq("user_id", user_id)\
            .eq("status", STATUS_HELPING)\
            .order("created_at", desc=True)\
            .limit(ACCEPTED_LIMIT)\
            .execute()

        items = []
        for sos in result.data or []:
            helper_name = _name(sos) or DEFAULT_HELPER_NAME
            items.append(NotificationItem(
                id=f"accepted-{sos['id']}",
                type="sos_accepted",
                title="Yêu cầu SOS được chấp nhận",
                description=f"{sos['type']} đã được chấp nhận bởi {helper_name}",
                created_at=sos["created_at"],
                sos_request_id=sos["id"],
                sender_name=helper_name,
            ))
        return items

    def _messages(self, user_id: str) -> List[NotificationItem]:
        result = self.supabase.table("chat_messages")\
            .select("id, content, created_at, sos_request_id, sender_id, profiles!chat_messages_sender_id_fkey(name)")\
            .eq("receiver_id", user_id)\
            .order("created_at", desc=True)\
            .limit(MESSAGE_LIMIT)\
            .execute()

        return [
            NotificationItem(
                id=f"message-{message['id']}",
                type="message",
                title="Tin nhắn mới",
                description=preview(message.get("content") or ""),
                created_at=message["created_at"],
                sos_request_id=message.get("sos_request_id"),
                sender_name=_name(message) or DEFAULT_USER_NAME,
                sender_id=message.get("sender_id"),
                message_id=message["id"],
            )
            for message in (result.data or [])
        ]

    def _completed_sos(self, user_id: str) -> List[NotificationItem]:
        result = self.supabase.table("sos_requests")\
            .select("id, type, completed_at, profiles!sos_requests_helper_id_fkey(name)")\
            .eq("user_id", user_id)\
            .eq("status", STATUS_COMPLETED)\
            .not_.is_("completed_at", "null")\
            .order("completed_at", desc=True)\
            .limit(COMPLETED_LIMIT)\
            .execute()

        return [
            NotificationItem(
                id=f"completed-{sos['id']}",
                type="help_completed",
                title="Hỗ trợ hoàn thành",
                description=f"{sos['type']} đã được hoàn thành bởi {_name(sos) or DEFAULT_HELPER_NAME}",
                created_at=sos["completed_at"],
                sos_request_id=sos["id"],
            )
            for sos in (result.data or [])
        ]

    def collect(
        self,
        profile: Dict[str, Any],
        latitude: Optional[float] = None,
        longitude: Optional[float] = None,
        radius_km: Optional[float] = None,
    ) -> List[NotificationItem]:
        """Every visible notification for the profile, overlay applied, newest first"""
        user_id = profile["id"]
        try:
            items: List[NotificationItem] = []
            if profile.get("is_volunteer_ready"):
                items.extend(self._nearby_sos(
                    user_id, latitude, longitude, radius_km or settings.nearby_radius_km
                ))
            items.extend(self._accepted_sos(user_id))
            items.extend(self._messages(user_id))
            items.extend(self._completed_sos(user_id))
        except Exception as e:
            logger.error(f"Error fetching notifications for {user_id}: {e}")
            raise HTTPException(status_code=500, detail="Không thể tải thông báo. Vui lòng thử lại.")

        return apply_overlay(items, self.store.load(user_id))

    def list_notifications(self, profile: Dict[str, Any], **filters) -> NotificationListResponse:
        notifications = self.collect(profile, **filters)
        unread_count = sum(1 for n in notifications if not n.is_read)
        return NotificationListResponse(
            notifications=notifications,
            unread_count=unread_count,
            badge=badge_for(unread_count),
        )

    def mark_read(self, user_id: str, notification_id: str) -> int:
        return self.store.set_state(user_id, [notification_id], is_read=True, is_deleted=False)

    def delete(self, user_id: str, notification_id: str) -> int:
        return self.store.set_state(user_id, [notification_id], is_read=False, is_deleted=True)

    def mark_all_read(self, profile: Dict[str, Any]) -> int:
        unread = [n.id for n in self.collect(profile) if not n.is_read]
        return self.store.set_state(profile["id"], unread, is_read=True, is_deleted=False)

    def delete_all(self, profile: Dict[str, Any]) -> int:
        current = [n.id for n in self.collect(profile)]
        return self.store.set_state(profile["id"], current, is_read=False, is_deleted=True)
