from pydantic import BaseModel
from typing import Optional, List, Literal
from datetime import datetime

NotificationType = Literal["sos_nearby", "sos_accepted", "message", "help_completed"]


class NotificationState(BaseModel):
    is_read: bool = False
    is_deleted: bool = False


class NotificationItem(BaseModel):
    id: str
    type: NotificationType
    title: str
    description: str
    created_at: datetime
    is_read: bool = False
    sos_request_id: Optional[str] = None
    sender_name: Optional[str] = None
    sender_id: Optional[str] = None
    message_id: Optional[str] = None


class NotificationListResponse(BaseModel):
    notifications: List[NotificationItem]
    unread_count: int
    badge: Optional[str] = None


class NotificationActionResponse(BaseModel):
    updated: int
    message: str
