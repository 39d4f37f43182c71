from fastapi import APIRouter, Depends, Query
from app.database.supabase_client import get_supabase
from app.modules.notifications.schemas import NotificationListResponse, NotificationActionResponse
from app.modules.notifications.service import NotificationService
from app.core.dependencies import get_current_user_id, get_current_profile
from supabase import Client
from typing import Dict, Optional

router = APIRouter(prefix="/notifications", tags=["notifications"])


def get_notification_service(supabase: Client = Depends(get_supabase)) -> NotificationService:
    return NotificationService(supabase)


@router.get("", response_model=NotificationListResponse)
async def list_notifications(
    latitude: Optional[float] = Query(None, ge=-90, le=90),
    longitude: Optional[float] = Query(None, ge=-180, le=180),
    radius_km: Optional[float] = Query(None, gt=0),
    profile: Dict = Depends(get_current_profile),
    service: NotificationService = Depends(get_notification_service)
):
    """Nearby SOS, accepted and completed requests, and new messages, newest first"""
    return service.list_notifications(
        profile, latitude=latitude, longitude=longitude, radius_km=radius_km
    )


@router.post("/read-all", response_model=NotificationActionResponse)
async def mark_all_read(
    profile: Dict = Depends(get_current_profile),
    service: NotificationService = Depends(get_notification_service)
):
    updated = service.mark_all_read(profile)
    return NotificationActionResponse(updated=updated, message="Đã đánh dấu tất cả thông báo là đã đọc")


@router.post("/{notification_id}/read", response_model=NotificationActionResponse)
async def mark_read(
    notification_id: str,
    user_data: Dict = Depends(get_current_user_id),
    service: NotificationService = Depends(get_notification_service)
):
    updated = service.mark_read(user_data["id"], notification_id)
    return NotificationActionResponse(updated=updated, message="Đã đánh dấu là đã đọc")


@router.delete("", response_model=NotificationActionResponse)
async def delete_all(
    profile: Dict = Depends(get_current_profile),
    service: NotificationService = Depends(get_notification_service)
):
    updated = service.delete_all(profile)
    return NotificationActionResponse(updated=updated, message="Đã xóa tất cả thông báo")


@router.delete("/{notification_id}", response_model=NotificationActionResponse)
async def delete_notification(
    notification_id: str,
    user_data: Dict = Depends(get_current_user_id),
    service: NotificationService = Depends(get_notification_service)
):
    updated = service.delete(user_data["id"], notification_id)
    return NotificationActionResponse(updated=updated, message="Đã xóa thông báo")
