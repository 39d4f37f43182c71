from supabase import Client
from app.config.settings import settings
from app.modules.support_points.schemas import SupportPointCreate, SupportPointResponse, TYPE_ALL
from typing import List, Optional, Dict, Any
from fastapi import HTTPException
import json
import logging

logger = logging.getLogger(__name__)


def parse_contact_info(value: Any) -> Optional[Dict[str, Any]]:
    """contact_info is JSONB, but rows written by older clients carry a JSON string"""
    if value is None or isinstance(value, dict):
        return value
    if isinstance(value, str):
        try:
            parsed = json.loads(value)
        except ValueError:
            logger.warning("Invalid contact_info JSON: %r", value)
            return None
        return parsed if isinstance(parsed, dict) else None
    return None


def matches(point: Dict[str, Any], search: Optional[str], point_type: Optional[str]) -> bool:
    if point_type and point_type != TYPE_ALL and point.get("type") != point_type:
        return False
    if search:
        needle = search.lower()
        haystack = [(point.get("name") or "").lower(), (point.get("description") or "").lower()]
        return any(needle in text for text in haystack)
    return True


def to_support_point_response(row: Dict[str, Any]) -> SupportPointResponse:
    return SupportPointResponse(**{**row, "contact_info": parse_contact_info(row.get("contact_info"))})


class SupportPointService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def list_points(self, search: Optional[str] = None, point_type: Optional[str] = None) -> List[SupportPointResponse]:
        """Active points, newest first, filtered by name/description and type"""
        try:
            result = self.supabase.table("support_points")\
                .select("*")\
                .eq("is_active", True)\
                .order("created_at", desc=True)\
                .execute()
        except Exception as e:
            logger.error(f"Error fetching support points: {e}")
            raise HTTPException(status_code=500, detail="Không thể tải danh sách điểm hỗ trợ")

        search = search.strip() if search else None
        return [
            to_support_point_response(row) for row in (result.data or [])
            if matches(row, search, point_type)
        ]

    def get_point(self, point_id: str) -> SupportPointResponse:
        try:
            result = self.supabase.table("support_points")\
                .select("*")\
                .eq("id", point_id)\
                .maybe_single()\
                .execute()

            if not result or not result.data:
                raise HTTPException(status_code=404, detail="Support point not found")

            return to_support_point_response(result.data)
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def register_point(self, point_data: SupportPointCreate, owner_id: str) -> SupportPointResponse:
        """New point owned by the caller; it starts unverified"""
        latitude, longitude = point_data.latitude, point_data.longitude
        if latitude is None:
            latitude = settings.support_point_default_latitude
            longitude = settings.support_point_default_longitude

        phone = (point_data.phone or "").strip()
        try:
            result = self.supabase.table("support_points").insert({
                "name": point_data.name,
                "type": point_data.type,
                "description": point_data.description,
                "operating_hours": point_data.operating_hours,
                "latitude": latitude,
                "longitude": longitude,
                "address": point_data.address,
                "contact_info": {"phone": phone} if phone else {},
                "owner_id": owner_id,
            }).execute()

            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to register support point")

            logger.info("Support point %s registered by %s", result.data[0]["id"], owner_id)
            return to_support_point_response(result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Error registering support point: {e}")
            raise HTTPException(status_code=500, detail=str(e))
