from supabase import Client
from app.config.settings import settings
from app.modules.sos.schemas import (
    SOSCreate, SOSResponse, SOSFeedItem, RecentActivityResponse, RouteInfoResponse,
    STATUS_ACTIVE, STATUS_HELPING, STATUS_COMPLETED, STATUS_CANCELLED, OPEN_STATUSES,
    URGENCY_HIGH, URGENCY_MEDIUM
)
from app.core.dependencies import require_sos_owner, require_sos_participant
from typing import List, Optional, Dict, Any
from fastapi import HTTPException
from datetime import datetime, timezone
from urllib.parse import urlencode
import logging

logger = logging.getLogger(__name__)

SOS_SELECT = (
    "*, profiles!sos_requests_user_id_fkey(name), "
    "helper_profile:profiles!sos_requests_helper_id_fkey(name)"
)
HELP_HISTORY_SELECT = "*, requester_profile:profiles!sos_requests_user_id_fkey(name)"
RECENT_LIMIT = 3

ALLOWED_TRANSITIONS = {
    STATUS_ACTIVE: {STATUS_HELPING, STATUS_CANCELLED},
    STATUS_HELPING: {STATUS_COMPLETED},
}

MARKER_HELPING = "#00AA00"
MARKER_HIGH = "#FF0000"
MARKER_MEDIUM = "#FFA500"
MARKER_LOW = "#FFFF00"


def can_transition(current: Optional[str], target: str) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current or "", set())


def marker_color(urgency: Optional[str], status: Optional[str]) -> str:
    if status == STATUS_HELPING:
        return MARKER_HELPING
    if urgency == URGENCY_HIGH:
        return MARKER_HIGH
    if urgency == URGENCY_MEDIUM:
        return MARKER_MEDIUM
    return MARKER_LOW


def marker_title(sos: Dict[str, Any]) -> str:
    helper_name = _embedded_name(sos, "helper_profile")
    if sos.get("status") == STATUS_HELPING and helper_name:
        return f"SOS: {sos['type']} - Đang được {helper_name} giúp đỡ"
    return f"SOS: {sos['type']} - {sos.get('urgency')}"


def directions_url(origin_lat: float, origin_lng: float, dest_lat: float, dest_lng: float) -> str:
    query = urlencode({
        "api": 1,
        "origin": f"{origin_lat},{origin_lng}",
        "destination": f"{dest_lat},{dest_lng}",
        "travelmode": "driving",
    })
    return f"https://www.google.com/maps/dir/?{query}"


def _embedded_name(row: Dict[str, Any], key: str) -> Optional[str]:
    embedded = row.get(key)
    if isinstance(embedded, dict):
        return embedded.get("name")
    return None


def to_sos_response(row: Dict[str, Any]) -> SOSResponse:
    """Flatten embedded profile joins into requester_name/helper_name"""
    data = {k: v for k, v in row.items() if k not in ("profiles", "helper_profile", "requester_profile")}
    data["requester_name"] = _embedded_name(row, "profiles") or _embedded_name(row, "requester_profile")
    data["helper_name"] = _embedded_name(row, "helper_profile")
    return SOSResponse(**data)


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class SOSService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def get_sos_row(self, sos_id: str) -> Dict[str, Any]:
        """SOS row with requester and helper names, 404 when missing"""
        try:
            result = self.supabase.table("sos_requests")\
                .select(SOS_SELECT)\
                .eq("id", sos_id)\
                .maybe_single()\
                .execute()

            if not result or not result.data:
                raise HTTPException(status_code=404, detail="SOS request not found")

            return result.data
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Error loading SOS {sos_id}: {e}")
            raise HTTPException(status_code=500, detail=str(e))

    def get_sos(self, sos_id: str) -> SOSResponse:
        return to_sos_response(self.get_sos_row(sos_id))

    def get_open_sos_for_user(self, user_id: str) -> Optional[Dict[str, Any]]:
        """The user's own active/helping SOS, if any"""
        try:
            result = self.supabase.table("sos_requests")\
                .select(SOS_SELECT)\
                .eq("user_id", user_id)\
                .in_("status", list(OPEN_STATUSES))\
                .order("created_at", desc=True)\
                .limit(1)\
                .execute()
            return result.data[0] if result.data else None
        except Exception as e:
            logger.error(f"Error fetching active SOS for {user_id}: {e}")
            raise HTTPException(status_code=500, detail=str(e))

    def create_sos(self, sos_data: SOSCreate, user_id: str) -> SOSResponse:
        """Broadcast a new SOS. A user holds at most one open SOS at a time."""
        try:
            if self.get_open_sos_for_user(user_id):
                raise HTTPException(
                    status_code=409,
                    detail="You already have an open SOS request"
                )

            latitude, longitude = sos_data.latitude, sos_data.longitude
            if latitude is None:
                logger.warning(
                    "No position supplied for SOS by %s, using default location", user_id
                )
                latitude, longitude = settings.default_latitude, settings.default_longitude

            insert_data = {
                "user_id": user_id,
                "type": sos_data.type,
                "description": sos_data.description,
                "urgency": sos_data.urgency,
                "people_affected": sos_data.people_affected,
                "latitude": latitude,
                "longitude": longitude,
                "status": STATUS_ACTIVE,
            }
            if sos_data.manual_address and sos_data.manual_address.strip():
                insert_data["manual_address"] = sos_data.manual_address.strip()
            if sos_data.images:
                insert_data["images"] = sos_data.images

            result = self.supabase.table("sos_requests").insert(insert_data).execute()

            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to create SOS request")

            logger.info("SOS %s created by %s", result.data[0]["id"], user_id)
            return to_sos_response(result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Error creating SOS request: {e}")
            raise HTTPException(status_code=500, detail=str(e))

    def list_open(self) -> List[SOSFeedItem]:
        """Active and in-progress SOS for the map, newest first"""
        try:
            result = self.supabase.table("sos_requests")\
                .select(SOS_SELECT)\
                .in_("status", list(OPEN_STATUSES))\
                .order("created_at", desc=True)\
                .execute()

            return [
                SOSFeedItem(
                    **to_sos_response(row).model_dump(),
                    marker_color=marker_color(row.get("urgency"), row.get("status")),
                    marker_title=marker_title(row),
                )
                for row in (result.data or [])
            ]
        except Exception as e:
            logger.error(f"Error fetching SOS requests: {e}")
            raise HTTPException(status_code=500, detail=str(e))

    def transition(self, sos_id: str, expected: str, target: str, extra: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Conditional status update; 409 when the row is no longer in the expected status"""
        if not can_transition(expected, target):
            raise HTTPException(
                status_code=409,
                detail=f"Cannot move SOS from {expected} to {target}"
            )
        try:
            update_data = {"status": target}
            if extra:
                update_data.update(extra)

            result = self.supabase.table("sos_requests")\
                .update(update_data)\
                .eq("id", sos_id)\
                .eq("status", expected)\
                .execute()

            if not result.data:
                raise HTTPException(
                    status_code=409,
                    detail="SOS request status changed, please refresh"
                )

            logger.info("SOS %s: %s -> %s", sos_id, expected, target)
            return result.data[0]
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Error updating SOS {sos_id}: {e}")
            raise HTTPException(status_code=500, detail=str(e))

    def cancel_sos(self, sos_id: str, user_id: str) -> Dict[str, Any]:
        """Requester withdraws an SOS nobody has been accepted for yet. Returns the rows before and after the update."""
        sos = require_sos_owner(self.get_sos_row(sos_id), user_id)
        if sos.get("status") != STATUS_ACTIVE:
            raise HTTPException(status_code=409, detail="Only active SOS requests can be cancelled")
        updated = self.transition(sos_id, STATUS_ACTIVE, STATUS_CANCELLED)
        return {"old": sos, "new": updated}

    def complete_sos(self, sos_id: str, user_id: str) -> Dict[str, Any]:
        """Requester or helper closes an in-progress SOS. Returns the rows before and after the update."""
        sos = require_sos_participant(self.get_sos_row(sos_id), user_id)
        if sos.get("status") != STATUS_HELPING:
            raise HTTPException(status_code=409, detail="Only SOS requests being helped can be completed")
        updated = self.transition(
            sos_id, STATUS_HELPING, STATUS_COMPLETED, {"completed_at": now_iso()}
        )
        return {"old": sos, "new": updated}

    def assign_helper(self, sos_id: str, helper_id: str) -> Dict[str, Any]:
        return self.transition(sos_id, STATUS_ACTIVE, STATUS_HELPING, {"helper_id": helper_id})

    def release_helper(self, sos_id: str, helper_id: str) -> None:
        """Undo assign_helper when the rest of an acceptance failed"""
        try:
            self.supabase.table("sos_requests")\
                .update({"status": STATUS_ACTIVE, "helper_id": None})\
                .eq("id", sos_id)\
                .eq("status", STATUS_HELPING)\
                .eq("helper_id", helper_id)\
                .execute()
            logger.warning("SOS %s: helper %s released, back to active", sos_id, helper_id)
        except Exception as e:
            logger.error(f"Error releasing helper on SOS {sos_id}: {e}")

    def request_history(self, user_id: str) -> List[SOSResponse]:
        """Every SOS the user raised, newest first"""
        try:
            result = self.supabase.table("sos_requests")\
                .select("*, helper_profile:profiles!sos_requests_helper_id_fkey(name)")\
                .eq("user_id", user_id)\
                .order("created_at", desc=True)\
                .execute()
            return [to_sos_response(row) for row in (result.data or [])]
        except Exception as e:
            logger.error(f"Error fetching request history: {e}")
            raise HTTPException(status_code=500, detail=str(e))

    def help_history(self, user_id: str, limit: Optional[int] = None) -> List[SOSResponse]:
        """Every SOS the user was accepted to help with, newest first"""
        try:
            query = self.supabase.table("sos_requests")\
                .select(HELP_HISTORY_SELECT)\
                .eq("helper_id", user_id)\
                .order("created_at", desc=True)
            if limit:
                query = query.limit(limit)
            result = query.execute()
            return [to_sos_response(row) for row in (result.data or [])]
        except Exception as e:
            logger.error(f"Error fetching help history: {e}")
            raise HTTPException(status_code=500, detail=str(e))

    def recent_activity(self, user_id: str) -> RecentActivityResponse:
        try:
            result = self.supabase.table("sos_requests")\
                .select("*")\
                .eq("user_id", user_id)\
                .order("created_at", desc=True)\
                .limit(RECENT_LIMIT)\
                .execute()
            requests = [to_sos_response(row) for row in (result.data or [])]
        except Exception as e:
            logger.error(f"Error fetching recent requests: {e}")
            raise HTTPException(status_code=500, detail=str(e))
        return RecentActivityResponse(
            requests=requests,
            helps=self.help_history(user_id, limit=RECENT_LIMIT)
        )

    def route_info(self, sos_id: str, user_id: str, latitude: float, longitude: float, maps_service) -> RouteInfoResponse:
        """Driving distance and duration from the helper's position to the SOS"""
        sos = self.get_sos_row(sos_id)
        if sos.get("helper_id") != user_id or sos.get("status") != STATUS_HELPING:
            raise HTTPException(status_code=403, detail="Only the assigned helper can request a route")

        dest_lat, dest_lng = float(sos["latitude"]), float(sos["longitude"])
        info = maps_service.distance_matrix((latitude, longitude), (dest_lat, dest_lng))
        return RouteInfoResponse(
            sos_request_id=sos_id,
            distance=info["distance"] if info else None,
            duration=info["duration"] if info else None,
            directions_url=directions_url(latitude, longitude, dest_lat, dest_lng),
        )
