from supabase import Client
from app.modules.ratings.schemas import RatingCreate, RatingResponse, ReceivedRatingsResponse
from app.modules.sos.schemas import STATUS_COMPLETED
from app.modules.sos.service import SOSService
from app.core.dependencies import require_sos_owner
from app.database.supabase_client import is_unique_violation
from typing import Dict, Any
from fastapi import HTTPException
import logging

logger = logging.getLogger(__name__)

RATING_SELECT = "*, sos_request:sos_requests(type), requester:profiles!sos_ratings_requester_id_fkey(name)"


def to_rating_response(row: Dict[str, Any]) -> RatingResponse:
    sos = row.get("sos_request") if isinstance(row.get("sos_request"), dict) else {}
    requester = row.get("requester") if isinstance(row.get("requester"), dict) else {}
    data = {k: v for k, v in row.items() if k not in ("sos_request", "requester")}
    return RatingResponse(**data, sos_type=sos.get("type"), requester_name=requester.get("name"))


class RatingService:
    def __init__(self, supabase: Client):
        self.supabase = supabase
        self.sos_service = SOSService(supabase)

    def received(self, helper_id: str) -> ReceivedRatingsResponse:
        """Ratings left for the helper, newest first"""
        try:
            result = self.supabase.table("sos_ratings")\
                .select(RATING_SELECT)\
                .eq("helper_id", helper_id)\
                .order("created_at", desc=True)\
                .execute()
        except Exception as e:
            logger.error(f"Error fetching ratings for {helper_id}: {e}")
            raise HTTPException(status_code=500, detail=str(e))

        ratings = [to_rating_response(row) for row in (result.data or [])]
        average = sum(r.rating for r in ratings) / len(ratings) if ratings else 0
        return ReceivedRatingsResponse(ratings=ratings, average_rating=average, total=len(ratings))

    def rate(self, sos_id: str, requester_id: str, rating_data: RatingCreate) -> RatingResponse:
        sos = require_sos_owner(self.sos_service.get_sos_row(sos_id), requester_id)
        if sos.get("status") != STATUS_COMPLETED or not sos.get("helper_id"):
            raise HTTPException(status_code=409, detail="Only completed SOS requests with a helper can be rated")

        try:
            result = self.supabase.table("sos_ratings").insert({
                "sos_request_id": sos_id,
                "requester_id": requester_id,
                "helper_id": sos["helper_id"],
                "rating": rating_data.rating,
                "comment": rating_data.comment,
            }).execute()

            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to save rating")

            logger.info("SOS %s rated %d by %s", sos_id, rating_data.rating, requester_id)
            return to_rating_response({**result.data[0], "sos_request": {"type": sos.get("type")}})
        except HTTPException:
            raise
        except Exception as e:
            if is_unique_violation(e):
                raise HTTPException(status_code=409, detail="This SOS request has already been rated")
            logger.error(f"Error rating SOS {sos_id}: {e}")
            raise HTTPException(status_code=500, detail=str(e))
