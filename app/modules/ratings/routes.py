from fastapi import APIRouter, Depends
from app.database.supabase_client import get_supabase
from app.modules.ratings.schemas import RatingCreate, RatingResponse, ReceivedRatingsResponse
from app.modules.ratings.service import RatingService
from app.core.dependencies import get_current_user_id
from supabase import Client
from typing import Dict

router = APIRouter(tags=["ratings"])


def get_rating_service(supabase: Client = Depends(get_supabase)) -> RatingService:
    return RatingService(supabase)


@router.get("/ratings/received", response_model=ReceivedRatingsResponse)
async def received_ratings(
    user_data: Dict = Depends(get_current_user_id),
    service: RatingService = Depends(get_rating_service)
):
    """Ratings the caller received as a helper"""
    return service.received(user_data["id"])


@router.post("/sos/{sos_id}/rating", response_model=RatingResponse, status_code=201)
async def rate_helper(
    sos_id: str,
    rating_data: RatingCreate,
    user_data: Dict = Depends(get_current_user_id),
    service: RatingService = Depends(get_rating_service)
):
    """Requester rates the helper of a completed SOS"""
    return service.rate(sos_id, user_data["id"], rating_data)
