from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime


class RatingCreate(BaseModel):
    rating: int = Field(..., ge=1, le=5)
    comment: Optional[str] = Field(default=None, max_length=1000)


class RatingResponse(BaseModel):
    id: str
    sos_request_id: str
    requester_id: str
    helper_id: str
    rating: int
    comment: Optional[str] = None
    sos_type: Optional[str] = None
    requester_name: Optional[str] = None
    created_at: Optional[datetime] = None


class ReceivedRatingsResponse(BaseModel):
    ratings: List[RatingResponse]
    average_rating: float
    total: int
