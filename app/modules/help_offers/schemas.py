from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime


OFFER_PENDING = "pending"
OFFER_ACCEPTED = "accepted"
OFFER_REJECTED = "rejected"


class HelpOfferCreate(BaseModel):
    message: Optional[str] = Field(default=None, max_length=500)


class HelpOfferResponse(BaseModel):
    id: str
    sos_request_id: str
    volunteer_id: str
    status: str
    message: Optional[str] = None
    volunteer_name: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class OfferDecisionResponse(BaseModel):
    offer: HelpOfferResponse
    sos_request_id: str
    requester_id: str
    sos_status: str
    rejected_count: int = 0
