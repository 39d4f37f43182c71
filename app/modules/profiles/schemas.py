from pydantic import BaseModel
from typing import Optional, Literal
from datetime import datetime, date


PrivacyLevel = Literal["public", "friends", "private"]


class ProfileUpdate(BaseModel):
    name: Optional[str] = None
    avatar_url: Optional[str] = None
    phone: Optional[str] = None
    bio: Optional[str] = None
    location: Optional[str] = None
    marital_status: Optional[str] = None
    birth_date: Optional[date] = None
    privacy_level: Optional[PrivacyLevel] = None


class ProfileResponse(BaseModel):
    id: str
    name: str
    avatar_url: Optional[str] = None
    phone: Optional[str] = None
    bio: Optional[str] = None
    location: Optional[str] = None
    marital_status: Optional[str] = None
    birth_date: Optional[date] = None
    privacy_level: Optional[str] = "public"
    is_volunteer_ready: Optional[bool] = False
    is_verified: Optional[bool] = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class PublicProfileResponse(ProfileResponse):
    help_count: int = 0


class ProfileStatsResponse(BaseModel):
    sos_requests: int
    help_provided: int
    average_rating: float


class VolunteerStatusResponse(BaseModel):
    is_volunteer_ready: bool
    message: str


class ProfileSuggestion(BaseModel):
    id: str
    name: str
    avatar_url: Optional[str] = None
