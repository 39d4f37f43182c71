from fastapi import APIRouter, Depends
from app.database.supabase_client import get_supabase
from app.modules.profiles.schemas import (
    ProfileUpdate, ProfileResponse, PublicProfileResponse,
    ProfileStatsResponse, VolunteerStatusResponse, ProfileSuggestion
)
from app.modules.profiles.service import ProfileService
from app.modules.realtime.hub import manager
from app.core.dependencies import get_current_user_id, get_current_profile
from supabase import Client
from typing import List, Optional, Dict

router = APIRouter(prefix="/profiles", tags=["profiles"])


def get_profile_service(supabase: Client = Depends(get_supabase)) -> ProfileService:
    return ProfileService(supabase)


@router.get("/me", response_model=ProfileResponse)
async def get_my_profile(
    profile: Dict = Depends(get_current_profile)
):
    """Get the caller's profile"""
    return ProfileResponse(**profile)


@router.put("/me", response_model=ProfileResponse)
async def update_my_profile(
    profile_data: ProfileUpdate,
    user_data: Dict = Depends(get_current_user_id),
    service: ProfileService = Depends(get_profile_service)
):
    """Update the caller's profile"""
    return service.update_profile(user_data["id"], profile_data)


@router.post("/me/volunteer", response_model=VolunteerStatusResponse)
async def toggle_volunteer(
    profile: Dict = Depends(get_current_profile),
    service: ProfileService = Depends(get_profile_service)
):
    """Toggle volunteer readiness (refused while the caller has an open SOS)"""
    result = service.toggle_volunteer(profile)
    manager.set_volunteer_ready(profile["id"], result.is_volunteer_ready)
    return result


@router.get("/me/stats", response_model=ProfileStatsResponse)
async def get_my_stats(
    user_data: Dict = Depends(get_current_user_id),
    service: ProfileService = Depends(get_profile_service)
):
    """Counts of SOS requests made and help provided, plus average rating"""
    return service.get_stats(user_data["id"])


@router.get("/suggestions", response_model=List[ProfileSuggestion])
async def suggest_profiles(
    q: Optional[str] = None,
    user_data: Dict = Depends(get_current_user_id),
    service: ProfileService = Depends(get_profile_service)
):
    """Profiles available for tagging, ordered by name"""
    return service.suggest(q, exclude_user_id=user_data["id"])


@router.get("/{user_id}", response_model=PublicProfileResponse)
async def get_public_profile(
    user_id: str,
    user_data: Dict = Depends(get_current_user_id),
    service: ProfileService = Depends(get_profile_service)
):
    """Another user's profile with the number of SOS they helped with"""
    return service.get_public_profile(user_id)
