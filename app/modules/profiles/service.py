from supabase import Client
from app.modules.profiles.schemas import (
    ProfileUpdate, ProfileResponse, PublicProfileResponse,
    ProfileStatsResponse, VolunteerStatusResponse, ProfileSuggestion
)
from app.modules.sos.schemas import OPEN_STATUSES
from typing import List, Optional, Dict, Any
from fastapi import HTTPException
from datetime import datetime, timezone
import logging

logger = logging.getLogger(__name__)

SUGGESTION_LIMIT = 10


class ProfileService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def get_profile_row(self, user_id: str) -> Dict[str, Any]:
        """Raw profile row, 404 when missing"""
        try:
            result = self.supabase.table("profiles")\
                .select("*")\
                .eq("id", user_id)\
                .maybe_single()\
                .execute()

            if not result or not result.data:
                raise HTTPException(status_code=404, detail="Profile not found")

            return result.data
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Error loading profile {user_id}: {e}")
            raise HTTPException(status_code=500, detail=str(e))

    def get_profile(self, user_id: str) -> ProfileResponse:
        return ProfileResponse(**self.get_profile_row(user_id))

    def update_profile(self, user_id: str, profile_data: ProfileUpdate) -> ProfileResponse:
        """Update the caller's own profile"""
        try:
            update_data = profile_data.model_dump(exclude_unset=True, mode="json")
            if "name" in update_data and not (update_data["name"] or "").strip():
                raise HTTPException(status_code=400, detail="Name cannot be empty")
            if not update_data:
                return self.get_profile(user_id)
            update_data["updated_at"] = datetime.now(timezone.utc).isoformat()

            result = self.supabase.table("profiles")\
                .update(update_data)\
                .eq("id", user_id)\
                .execute()

            if not result.data:
                raise HTTPException(status_code=404, detail="Profile not found")

            return ProfileResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def has_open_sos(self, user_id: str) -> bool:
        result = self.supabase.table("sos_requests")\
            .select("id")\
            .eq("user_id", user_id)\
            .in_("status", list(OPEN_STATUSES))\
            .limit(1)\
            .execute()
        return bool(result.data)

    def toggle_volunteer(self, profile: Dict[str, Any]) -> VolunteerStatusResponse:
        """Flip is_volunteer_ready. Turning it on is refused while the user has their own open SOS."""
        try:
            enable = not profile.get("is_volunteer_ready", False)
            if enable and self.has_open_sos(profile["id"]):
                raise HTTPException(
                    status_code=409,
                    detail="Cancel your current SOS request before enabling volunteer mode"
                )

            result = self.supabase.table("profiles")\
                .update({"is_volunteer_ready": enable})\
                .eq("id", profile["id"])\
                .execute()

            if not result.data:
                raise HTTPException(status_code=404, detail="Profile not found")

            logger.info("User %s volunteer mode %s", profile["id"], "on" if enable else "off")
            return VolunteerStatusResponse(
                is_volunteer_ready=enable,
                message="You will be notified about new SOS requests" if enable
                else "You will no longer receive new SOS alerts"
            )
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def _count(self, table: str, column: str, user_id: str) -> int:
        result = self.supabase.table(table)\
            .select("id")\
            .eq(column, user_id)\
            .execute()
        return len(result.data or [])

    def get_stats(self, user_id: str) -> ProfileStatsResponse:
        """Requests made, help provided and average rating received"""
        try:
            ratings_result = self.supabase.table("sos_ratings")\
                .select("rating")\
                .eq("helper_id", user_id)\
                .execute()
            ratings = [r["rating"] for r in (ratings_result.data or [])]

            return ProfileStatsResponse(
                sos_requests=self._count("sos_requests", "user_id", user_id),
                help_provided=self._count("sos_requests", "helper_id", user_id),
                average_rating=sum(ratings) / len(ratings) if ratings else 0
            )
        except Exception as e:
            logger.error(f"Error fetching stats for {user_id}: {e}")
            raise HTTPException(status_code=500, detail=str(e))

    def get_public_profile(self, user_id: str) -> PublicProfileResponse:
        row = self.get_profile_row(user_id)
        try:
            help_count = self._count("sos_requests", "helper_id", user_id)
        except Exception as e:
            logger.error(f"Error fetching help count for {user_id}: {e}")
            raise HTTPException(status_code=500, detail=str(e))
        return PublicProfileResponse(**row, help_count=help_count)

    def suggest(self, query: Optional[str] = None, exclude_user_id: Optional[str] = None) -> List[ProfileSuggestion]:
        """Profiles to tag in posts, ordered by name"""
        try:
            builder = self.supabase.table("profiles").select("id, name, avatar_url")
            if query and query.strip():
                builder = builder.ilike("name", f"%{query.strip()}%")
            if exclude_user_id:
                builder = builder.neq("id", exclude_user_id)
            result = builder.order("name")\
                .limit(SUGGESTION_LIMIT)\
                .execute()
            return [ProfileSuggestion(**p) for p in (result.data or [])]
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))
