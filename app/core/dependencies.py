"""
Core dependencies for route protection and ownership checks
"""

from fastapi import Depends, HTTPException, Security, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from app.database.supabase_client import get_supabase
from app.modules.auth.service import AuthService
from app.modules.profiles.service import ProfileService
from supabase import Client
from typing import Dict, Any
import logging

logger = logging.getLogger(__name__)

security = HTTPBearer()


def get_auth_service(supabase: Client = Depends(get_supabase)) -> AuthService:
    return AuthService(supabase)


def get_current_token(
    credentials: HTTPAuthorizationCredentials = Security(security)
) -> str:
    """Extract JWT token from Authorization header"""
    return credentials.credentials


def get_current_user_id(
    token: str = Depends(get_current_token),
    auth_service: AuthService = Depends(get_auth_service)
) -> dict:
    """Extract current user info from JWT token"""
    return auth_service.get_current_user(token)


def get_current_profile(
    user_data: dict = Depends(get_current_user_id),
    supabase: Client = Depends(get_supabase)
) -> Dict[str, Any]:
    """Profile row of the authenticated user (404 when the profile was never created)"""
    return ProfileService(supabase).get_profile_row(user_data["id"])


def is_sos_owner(sos: Dict[str, Any], user_id: str) -> bool:
    return sos.get("user_id") == user_id


def is_sos_participant(sos: Dict[str, Any], user_id: str) -> bool:
    """Requester or assigned helper of the SOS"""
    return user_id in (sos.get("user_id"), sos.get("helper_id"))


def require_sos_owner(sos: Dict[str, Any], user_id: str) -> Dict[str, Any]:
    if not is_sos_owner(sos, user_id):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only the requester of this SOS can perform this action"
        )
    return sos


def require_sos_participant(sos: Dict[str, Any], user_id: str) -> Dict[str, Any]:
    if not is_sos_participant(sos, user_id):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You must be the requester or the helper of this SOS"
        )
    return sos
