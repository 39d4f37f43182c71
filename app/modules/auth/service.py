import hashlib
import logging
import time
from supabase import Client
from app.database.supabase_client import SupabaseClient
from app.modules.auth.schemas import (
    LoginRequest, RegisterRequest, TokenResponse, RegisterResponse,
    ChangePasswordRequest, MIN_PASSWORD_LENGTH
)
from fastapi import HTTPException
from typing import Callable, Dict, Any

logger = logging.getLogger(__name__)

# In-memory cache for get_current_user to reduce Supabase auth calls (e.g. many parallel requests with same token)
_AUTH_USER_CACHE: Dict[str, tuple] = {}
_AUTH_CACHE_TTL_SEC = 60
_AUTH_CACHE_MAX_SIZE = 500


def clear_auth_cache():
    _AUTH_USER_CACHE.clear()


def _evict_expired(now: float):
    for key in [k for k, (_, expiry) in _AUTH_USER_CACHE.items() if expiry <= now]:
        del _AUTH_USER_CACHE[key]


class AuthService:
    def __init__(self, supabase: Client, auth_client_factory: Callable[[], Client] = SupabaseClient.new_auth_client):
        self.supabase = supabase
        self.auth_client_factory = auth_client_factory

    def register(self, register_data: RegisterRequest) -> RegisterResponse:
        """Register a new user using Supabase Auth and create their profile row"""
        try:
            auth_response = self.auth_client_factory().auth.sign_up({
                "email": register_data.email,
                "password": register_data.password,
                "options": {
                    "data": {"name": register_data.name}
                }
            })

            if not auth_response.user:
                raise HTTPException(status_code=400, detail="Failed to register user")

            self.supabase.table("profiles").upsert({
                "id": auth_response.user.id,
                "name": register_data.name,
            }).execute()

            logger.info("Registered user %s", auth_response.user.id)
            return RegisterResponse(
                user_id=auth_response.user.id,
                email=auth_response.user.email or register_data.email,
                message="User registered successfully"
            )
        except HTTPException:
            raise
        except Exception as e:
            error_message = str(e)
            if "already registered" in error_message.lower() or "already exists" in error_message.lower():
                raise HTTPException(status_code=400, detail="User already exists")
            logger.error("Registration failed: %s", error_message)
            raise HTTPException(status_code=500, detail=f"Registration failed: {error_message}")

    def login(self, login_data: LoginRequest) -> TokenResponse:
        """Authenticate user using Supabase Auth"""
        try:
            auth_response = self.auth_client_factory().auth.sign_in_with_password({
                "email": login_data.email,
                "password": login_data.password
            })

            if not auth_response.user or not auth_response.session:
                raise HTTPException(status_code=401, detail="Invalid credentials")

            return TokenResponse(
                access_token=auth_response.session.access_token,
                refresh_token=auth_response.session.refresh_token,
                token_type="bearer",
                user_id=auth_response.user.id,
                email=auth_response.user.email or login_data.email
            )
        except HTTPException:
            raise
        except Exception as e:
            error_message = str(e)
            if "invalid" in error_message.lower() or "credentials" in error_message.lower():
                raise HTTPException(status_code=401, detail="Invalid email or password")
            raise HTTPException(status_code=500, detail=f"Login failed: {error_message}")

    def get_current_user(self, token: str) -> Dict[str, Any]:
        """Get current user details from Supabase Auth token. Uses short TTL cache to reduce auth API calls."""
        try:
            cache_key = hashlib.sha256(token.encode()).hexdigest()
            now = time.monotonic()
            if cache_key in _AUTH_USER_CACHE:
                user_data, expiry = _AUTH_USER_CACHE[cache_key]
                if now < expiry:
                    return user_data
                del _AUTH_USER_CACHE[cache_key]
            user_response = self.supabase.auth.get_user(jwt=token)
            if not user_response or not user_response.user:
                raise HTTPException(status_code=401, detail="Invalid or expired token")
            user = user_response.user
            user_data = {
                "id": user.id,
                "email": user.email,
                "user_metadata": user.user_metadata or {},
                "app_metadata": user.app_metadata or {},
                "created_at": user.created_at,
                "updated_at": user.updated_at
            }
            if len(_AUTH_USER_CACHE) >= _AUTH_CACHE_MAX_SIZE:
                _evict_expired(now)
            if len(_AUTH_USER_CACHE) < _AUTH_CACHE_MAX_SIZE:
                _AUTH_USER_CACHE[cache_key] = (user_data, now + _AUTH_CACHE_TTL_SEC)
            return user_data
        except HTTPException:
            raise
        except Exception as e:
            error_msg = str(e)
            if "JWT" in error_msg or "expired" in error_msg.lower() or "invalid" in error_msg.lower():
                raise HTTPException(status_code=401, detail="Invalid or expired token")
            raise HTTPException(status_code=401, detail="Authentication failed")

    def logout(self, token: str) -> bool:
        """Revoke the session behind the token; tokens are JWTs so clients must also drop it"""
        try:
            _AUTH_USER_CACHE.pop(hashlib.sha256(token.encode()).hexdigest(), None)
            self.supabase.auth.admin.sign_out(token)
            return True
        except Exception as e:
            logger.warning("Logout failed: %s", e)
            return False

    def change_password(self, user_data: Dict[str, Any], request: ChangePasswordRequest) -> bool:
        """Verify the current password, then set the new one through the admin API"""
        if not request.current_password or not request.new_password or not request.confirm_password:
            raise HTTPException(status_code=400, detail="All password fields are required")
        if request.new_password != request.confirm_password:
            raise HTTPException(status_code=400, detail="New password and confirmation do not match")
        if len(request.new_password) < MIN_PASSWORD_LENGTH:
            raise HTTPException(
                status_code=400,
                detail=f"New password must be at least {MIN_PASSWORD_LENGTH} characters"
            )

        email = user_data.get("email")
        if not email:
            raise HTTPException(status_code=400, detail="Account has no email address")

        try:
            self.auth_client_factory().auth.sign_in_with_password({
                "email": email,
                "password": request.current_password
            })
        except Exception:
            raise HTTPException(status_code=400, detail="Current password is incorrect")

        try:
            response = self.supabase.auth.admin.update_user_by_id(
                user_data["id"],
                {"password": request.new_password}
            )
            if not response.user:
                raise HTTPException(status_code=404, detail="User not found")
            logger.info("Password changed for user %s", user_data["id"])
            return True
        except HTTPException:
            raise
        except Exception as e:
            logger.error("Password change failed for %s: %s", user_data["id"], e)
            raise HTTPException(status_code=500, detail=f"Failed to change password: {str(e)}")
