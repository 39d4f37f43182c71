from pydantic import BaseModel, EmailStr, Field
from typing import Optional, Dict, Any


MIN_PASSWORD_LENGTH = 6


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class TokenResponse(BaseModel):
    access_token: str
    refresh_token: Optional[str] = None
    token_type: str = "bearer"
    user_id: str
    email: str


class RegisterRequest(BaseModel):
    name: str = Field(min_length=1)
    email: EmailStr
    password: str = Field(min_length=MIN_PASSWORD_LENGTH)


class RegisterResponse(BaseModel):
    user_id: str
    email: str
    message: str


class ChangePasswordRequest(BaseModel):
    current_password: str = ""
    new_password: str = ""
    confirm_password: str = ""


class MeResponse(BaseModel):
    id: str
    email: Optional[str] = None
    user_metadata: Dict[str, Any] = {}
    profile: Optional[Dict[str, Any]] = None
