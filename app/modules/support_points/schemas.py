from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Optional, List, Dict, Any
from datetime import datetime

SUPPORT_POINT_TYPES = (
    "Quán nước miễn phí",
    "Điểm trú tránh thiên tai",
    "Nhà dân/cá nhân hỗ trợ",
    "Tổ chức/nhóm từ thiện",
)
TYPE_ALL = "all"


class SupportPointCreate(BaseModel):
    name: str = Field(..., max_length=200)
    type: str
    description: Optional[str] = None
    operating_hours: Optional[str] = None
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)
    address: Optional[str] = None
    phone: Optional[str] = None

    @field_validator("name")
    @classmethod
    def check_name(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Name is required")
        return value.strip()

    @field_validator("type")
    @classmethod
    def check_type(cls, value: str) -> str:
        if value not in SUPPORT_POINT_TYPES:
            raise ValueError(f"Unknown support point type: {value}")
        return value

    @model_validator(mode="after")
    def require_both_coordinates(self):
        if (self.latitude is None) != (self.longitude is None):
            raise ValueError("latitude and longitude must be provided together")
        return self


class SupportPointResponse(BaseModel):
    id: str
    name: str
    type: str
    description: Optional[str] = None
    operating_hours: Optional[str] = None
    is_verified: Optional[bool] = None
    is_active: Optional[bool] = None
    latitude: float
    longitude: float
    address: Optional[str] = None
    contact_info: Optional[Dict[str, Any]] = None
    images: Optional[List[str]] = None
    owner_id: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
