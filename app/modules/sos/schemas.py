from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Optional, List, Dict
from datetime import datetime
from app.modules.help_offers.schemas import HelpOfferResponse


# Lifecycle: active -> helping -> completed, active -> cancelled
STATUS_ACTIVE = "active"
STATUS_HELPING = "helping"
STATUS_COMPLETED = "completed"
STATUS_CANCELLED = "cancelled"
OPEN_STATUSES = (STATUS_ACTIVE, STATUS_HELPING)

SOS_TYPES = (
    "Y tế khẩn cấp",
    "Sơ tán",
    "Cứu hộ",
    "Thực phẩm",
    "Nước uống",
    "Chỗ ở",
    "Thuốc men",
    "Quần áo",
    "Vận chuyển",
    "Liên lạc",
    "Điện",
    "Vệ sinh",
    "Khác",
)

URGENCY_HIGH = "Khẩn cấp"
URGENCY_MEDIUM = "Trung bình"
URGENCY_LOW = "Thấp"
URGENCY_LEVELS = (URGENCY_HIGH, URGENCY_MEDIUM, URGENCY_LOW)


class SOSCreate(BaseModel):
    type: str
    description: str
    urgency: str
    people_affected: int = Field(default=1, ge=1)
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)
    manual_address: Optional[str] = None
    images: Optional[List[str]] = None

    @field_validator("type")
    @classmethod
    def check_type(cls, value: str) -> str:
        if value not in SOS_TYPES:
            raise ValueError(f"Unknown SOS type: {value}")
        return value

    @field_validator("urgency")
    @classmethod
    def check_urgency(cls, value: str) -> str:
        if value not in URGENCY_LEVELS:
            raise ValueError(f"Unknown urgency: {value}")
        return value

    @field_validator("description")
    @classmethod
    def check_description(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Description is required")
        return value.strip()

    @model_validator(mode="after")
    def require_both_coordinates(self):
        if (self.latitude is None) != (self.longitude is None):
            raise ValueError("latitude and longitude must be provided together")
        return self


class SOSResponse(BaseModel):
    id: str
    type: str
    description: Optional[str] = None
    urgency: Optional[str] = None
    people_affected: Optional[int] = None
    latitude: float
    longitude: float
    status: Optional[str] = None
    user_id: str
    helper_id: Optional[str] = None
    manual_address: Optional[str] = None
    images: Optional[List[str]] = None
    created_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    requester_name: Optional[str] = None
    helper_name: Optional[str] = None

    class Config:
        from_attributes = True


class SOSFeedItem(SOSResponse):
    marker_color: str
    marker_title: str


class ActiveSOSResponse(BaseModel):
    sos: Optional[SOSResponse] = None
    offers: List[HelpOfferResponse] = []


class RequestHistoryResponse(BaseModel):
    requests: List[SOSResponse]
    # pending offers per active SOS id (every active id present, possibly empty)
    offers: Dict[str, List[HelpOfferResponse]]


class RecentActivityResponse(BaseModel):
    requests: List[SOSResponse]
    helps: List[SOSResponse]


class RouteInfoResponse(BaseModel):
    sos_request_id: str
    distance: Optional[str] = None
    duration: Optional[str] = None
    directions_url: str
