from pydantic import BaseModel, Field, field_validator
from typing import Optional
from datetime import datetime

MAX_MESSAGE_LENGTH = 2000


class ChatMessageCreate(BaseModel):
    receiver_id: str
    content: str = Field(..., max_length=MAX_MESSAGE_LENGTH)

    @field_validator("content")
    @classmethod
    def strip_content(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Message cannot be empty")
        return value.strip()


class ChatMessageResponse(BaseModel):
    id: str
    sos_request_id: str
    sender_id: str
    receiver_id: str
    content: str
    is_read: bool = False
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class MarkReadResponse(BaseModel):
    marked: int


class UnreadCountResponse(BaseModel):
    unread_count: int
