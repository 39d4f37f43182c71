from pydantic import BaseModel, Field, field_validator
from typing import Optional, List, Literal
from datetime import datetime

PrivacyLevel = Literal["public", "friends", "private"]

MAX_POST_LENGTH = 5000
MAX_COMMENT_LENGTH = 1000


class PostCreate(BaseModel):
    content: str = Field(..., max_length=MAX_POST_LENGTH)
    images: List[str] = []
    tagged_users: List[str] = []
    privacy_level: PrivacyLevel = "public"

    @field_validator("content")
    @classmethod
    def check_content(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Post content cannot be empty")
        return value.strip()


class PostUpdate(BaseModel):
    content: str = Field(..., max_length=MAX_POST_LENGTH)
    images: Optional[List[str]] = None
    privacy_level: Optional[PrivacyLevel] = None

    @field_validator("content")
    @classmethod
    def check_content(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Post content cannot be empty")
        return value.strip()


class AuthorProfile(BaseModel):
    name: Optional[str] = None
    avatar_url: Optional[str] = None
    is_verified: Optional[bool] = False


class TaggedProfile(BaseModel):
    id: str
    name: Optional[str] = None
    avatar_url: Optional[str] = None


class PostResponse(BaseModel):
    id: str
    user_id: str
    content: str
    images: List[str] = []
    hashtags: List[str] = []
    tagged_users: List[str] = []
    tagged_users_profiles: List[TaggedProfile] = []
    privacy_level: str = "public"
    likes_count: int = 0
    comments_count: int = 0
    liked_by_me: bool = False
    author: Optional[AuthorProfile] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class LikeToggleResponse(BaseModel):
    post_id: str
    liked: bool
    likes_count: int


class CommentCreate(BaseModel):
    content: str = Field(..., max_length=MAX_COMMENT_LENGTH)

    @field_validator("content")
    @classmethod
    def check_content(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Comment cannot be empty")
        return value.strip()


class CommentResponse(BaseModel):
    id: str
    post_id: str
    user_id: str
    content: str
    author: Optional[AuthorProfile] = None
    created_at: Optional[datetime] = None
