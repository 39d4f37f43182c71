from fastapi import APIRouter, Depends, Query
from app.database.supabase_client import get_supabase
from app.modules.community.schemas import (
    PostCreate, PostUpdate, PostResponse, LikeToggleResponse, CommentCreate, CommentResponse
)
from app.modules.community.service import CommunityService, DEFAULT_PAGE_SIZE
from app.core.dependencies import get_current_user_id
from supabase import Client
from typing import List, Dict

router = APIRouter(prefix="/community", tags=["community"])


def get_community_service(supabase: Client = Depends(get_supabase)) -> CommunityService:
    return CommunityService(supabase)


@router.get("/posts", response_model=List[PostResponse])
async def list_posts(
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=50),
    offset: int = Query(0, ge=0),
    user_data: Dict = Depends(get_current_user_id),
    service: CommunityService = Depends(get_community_service)
):
    """Community feed page, newest first"""
    return service.list_posts(user_data["id"], limit=limit, offset=offset)


@router.post("/posts", response_model=PostResponse, status_code=201)
async def create_post(
    post_data: PostCreate,
    user_data: Dict = Depends(get_current_user_id),
    service: CommunityService = Depends(get_community_service)
):
    return service.create_post(post_data, user_data["id"])


@router.get("/hashtags/{tag}", response_model=List[PostResponse])
async def posts_by_hashtag(
    tag: str,
    user_data: Dict = Depends(get_current_user_id),
    service: CommunityService = Depends(get_community_service)
):
    return service.posts_by_hashtag(tag, user_data["id"])


@router.get("/users/{user_id}/posts", response_model=List[PostResponse])
async def user_posts(
    user_id: str,
    user_data: Dict = Depends(get_current_user_id),
    service: CommunityService = Depends(get_community_service)
):
    """Public posts shown on a user's profile page"""
    return service.user_public_posts(user_id, user_data["id"])


@router.put("/posts/{post_id}", response_model=PostResponse)
async def update_post(
    post_id: str,
    post_data: PostUpdate,
    user_data: Dict = Depends(get_current_user_id),
    service: CommunityService = Depends(get_community_service)
):
    return service.update_post(post_id, post_data, user_data["id"])


@router.delete("/posts/{post_id}", status_code=204)
async def delete_post(
    post_id: str,
    user_data: Dict = Depends(get_current_user_id),
    service: CommunityService = Depends(get_community_service)
):
    service.delete_post(post_id, user_data["id"])
    return None


@router.post("/posts/{post_id}/like", response_model=LikeToggleResponse)
async def toggle_like(
    post_id: str,
    user_data: Dict = Depends(get_current_user_id),
    service: CommunityService = Depends(get_community_service)
):
    return service.toggle_like(post_id, user_data["id"])


@router.get("/posts/{post_id}/comments", response_model=List[CommentResponse])
async def list_comments(
    post_id: str,
    user_data: Dict = Depends(get_current_user_id),
    service: CommunityService = Depends(get_community_service)
):
    return service.list_comments(post_id)


@router.post("/posts/{post_id}/comments", response_model=CommentResponse, status_code=201)
async def add_comment(
    post_id: str,
    comment_data: CommentCreate,
    user_data: Dict = Depends(get_current_user_id),
    service: CommunityService = Depends(get_community_service)
):
    return service.add_comment(post_id, comment_data, user_data["id"])


@router.delete("/comments/{comment_id}", status_code=204)
async def delete_comment(
    comment_id: str,
    user_data: Dict = Depends(get_current_user_id),
    service: CommunityService = Depends(get_community_service)
):
    service.delete_comment(comment_id, user_data["id"])
    return None
