from supabase import Client
from app.modules.community.schemas import (
    PostCreate, PostUpdate, PostResponse, AuthorProfile, TaggedProfile,
    LikeToggleResponse, CommentCreate, CommentResponse
)
from app.database.supabase_client import is_unique_violation
from typing import List, Optional, Dict, Any
from fastapi import HTTPException
from datetime import datetime, timezone
import logging
import re

logger = logging.getLogger(__name__)

HASHTAG_PATTERN = re.compile(r"#(\w+)")
POST_SELECT = (
    "*, profiles!community_posts_user_id_fkey(name, avatar_url, is_verified), "
    "post_likes(user_id), post_comments(id)"
)
COMMENT_SELECT = "*, profiles!post_comments_user_id_fkey(name, avatar_url, is_verified)"
DEFAULT_PAGE_SIZE = 10


def extract_hashtags(content: str) -> List[str]:
    """'#cứutrợ #lũ' -> ['cứutrợ', 'lũ'], order kept"""
    return HASHTAG_PATTERN.findall(content or "")


def _author(row: Dict[str, Any]) -> Optional[AuthorProfile]:
    embedded = row.get("profiles")
    return AuthorProfile(**embedded) if isinstance(embedded, dict) else None


def to_post_response(
    row: Dict[str, Any],
    viewer_id: Optional[str] = None,
    tagged_profiles: Optional[Dict[str, TaggedProfile]] = None
) -> PostResponse:
    likes = row.get("post_likes")
    comments = row.get("post_comments")
    tagged_users = row.get("tagged_users") or []
    tagged_profiles = tagged_profiles or {}
    return PostResponse(
        id=row["id"],
        user_id=row["user_id"],
        content=row.get("content") or "",
        images=row.get("images") or [],
        hashtags=row.get("hashtags") or [],
        tagged_users=tagged_users,
        tagged_users_profiles=[tagged_profiles[uid] for uid in tagged_users if uid in tagged_profiles],
        privacy_level=row.get("privacy_level") or "public",
        likes_count=len(likes) if isinstance(likes, list) else (row.get("likes_count") or 0),
        comments_count=len(comments) if isinstance(comments, list) else (row.get("comments_count") or 0),
        liked_by_me=bool(viewer_id) and any(
            like.get("user_id") == viewer_id for like in (likes or [])
        ),
        author=_author(row),
        created_at=row.get("created_at"),
        updated_at=row.get("updated_at"),
    )


class CommunityService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def _tagged_profiles(self, rows: List[Dict[str, Any]]) -> Dict[str, TaggedProfile]:
        """One profiles lookup for every user tagged across the given posts"""
        ids = sorted({uid for row in rows for uid in (row.get("tagged_users") or [])})
        if not ids:
            return {}
        try:
            result = self.supabase.table("profiles")\
                .select("id, name, avatar_url")\
                .in_("id", ids)\
                .execute()
            return {p["id"]: TaggedProfile(**p) for p in (result.data or [])}
        except Exception as e:
            logger.error("Error fetching tagged users: %s", e)
            return {}

    def _to_responses(self, rows: List[Dict[str, Any]], viewer_id: str) -> List[PostResponse]:
        tagged = self._tagged_profiles(rows)
        return [to_post_response(row, viewer_id, tagged) for row in rows]

    def list_posts(self, viewer_id: str, limit: int = DEFAULT_PAGE_SIZE, offset: int = 0) -> List[PostResponse]:
        """Feed page, newest first: public posts plus the viewer's own"""
        try:
            result = self.supabase.table("community_posts")\
                .select(POST_SELECT)\
                .or_(f"privacy_level.eq.public,privacy_level.is.null,user_id.eq.{viewer_id}")\
                .order("created_at", desc=True)\
                .range(offset, offset + limit - 1)\
                .execute()
            return self._to_responses(result.data or [], viewer_id)
        except Exception as e:
            logger.error(f"Error fetching posts: {e}")
            raise HTTPException(status_code=500, detail=str(e))

    def posts_by_hashtag(self, tag: str, viewer_id: str) -> List[PostResponse]:
        tag = tag.lstrip("#")
        try:
            result = self.supabase.table("community_posts")\
                .select(POST_SELECT)\
                .contains("hashtags", [tag])\
                .or_(f"privacy_level.eq.public,privacy_level.is.null,user_id.eq.{viewer_id}")\
                .order("created_at", desc=True)\
                .execute()
            return self._to_responses(result.data or [], viewer_id)
        except Exception as e:
            logger.error(f"Error fetching posts for #{tag}: {e}")
            raise HTTPException(status_code=500, detail=str(e))

    def user_public_posts(self, user_id: str, viewer_id: str) -> List[PostResponse]:
        try:
            result = self.supabase.table("community_posts")\
                .select(POST_SELECT)\
                .eq("user_id", user_id)\
                .eq("privacy_level", "public")\
                .order("created_at", desc=True)\
                .execute()
            return self._to_responses(result.data or [], viewer_id)
        except Exception as e:
            logger.error(f"Error fetching posts of {user_id}: {e}")
            raise HTTPException(status_code=500, detail=str(e))

    def get_post_row(self, post_id: str) -> Dict[str, Any]:
        try:
            result = self.supabase.table("community_posts")\
                .select(POST_SELECT)\
                .eq("id", post_id)\
                .maybe_single()\
                .execute()

            if not result or not result.data:
                raise HTTPException(status_code=404, detail="Post not found")

            return result.data
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def _own_post(self, post_id: str, user_id: str) -> Dict[str, Any]:
        post = self.get_post_row(post_id)
        if post.get("user_id") != user_id:
            raise HTTPException(status_code=403, detail="You can only change your own posts")
        return post

    def create_post(self, post_data: PostCreate, user_id: str) -> PostResponse:
        try:
            result = self.supabase.table("community_posts").insert({
                "user_id": user_id,
                "content": post_data.content,
                "images": post_data.images,
                "hashtags": extract_hashtags(post_data.content),
                "tagged_users": post_data.tagged_users or None,
                "privacy_level": post_data.privacy_level,
            }).execute()

            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to create post")

            logger.info("Post %s created by %s", result.data[0]["id"], user_id)
            return self.get_post(result.data[0]["id"], user_id)
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Error creating post: {e}")
            raise HTTPException(status_code=500, detail=str(e))

    def get_post(self, post_id: str, viewer_id: str) -> PostResponse:
        row = self.get_post_row(post_id)
        return to_post_response(row, viewer_id, self._tagged_profiles([row]))

    def update_post(self, post_id: str, post_data: PostUpdate, user_id: str) -> PostResponse:
        self._own_post(post_id, user_id)
        update_data = {
            "content": post_data.content,
            "hashtags": extract_hashtags(post_data.content),
            "updated_at": datetime.now(timezone.utc).isoformat(),
        }
        if post_data.images is not None:
            update_data["images"] = post_data.images
        if post_data.privacy_level is not None:
            update_data["privacy_level"] = post_data.privacy_level
        try:
            self.supabase.table("community_posts")\
                .update(update_data)\
                .eq("id", post_id)\
                .eq("user_id", user_id)\
                .execute()
        except Exception as e:
            logger.error(f"Error updating post {post_id}: {e}")
            raise HTTPException(status_code=500, detail=str(e))
        return self.get_post(post_id, user_id)

    def delete_post(self, post_id: str, user_id: str) -> bool:
        self._own_post(post_id, user_id)
        try:
            self.supabase.table("community_posts")\
                .delete()\
                .eq("id", post_id)\
                .eq("user_id", user_id)\
                .execute()
            return True
        except Exception as e:
            logger.error(f"Error deleting post {post_id}: {e}")
            raise HTTPException(status_code=500, detail=str(e))

    def _likes_count(self, post_id: str) -> int:
        result = self.supabase.table("post_likes")\
            .select("user_id")\
            .eq("post_id", post_id)\
            .execute()
        return len(result.data or [])

    def toggle_like(self, post_id: str, user_id: str) -> LikeToggleResponse:
        """Like when not yet liked, unlike otherwise"""
        self.get_post_row(post_id)
        try:
            existing = self.supabase.table("post_likes")\
                .select("id")\
                .eq("post_id", post_id)\
                .eq("user_id", user_id)\
                .execute()

            if existing.data:
                self.supabase.table("post_likes")\
                    .delete()\
                    .eq("post_id", post_id)\
                    .eq("user_id", user_id)\
                    .execute()
                liked = False
            else:
                try:
                    self.supabase.table("post_likes").insert({
                        "post_id": post_id,
                        "user_id": user_id,
                    }).execute()
                except Exception as e:
                    # A concurrent like from the same user already landed
                    if not is_unique_violation(e):
                        raise
                liked = True

            return LikeToggleResponse(post_id=post_id, liked=liked, likes_count=self._likes_count(post_id))
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Error toggling like on {post_id}: {e}")
            raise HTTPException(status_code=500, detail=str(e))

    def list_comments(self, post_id: str) -> List[CommentResponse]:
        try:
            result = self.supabase.table("post_comments")\
                .select(COMMENT_SELECT)\
                .eq("post_id", post_id)\
                .order("created_at")\
                .execute()
            return [
                CommentResponse(**{k: v for k, v in row.items() if k != "profiles"}, author=_author(row))
                for row in (result.data or [])
            ]
        except Exception as e:
            logger.error(f"Error fetching comments for {post_id}: {e}")
            raise HTTPException(status_code=500, detail=str(e))

    def add_comment(self, post_id: str, comment_data: CommentCreate, user_id: str) -> CommentResponse:
        self.get_post_row(post_id)
        try:
            result = self.supabase.table("post_comments").insert({
                "post_id": post_id,
                "user_id": user_id,
                "content": comment_data.content,
            }).execute()

            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to add comment")

            profile = self.supabase.table("profiles")\
                .select("name, avatar_url, is_verified")\
                .eq("id", user_id)\
                .maybe_single()\
                .execute()
            row = result.data[0]
            author = AuthorProfile(**profile.data) if profile and profile.data else None
            return CommentResponse(**{k: v for k, v in row.items() if k != "profiles"}, author=author)
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Error adding comment to {post_id}: {e}")
            raise HTTPException(status_code=500, detail=str(e))

    def delete_comment(self, comment_id: str, user_id: str) -> bool:
        try:
            result = self.supabase.table("post_comments")\
                .select("id, user_id")\
                .eq("id", comment_id)\
                .maybe_single()\
                .execute()
            if not result or not result.data:
                raise HTTPException(status_code=404, detail="Comment not found")
            if result.data.get("user_id") != user_id:
                raise HTTPException(status_code=403, detail="You can only delete your own comments")

            self.supabase.table("post_comments")\
                .delete()\
                .eq("id", comment_id)\
                .eq("user_id", user_id)\
                .execute()
            return True
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Error deleting comment {comment_id}: {e}")
            raise HTTPException(status_code=500, detail=str(e))
