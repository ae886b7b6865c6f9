from typing import Any, Dict, List
import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from polis.core.storage import BlobStore, BlobStoreError
from polis.deps import get_blob_store, get_db
from polis.modules.posts.models.post import POST_TYPE_EVENT, Post
from polis.modules.posts.schemas.post import EventCreate, PostCreate, PostInfo
from polis.modules.posts.services.post import (
    create_post,
    delete_post,
    get_explore_posts,
    get_post,
    get_posts_by_tag,
    get_user_posts,
    serialize_posts,
)
from polis.modules.user_management.services.user import get_user

logger = logging.getLogger(__name__)

router = APIRouter()


def _check_author_exists(db: Session, user_id: str) -> None:
    if not get_user(db, user_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"User not found: {user_id}",
        )


def _get_post_or_404(db: Session, post_id: str) -> Post:
    post = get_post(db, post_id=post_id)
    if not post:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Post not found",
        )
    return post


def _create(db: Session, post_info: PostInfo, tags: List[str]) -> Dict[str, Any]:
    _check_author_exists(db, post_info.user_id)
    post = create_post(db, post_info, tags)
    return {"success": True, "postId": post.id}


@router.post("/posts", status_code=status.HTTP_201_CREATED, response_model=Dict[str, Any])
def create_new_post(
    *,
    db: Session = Depends(get_db),
    post_in: PostCreate,
) -> Any:
    """
    Create a post (or an event when type is "event") with its tags.
    """
    return _create(db, post_in, post_in.tags)


@router.post("/events", status_code=status.HTTP_201_CREATED, response_model=Dict[str, Any])
def create_new_event(
    *,
    db: Session = Depends(get_db),
    event_in: EventCreate,
) -> Any:
    """
    Create an event and the post it belongs to.
    """
    event_info = event_in.event_info.model_copy(update={"type": POST_TYPE_EVENT})
    return _create(db, event_info, event_in.tags)


@router.get("/posts/by-author", response_model=Dict[str, Any])
def read_posts_by_author(
    authorId: str = Query(..., min_length=1),
    db: Session = Depends(get_db),
) -> Any:
    posts = get_user_posts(db, user_id=authorId)
    return {"success": True, "posts": serialize_posts(db, posts)}


@router.get("/posts/by-tag", response_model=Dict[str, Any])
def read_posts_by_tag(
    tag: str = Query(..., min_length=1),
    db: Session = Depends(get_db),
) -> Any:
    posts = get_posts_by_tag(db, tag.strip())
    return {"success": True, "posts": serialize_posts(db, posts)}


@router.get("/post/by-id", response_model=Dict[str, Any])
def read_post_by_id(
    postId: str = Query(..., min_length=1),
    db: Session = Depends(get_db),
) -> Any:
    post = _get_post_or_404(db, postId)
    return {"success": True, "post": serialize_posts(db, [post])[0]}


@router.get("/explore", response_model=List[Dict[str, Any]])
def read_explore(
    limit: int = Query(10, ge=1, le=50),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
) -> Any:
    """
    Public posts, newest first, paged by offset/limit.
    """
    return serialize_posts(db, get_explore_posts(db, limit=limit, offset=offset))


@router.delete("/post", response_model=Dict[str, Any])
async def delete_post_by_id(
    id: str = Query(..., min_length=1),
    db: Session = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
) -> Any:
    """
    Delete a post. Its event, images and tag links are removed by the
    database. Blob objects are removed afterwards on a best-effort basis.
    """
    post = _get_post_or_404(db, id)
    image_urls = delete_post(db, post)

    for image_url in image_urls:
        try:
            await blob_store.delete(image_url)
        except BlobStoreError as e:
            logger.error(f"Failed to delete image blob {image_url}: {e}")

    return {"success": True, "message": "Post deleted successfully"}
