from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
import logging

from polis.deps import get_db
from polis.modules.friendships.schemas.friendship import FriendList, FriendshipCreate
from polis.modules.friendships.services.friendship import (
    add_friend,
    is_following,
    list_friends,
    remove_friend,
)
from polis.modules.user_management.services.user import get_user

router = APIRouter()
logger = logging.getLogger(__name__)


def _check_user_exists(db: Session, user_id: str) -> None:
    """Validate user exists, raise HTTP 404 if not"""
    if not get_user(db, user_id=user_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"User not found: {user_id}",
        )


@router.post("/add-friend", response_model=Dict[str, Any])
def follow_user(
    *,
    db: Session = Depends(get_db),
    friendship_in: FriendshipCreate,
) -> Any:
    follower_id = friendship_in.follower_id
    followee_id = friendship_in.followee_id

    if follower_id == followee_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot follow yourself",
        )
    _check_user_exists(db, follower_id)
    _check_user_exists(db, followee_id)

    created = add_friend(db, follower_id, followee_id)
    message = "Friend added successfully" if created else "Already following this user"
    return {"success": True, "message": message}


@router.get("/friends", response_model=FriendList, response_model_by_alias=True)
def get_friends(
    currentUserId: Optional[str] = None,
    db: Session = Depends(get_db),
) -> Any:
    """Users followed by currentUserId. Without an id the list is empty."""
    return FriendList(friends=list_friends(db, currentUserId))


@router.get("/is-friend", response_model=Dict[str, Any])
def check_is_friend(
    currentUserId: str = Query(..., min_length=1),
    followeeId: str = Query(..., min_length=1),
    db: Session = Depends(get_db),
) -> Any:
    return {"success": True, "isFriend": is_following(db, currentUserId, followeeId)}


@router.delete("/delete-friend", response_model=Dict[str, Any])
def unfollow_user(
    currentUserId: str = Query(..., min_length=1),
    followeeId: str = Query(..., min_length=1),
    db: Session = Depends(get_db),
) -> Any:
    remove_friend(db, currentUserId, followeeId)
    return {"success": True}
