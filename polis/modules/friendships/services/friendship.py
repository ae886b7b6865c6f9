from typing import List, Optional
import logging
from sqlalchemy.orm import Session

from polis.modules.friendships.models.friendship import Friendship
from polis.modules.friendships.schemas.friendship import Followee
from polis.modules.user_management.models.user import User

logger = logging.getLogger(__name__)


def get_friendship(db: Session, follower_id: str, followee_id: str) -> Optional[Friendship]:
    """Get the directed edge follower -> followee"""
    return db.query(Friendship).filter(
        Friendship.follower_id == follower_id,
        Friendship.followee_id == followee_id,
    ).first()


def is_following(db: Session, follower_id: str, followee_id: str) -> bool:
    return get_friendship(db, follower_id, followee_id) is not None


def add_friend(db: Session, follower_id: str, followee_id: str) -> bool:
    """Insert the edge if it is absent. Returns False when it already existed."""
    if get_friendship(db, follower_id, followee_id):
        return False

    try:
        db.add(Friendship(follower_id=follower_id, followee_id=followee_id))
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info(f"{follower_id} now follows {followee_id}")
    return True


def remove_friend(db: Session, follower_id: str, followee_id: str) -> int:
    """Delete the edge. Absent edges are not an error."""
    try:
        deleted = db.query(Friendship).filter(
            Friendship.follower_id == follower_id,
            Friendship.followee_id == followee_id,
        ).delete(synchronize_session=False)
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info(f"Removed {deleted} follow edge(s) {follower_id} -> {followee_id}")
    return deleted


def list_friends(db: Session, follower_id: Optional[str]) -> List[Followee]:
    """Everyone the user follows, by display name"""
    if not follower_id:
        return []

    rows = (
        db.query(Friendship.followee_id, User.display_name)
        .join(User, User.id == Friendship.followee_id)
        .filter(Friendship.follower_id == follower_id)
        .order_by(User.display_name, Friendship.followee_id)
        .all()
    )
    return [Followee(followee_id=followee_id, followee_name=name) for followee_id, name in rows]
