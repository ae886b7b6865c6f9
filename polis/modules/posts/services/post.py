from typing import Dict, List, Optional
import hashlib
import logging
import uuid
from collections import defaultdict
from datetime import datetime, timezone

from sqlalchemy.orm import Session

from polis.modules.posts.models.post import POST_TYPE_EVENT, Event, Image, Post, PostTag, Tag
from polis.modules.posts.schemas.post import PostInfo, canonical_tag
from polis.modules.user_management.models.user import User

logger = logging.getLogger(__name__)


def tag_id_for(name: str) -> str:
    """Content-addressed tag id: sha256 hex digest of the canonical tag text"""
    return hashlib.sha256(canonical_tag(name).encode("utf-8")).hexdigest()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def get_post(db: Session, post_id: str) -> Optional[Post]:
    """Get post by ID"""
    return db.query(Post).filter(Post.id == post_id).first()


def _newest_first(query):
    return query.order_by(Post.created_at.desc(), Post.id.desc())


def get_user_posts(db: Session, user_id: str) -> List[Post]:
    """Get posts by user ID, newest first"""
    logger.info(f"Getting posts for user ID: {user_id}")
    return _newest_first(db.query(Post).filter(Post.user_id == user_id)).all()


def get_posts_by_tag(db: Session, tag_name: str) -> List[Post]:
    """Get posts carrying the tag, newest first. Unknown tags give an empty list."""
    logger.info(f"Getting posts for tag: {tag_name}")
    query = (
        db.query(Post)
        .join(PostTag, PostTag.post_id == Post.id)
        .filter(PostTag.tag_id == tag_id_for(tag_name))
    )
    return _newest_first(query).all()


def get_explore_posts(db: Session, limit: int = 10, offset: int = 0) -> List[Post]:
    """Public posts in stable newest-first order"""
    logger.info(f"Getting explore posts with offset={offset}, limit={limit}")
    query = db.query(Post).filter(Post.private.is_(False))
    return _newest_first(query).offset(offset).limit(limit).all()


def create_post(db: Session, post_info: PostInfo, tags: List[str]) -> Post:
    """
    Create a post in a single transaction.

    Inserts the post, its event row for events, and for every tag the tag
    itself (when new) plus the post/tag link. The author's post_count is
    incremented. Any failure rolls everything back.
    """
    post_id = str(uuid.uuid4())
    now = _utcnow()
    logger.info(f"Creating {post_info.type} {post_id} for user ID: {post_info.user_id} with tags {tags}")

    try:
        post = Post(
            id=post_id,
            user_id=post_info.user_id,
            type=post_info.type,
            title=post_info.title,
            description=post_info.description,
            latitude=post_info.latitude,
            longitude=post_info.longitude,
            latitude_delta=post_info.latitude_delta,
            longitude_delta=post_info.longitude_delta,
            private=post_info.private,
            created_at=now,
            updated_at=now,
        )
        db.add(post)
        db.flush()

        if post_info.type == POST_TYPE_EVENT:
            db.add(Event(post_id=post_id, event_start=post_info.event_start, event_end=post_info.event_end))
            db.flush()

        for name in tags:
            tag_id = tag_id_for(name)
            if db.get(Tag, tag_id) is None:
                db.add(Tag(id=tag_id, name=name))
                db.flush()
            db.add(PostTag(post_id=post_id, tag_id=tag_id))
            db.flush()

        db.query(User).filter(User.id == post_info.user_id).update(
            {User.post_count: User.post_count + 1}, synchronize_session=False
        )
        db.commit()
    except Exception:
        logger.error(f"Rolling back creation of post {post_id}")
        db.rollback()
        raise

    db.refresh(post)
    return post


def delete_post(db: Session, post: Post) -> List[str]:
    """
    Delete a post. Events, images and post/tag links go with it through
    ON DELETE CASCADE. Returns the image URLs the post had so the caller
    can remove the blobs.
    """
    logger.info(f"Deleting post with ID: {post.id}")
    post_id, user_id = post.id, post.user_id
    image_urls = [url for (url,) in db.query(Image.image_url).filter(Image.post_id == post_id).all()]

    try:
        db.query(User).filter(User.id == user_id, User.post_count > 0).update(
            {User.post_count: User.post_count - 1}, synchronize_session=False
        )
        db.query(Post).filter(Post.id == post_id).delete(synchronize_session=False)
        db.commit()
    except Exception:
        db.rollback()
        raise

    return image_urls


def serialize_posts(db: Session, posts: List[Post]) -> List[Dict]:
    """Posts in the client's display shape: {postInfo, images, tags}"""
    if not posts:
        return []
    post_ids = [post.id for post in posts]

    events = {event.post_id: event for event in db.query(Event).filter(Event.post_id.in_(post_ids)).all()}

    images = defaultdict(list)
    image_rows = (
        db.query(Image.post_id, Image.image_url)
        .filter(Image.post_id.in_(post_ids))
        .order_by(Image.post_id, Image.position, Image.id)
        .all()
    )
    for post_id, image_url in image_rows:
        images[post_id].append(image_url)

    tags = defaultdict(list)
    tag_rows = (
        db.query(PostTag.post_id, Tag.name)
        .join(Tag, Tag.id == PostTag.tag_id)
        .filter(PostTag.post_id.in_(post_ids))
        .order_by(Tag.name)
        .all()
    )
    for post_id, name in tag_rows:
        tags[post_id].append(name)

    return [
        {
            "postInfo": _post_info(post, events.get(post.id)),
            "images": images[post.id],
            "tags": tags[post.id],
        }
        for post in posts
    ]


def _post_info(post: Post, event: Optional[Event]) -> Dict:
    info = {
        "postId": post.id,
        "userId": post.user_id,
        "type": post.type,
        "title": post.title,
        "description": post.description,
        "date": post.created_at,
        "latitude": post.latitude,
        "latitudeDelta": post.latitude_delta,
        "longitude": post.longitude,
        "longitudeDelta": post.longitude_delta,
        "private": post.private,
    }
    if post.type == POST_TYPE_EVENT:
        info["eventStart"] = event.event_start if event else None
        info["eventEnd"] = event.event_end if event else None
    return info
