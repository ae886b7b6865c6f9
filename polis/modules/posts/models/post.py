from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, Integer, Numeric, String, Text
from sqlalchemy.sql import func

from polis.db.session import Base

POST_TYPE_POST = "post"
POST_TYPE_EVENT = "event"


def _coordinate():
    return Column(Numeric(20, 17, asdecimal=False), nullable=False)


class Post(Base):
    __tablename__ = "posts"

    id = Column(String(36), primary_key=True)
    user_id = Column(String(50), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    type = Column(String(10), nullable=False, default=POST_TYPE_POST)
    title = Column(String(45), nullable=False)
    description = Column(Text, nullable=False)
    latitude = _coordinate()
    longitude = _coordinate()
    latitude_delta = _coordinate()
    longitude_delta = _coordinate()
    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())
    private = Column(Boolean, nullable=False, default=False)

    __table_args__ = (
        Index("idx_posts_user_id", "user_id"),
        Index("idx_posts_created_at", "created_at"),
    )


class Event(Base):
    __tablename__ = "events"

    post_id = Column(String(36), ForeignKey("posts.id", ondelete="CASCADE"), primary_key=True)
    event_start = Column(DateTime, nullable=True)
    event_end = Column(DateTime, nullable=True)


class Image(Base):
    __tablename__ = "images"

    id = Column(String(36), primary_key=True)
    post_id = Column(String(36), ForeignKey("posts.id", ondelete="CASCADE"), nullable=False)
    image_url = Column(String(1000), nullable=False)
    position = Column(Integer, nullable=False, default=0)  # upload order within the post
    created_at = Column(DateTime, default=func.now())

    __table_args__ = (Index("idx_images_post_id", "post_id", "position"),)


class Tag(Base):
    __tablename__ = "tags"

    id = Column(String(64), primary_key=True)  # sha256 hex of the name
    name = Column(String(100), unique=True, nullable=False)


class PostTag(Base):
    __tablename__ = "post_tags"

    post_id = Column(String(36), ForeignKey("posts.id", ondelete="CASCADE"), primary_key=True)
    tag_id = Column(String(64), ForeignKey("tags.id", ondelete="CASCADE"), primary_key=True)

    __table_args__ = (
        Index("idx_post_tags_post_id", "post_id"),
        Index("idx_post_tags_tag_id", "tag_id"),
    )
