from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Index, String
from sqlalchemy.sql import func

from polis.db.session import Base


# Directed "follows" edge: follower -> followee
class Friendship(Base):
    __tablename__ = "friendships"

    follower_id = Column(String(50), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    # SQL Server rejects a second cascade path to users
    followee_id = Column(String(50), ForeignKey("users.id"), primary_key=True)
    created_at = Column(DateTime, default=func.now())

    __table_args__ = (
        CheckConstraint("follower_id != followee_id", name="no_self_follow"),
        Index("idx_friendships_followee_id", "followee_id"),
    )
