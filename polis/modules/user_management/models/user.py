from sqlalchemy import Column, DateTime, Integer, String
from sqlalchemy.sql import func

from polis.db.session import Base


class User(Base):
    __tablename__ = "users"

    id = Column(String(50), primary_key=True)  # identity provider UID
    email = Column(String(255), unique=True, nullable=False)
    display_name = Column(String(255), nullable=True)
    photo_url = Column(String(500), nullable=True)
    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())
    post_count = Column(Integer, nullable=False, default=0)
