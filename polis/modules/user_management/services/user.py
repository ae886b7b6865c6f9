from typing import Optional, Tuple
import logging
from sqlalchemy.orm import Session

from polis.modules.user_management.models.user import User
from polis.modules.user_management.schemas.user import UserUpsert

logger = logging.getLogger(__name__)


def get_user(db: Session, user_id: str) -> Optional[User]:
    """Get user by ID"""
    return db.query(User).filter(User.id == user_id).first()


def get_user_by_email(db: Session, email: str) -> Optional[User]:
    """Get user by email"""
    return db.query(User).filter(User.email == email).first()


def email_taken_by_other(db: Session, email: str, user_id: str) -> bool:
    owner = get_user_by_email(db, email)
    return owner is not None and owner.id != user_id


def update_user(db: Session, user: User, user_in: UserUpsert) -> User:
    """Update user with the supplied fields. Omitted profile fields are kept."""
    update_data = user_in.model_dump(exclude_unset=True, exclude={"uid"})

    for field, value in update_data.items():
        setattr(user, field, value)

    db.commit()
    db.refresh(user)
    return user


def upsert_user(db: Session, user_in: UserUpsert) -> Tuple[User, bool]:
    """
    Create the user, or merge the supplied fields into the existing row.
    Returns (user, created).
    """
    user = get_user(db, user_in.uid)
    if user:
        logger.info(f"User {user_in.uid} already exists, merging profile fields")
        return update_user(db, user, user_in), False

    user = User(
        id=user_in.uid,
        email=user_in.email,
        display_name=user_in.display_name,
        photo_url=user_in.photo_url,
        post_count=0,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info(f"Created user {user.id}")
    return user, True
