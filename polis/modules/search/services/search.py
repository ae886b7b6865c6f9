from typing import List
import logging

from sqlalchemy import func
from sqlalchemy.orm import Session

from polis.modules.posts.models.post import Tag
from polis.modules.search.schemas.search import MAX_RESULTS, Suggestion, UserMatch
from polis.modules.user_management.models.user import User

logger = logging.getLogger(__name__)

ESCAPE_CHAR = "\\"


def prefix_pattern(term: str) -> str:
    """LIKE pattern matching values that start with term, wildcards taken literally"""
    escaped = term.replace(ESCAPE_CHAR, ESCAPE_CHAR * 2)
    for wildcard in ("%", "_", "["):
        escaped = escaped.replace(wildcard, ESCAPE_CHAR + wildcard)
    return f"{escaped}%"


def search_users(db: Session, term: str, limit: int = MAX_RESULTS) -> List[UserMatch]:
    """Users whose display name starts with term, matched and sorted ignoring case"""
    logger.info(f"Searching users with prefix '{term}'")
    users = (
        db.query(User.id, User.display_name)
        .filter(User.display_name.ilike(prefix_pattern(term), escape=ESCAPE_CHAR))
        .order_by(func.lower(User.display_name), User.id)
        .limit(limit)
        .all()
    )
    return [UserMatch(display_name=name, id=user_id) for user_id, name in users]


def search_tags(db: Session, term: str, limit: int = MAX_RESULTS) -> List[Tag]:
    return (
        db.query(Tag)
        .filter(Tag.name.ilike(prefix_pattern(term), escape=ESCAPE_CHAR))
        .order_by(func.lower(Tag.name))
        .limit(limit)
        .all()
    )


def search_users_and_tags(db: Session, term: str) -> List[Suggestion]:
    """Up to five users, then up to five tags"""
    suggestions = [
        Suggestion(name=user.display_name, id=user.id, is_tag=False)
        for user in search_users(db, term)
    ]
    suggestions.extend(
        Suggestion(name=tag.name, id=tag.id, is_tag=True)
        for tag in search_tags(db, term)
    )
    return suggestions
