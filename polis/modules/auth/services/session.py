import logging
from sqlalchemy.orm import Session

from polis.modules.auth.schemas.auth import Identity
from polis.modules.user_management.models.user import User
from polis.modules.user_management.services.user import get_user

logger = logging.getLogger("polis")


def ensure_user_for_identity(db: Session, identity: Identity) -> bool:
    """Create the user row on first sign-in. Returns True when it was created."""
    if get_user(db, identity.uid):
        return False

    if not identity.email:
        logger.warning(f"Identity {identity.uid} has no email, user row not created")
        return False

    db.add(User(
        id=identity.uid,
        email=identity.email,
        display_name=identity.display_name,
        photo_url=identity.photo_url,
        post_count=0,
    ))
    db.commit()
    logger.info(f"Created user {identity.uid} on first sign-in")
    return True
