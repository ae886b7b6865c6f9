"""Identity endpoints backed by Firebase ID tokens"""
from typing import Any, Dict

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
import logging

from polis.deps import get_current_identity, get_db
from polis.modules.auth.schemas.auth import Identity
from polis.modules.auth.services.session import ensure_user_for_identity

router = APIRouter()
logger = logging.getLogger("polis")


@router.get("/current-user", response_model=Dict[str, Any])
def current_user(
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
) -> Any:
    """
    Return the signed-in identity.
    The first successful call for a uid also creates its user row.
    """
    created = ensure_user_for_identity(db, identity)
    return {"success": True, "user": identity.to_client(), "created": created}
