from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
import logging

from polis.deps import get_db
from polis.modules.user_management.schemas.user import User as UserSchema, UserUpsert
from polis.modules.user_management.services.user import (
    email_taken_by_other,
    get_user,
    update_user,
    upsert_user,
)

router = APIRouter()
logger = logging.getLogger("polis")


def _check_email_available(db: Session, user_in: UserUpsert) -> None:
    if email_taken_by_other(db, user_in.email, user_in.uid):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Email is already used by another user",
        )


@router.post("/user", status_code=status.HTTP_201_CREATED, response_model=Dict[str, Any])
def create_user(
    *,
    db: Session = Depends(get_db),
    user_in: UserUpsert,
) -> Any:
    """Create the user, or update it if the uid already exists"""
    _check_email_available(db, user_in)
    _, created = upsert_user(db, user_in)
    message = "User created successfully" if created else "User already exists, profile updated"
    return {"success": True, "message": message}


@router.put("/user", response_model=Dict[str, Any])
def update_user_profile(
    *,
    db: Session = Depends(get_db),
    user_in: UserUpsert,
) -> Any:
    user = get_user(db, user_in.uid)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found",
        )
    _check_email_available(db, user_in)
    update_user(db, user, user_in)
    return {"success": True, "message": "User updated successfully"}


@router.get("/user", response_model=Dict[str, Any])
def read_user(
    uid: str = Query(..., min_length=1),
    db: Session = Depends(get_db),
) -> Any:
    user = get_user(db, uid)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found",
        )
    return {"success": True, "user": UserSchema.model_validate(user).model_dump(by_alias=True)}
