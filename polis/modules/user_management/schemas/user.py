from typing import Optional
from datetime import datetime
from pydantic import BaseModel, ConfigDict, EmailStr, Field


class UserBase(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    display_name: Optional[str] = Field(None, alias="displayName", max_length=255)
    photo_url: Optional[str] = Field(None, alias="photoURL", max_length=500)


class UserUpsert(UserBase):
    """Body of POST/PUT /user"""
    uid: str = Field(..., min_length=1, max_length=50)
    email: EmailStr


class User(BaseModel):
    """User model returned to client"""
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: str = Field(..., serialization_alias="uid")
    email: str
    display_name: Optional[str] = Field(None, serialization_alias="displayName")
    photo_url: Optional[str] = Field(None, serialization_alias="photoURL")
    post_count: int = Field(0, serialization_alias="postCount")
    created_at: Optional[datetime] = Field(None, serialization_alias="createdAt")
    updated_at: Optional[datetime] = Field(None, serialization_alias="updatedAt")
