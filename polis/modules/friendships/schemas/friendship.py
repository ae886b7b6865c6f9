from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field


class FriendshipCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    follower_id: str = Field(..., alias="followerId", min_length=1)
    followee_id: str = Field(..., alias="followeeId", min_length=1)


class Followee(BaseModel):
    """Friend entry returned to client"""
    model_config = ConfigDict(populate_by_name=True)

    followee_id: str = Field(..., serialization_alias="followeeId")
    followee_name: Optional[str] = Field(None, serialization_alias="followeeName")


class FriendList(BaseModel):
    success: bool = True
    friends: List[Followee] = []
