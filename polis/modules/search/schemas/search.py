from pydantic import BaseModel, ConfigDict, Field

MAX_RESULTS = 5


class UserMatch(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    display_name: str = Field(..., serialization_alias="displayName")
    id: str


class Suggestion(BaseModel):
    """Entry of the combined user/tag suggestion list"""
    name: str
    id: str
    is_tag: bool
