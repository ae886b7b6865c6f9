from typing import Any, List, Literal, Optional
from datetime import datetime, timezone
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

MAX_TAG_LENGTH = 100


def canonical_tag(name: str) -> str:
    """Tags compare ignoring case and surrounding whitespace"""
    return name.strip().lower()


def normalize_tags(tags: Optional[List[str]]) -> List[str]:
    """Canonicalize, drop blanks and duplicates, keep first-seen order"""
    seen = []
    for tag in tags or []:
        name = canonical_tag(tag)
        if not name or name in seen:
            continue
        if len(name) > MAX_TAG_LENGTH:
            raise ValueError(f"Tag '{name[:20]}...' is longer than {MAX_TAG_LENGTH} characters")
        seen.append(name)
    return seen


def _naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is not None and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


class PostInfo(BaseModel):
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True, extra="ignore")

    user_id: str = Field(..., alias="userId", min_length=1, max_length=50)
    type: Literal["post", "event"] = "post"
    title: str = Field(..., min_length=1, max_length=45)
    description: str = Field(..., min_length=1)
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    latitude_delta: float = Field(..., alias="latitudeDelta", ge=0)
    longitude_delta: float = Field(..., alias="longitudeDelta", ge=0)
    event_start: Optional[datetime] = Field(None, validation_alias=AliasChoices("event_start", "eventStart"))
    event_end: Optional[datetime] = Field(None, validation_alias=AliasChoices("event_end", "eventEnd"))
    private: bool = False

    @field_validator("event_start", "event_end")
    @classmethod
    def to_naive_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _naive_utc(v)

    @model_validator(mode="after")
    def check_event_window(self) -> "PostInfo":
        if self.event_start and self.event_end and self.event_end < self.event_start:
            raise ValueError("event_end must not be before event_start")
        return self


class PostCreate(PostInfo):
    """Body of POST /posts. Fields may also be nested under "postInfo"."""
    tags: List[str] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def unwrap_post_info(cls, data: Any) -> Any:
        if isinstance(data, dict) and isinstance(data.get("postInfo"), dict):
            merged = dict(data["postInfo"])
            merged["tags"] = data.get("tags")
            return merged
        return data

    @field_validator("tags", mode="before")
    @classmethod
    def default_tags(cls, v):
        return [] if v is None else v

    @field_validator("tags")
    @classmethod
    def clean_tags(cls, v: List[str]) -> List[str]:
        return normalize_tags(v)


class EventCreate(BaseModel):
    """Body of POST /events"""
    event_info: PostInfo = Field(..., alias="eventInfo")
    tags: List[str] = Field(default_factory=list)

    @field_validator("tags", mode="before")
    @classmethod
    def default_tags(cls, v):
        return [] if v is None else v

    @field_validator("tags")
    @classmethod
    def clean_tags(cls, v: List[str]) -> List[str]:
        return normalize_tags(v)
