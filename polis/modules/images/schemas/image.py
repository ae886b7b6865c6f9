from typing import Annotated, List, Literal, Optional, Union
from pydantic import BaseModel, ConfigDict, Field

from polis.core.storage import ImagePayload, payload_from_string


class ImageSource(BaseModel):
    """Explicitly typed image payload"""
    kind: Literal["dataUrl", "base64", "uri"]
    value: str = Field(..., min_length=1)


# A bare string is accepted from older clients and classified by prefix
ImageInput = Union[ImageSource, Annotated[str, Field(min_length=1)]]


def to_payload(image: ImageInput) -> ImagePayload:
    if isinstance(image, ImageSource):
        return ImagePayload(image.kind, image.value)
    return payload_from_string(image)


class PostImageUpload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    image: ImageInput
    post_id: str = Field(..., alias="postId", min_length=1)


class PostImagesUpload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    images: List[ImageInput] = Field(..., min_length=1)
    post_id: str = Field(..., alias="postId", min_length=1)


class UserImageUpload(BaseModel):
    image: ImageInput
    uid: str = Field(..., min_length=1)


class ImageRef(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    image_id: str = Field(..., alias="imageId", min_length=1)
    image_url: Optional[str] = Field(None, alias="imageUrl")


class ImagesDelete(BaseModel):
    images: Optional[List[ImageRef]] = None
