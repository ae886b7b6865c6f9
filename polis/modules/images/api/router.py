from typing import Any, Dict
import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from polis.core.config import settings
from polis.core.storage import BlobStore, BlobStoreError
from polis.db.session import Database
from polis.deps import get_blob_store, get_database, get_db
from polis.modules.images.schemas.image import (
    ImagesDelete,
    PostImagesUpload,
    PostImageUpload,
    UserImageUpload,
    to_payload,
)
from polis.modules.images.services.image import add_post_images, delete_images_by_id
from polis.modules.posts.services.post import get_post

logger = logging.getLogger(__name__)

router = APIRouter()


def _check_post_exists(db: Session, post_id: str) -> None:
    if not get_post(db, post_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Post not found",
        )


async def _discard_uploads(blob_store: BlobStore, urls) -> None:
    for url in urls:
        try:
            await blob_store.delete(url)
        except BlobStoreError as e:
            logger.error(f"Failed to remove orphaned blob {url}: {e}")


@router.get("/safeimage", response_model=Dict[str, str])
def safe_image(
    url: str = Query(..., min_length=1),
    blob_store: BlobStore = Depends(get_blob_store),
) -> Any:
    """
    Return the image URL with the container's SAS token appended.
    """
    return {"url": blob_store.with_sas(url)}


@router.post("/image", status_code=status.HTTP_201_CREATED, response_model=Dict[str, Any])
async def upload_post_image(
    *,
    db: Session = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
    upload_in: PostImageUpload,
) -> Any:
    _check_post_exists(db, upload_in.post_id)

    object_name = blob_store.object_name(upload_in.post_id)
    image_url = await blob_store.upload(to_payload(upload_in.image), object_name, settings.AZURE_PHOTOS_CONTAINER)

    try:
        add_post_images(db, upload_in.post_id, [image_url])
    except Exception:
        await _discard_uploads(blob_store, [image_url])
        raise

    return {"message": "Image uploaded successfully", "url": image_url}


@router.post("/images", status_code=status.HTTP_201_CREATED, response_model=Dict[str, Any])
async def upload_post_images(
    *,
    db: Session = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
    upload_in: PostImagesUpload,
) -> Any:
    _check_post_exists(db, upload_in.post_id)

    image_urls = []
    try:
        for index, image in enumerate(upload_in.images):
            object_name = blob_store.object_name(upload_in.post_id, index)
            image_urls.append(
                await blob_store.upload(to_payload(image), object_name, settings.AZURE_PHOTOS_CONTAINER)
            )
        add_post_images(db, upload_in.post_id, image_urls)
    except Exception:
        await _discard_uploads(blob_store, image_urls)
        raise

    return {"message": "Images uploaded successfully", "urls": image_urls}


@router.post("/image-user", status_code=status.HTTP_201_CREATED, response_model=Dict[str, Any])
async def upload_user_image(
    *,
    blob_store: BlobStore = Depends(get_blob_store),
    upload_in: UserImageUpload,
) -> Any:
    """
    Upload a profile picture. The URL is not stored here, the client saves it
    on the user through PUT /user.
    """
    object_name = blob_store.object_name(upload_in.uid)
    image_url = await blob_store.upload(to_payload(upload_in.image), object_name, settings.AZURE_PROFILES_CONTAINER)
    return {"message": "Image uploaded successfully", "url": image_url}


@router.delete("/delete-images", response_model=Dict[str, Any])
async def delete_images(
    *,
    database: Database = Depends(get_database),
    blob_store: BlobStore = Depends(get_blob_store),
    delete_in: ImagesDelete,
) -> Any:
    images = delete_in.images or []
    if not images:
        return {"message": "No images to delete", "deletedCount": 0}

    for image in images:
        if not image.image_url:
            continue
        try:
            await blob_store.delete(image.image_url)
        except BlobStoreError as e:
            # Keep going, the rows are removed regardless
            logger.error(f"Failed to delete blob for image {image.image_id}: {e}")

    deleted_count = delete_images_by_id(database, [image.image_id for image in images])
    return {"message": "Images deleted successfully", "deletedCount": deleted_count}
