from typing import List
import logging
import uuid

from sqlalchemy import func
from sqlalchemy.orm import Session

from polis.db.session import Database
from polis.modules.posts.models.post import Image

logger = logging.getLogger(__name__)


def add_post_images(db: Session, post_id: str, image_urls: List[str]) -> List[str]:
    """
    Insert one image row per URL in a single transaction, after the images
    the post already has. Returns the new ids.
    """
    image_ids = [str(uuid.uuid4()) for _ in image_urls]
    try:
        last = db.query(func.max(Image.position)).filter(Image.post_id == post_id).scalar()
        start = 0 if last is None else last + 1
        for offset, (image_id, image_url) in enumerate(zip(image_ids, image_urls)):
            db.add(Image(id=image_id, post_id=post_id, image_url=image_url, position=start + offset))
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info(f"Attached {len(image_ids)} image(s) to post {post_id}")
    return image_ids


def delete_images_by_id(database: Database, image_ids: List[str]) -> int:
    """Delete image rows by id. Returns the number of rows removed."""
    if not image_ids:
        return 0
    placeholders = ", ".join(f"@param{index}" for index in range(len(image_ids)))
    result = database.execute(f"DELETE FROM images WHERE id IN ({placeholders})", image_ids)
    return result.rows_affected[0] if result.rows_affected else 0
