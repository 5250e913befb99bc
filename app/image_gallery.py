"""Image records for properties; object bytes live in S3 (see s3_storage)"""
from typing import List

from sqlalchemy.orm import Session

import models_sqlalchemy as models
from app_errors import NotFoundError


class ImageGallery:

    def __init__(self, db: Session) -> None:
        self._db = db

    def create(self, image_key: str, property_id: int, is_cover_image: bool = False) -> models.Image:
        image = models.Image(image_key=image_key, property_id=property_id, is_cover_image=is_cover_image)
        self._db.add(image)
        self._db.commit()
        self._db.refresh(image)
        return image

    def get_all_by_property(self, property_id: int) -> List[models.Image]:
        if self._db.get(models.Property, property_id) is None:
            raise NotFoundError(f"No property: {property_id}")
        return (
            self._db.query(models.Image)
            .filter(models.Image.property_id == property_id)
            .order_by(models.Image.id)
            .all()
        )

    def delete_by_key(self, image_key: str, property_id: int) -> None:
        deleted = (
            self._db.query(models.Image)
            .filter(models.Image.image_key == image_key, models.Image.property_id == property_id)
            .delete(synchronize_session=False)
        )
        if not deleted:
            raise NotFoundError(f"No image: {image_key}")
        self._db.commit()

    def set_cover(self, image_id: int, property_id: int) -> models.Image:
        """Make one image the property's cover, clearing any previous cover."""
        image = (
            self._db.query(models.Image)
            .filter(models.Image.id == image_id, models.Image.property_id == property_id)
            .first()
        )
        if image is None:
            raise NotFoundError(f"No image: {image_id}")
        (
            self._db.query(models.Image)
            .filter(
                models.Image.property_id == property_id,
                models.Image.id != image_id,
                models.Image.is_cover_image.is_(True),
            )
            .update({models.Image.is_cover_image: False}, synchronize_session=False)
        )
        image.is_cover_image = True
        self._db.commit()
        self._db.refresh(image)
        return image
