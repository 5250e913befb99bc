"""Property listings: create, search, snapshot, update and archive."""
import math
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session, selectinload

import models_pydantic as schemas
import models_sqlalchemy as models
from app_errors import BadRequestError, NotFoundError
from geocoding import Coordinates


def escape_like(value: str) -> str:
    """Make % and _ in user input match literally."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class PropertyDirectory:

    def __init__(self, db: Session) -> None:
        self._db = db

    def create(self, data: schemas.PropertyCreate, owner_id: int, coordinates: Coordinates) -> models.Property:
        prop = models.Property(
            title=data.title,
            street=data.street,
            city=data.city,
            state=data.state,
            zipcode=data.zipcode,
            latitude=str(coordinates.lat),
            longitude=str(coordinates.lng),
            description=data.description,
            price=data.price,
            owner_id=owner_id,
        )
        self._db.add(prop)
        self._db.commit()
        self._db.refresh(prop)
        return prop

    def find_all(self, filters: schemas.PropertySearch) -> schemas.PropertyPage:
        """Search listed (non-archived) properties.

        - min_price / max_price: inclusive price bounds
        - description: case-insensitive partial match on description or title
        """
        if filters.min_price is not None and filters.max_price is not None:
            if filters.min_price > filters.max_price:
                raise BadRequestError("Min price cannot be greater than max")

        query = self._db.query(models.Property).filter(models.Property.archived.is_(False))
        if filters.min_price is not None:
            query = query.filter(models.Property.price >= filters.min_price)
        if filters.max_price is not None:
            query = query.filter(models.Property.price <= filters.max_price)
        if filters.description:
            pattern = f"%{escape_like(filters.description)}%"
            query = query.filter(
                or_(
                    models.Property.description.ilike(pattern, escape="\\"),
                    models.Property.title.ilike(pattern, escape="\\"),
                )
            )

        total = query.count()
        props = (
            query.options(selectinload(models.Property.images))
            .order_by(models.Property.id)
            .offset((filters.page - 1) * filters.limit)
            .limit(filters.limit)
            .all()
        )
        return schemas.PropertyPage(
            properties=[schemas.PropertySnapshot.model_validate(p) for p in props],
            pagination=schemas.Pagination(
                current_page=filters.page,
                total_results=total,
                total_pages=math.ceil(total / filters.limit),
                limit=filters.limit,
            ),
        )

    def get(self, property_id: int, include_archived: bool = True) -> models.Property:
        query = (
            self._db.query(models.Property)
            .options(selectinload(models.Property.images))
            .filter(models.Property.id == property_id)
        )
        if not include_archived:
            query = query.filter(models.Property.archived.is_(False))
        prop = query.first()
        if prop is None:
            raise NotFoundError(f"No property: {property_id}")
        return prop

    def get_owner_id(self, property_id: int) -> int:
        row = (
            self._db.query(models.Property.owner_id)
            .filter(models.Property.id == property_id)
            .first()
        )
        if row is None:
            raise NotFoundError(f"No property: {property_id}")
        return row.owner_id

    def update(self, property_id: int, title: Optional[str] = None,
               description: Optional[str] = None, price: Optional[int] = None) -> models.Property:
        prop = self.get(property_id)
        if title is not None:
            prop.title = title
        if description is not None:
            prop.description = description
        if price is not None:
            prop.price = price
        self._db.commit()
        self._db.refresh(prop)
        return prop

    def archive(self, property_id: int) -> None:
        updated = (
            self._db.query(models.Property)
            .filter(models.Property.id == property_id)
            .update({models.Property.archived: True}, synchronize_session=False)
        )
        if not updated:
            raise NotFoundError(f"No property: {property_id}")
        self._db.commit()
