"""Booking admission: ownership, date-order and overlap checks before insert."""
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.orm import Session

import models_pydantic as schemas
import models_sqlalchemy as models
from app_errors import BadRequestError, NotFoundError
from property_directory import PropertyDirectory


@dataclass(frozen=True)
class StayPeriod:
    """Closed interval [start, end] of a stay"""

    start: datetime
    end: datetime

    def is_ordered(self) -> bool:
        return self.end > self.start

    def overlaps(self, other: "StayPeriod") -> bool:
        """Boundary-inclusive: periods sharing a single instant overlap."""
        return self.start <= other.end and self.end >= other.start


@dataclass(frozen=True)
class BookingRequest:
    start_date: datetime
    end_date: datetime
    property_id: int
    guest_id: int

    def __post_init__(self):
        # stored and compared as naive UTC
        object.__setattr__(self, "start_date", schemas.to_naive_utc(self.start_date))
        object.__setattr__(self, "end_date", schemas.to_naive_utc(self.end_date))

    @property
    def period(self) -> StayPeriod:
        return StayPeriod(self.start_date, self.end_date)


class BookingLedger:
    """Admits and removes bookings.

    Every step of ``create_booking`` runs in the session's current
    transaction, with the property row locked during the checks so that two
    admissions for the same property cannot both pass the overlap check.
    """

    def __init__(self, db: Session, directory: PropertyDirectory = None) -> None:
        self._db = db
        self._directory = directory or PropertyDirectory(db)

    def create_booking(self, request: BookingRequest) -> schemas.BookingResponse:
        owner = self.locked_owner_query(request.property_id).first()
        if owner is None:
            raise NotFoundError(f"No property: {request.property_id}")
        if owner.owner_id == request.guest_id:
            raise BadRequestError("Guest cannot book own property")
        if owner.archived:
            raise BadRequestError(f"Property {request.property_id} is no longer listed")

        period = request.period
        if not period.is_ordered():
            raise BadRequestError("Invalid date range")

        conflict = self.find_conflict(request.property_id, period)
        if conflict is not None:
            raise BadRequestError(
                f"Property already booked from {conflict.start_date.isoformat()} "
                f"to {conflict.end_date.isoformat()}"
            )

        booking = models.Booking(
            start_date=request.start_date,
            end_date=request.end_date,
            property_id=request.property_id,
            guest_id=request.guest_id,
        )
        self._db.add(booking)
        self._db.commit()
        self._db.refresh(booking)

        prop = self._directory.get(request.property_id)
        return schemas.BookingResponse(
            id=booking.id,
            start_date=booking.start_date,
            end_date=booking.end_date,
            guest_id=booking.guest_id,
            property=schemas.PropertySnapshot.model_validate(prop),
        )

    def locked_owner_query(self, property_id: int):
        """Owner and archived flag of the property, row-locked until commit."""
        return (
            self._db.query(models.Property.owner_id, models.Property.archived)
            .filter(models.Property.id == property_id)
            .with_for_update()
        )

    def find_conflict(self, property_id: int, period: StayPeriod):
        """Return the lowest-id booking on the property overlapping ``period``.

        ``start <= period.end AND end >= period.start`` is the same test as
        either boundary of one interval falling BETWEEN the boundaries of the
        other, inclusive on both ends.
        """
        return (
            self._db.query(models.Booking)
            .filter(
                models.Booking.property_id == property_id,
                models.Booking.start_date <= period.end,
                models.Booking.end_date >= period.start,
            )
            .order_by(models.Booking.id)
            .first()
        )

    def get(self, booking_id: int) -> models.Booking:
        booking = self._db.get(models.Booking, booking_id)
        if booking is None:
            raise NotFoundError(f"No booking: {booking_id}")
        return booking

    def delete_booking(self, booking_id: int) -> None:
        deleted = (
            self._db.query(models.Booking)
            .filter(models.Booking.id == booking_id)
            .delete(synchronize_session=False)
        )
        if not deleted:
            raise NotFoundError(f"No booking: {booking_id}")
        self._db.commit()
