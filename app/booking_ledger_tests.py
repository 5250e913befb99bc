from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.dialects import postgresql

import models_pydantic as schemas
import models_sqlalchemy as models
from app_errors import BadRequestError, NotFoundError
from booking_ledger import BookingLedger, BookingRequest, StayPeriod
from geocoding import Coordinates
from property_directory import PropertyDirectory


def dt(value):
    return datetime.fromisoformat(value)

EASTERN = timezone(timedelta(hours=-5))

@pytest.fixture
def ledger(db_session):
    return BookingLedger(db_session)

@pytest.fixture
def existing(ledger, property_p1, users):
    """A booking on p1 from 2022-12-30 to 2022-12-31"""
    return ledger.create_booking(
        BookingRequest(dt("2022-12-30T00:00:00"), dt("2022-12-31T00:00:00"), property_p1.id, users[1].id)
    )

# ---------- STAY PERIOD ----------

def test_stay_period_ordering():
    assert StayPeriod(dt("2023-01-01"), dt("2023-01-02")).is_ordered()
    assert not StayPeriod(dt("2023-01-02"), dt("2023-01-02")).is_ordered()
    assert not StayPeriod(dt("2023-01-03"), dt("2023-01-02")).is_ordered()

@pytest.mark.parametrize("start, end, expected", [
    ("2022-12-30", "2022-12-31", True),
    ("2022-12-29", "2022-12-31", True),
    ("2022-12-30", "2023-01-01", True),
    ("2022-12-31", "2023-01-01", True),   # shares the end boundary
    ("2022-12-29", "2022-12-30", True),   # shares the start boundary
    ("2022-12-30T06:00", "2022-12-30T07:00", True),  # inside
    ("2023-01-02", "2023-01-03", False),
    ("2022-12-27", "2022-12-29", False),
])
def test_stay_period_overlaps_inclusive(start, end, expected):
    booked = StayPeriod(dt("2022-12-30"), dt("2022-12-31"))
    candidate = StayPeriod(dt(start), dt(end))
    assert candidate.overlaps(booked) is expected
    assert booked.overlaps(candidate) is expected

# ---------- ADMISSION ----------

def test_create_booking_attaches_property_snapshot(existing, property_p1, users):
    assert existing.id
    assert existing.guest_id == users[1].id
    assert existing.start_date == dt("2022-12-30T00:00:00")
    assert existing.end_date == dt("2022-12-31T00:00:00")
    assert existing.property.id == property_p1.id
    assert existing.property.owner_id == users[0].id
    assert existing.property.title == "Cozy Cabin"
    assert existing.property.images == []

@pytest.mark.parametrize("start, end", [
    ("2023-01-05T00:00:00", "2023-01-05T00:00:00"),
    ("2023-01-06T00:00:00", "2023-01-05T00:00:00"),
])
def test_create_booking_rejects_unordered_dates(ledger, property_p1, users, start, end):
    with pytest.raises(BadRequestError, match="Invalid date range"):
        ledger.create_booking(BookingRequest(dt(start), dt(end), property_p1.id, users[1].id))

def test_create_booking_rejects_unordered_dates_even_when_overlapping(ledger, existing, property_p1, users):
    with pytest.raises(BadRequestError, match="Invalid date range"):
        ledger.create_booking(
            BookingRequest(dt("2022-12-31T00:00:00"), dt("2022-12-30T00:00:00"), property_p1.id, users[2].id)
        )

def test_create_booking_rejects_owner(ledger, property_p1, users):
    with pytest.raises(BadRequestError, match="own property"):
        ledger.create_booking(
            BookingRequest(dt("2023-03-01T00:00:00"), dt("2023-03-05T00:00:00"), property_p1.id, users[0].id)
        )

@pytest.mark.parametrize("start, end", [
    ("2022-12-30T00:00:00", "2022-12-31T00:00:00"),  # identical
    ("2022-12-29T00:00:00", "2022-12-31T00:00:00"),  # overlapping start
    ("2022-12-30T00:00:00", "2023-01-01T00:00:00"),  # overlapping end
    ("2022-12-31T00:00:00", "2023-01-01T00:00:00"),  # back-to-back
])
def test_create_booking_rejects_overlap(ledger, existing, property_p1, users, start, end):
    with pytest.raises(BadRequestError) as excinfo:
        ledger.create_booking(BookingRequest(dt(start), dt(end), property_p1.id, users[2].id))
    assert "already booked from 2022-12-30T00:00:00 to 2022-12-31T00:00:00" in str(excinfo.value)

def test_create_booking_after_existing_succeeds(ledger, existing, property_p1, users):
    booking = ledger.create_booking(
        BookingRequest(dt("2023-01-02T00:00:00"), dt("2023-01-03T00:00:00"), property_p1.id, users[2].id)
    )
    assert booking.id != existing.id
    assert booking.guest_id == users[2].id
    assert booking.property.id == property_p1.id

def test_create_booking_same_dates_other_property(db_session, ledger, existing, users):
    other = PropertyDirectory(db_session).create(
        schemas.PropertyCreate(
            title="Beach House", street="1 Ocean Ave", city="Santa Cruz", state="CA",
            zipcode="95060", description="Steps from the sand", price=250,
        ),
        owner_id=users[0].id,
        coordinates=Coordinates(lat=36.97, lng=-122.03),
    )
    booking = ledger.create_booking(
        BookingRequest(dt("2022-12-30T00:00:00"), dt("2022-12-31T00:00:00"), other.id, users[1].id)
    )
    assert booking.property.title == "Beach House"

def test_create_booking_missing_property(ledger, users):
    with pytest.raises(NotFoundError):
        ledger.create_booking(
            BookingRequest(dt("2023-01-02T00:00:00"), dt("2023-01-03T00:00:00"), 0, users[1].id)
        )

def test_create_booking_archived_property(db_session, ledger, property_p1, users):
    PropertyDirectory(db_session).archive(property_p1.id)
    with pytest.raises(BadRequestError, match="no longer listed"):
        ledger.create_booking(
            BookingRequest(dt("2023-01-02T00:00:00"), dt("2023-01-03T00:00:00"), property_p1.id, users[1].id)
        )

def test_booking_request_normalizes_to_utc(property_p1, users):
    request = BookingRequest(
        datetime(2022, 12, 30, tzinfo=EASTERN), datetime(2022, 12, 31, tzinfo=EASTERN), property_p1.id, users[1].id
    )
    assert request.start_date == dt("2022-12-30T05:00:00")
    assert request.end_date == dt("2022-12-31T05:00:00")

def test_create_booking_mixed_offsets_share_boundary(ledger, property_p1, users):
    booked = ledger.create_booking(
        BookingRequest(datetime(2022, 12, 30, tzinfo=EASTERN), datetime(2022, 12, 31, tzinfo=EASTERN),
                       property_p1.id, users[1].id)
    )
    assert booked.end_date == dt("2022-12-31T05:00:00")

    # starts at the instant the first booking ends, written in UTC
    with pytest.raises(BadRequestError, match="already booked"):
        ledger.create_booking(
            BookingRequest(datetime(2022, 12, 31, 5, tzinfo=timezone.utc), datetime(2023, 1, 1, 5, tzinfo=timezone.utc),
                           property_p1.id, users[2].id)
        )

def test_owner_lookup_locks_property_row(ledger):
    sql = str(ledger.locked_owner_query(1).statement.compile(dialect=postgresql.dialect()))
    assert "FROM properties" in sql
    assert sql.rstrip().endswith("FOR UPDATE")

def test_find_conflict_returns_lowest_id(ledger, property_p1, users):
    first = ledger.create_booking(
        BookingRequest(dt("2023-02-01T00:00:00"), dt("2023-02-02T00:00:00"), property_p1.id, users[1].id)
    )
    ledger.create_booking(
        BookingRequest(dt("2023-02-05T00:00:00"), dt("2023-02-06T00:00:00"), property_p1.id, users[1].id)
    )
    conflict = ledger.find_conflict(property_p1.id, StayPeriod(dt("2023-01-31T00:00:00"), dt("2023-02-07T00:00:00")))
    assert conflict.id == first.id

def test_get_owner_id_is_stable(db_session, property_p1, users):
    directory = PropertyDirectory(db_session)
    assert directory.get_owner_id(property_p1.id) == users[0].id
    assert directory.get_owner_id(property_p1.id) == users[0].id

def test_get_owner_id_missing(db_session):
    with pytest.raises(NotFoundError):
        PropertyDirectory(db_session).get_owner_id(0)

# ---------- DELETE ----------

def test_delete_booking(db_session, ledger, existing):
    ledger.delete_booking(existing.id)
    assert db_session.query(models.Booking).filter(models.Booking.id == existing.id).first() is None

def test_delete_booking_missing(ledger):
    with pytest.raises(NotFoundError):
        ledger.delete_booking(0)

def test_delete_booking_frees_dates(ledger, existing, property_p1, users):
    ledger.delete_booking(existing.id)
    booking = ledger.create_booking(
        BookingRequest(dt("2022-12-30T00:00:00"), dt("2022-12-31T00:00:00"), property_p1.id, users[2].id)
    )
    assert booking.guest_id == users[2].id
