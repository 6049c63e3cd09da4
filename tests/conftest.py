from datetime import datetime, timedelta, timezone

import pytest

from booking_engine.database import init_db, make_engine, make_sessionmaker
from booking_engine.models.generated import (
    BookableItems,
    BusinessHours,
    Businesses,
    StaffAvailability,
    StaffMembers,
)
from booking_engine.services.slots.config import BookingConfig

UTC = timezone.utc

# 2030-01-07 is a Monday (day_of_week = 1).
MONDAY = datetime(2030, 1, 7, tzinfo=UTC)
NOW = datetime(2030, 1, 6, 8, 0, tzinfo=UTC)


def at(day: datetime, hhmm: str) -> datetime:
    hour, minute = (int(p) for p in hhmm.split(":"))
    return day.replace(hour=hour, minute=minute)


@pytest.fixture
def engine(tmp_path):
    engine = make_engine(f"sqlite:///{tmp_path / 'booking.db'}")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return make_sessionmaker(engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def config():
    return BookingConfig()


@pytest.fixture
def make_business(db):
    def _make(hours=((1, "09:00", "10:00"),), tz="UTC"):
        business = Businesses(name="Test Business", timezone=tz)
        db.add(business)
        db.flush()
        for day, start, end in hours:
            db.add(BusinessHours(business_id=business.id, day_of_week=day, start_time=start, end_time=end))
        db.commit()
        return business

    return _make


@pytest.fixture
def make_item(db):
    def _make(business, duration="30 minutes", capacity=1, requires_staff=False, is_active=True):
        item = BookableItems(
            business_id=business.id,
            name="Haircut",
            duration=duration,
            max_capacity=capacity,
            is_active=1 if is_active else 0,
            requires_staff=1 if requires_staff else 0,
        )
        db.add(item)
        db.commit()
        return item

    return _make


@pytest.fixture
def make_staff(db):
    def _make(business, items, windows=((1, "09:00", "12:00"),), is_active=True, name=None):
        staff = StaffMembers(
            business_id=business.id,
            display_name=name,
            is_active=1 if is_active else 0,
        )
        staff.capabilities = list(items)
        db.add(staff)
        db.flush()
        for day, start, end in windows:
            db.add(StaffAvailability(staff_id=staff.id, day_of_week=day, start_time=start, end_time=end))
        db.commit()
        return staff

    return _make


@pytest.fixture
def monday():
    return MONDAY


@pytest.fixture
def now():
    return NOW
