import random
import threading
from datetime import datetime, timedelta, timezone

import pytest

from booking_engine.errors import CapacityExceeded, NoStaffAvailable, PersistenceConflict
from booking_engine.models.generated import Bookings
from booking_engine.schemas.bookings import BookingCreate
from booking_engine.services.bookings import cancel_booking, create_booking
from booking_engine.services.slots.config import BookingConfig
from booking_engine.services.slots.intervals import from_db_ts

UTC = timezone.utc
NOW = datetime(2030, 1, 6, 8, 0, tzinfo=UTC)
OPEN = datetime(2030, 1, 7, 9, 0, tzinfo=UTC)

PATIENT = BookingConfig(lock_blocking_timeout_seconds=60)


def request(item, start, minutes=30, units=1):
    return BookingCreate(
        business_id=item.business_id,
        bookable_item_id=item.id,
        customer_id=1,
        date_start=start,
        date_end=start + timedelta(minutes=minutes),
        unit_count=units,
    )


def run_in_threads(session_factory, requests):
    """Submit every request from its own thread and session at the same time."""
    barrier = threading.Barrier(len(requests))
    outcomes = [None] * len(requests)

    def worker(index, data):
        session = session_factory()
        try:
            barrier.wait()
            outcomes[index] = create_booking(session, data, NOW, PATIENT).id
        except (CapacityExceeded, NoStaffAvailable, PersistenceConflict) as exc:
            outcomes[index] = exc
        finally:
            session.close()

    threads = [threading.Thread(target=worker, args=(i, r)) for i, r in enumerate(requests)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    return outcomes


def active_bookings(session_factory):
    session = session_factory()
    try:
        return [
            (from_db_ts(b.date_start), from_db_ts(b.date_end), b.unit_count, b.staff_id)
            for b in session.query(Bookings).filter(Bookings.status.in_(["pending", "confirmed"]))
        ]
    finally:
        session.close()


def peak_usage(bookings):
    """Largest number of units held at any single instant."""
    return max(
        (sum(units for s, e, units, _ in bookings if s <= start < e) for start, *_ in bookings),
        default=0,
    )


def double_assignments(bookings):
    clashes = []
    for i, (s1, e1, _, staff1) in enumerate(bookings):
        for s2, e2, _, staff2 in bookings[i + 1:]:
            if staff1 is not None and staff1 == staff2 and s1 < e2 and s2 < e1:
                clashes.append(staff1)
    return clashes


def test_concurrent_creates_never_overbook(session_factory, make_business, make_item):
    item = make_item(make_business(hours=[(1, "09:00", "10:00")]), capacity=3)

    outcomes = run_in_threads(session_factory, [request(item, OPEN) for _ in range(12)])

    created = [o for o in outcomes if isinstance(o, int)]
    rejected = [o for o in outcomes if not isinstance(o, int)]
    assert len(created) == 3
    assert all(isinstance(o, (CapacityExceeded, PersistenceConflict)) for o in rejected)
    assert peak_usage(active_bookings(session_factory)) == 3


def test_shared_staff_is_assigned_once_across_items(session_factory, make_business, make_item, make_staff):
    business = make_business(hours=[(1, "09:00", "12:00")])
    massage = make_item(business, capacity=5, requires_staff=True)
    facial = make_item(business, capacity=5, requires_staff=True)
    make_staff(business, [massage, facial])

    outcomes = run_in_threads(
        session_factory,
        [request(massage, OPEN), request(facial, OPEN), request(massage, OPEN), request(facial, OPEN)],
    )

    assert len([o for o in outcomes if isinstance(o, int)]) == 1
    assert double_assignments(active_bookings(session_factory)) == []


@pytest.mark.parametrize("seed", [1, 7, 42])
def test_random_create_cancel_sequence_keeps_invariants(
    seed, db, session_factory, make_business, make_item, make_staff
):
    rng = random.Random(seed)
    business = make_business(hours=[(1, "09:00", "12:00")])
    item = make_item(business, capacity=2, requires_staff=True)
    make_staff(business, [item])
    make_staff(business, [item])

    booked = []
    for _ in range(60):
        if booked and rng.random() < 0.3:
            cancel_booking(db, booked.pop(rng.randrange(len(booked))), None, NOW, PATIENT)
        else:
            start = OPEN + timedelta(minutes=15 * rng.randrange(0, 9))
            data = request(item, start, units=rng.choice([1, 1, 2]))
            try:
                booked.append(create_booking(db, data, NOW, PATIENT).id)
            except (CapacityExceeded, NoStaffAvailable):
                pass

        snapshot = active_bookings(session_factory)
        assert peak_usage(snapshot) <= 2
        assert double_assignments(snapshot) == []
        assert len(snapshot) == len(booked)
