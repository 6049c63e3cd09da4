from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

from booking_engine.services.slots.calculator import iter_candidate_slots
from booking_engine.services.slots.config import DEFAULT_TRADING_CALENDAR
from booking_engine.services.slots.intervals import DayWindow

UTC = timezone.utc
MONDAY = date(2030, 1, 7)
EARLY = datetime(2030, 1, 1, tzinfo=UTC)


def starts(slots):
    return [s.start.strftime("%a %H:%M") for s in slots]


def test_strides_by_duration_inside_window():
    windows = [DayWindow(1, "09:00", "10:00")]
    slots = list(iter_candidate_slots(windows, 30, MONDAY, MONDAY, UTC, EARLY))
    assert starts(slots) == ["Mon 09:00", "Mon 09:30"]
    assert all(s.duration_minutes == 30 for s in slots)


def test_slot_never_runs_past_window_end():
    windows = [DayWindow(1, "09:00", "10:00")]
    slots = list(iter_candidate_slots(windows, 45, MONDAY, MONDAY, UTC, EARLY))
    assert starts(slots) == ["Mon 09:00"]


def test_multiple_windows_per_day_are_ordered():
    windows = [DayWindow(1, "14:00", "15:00"), DayWindow(1, "09:00", "10:00")]
    slots = list(iter_candidate_slots(windows, 60, MONDAY, MONDAY, UTC, EARLY))
    assert starts(slots) == ["Mon 09:00", "Mon 14:00"]


def test_only_matching_weekdays_in_inclusive_range():
    windows = [DayWindow(1, "09:00", "10:00"), DayWindow(3, "09:00", "10:00")]
    slots = list(iter_candidate_slots(windows, 60, MONDAY, MONDAY + timedelta(days=7), UTC, EARLY))
    assert [s.start.date() for s in slots] == [
        date(2030, 1, 7),
        date(2030, 1, 9),
        date(2030, 1, 14),
    ]


def test_past_and_current_slots_are_skipped():
    windows = [DayWindow(1, "09:00", "11:00")]
    now = datetime(2030, 1, 7, 9, 30, tzinfo=UTC)
    slots = list(iter_candidate_slots(windows, 30, MONDAY, MONDAY, UTC, now))
    # 09:30 starts exactly at now and is not offered
    assert starts(slots) == ["Mon 10:00", "Mon 10:30"]


def test_elapsed_window_yields_nothing():
    windows = [DayWindow(1, "09:00", "10:00")]
    now = datetime(2030, 1, 7, 10, 0, tzinfo=UTC)
    assert list(iter_candidate_slots(windows, 30, MONDAY, MONDAY, UTC, now)) == []


def test_min_advance_pushes_first_slot():
    windows = [DayWindow(1, "09:00", "12:00")]
    now = datetime(2030, 1, 7, 8, 0, tzinfo=UTC)
    slots = list(
        iter_candidate_slots(windows, 60, MONDAY, MONDAY, UTC, now, min_advance=timedelta(hours=2))
    )
    assert starts(slots) == ["Mon 11:00"]


def test_windows_are_business_local_time():
    tokyo = ZoneInfo("Asia/Tokyo")
    windows = [DayWindow(1, "09:00", "10:00")]
    slots = list(iter_candidate_slots(windows, 60, MONDAY, MONDAY, tokyo, EARLY))
    assert len(slots) == 1
    assert slots[0].start.astimezone(UTC) == datetime(2030, 1, 7, 0, 0, tzinfo=UTC)


def test_default_trading_calendar_is_weekdays_nine_to_six():
    sunday = date(2030, 1, 6)
    saturday = date(2030, 1, 12)
    slots = list(iter_candidate_slots(DEFAULT_TRADING_CALENDAR, 60, sunday, saturday, UTC, EARLY))
    assert len(slots) == 5 * 9
    assert {s.start.date() for s in slots} == {date(2030, 1, d) for d in range(7, 12)}
    assert min(s.start.hour for s in slots) == 9
    assert max(s.end.hour for s in slots) == 18


def test_generator_is_lazy_and_finite():
    windows = [DayWindow(d, "00:00", "24:00") for d in range(7)]
    gen = iter_candidate_slots(windows, 15, MONDAY, MONDAY + timedelta(days=364), UTC, EARLY)
    first = next(gen)
    assert first.start == datetime(2030, 1, 7, 0, 0, tzinfo=UTC)


NEW_YORK = ZoneInfo("America/New_York")
SUNDAY_NIGHT = [DayWindow(0, "01:00", "04:00")]
BEFORE_2027 = datetime(2027, 1, 1, tzinfo=UTC)


def utc_starts(slots):
    return [s.start.astimezone(UTC).strftime("%H:%M") for s in slots]


def assert_sound(slots, minutes):
    for slot in slots:
        assert slot.duration == timedelta(minutes=minutes)
    for earlier, later in zip(slots, slots[1:]):
        assert not earlier.overlaps(later)
        assert earlier.end.astimezone(UTC) <= later.start.astimezone(UTC)


def test_spring_forward_skips_missing_wall_times():
    day = date(2027, 3, 14)
    slots = list(iter_candidate_slots(SUNDAY_NIGHT, 30, day, day, NEW_YORK, BEFORE_2027))
    # 01:00 EST, then 03:00 and 03:30 EDT; 01:30-02:00 and 02:xx do not exist
    assert utc_starts(slots) == ["06:00", "07:00", "07:30"]
    assert_sound(slots, 30)


def test_fall_back_drops_stretched_slot():
    day = date(2027, 11, 7)
    slots = list(iter_candidate_slots(SUNDAY_NIGHT, 30, day, day, NEW_YORK, BEFORE_2027))
    # 01:30 EDT -> 02:00 EST would last 90 minutes
    assert utc_starts(slots) == ["05:00", "07:00", "07:30", "08:00", "08:30"]
    assert_sound(slots, 30)


def test_now_in_business_timezone_is_compared_as_instant():
    day = date(2027, 11, 7)
    # 01:45 EST (second pass) is 06:45Z: only slots after that remain
    now = datetime(2027, 11, 7, 1, 45, fold=1, tzinfo=NEW_YORK)
    slots = list(iter_candidate_slots(SUNDAY_NIGHT, 30, day, day, NEW_YORK, now))
    assert utc_starts(slots) == ["07:00", "07:30", "08:00", "08:30"]
