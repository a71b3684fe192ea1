from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

import pytest

from coffeeshop.business_calendar import BusinessCalendar
from coffeeshop.constants.constants import BUSINESS_HOURS, MAX_SLOTS
from coffeeshop.pickup_slots import SlotGenerator, fixed_clock, get_clock, localize
from coffeeshop.utils.exceptions import CalendarConfigurationError


def generator_at(now: datetime, raw_hours=None) -> SlotGenerator:
    calendar = BusinessCalendar.from_config(raw_hours if raw_hours is not None else BUSINESS_HOURS)
    return SlotGenerator(calendar=calendar, clock=fixed_clock(now))


def assert_cadence(slots):
    for previous, current in zip(slots, slots[1:]):
        assert current - previous == timedelta(minutes=15)


def test_monday_0803_skips_to_half_past():
    slots = generator_at(datetime(2024, 1, 8, 8, 3)).generate_for_today()
    assert slots[0] == datetime(2024, 1, 8, 8, 30)
    assert slots[-1] == datetime(2024, 1, 8, 20, 45)
    assert len(slots) == 50
    assert_cadence(slots)


@pytest.mark.parametrize('minute, first_slot', [
    (0, datetime(2024, 1, 8, 8, 15)),
    (1, datetime(2024, 1, 8, 8, 15)),
    (2, datetime(2024, 1, 8, 8, 15)),
    (3, datetime(2024, 1, 8, 8, 30)),
    (14, datetime(2024, 1, 8, 8, 30)),
    (16, datetime(2024, 1, 8, 8, 30)),
    (18, datetime(2024, 1, 8, 8, 45)),
])
def test_grace_window(minute, first_slot):
    assert generator_at(datetime(2024, 1, 8, 8, minute)).generate_for_today()[0] == first_slot


def test_hour_rollover():
    slots = generator_at(datetime(2024, 1, 8, 8, 50)).generate_for_today()
    assert slots[0] == datetime(2024, 1, 8, 9, 15)


def test_before_opening_clamps_to_opening():
    slots = generator_at(datetime(2024, 1, 8, 5, 10)).generate_for_today()
    assert slots[0] == datetime(2024, 1, 8, 7, 0)


def test_after_closing_is_empty():
    assert generator_at(datetime(2024, 1, 8, 20, 40)).generate_for_today() == []
    assert generator_at(datetime(2024, 1, 8, 22, 0)).generate_for_today() == []


def test_closed_day_is_empty():
    assert generator_at(datetime(2024, 1, 7, 12, 0), {1: {'open': 7, 'close': 21}}).generate_for_today() == []


def test_every_slot_is_after_now_and_open():
    now = datetime(2024, 1, 13, 10, 7, 42)
    generator = generator_at(now)
    slots = generator.generate_for_today()
    assert slots
    assert all(slot > now for slot in slots)
    assert all(generator.calendar.is_open(slot) for slot in slots)
    assert all(slot.date() == now.date() for slot in slots)


def test_slots_are_capped():
    generator = generator_at(datetime(2024, 1, 8, 0, 0))
    start = datetime(2024, 1, 8, 0, 0)
    slots = generator._emit(start, start + timedelta(days=3))
    assert len(slots) == MAX_SLOTS
    assert_cadence(slots)


def test_floor_tuesday_1407():
    generator = generator_at(datetime(2024, 1, 9, 10, 0))
    slots = generator.generate_from_floor(datetime(2024, 1, 9, 14, 7))
    assert slots[0] == datetime(2024, 1, 9, 14, 15)
    assert slots[-1] == datetime(2024, 1, 9, 20, 45)


def test_floor_on_boundary_moves_to_next_slot():
    generator = generator_at(datetime(2024, 1, 9, 10, 0))
    assert generator.generate_from_floor(datetime(2024, 1, 9, 14, 15))[0] == datetime(2024, 1, 9, 14, 30)
    assert generator.generate_from_floor(datetime(2024, 1, 9, 14, 15, 30))[0] == datetime(2024, 1, 9, 14, 30)


def test_floor_before_opening_clamps_to_opening():
    generator = generator_at(datetime(2024, 1, 9, 5, 0))
    assert generator.generate_from_floor(datetime(2024, 1, 9, 5, 20))[0] == datetime(2024, 1, 9, 7, 0)


def test_floor_uses_hours_of_the_current_day():
    # floor lies on an earlier Monday: the list is built inside Saturday's 08:00-20:00 window
    generator = generator_at(datetime(2024, 1, 13, 9, 0))
    slots = generator.generate_from_floor(datetime(2024, 1, 8, 19, 0))
    assert slots[0] == datetime(2024, 1, 13, 8, 0)
    assert slots[-1] == datetime(2024, 1, 13, 19, 45)


def test_floor_on_closed_day_is_empty():
    generator = generator_at(datetime(2024, 1, 7, 10, 0), {1: {'open': 7, 'close': 21}})
    assert generator.generate_from_floor(datetime(2024, 1, 7, 11, 0)) == []


def test_generate_dispatches_on_floor():
    generator = generator_at(datetime(2024, 1, 8, 8, 3))
    assert generator.generate()[0] == datetime(2024, 1, 8, 8, 30)
    assert generator.generate(datetime(2024, 1, 8, 12, 0))[0] == datetime(2024, 1, 8, 12, 15)


def test_clock_override(monkeypatch):
    monkeypatch.delenv('SHOP_TIMEZONE', raising=False)
    monkeypatch.setenv('CURRENT_TIME_OVERRIDE', '2024-01-08T08:03:00')
    assert get_clock()() == datetime(2024, 1, 8, 8, 3)


def test_clock_override_must_be_iso(monkeypatch):
    monkeypatch.setenv('CURRENT_TIME_OVERRIDE', 'yesterday')
    with pytest.raises(CalendarConfigurationError):
        get_clock()


def test_localize_naive_shop_clock():
    naive = datetime(2024, 1, 8, 8, 3)
    assert localize(naive, None) is naive


def new_york_generator(now: datetime) -> SlotGenerator:
    calendar = BusinessCalendar.from_config(BUSINESS_HOURS, tz=ZoneInfo('America/New_York'))
    return SlotGenerator(calendar=calendar, clock=fixed_clock(now))


def test_utc_now_is_read_in_shop_zone():
    # 01:00 UTC on Tuesday is still Monday 20:00 in New York
    now = datetime(2024, 1, 9, 1, 0, tzinfo=ZoneInfo('UTC'))
    slots = new_york_generator(now).generate_for_today(now)
    local_now = now.astimezone(ZoneInfo('America/New_York'))
    assert slots[0] == datetime(2024, 1, 8, 20, 15, tzinfo=ZoneInfo('America/New_York'))
    assert slots[-1] == datetime(2024, 1, 8, 20, 45, tzinfo=ZoneInfo('America/New_York'))
    assert all(slot.date() == local_now.date() for slot in slots)


def test_utc_floor_is_read_in_shop_zone():
    now = datetime(2024, 1, 8, 15, 0, tzinfo=ZoneInfo('UTC'))
    # 19:07 UTC is 14:07 in New York
    slots = new_york_generator(now).generate_from_floor(datetime(2024, 1, 8, 19, 7, tzinfo=ZoneInfo('UTC')))
    assert slots[0] == datetime(2024, 1, 8, 14, 15, tzinfo=ZoneInfo('America/New_York'))
    assert slots[-1] == datetime(2024, 1, 8, 20, 45, tzinfo=ZoneInfo('America/New_York'))
