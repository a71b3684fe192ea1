import json
from datetime import date, datetime
from zoneinfo import ZoneInfo

import pytest

from coffeeshop.business_calendar import BusinessCalendar, BusinessDay, load_business_calendar, \
    sunday_based_weekday
from coffeeshop.constants.constants import BUSINESS_HOURS
from coffeeshop.utils.exceptions import CalendarConfigurationError

SUNDAY = date(2024, 1, 7)
MONDAY = date(2024, 1, 8)
SATURDAY = date(2024, 1, 13)


@pytest.fixture
def calendar():
    return BusinessCalendar.from_config(BUSINESS_HOURS)


def test_sunday_based_weekday():
    assert sunday_based_weekday(SUNDAY) == 0
    assert sunday_based_weekday(MONDAY) == 1
    assert sunday_based_weekday(SATURDAY) == 6


def test_default_week(calendar):
    assert calendar.business_day(SUNDAY) == BusinessDay(0, 9, 20)
    assert calendar.business_day(MONDAY) == BusinessDay(1, 7, 21)
    assert calendar.business_day(SATURDAY) == BusinessDay(6, 8, 20)
    assert len(calendar.days()) == 7


def test_opening_and_closing_instants(calendar):
    assert calendar.opening_instant(MONDAY) == datetime(2024, 1, 8, 7, 0)
    assert calendar.closing_instant(MONDAY) == datetime(2024, 1, 8, 21, 0)
    assert calendar.opening_instant(SUNDAY) == datetime(2024, 1, 7, 9, 0)


@pytest.mark.parametrize('day', [date(2024, 1, 7 + offset) for offset in range(7)])
def test_open_at_opening_and_closed_at_closing(calendar, day):
    assert calendar.is_open(calendar.opening_instant(day))
    assert not calendar.is_open(calendar.closing_instant(day))


def test_is_open_is_half_open(calendar):
    assert calendar.is_open(datetime(2024, 1, 8, 7, 0))
    assert calendar.is_open(datetime(2024, 1, 8, 20, 59, 59))
    assert not calendar.is_open(datetime(2024, 1, 8, 21, 0))
    assert not calendar.is_open(datetime(2024, 1, 8, 6, 59))


def test_unconfigured_day_is_closed():
    calendar = BusinessCalendar.from_config({1: {'open': 7, 'close': 21}})
    assert calendar.opening_instant(SUNDAY) is None
    assert calendar.closing_instant(SUNDAY) is None
    assert not calendar.is_open(datetime(2024, 1, 7, 12, 0))


def test_close_at_midnight_rolls_to_next_day():
    calendar = BusinessCalendar.from_config({'1': {'open': 18, 'close': 24}})
    assert calendar.closing_instant(MONDAY) == datetime(2024, 1, 9, 0, 0)
    assert calendar.is_open(datetime(2024, 1, 8, 23, 59))


def test_aware_instants_are_read_in_shop_zone():
    calendar = BusinessCalendar.from_config(BUSINESS_HOURS, tz=ZoneInfo('Europe/Berlin'))
    # 06:30 UTC is 07:30 in Berlin in January
    assert calendar.is_open(datetime(2024, 1, 8, 6, 30, tzinfo=ZoneInfo('UTC')))
    assert calendar.opening_instant(MONDAY).tzinfo == ZoneInfo('Europe/Berlin')


@pytest.mark.parametrize('raw_hours', [
    {7: {'open': 7, 'close': 21}},
    {1: {'open': 21, 'close': 7}},
    {1: {'open': 7}},
    {1: {'open': '7', 'close': 21}},
    {'monday': {'open': 7, 'close': 21}},
])
def test_corrupt_configuration_raises(raw_hours):
    with pytest.raises(CalendarConfigurationError):
        BusinessCalendar.from_config(raw_hours)


def test_business_hours_env_override(monkeypatch):
    monkeypatch.setenv('BUSINESS_HOURS', json.dumps({'2': {'open': 10, 'close': 14}}))
    calendar = load_business_calendar()
    assert [day.to_ui() for day in calendar.days()] == [{'weekday': 2, 'open': 10, 'close': 14}]


def test_business_hours_env_override_must_be_json(monkeypatch):
    monkeypatch.setenv('BUSINESS_HOURS', 'not json')
    with pytest.raises(CalendarConfigurationError):
        load_business_calendar()


def test_unknown_timezone(monkeypatch):
    monkeypatch.setenv('SHOP_TIMEZONE', 'Mars/Olympus_Mons')
    with pytest.raises(CalendarConfigurationError):
        load_business_calendar()
