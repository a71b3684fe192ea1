import json
import os
from dataclasses import dataclass
from datetime import datetime, date, time, timedelta, tzinfo
from typing import Dict, Optional, Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from coffeeshop.constants.constants import BUSINESS_HOURS
from coffeeshop.utils.exceptions import CalendarConfigurationError
from coffeeshop.utils.logger import logger


@dataclass(frozen=True)
class BusinessDay:
    weekday: int
    open_hour: int
    close_hour: int

    def to_ui(self) -> Dict:
        return {'weekday': self.weekday, 'open': self.open_hour, 'close': self.close_hour}


def sunday_based_weekday(day: date) -> int:
    """
    datetime counts Monday as 0, the shop calendar counts Sunday as 0
    """
    return (day.weekday() + 1) % 7


class BusinessCalendar:
    """
    Weekly opening hours of the shop.

    A weekday without an entry is closed. Opening hours are a half-open
    interval: the closing instant itself is not open.
    """

    def __init__(self, days: Dict[int, BusinessDay], tz: Optional[tzinfo] = None):
        self._days: Dict[int, BusinessDay] = dict(days)
        self.tz = tz

    @classmethod
    def from_config(cls, raw_hours: Dict[Any, Dict], tz: Optional[tzinfo] = None):
        days = {}
        for raw_weekday, hours in raw_hours.items():
            try:
                weekday = int(raw_weekday)
                open_hour, close_hour = hours['open'], hours['close']
            except (TypeError, ValueError, KeyError) as error:
                raise CalendarConfigurationError(f'Malformed business hours entry {raw_weekday}={hours}') from error
            if weekday not in range(7):
                raise CalendarConfigurationError(f'Weekday must be 0..6, got {weekday}')
            if not all(isinstance(h, int) and not isinstance(h, bool) for h in (open_hour, close_hour)):
                raise CalendarConfigurationError(f'Hours must be integers for weekday={weekday}')
            if not 0 <= open_hour < close_hour <= 24:
                raise CalendarConfigurationError(
                    f'Opening hour must precede closing hour for weekday={weekday}: {open_hour}..{close_hour}')
            days[weekday] = BusinessDay(weekday, open_hour, close_hour)
        return cls(days, tz)

    def business_day(self, day: date) -> Optional[BusinessDay]:
        return self._days.get(sunday_based_weekday(day))

    def days(self):
        return [self._days[weekday] for weekday in sorted(self._days)]

    def _local(self, instant: datetime) -> datetime:
        if self.tz is not None and instant.tzinfo is not None:
            return instant.astimezone(self.tz)
        return instant

    def _instant_at(self, day: date, hour: int) -> datetime:
        if hour == 24:
            return datetime.combine(day + timedelta(days=1), time(0), tzinfo=self.tz)
        return datetime.combine(day, time(hour), tzinfo=self.tz)

    def opening_instant(self, day: date) -> Optional[datetime]:
        """None when the shop is closed on that date"""
        business_day = self.business_day(day)
        if business_day is None:
            return None
        return self._instant_at(day, business_day.open_hour)

    def closing_instant(self, day: date) -> Optional[datetime]:
        """None when the shop is closed on that date"""
        business_day = self.business_day(day)
        if business_day is None:
            return None
        return self._instant_at(day, business_day.close_hour)

    def is_open(self, instant: datetime) -> bool:
        local = self._local(instant)
        business_day = self.business_day(local.date())
        if business_day is None:
            return False
        minutes = local.hour * 60 + local.minute
        return business_day.open_hour * 60 <= minutes < business_day.close_hour * 60

    def to_ui(self):
        return [day.to_ui() for day in self.days()]


def get_shop_timezone() -> Optional[tzinfo]:
    tz_name = os.environ.get('SHOP_TIMEZONE')
    if not tz_name:
        return None
    try:
        return ZoneInfo(tz_name)
    except ZoneInfoNotFoundError as error:
        raise CalendarConfigurationError(f'Unknown SHOP_TIMEZONE={tz_name}') from error


def load_business_calendar() -> BusinessCalendar:
    raw_override = os.environ.get('BUSINESS_HOURS')
    if raw_override:
        try:
            raw_hours = json.loads(raw_override)
        except json.JSONDecodeError as error:
            raise CalendarConfigurationError('BUSINESS_HOURS is not valid JSON') from error
        if not isinstance(raw_hours, dict):
            raise CalendarConfigurationError('BUSINESS_HOURS must be a JSON object keyed by weekday')
        logger.info(f'load_business_calendar ::: using BUSINESS_HOURS override for weekdays={sorted(raw_hours)}')
    else:
        raw_hours = BUSINESS_HOURS
    return BusinessCalendar.from_config(raw_hours, tz=get_shop_timezone())


business_calendar = load_business_calendar()
