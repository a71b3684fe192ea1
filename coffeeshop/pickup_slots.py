import os
from datetime import datetime, timedelta, tzinfo
from typing import Callable, List, Optional

from coffeeshop.business_calendar import BusinessCalendar, business_calendar, get_shop_timezone
from coffeeshop.constants.constants import SLOT_INTERVAL_MINUTES, GRACE_WINDOW_MINUTES, FIRST_SLOT_SKIP_MINUTES, \
    MAX_SLOTS
from coffeeshop.utils.exceptions import CalendarConfigurationError
from coffeeshop.utils.logger import logger

Clock = Callable[[], datetime]

SLOT_INTERVAL = timedelta(minutes=SLOT_INTERVAL_MINUTES)


def system_clock(tz: Optional[tzinfo] = None) -> Clock:
    def now():
        return datetime.now(tz)
    return now


def fixed_clock(instant: datetime) -> Clock:
    def now():
        return instant
    return now


def localize(instant: datetime, tz: Optional[tzinfo]) -> datetime:
    """
    Brings an incoming instant to the shop's clock representation
    (aware in the shop zone when one is configured, naive otherwise)
    """
    if tz is None:
        return instant if instant.tzinfo is None else instant.astimezone().replace(tzinfo=None)
    if instant.tzinfo is None:
        return instant.replace(tzinfo=tz)
    return instant.astimezone(tz)


def get_clock() -> Clock:
    tz = get_shop_timezone()
    override = os.environ.get('CURRENT_TIME_OVERRIDE')
    if override:
        try:
            instant = datetime.fromisoformat(override)
        except ValueError as error:
            raise CalendarConfigurationError(f'CURRENT_TIME_OVERRIDE={override} is not an ISO timestamp') from error
        logger.warning(f'get_clock ::: clock is fixed at {override}')
        return fixed_clock(localize(instant, tz))
    return system_clock(tz)


def floor_to_minute(instant: datetime) -> datetime:
    return instant.replace(second=0, microsecond=0)


class SlotGenerator:
    """
    Pickup slots offered to the customer, 15 minutes apart, from the first
    legal slot up to (not including) today's closing time.

    Slots depend on "now", so callers ask for a fresh list on every render.
    """

    def __init__(self, calendar: BusinessCalendar = None, clock: Clock = None):
        self.calendar = calendar or business_calendar
        self.clock = clock or get_clock()

    def now(self) -> datetime:
        return self.clock()

    def _emit(self, first_slot: datetime, closing: datetime, limit: int = MAX_SLOTS) -> List[datetime]:
        slots = []
        current = first_slot
        while current < closing and len(slots) < limit:
            slots.append(current)
            current = current + SLOT_INTERVAL
        return slots

    def first_candidate_for(self, now: datetime) -> datetime:
        remainder = now.minute % SLOT_INTERVAL_MINUTES
        boundary = floor_to_minute(now) - timedelta(minutes=remainder)
        if remainder <= GRACE_WINDOW_MINUTES:
            # just past a boundary: the next boundary still leaves time to prepare
            return boundary + SLOT_INTERVAL
        return boundary + timedelta(minutes=FIRST_SLOT_SKIP_MINUTES)

    def generate_for_today(self, now: datetime = None) -> List[datetime]:
        """
        New-order flow.
        The first slot is always strictly after now and within today's opening hours.
        """
        now = localize(now or self.now(), self.calendar.tz)
        opening = self.calendar.opening_instant(now.date())
        closing = self.calendar.closing_instant(now.date())
        if opening is None or closing is None:
            logger.info(f'generate_for_today ::: closed on {now.date()}')
            return []

        first_slot = self.first_candidate_for(now)
        if first_slot < opening:
            first_slot = opening
        if first_slot <= now:
            first_slot = floor_to_minute(now + SLOT_INTERVAL)

        slots = self._emit(first_slot, closing)
        logger.debug(f'generate_for_today ::: now={now.isoformat()}, first_slot={first_slot.isoformat()}, '
                     f'slots={len(slots)}')
        return slots

    def generate_from_floor(self, floor: datetime) -> List[datetime]:
        """
        Edit-order flow: every slot is strictly after floor (the order's current pickup time).

        Business hours are taken from the day the list is generated, not from floor's day.
        """
        floor = localize(floor, self.calendar.tz)
        remainder = floor.minute % SLOT_INTERVAL_MINUTES
        first_slot = floor_to_minute(floor) + timedelta(minutes=SLOT_INTERVAL_MINUTES - remainder)
        if first_slot <= floor:
            first_slot = first_slot + SLOT_INTERVAL

        today = localize(self.now(), self.calendar.tz).date()
        opening = self.calendar.opening_instant(today)
        closing = self.calendar.closing_instant(today)
        if opening is None or closing is None:
            logger.info(f'generate_from_floor ::: closed on {today}')
            return []
        if first_slot < opening:
            first_slot = opening

        slots = self._emit(first_slot, closing)
        logger.debug(f'generate_from_floor ::: floor={floor.isoformat()}, first_slot={first_slot.isoformat()}, '
                     f'slots={len(slots)}')
        return slots

    def generate(self, floor: datetime = None) -> List[datetime]:
        if floor is None:
            return self.generate_for_today()
        return self.generate_from_floor(floor)
