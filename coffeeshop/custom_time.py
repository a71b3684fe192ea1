import re
from datetime import datetime, date, time
from typing import Union, Optional

from coffeeshop.pickup_slots import SlotGenerator
from coffeeshop.utils.logger import logger
from coffeeshop.utils.results import Ok, Rejected, ParseFailure

CUSTOM_TIME_PATTERN = re.compile(r'^(\d{1,2}):(\d{2})\s*(AM|PM)?$')

REASON_BEFORE_CURRENT_PICKUP = 'New pickup time must be at or after the current pickup time.'
REASON_BEFORE_FIRST_SLOT = 'Time must be after the first available time slot.'
REASON_OUTSIDE_BUSINESS_HOURS = 'Time must be within business hours.'
REASON_DIFFERENT_DAY = 'Time must be on the same day.'
REASON_NO_SLOTS = 'No pickup times are available today.'


def _calendar_date(value: Union[date, datetime]) -> date:
    return value.date() if isinstance(value, datetime) else value


def _at_time_of_day(reference: Union[date, datetime], hours: int, minutes: int) -> datetime:
    if isinstance(reference, datetime):
        return reference.replace(hour=hours, minute=minutes, second=0, microsecond=0)
    return datetime.combine(reference, time(hours, minutes))


class CustomTimeResolver:
    """
    Turns a typed pickup time ("1:12 PM", "1:12pm", "13:12") into an instant
    and checks it against the slots currently on offer.
    """

    def __init__(self, slot_generator: SlotGenerator = None):
        self.slot_generator = slot_generator or SlotGenerator()

    @property
    def calendar(self):
        return self.slot_generator.calendar

    @staticmethod
    def parse(text: str, reference_date: Union[date, datetime]) -> Union[datetime, ParseFailure]:
        cleaned = (text or '').strip().upper()
        match = CUSTOM_TIME_PATTERN.match(cleaned)
        if not match:
            return ParseFailure(text=text)

        hours, minutes, meridiem = int(match.group(1)), int(match.group(2)), match.group(3)
        if not 0 <= minutes <= 59:
            return ParseFailure(text=text, reason='Minutes must be between 00 and 59.')

        if meridiem:
            if not 1 <= hours <= 12:
                return ParseFailure(text=text, reason='Hour must be between 1 and 12.')
            if meridiem == 'PM' and hours != 12:
                hours += 12
            elif meridiem == 'AM' and hours == 12:
                hours = 0
        elif not 0 <= hours <= 23:
            return ParseFailure(text=text, reason='Hour must be between 0 and 23.')

        return _at_time_of_day(reference_date, hours, minutes)

    def validate(self, candidate: datetime, first_offered_slot: datetime, base_date: Union[date, datetime],
                 floor: Optional[datetime] = None) -> Union[Ok, Rejected]:
        # the first failing rule decides the reason
        if floor is not None and candidate < floor:
            return Rejected(REASON_BEFORE_CURRENT_PICKUP)
        if candidate < first_offered_slot:
            return Rejected(REASON_BEFORE_FIRST_SLOT)
        if not self.calendar.is_open(candidate):
            return Rejected(REASON_OUTSIDE_BUSINESS_HOURS)
        if _calendar_date(candidate) != _calendar_date(base_date):
            return Rejected(REASON_DIFFERENT_DAY)
        return Ok(candidate)

    def check_offered(self, candidate: datetime, floor: Optional[datetime] = None) -> Union[Ok, Rejected]:
        """
        Validates an instant against a freshly generated slot list
        """
        today = self.slot_generator.now()
        slots = self.slot_generator.generate(floor)
        if not slots:
            return Rejected(REASON_NO_SLOTS)
        return self.validate(candidate, slots[0], today, floor)

    def resolve(self, text: str, floor: Optional[datetime] = None) -> Union[Ok, Rejected, ParseFailure]:
        parsed = self.parse(text, self.slot_generator.now())
        if isinstance(parsed, ParseFailure):
            logger.info(f'resolve ::: could not parse custom time {text=}')
            return parsed
        result = self.check_offered(parsed, floor)
        if not result.ok:
            logger.info(f'resolve ::: custom time {parsed.isoformat()} rejected, reason={result.reason}')
        return result
