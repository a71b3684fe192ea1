from datetime import datetime
from typing import Dict, Optional

from starlette.requests import Request

from coffeeshop.custom_time import CustomTimeResolver
from coffeeshop.pickup_slots import SlotGenerator, localize
from coffeeshop.utils import app as utils_app, auth as utils_auth, data as utils_data, exceptions
from coffeeshop.utils.logger import logger


def parse_floor(value: Optional[str], slot_generator: SlotGenerator) -> Optional[datetime]:
    if not value:
        return None
    try:
        return localize(datetime.fromisoformat(value), slot_generator.calendar.tz)
    except (TypeError, ValueError) as error:
        raise exceptions.ValidationException(f'floor={value} must be an ISO timestamp') from error


@utils_app.request_exception_handler
@utils_app.log_start_finish
def endpoint_get_business_hours(request: Request, slot_generator: SlotGenerator = None):
    utils_auth.start_request_logging(request)
    slot_generator = slot_generator or SlotGenerator()
    calendar = slot_generator.calendar
    today = slot_generator.now()
    return utils_app.json_response({
        'business_hours': calendar.to_ui(),
        'timezone': str(calendar.tz) if calendar.tz else None,
        'open_now': calendar.is_open(today)
    })


@utils_app.request_exception_handler
@utils_app.log_start_finish
def endpoint_get_pickup_slots(request: Request, floor: Optional[str] = None, slot_generator: SlotGenerator = None):
    """
    Without floor: slots for a new order. With floor (the order's current pickup time): edit-order slots
    """
    utils_auth.start_request_logging(request)
    slot_generator = slot_generator or SlotGenerator()
    floor_instant = parse_floor(floor, slot_generator)
    slots = slot_generator.generate(floor_instant)
    logger.info(f'endpoint_get_pickup_slots ::: {floor=}, returning {len(slots)} slots')
    return utils_app.json_response({
        'now': slot_generator.now(),
        'floor': floor_instant,
        'slots': slots
    })


@utils_app.request_exception_handler
@utils_app.log_start_finish
def endpoint_resolve_custom_time(request: Request, payload: Dict = None, resolver: CustomTimeResolver = None):
    utils_auth.start_request_logging(request)
    resolver = resolver or CustomTimeResolver()
    body = utils_data.parse_body(payload)
    if not body.get('time'):
        raise exceptions.ValidationException('time is required')
    result = resolver.resolve(body['time'], floor=parse_floor(body.get('floor'), resolver.slot_generator))
    if not result.ok:
        return utils_app.rejected_response(result)
    return utils_app.json_response({'pickup_time': result.value})
