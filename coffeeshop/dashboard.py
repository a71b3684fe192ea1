"""
Admin sales overview. Only completed orders count as sales.

* metrics: today's sales, number of orders and average per order
* weekly sales: one entry per day for the last seven days, oldest first
* top items: today's best sellers by quantity, ranked from 1
"""
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Dict, List, Optional

from starlette.requests import Request

from coffeeshop import orders as order_store
from coffeeshop.business_calendar import business_calendar, sunday_based_weekday
from coffeeshop.constants.constants import TOP_ITEMS_LIMIT, WEEKLY_SALES_DAYS
from coffeeshop.order_lifecycle import FulfillmentStatus
from coffeeshop.pickup_slots import Clock, get_clock, localize
from coffeeshop.utils import app as utils_app, auth as utils_auth, data as utils_data, exceptions
from coffeeshop.utils.logger import logger

CENTS = Decimal('1.00')
DAY_NAMES = ('Sun', 'Mon', 'Tue', 'Wed', 'Thu', 'Fri', 'Sat')
UNKNOWN_ITEM_NAME = 'Unknown Item'


def order_day(order: order_store.Order, tz=None) -> date:
    return localize(utils_data.from_db_datetime(order.created_at), tz).date()


def sales_total(orders: List[order_store.Order]) -> Decimal:
    return sum((order.total_amount or Decimal('0') for order in orders), Decimal('0')).quantize(CENTS)


def todays_metrics(orders_today: List[order_store.Order]) -> Dict:
    orders_count = len(orders_today)
    todays_sales = sales_total(orders_today)
    average = (todays_sales / orders_count).quantize(CENTS) if orders_count else Decimal('0').quantize(CENTS)
    return {
        'todays_sales': todays_sales,
        'orders_today': orders_count,
        'average_per_order': average
    }


def weekly_sales(orders: List[order_store.Order], today: date, tz=None, days: int = WEEKLY_SALES_DAYS) -> List[Dict]:
    orders_by_day: Dict[date, List[order_store.Order]] = {}
    for order in orders:
        orders_by_day.setdefault(order_day(order, tz), []).append(order)

    result = []
    for offset in range(days - 1, -1, -1):
        day = today - timedelta(days=offset)
        result.append({
            'day': DAY_NAMES[sunday_based_weekday(day)],
            'date': day.isoformat(),
            'sales': sales_total(orders_by_day.get(day, []))
        })
    return result


def top_items(orders_today: List[order_store.Order], limit: int = TOP_ITEMS_LIMIT) -> List[Dict]:
    """
    Quantities of today's order lines summed per menu item.
    The name comes from the line snapshot, so renamed or deleted menu items still show up.
    """
    sold: Dict[str, int] = {}
    names: Dict[str, str] = {}
    for order in orders_today:
        for line in order.get_db_lines():
            sold[line.menu_item_id] = sold.get(line.menu_item_id, 0) + (line.quantity or 1)
            if line.name:
                names.setdefault(line.menu_item_id, line.name)

    ranked = sorted(sold.items(), key=lambda entry: entry[1], reverse=True)[:limit]
    return [
        {
            'rank': rank,
            'menu_item_id': menu_item_id,
            'name': names.get(menu_item_id, UNKNOWN_ITEM_NAME),
            'sold': quantity
        }
        for rank, (menu_item_id, quantity) in enumerate(ranked, start=1)
    ]


def dashboard_data(now: Optional[datetime] = None, top: int = TOP_ITEMS_LIMIT) -> Dict:
    tz = business_calendar.tz
    today = localize(now or get_clock()(), tz).date()
    first_day = today - timedelta(days=WEEKLY_SALES_DAYS - 1)

    completed = [
        order for order in order_store.list_orders(None, [FulfillmentStatus.COMPLETED])
        if first_day <= order_day(order, tz) <= today
    ]
    orders_today = [order for order in completed if order_day(order, tz) == today]
    logger.info(f'dashboard_data ::: {today=} completed this week={len(completed)}, today={len(orders_today)}')
    return {
        'date': today.isoformat(),
        'metrics': todays_metrics(orders_today),
        'weekly_sales': weekly_sales(completed, today, tz),
        'top_items': top_items(orders_today, top)
    }


@utils_app.request_exception_handler
@utils_app.log_start_finish
@utils_auth.authenticate
def endpoint_get_dashboard(request: Request, top: int = TOP_ITEMS_LIMIT, clock: Clock = None):
    utils_auth.require_admin(request.state.auth_result, 'see the sales dashboard')
    if top < 1:
        raise exceptions.ValidationException('top must be a positive integer')
    return utils_app.json_response(dashboard_data(now=(clock or get_clock())(), top=top))
