from datetime import datetime
from decimal import Decimal
from typing import Tuple, List, Dict, Optional, Iterable, Union
from uuid import uuid4

from boto3.dynamodb.conditions import Key, Attr
from botocore.exceptions import ClientError, BotoCoreError
from starlette.requests import Request

from coffeeshop import order_lifecycle
from coffeeshop.base_class_entity import EntityBase
from coffeeshop.carts import Cart
from coffeeshop.constants import keys_structure
from coffeeshop.constants.constants import ROLE_ADMIN, ORDER_NUMBER_LENGTH
from coffeeshop.constants.status_codes import http201, http400, http409
from coffeeshop.custom_time import CustomTimeResolver
from coffeeshop.order_lifecycle import FulfillmentStatus, CustomerStatus
from coffeeshop.pickup_slots import localize
from coffeeshop.utils import auth as utils_auth, \
    data as utils_data, \
    db as utils_db, \
    app as utils_app, \
    exceptions
from coffeeshop.utils.exceptions import OrderNotFound
from coffeeshop.utils.logger import logger, log_exception
from coffeeshop.utils.results import Ok, Rejected

CENTS = Decimal('1.00')
REASON_CONCURRENT_UPDATE = 'Order was changed by someone else, please reload it.'


class OrderLine(EntityBase):
    """
    Checkout snapshot of a cart line. There is no update path for order lines:
    price_at_time stays what the customer paid even if the menu price changes.
    """
    pk = keys_structure.order_lines_pk
    sk = keys_structure.order_lines_sk

    required_fields_validation = {
        'order_id': lambda x: isinstance(x, str),
        'line_no': lambda x: isinstance(x, int),
        'menu_item_id': lambda x: isinstance(x, str),
        'quantity': lambda x: isinstance(x, int) and x >= 1,
        'price_at_time': lambda x: isinstance(x, Decimal),
        'customizations': lambda x: isinstance(x, dict),
    }

    optional_fields_validation = {
        'name_': lambda x: isinstance(x, str),
    }

    def __init__(self, order_id, line_no, **kwargs):
        EntityBase.__init__(self, f'{order_id}_{int(line_no):03d}')
        self.order_id: str = order_id
        self.line_no: int = int(line_no)
        self.menu_item_id: str = kwargs.get('menu_item_id')
        self.name: str = kwargs.get('name_') or kwargs.get('name')
        self.quantity: int = int(kwargs.get('quantity') or 1)
        self.price_at_time: Decimal = Decimal(str(kwargs['price_at_time'])).quantize(CENTS) if \
            kwargs.get('price_at_time') is not None else None
        self.customizations: Dict = dict(kwargs.get('customizations') or {})
        self.record_type = 'order_line'

    def _get_pk_sk(self) -> Tuple[str, str]:
        return self.pk.format(order_id=self.order_id), self.sk.format(line_no=self.line_no)

    def _to_dict(self):
        return {
            'order_id': self.order_id,
            'line_no': self.line_no,
            'menu_item_id': self.menu_item_id,
            'name_': self.name,
            'quantity': self.quantity,
            'price_at_time': self.price_at_time,
            'customizations': self.customizations
        }

    def create(self):
        self._create_db_record()

    def delete(self):
        self._delete_db_record()


class Order(EntityBase):
    pk = keys_structure.orders_pk
    sk = keys_structure.orders_sk

    required_fields_validation = {
        'id_': lambda x: isinstance(x, str),
        'customer_id': lambda x: isinstance(x, str),
        'order_number': lambda x: isinstance(x, str),
        'total_amount': lambda x: isinstance(x, Decimal) and x >= 0,
        'fulfillment_status': lambda x: x in [status.value for status in FulfillmentStatus],
        'customer_status': lambda x: x in [status.value for status in CustomerStatus],
        'created_at': lambda x: isinstance(x, str),
        'updated_at': lambda x: isinstance(x, str),
        'history': lambda x: isinstance(x, list),
    }

    optional_fields_validation = {
        'special_instructions': lambda x: isinstance(x, str),
        'pickup_time': lambda x: isinstance(x, str),
    }

    def __init__(self, id_, **kwargs):
        EntityBase.__init__(self, id_)

        self.customer_id: str = kwargs.get('customer_id')
        self.order_number: str = kwargs.get('order_number') or id_
        self.total_amount: Decimal = Decimal(str(kwargs.get('total_amount'))).quantize(CENTS) if \
            type(kwargs.get('total_amount')) in [int, float, Decimal, str] else None
        self.special_instructions: Optional[str] = kwargs.get('special_instructions') or None
        self.pickup_time: Optional[str] = kwargs.get('pickup_time')
        self.fulfillment_status: str = kwargs.get('fulfillment_status') or \
            order_lifecycle.INITIAL_FULFILLMENT_STATUS.value
        self.customer_status: str = kwargs.get('customer_status') or order_lifecycle.INITIAL_CUSTOMER_STATUS.value
        self.created_at: str = kwargs.get('created_at') or self._now()
        self.updated_at: str = kwargs.get('updated_at') or self.created_at
        self.history: list = kwargs.get('history') or [{'status': self.fulfillment_status, 'at': self.created_at}]
        self.lines: List[OrderLine] = kwargs.get('lines', [])
        self.record_type = 'order'

    @classmethod
    def init_by_db_record(cls, order_id, with_lines=True):
        try:
            record = cls(order_id)._get_db_item()
        except exceptions.RecordNotFound as error:
            raise OrderNotFound(f'Order {order_id} not found') from error
        order = cls(**record)
        if with_lines:
            order.lines = order.get_db_lines()
        return order

    def get_db_lines(self) -> List[OrderLine]:
        records = utils_db.query_items_paged(
            Key('partkey').eq(keys_structure.order_lines_pk.format(order_id=self.id_))
        )
        return sorted([OrderLine(**record) for record in records], key=lambda line: line.line_no)

    def _get_pk_sk(self) -> Tuple[str, str]:
        return self.pk, self.sk.format(order_id=self.id_)

    def _to_dict(self):
        item = {
            'id_': self.id_,
            'customer_id': self.customer_id,
            'order_number': self.order_number,
            'total_amount': self.total_amount,
            'special_instructions': self.special_instructions,
            'pickup_time': self.pickup_time,
            'fulfillment_status': self.fulfillment_status,
            'customer_status': self.customer_status,
            'created_at': self.created_at,
            'updated_at': self.updated_at,
            'history': self.history,
        }
        return {key: value for key, value in item.items() if value is not None}

    def to_ui(self):
        item = self._to_ui()
        item['lines'] = [line.to_ui() for line in self.lines]
        item['allowed_transitions'] = [status.value for status in
                                       order_lifecycle.allowed_transitions(self.fulfillment_status)]
        return item

    def check_access(self, user_id, role):
        if role != ROLE_ADMIN and self.customer_id != user_id:
            # customers never learn about other customers' orders
            raise OrderNotFound('Requested order not found')

    def check_owner(self, user_id):
        if self.customer_id != user_id:
            raise OrderNotFound('Requested order not found')


def new_order_id() -> str:
    return uuid4().hex[:ORDER_NUMBER_LENGTH]


def _rollback_order(order: Order, order_lines: List[OrderLine]) -> bool:
    """
    Header goes first so a half-deleted order is never listed.
    Every line delete is attempted even when an earlier one fails, deleting a missing line is a no-op.
    Returns False when something could not be removed.
    """
    logger.warning(f'_rollback_order ::: removing partially written order {order.id_}, lines={len(order_lines)}')
    clean = True
    for record in [order, *order_lines]:
        try:
            record._delete_db_record()
        except (ClientError, BotoCoreError, exceptions.StoreFailure) as error:
            clean = False
            log_exception(error, msg=f'_rollback_order ::: could not delete {record.record_type} {record.id_}')
    return clean


def create_order(customer_id: str, lines: List[Dict], total_amount, special_instructions: Optional[str] = None,
                 pickup_time: Optional[datetime] = None) -> Order:
    """
    Writes the order header and its lines.
    If any line can not be written the header and the lines already written are deleted,
    a partially written order never stays in the store.
    """
    if not lines:
        raise exceptions.EmptyCart('Order must contain at least one item')
    order_id = new_order_id()
    order = Order(
        order_id,
        customer_id=customer_id,
        total_amount=Decimal(str(total_amount)),
        special_instructions=special_instructions,
        pickup_time=utils_data.to_db_datetime(pickup_time)
    )
    order_lines = [OrderLine(order_id, line_no, **line) for line_no, line in enumerate(lines, start=1)]

    try:
        order._create_db_record(condition_expression=Attr('partkey').not_exists())
    except (ClientError, BotoCoreError) as error:
        raise exceptions.OrderCreationFailed(f'Could not create order header: {error}') from error

    written_lines: List[OrderLine] = []
    try:
        for order_line in order_lines:
            order_line.create()
            written_lines.append(order_line)
    except (ClientError, BotoCoreError, exceptions.ValidationException, exceptions.StoreFailure) as error:
        rolled_back = _rollback_order(order, order_lines)
        raise exceptions.OrderCreationFailed(
            f'Could not write lines of order {order_id}: {error}, {rolled_back=}') from error

    order.lines = written_lines
    logger.info(f'create_order ::: order {order_id} created for {customer_id=} with {len(written_lines)} lines')
    return order


def set_fulfillment_status(order_id: str, new_status) -> Union[Ok, Rejected]:
    """
    Moves the order to new_status when the lifecycle allows it.
    Only the status column (plus audit fields) is written, conditionally on the
    stored status still being the one the transition was checked against.
    """
    order = Order.init_by_db_record(order_id, with_lines=False)
    result = order_lifecycle.check_transition(order.fulfillment_status, new_status)
    if not result.ok:
        logger.info(f'set_fulfillment_status ::: {order_id=} {order.fulfillment_status} -> {new_status} '
                    f'rejected: {result.reason}')
        return result

    target: FulfillmentStatus = result.value
    now = order._now()
    try:
        order._update_db_fields(
            fields={'fulfillment_status': target.value, 'updated_at': now},
            list_appends={'history': [{'status': target.value, 'at': now}]},
            condition_expression=Attr('fulfillment_status').eq(order.fulfillment_status)
        )
    except ClientError as error:
        if utils_db.is_conditional_check_failure(error):
            return Rejected(REASON_CONCURRENT_UPDATE)
        raise exceptions.StoreFailure(f'Could not update status of order {order_id}') from error
    logger.info(f'set_fulfillment_status ::: {order_id=} '
                f'{order_lifecycle.transition_name(order.fulfillment_status, target)}: '
                f'{order.fulfillment_status} -> {target.value}')
    return Ok(target)


@utils_db.wrap_store_failure
def set_customer_status(order_id: str, new_status) -> Union[Ok, Rejected]:
    result = order_lifecycle.check_customer_status(new_status)
    if not result.ok:
        return result
    try:
        Order(order_id)._update_db_fields(
            fields={'customer_status': result.value.value, 'updated_at': Order._now()},
            condition_expression=Attr('partkey').exists()
        )
    except ClientError as error:
        if utils_db.is_conditional_check_failure(error):
            raise OrderNotFound(f'Order {order_id} not found') from error
        raise
    logger.info(f'set_customer_status ::: {order_id=} customer_status={result.value.value}')
    return result


@utils_db.wrap_store_failure
def set_pickup_time(order_id: str, pickup_time: datetime,
                    expected_current: Optional[str] = None) -> Union[Ok, Rejected]:
    condition = Attr('partkey').exists()
    if expected_current is not None:
        condition = condition & Attr('pickup_time').eq(expected_current)
    try:
        Order(order_id)._update_db_fields(
            fields={'pickup_time': utils_data.to_db_datetime(pickup_time), 'updated_at': Order._now()},
            condition_expression=condition
        )
    except ClientError as error:
        if utils_db.is_conditional_check_failure(error):
            return Rejected(REASON_CONCURRENT_UPDATE)
        raise
    logger.info(f'set_pickup_time ::: {order_id=} pickup_time={pickup_time.isoformat()}')
    return Ok(pickup_time)


@utils_db.wrap_store_failure
def list_orders(customer_id: Optional[str] = None,
                status_filter: Iterable = order_lifecycle.ACTIVE_STATUSES) -> List[Order]:
    statuses = [FulfillmentStatus(status).value for status in status_filter]
    filter_expression = Attr('fulfillment_status').is_in(statuses)
    if customer_id is not None:
        filter_expression = filter_expression & Attr('customer_id').eq(customer_id)
    records = utils_db.query_items_paged(
        key_condition_expression=Key('partkey').eq(keys_structure.orders_pk),
        filter_expression=filter_expression
    )
    orders = [Order(**record) for record in records]
    orders.sort(key=lambda order: order.created_at, reverse=True)
    return orders


def get_order(order_id: str) -> Order:
    return Order.init_by_db_record(order_id)


# ENDPOINTS
@utils_app.request_exception_handler
@utils_app.log_start_finish
@utils_auth.authenticate
def endpoint_create_order(request: Request, payload: Dict = None, resolver: CustomTimeResolver = None):
    """
    Checkout: the cart's pickup time is checked again against the slots on offer now,
    then the cart becomes an order and is cleared
    """
    user_id, _ = utils_auth.user_and_role(request)
    body = utils_data.parse_body(payload)
    cart = Cart.init_by_user_id(user_id, resolver=resolver)
    if cart.aggregator.is_empty():
        raise exceptions.EmptyCart('Please add items to your cart before placing an order')

    if cart.pickup_time is None:
        return utils_app.rejected_response(Rejected('Please choose a pickup time.'))
    pickup_check = cart.resolver.check_offered(cart.pickup_time)
    if not pickup_check.ok:
        return utils_app.rejected_response(pickup_check)

    special_instructions = body.get('special_instructions')
    if special_instructions is not None and not isinstance(special_instructions, str):
        raise exceptions.ValidationException('special_instructions must be a string')

    order = create_order(
        customer_id=user_id,
        lines=cart.aggregator.to_order_lines(),
        total_amount=cart.aggregator.total(),
        special_instructions=special_instructions,
        pickup_time=cart.pickup_time
    )
    cart.clear()
    return utils_app.json_response(order.to_ui(), status_code=http201)


@utils_app.request_exception_handler
@utils_app.log_start_finish
@utils_auth.authenticate
def endpoint_get_orders(request: Request, view: str = 'active', all_customers: bool = False):
    user_id, role = utils_auth.user_and_role(request)
    statuses = order_lifecycle.statuses_for_view(view)
    if not statuses.ok:
        return utils_app.rejected_response(statuses)
    if all_customers:
        utils_auth.require_admin(request.state.auth_result)
        orders = list_orders(None, statuses.value)
    else:
        orders = list_orders(user_id, statuses.value)
    return utils_app.json_response({'orders': [order.to_ui() for order in orders], 'view': view})


@utils_app.request_exception_handler
@utils_app.log_start_finish
@utils_auth.authenticate
def endpoint_get_order_by_id(request: Request, order_id: str):
    user_id, role = utils_auth.user_and_role(request)
    order = get_order(order_id)
    order.check_access(user_id, role)
    return utils_app.json_response(order.to_ui())


@utils_app.request_exception_handler
@utils_app.log_start_finish
@utils_auth.authenticate
def endpoint_set_fulfillment_status(request: Request, order_id: str, payload: Dict = None):
    utils_auth.require_admin(request.state.auth_result)
    new_status = utils_data.parse_body(payload).get('status')
    result = set_fulfillment_status(order_id, new_status)
    if not result.ok:
        status_code = http409 if result.reason == REASON_CONCURRENT_UPDATE else http400
        return utils_app.rejected_response(result, status_code=status_code)
    return utils_app.json_response(get_order(order_id).to_ui())


@utils_app.request_exception_handler
@utils_app.log_start_finish
@utils_auth.authenticate
def endpoint_set_customer_status(request: Request, order_id: str, payload: Dict = None):
    user_id, _ = utils_auth.user_and_role(request)
    Order.init_by_db_record(order_id, with_lines=False).check_owner(user_id)
    result = set_customer_status(order_id, utils_data.parse_body(payload).get('customer_status'))
    if not result.ok:
        return utils_app.rejected_response(result)
    return utils_app.json_response({'id': order_id, 'customer_status': result.value.value})


@utils_app.request_exception_handler
@utils_app.log_start_finish
@utils_auth.authenticate
def endpoint_set_pickup_time(request: Request, order_id: str, payload: Dict = None,
                             resolver: CustomTimeResolver = None):
    """
    Edit-order flow: the new time must be strictly after the current pickup time
    """
    user_id, _ = utils_auth.user_and_role(request)
    resolver = resolver or CustomTimeResolver()
    order = Order.init_by_db_record(order_id, with_lines=False)
    order.check_owner(user_id)
    if order.fulfillment_status not in [status.value for status in order_lifecycle.ACTIVE_STATUSES]:
        return utils_app.rejected_response(Rejected(f'Order is already {order.fulfillment_status}.'))

    floor = localize(utils_data.from_db_datetime(order.pickup_time) or resolver.slot_generator.now(),
                     resolver.calendar.tz)
    body = utils_data.parse_body(payload)
    if body.get('time'):
        result = resolver.resolve(body['time'], floor=floor)
    elif body.get('pickup_time'):
        try:
            candidate = localize(datetime.fromisoformat(body['pickup_time']), resolver.calendar.tz)
        except (TypeError, ValueError) as error:
            raise exceptions.ValidationException('pickup_time must be an ISO timestamp') from error
        result = resolver.check_offered(candidate, floor=floor)
    else:
        raise exceptions.ValidationException('time or pickup_time is required')
    if not result.ok:
        return utils_app.rejected_response(result)

    update = set_pickup_time(order_id, result.value, expected_current=order.pickup_time)
    if not update.ok:
        return utils_app.rejected_response(update, status_code=http409)
    return utils_app.json_response({'id': order_id, 'pickup_time': result.value})
