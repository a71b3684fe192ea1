import os
from datetime import datetime, timedelta
from typing import Tuple, Dict, Optional

from starlette.requests import Request

from coffeeshop.base_class_entity import EntityBase
from coffeeshop.cart_aggregator import CartAggregator, CartLine
from coffeeshop.constants import keys_structure
from coffeeshop.constants.constants import DEFAULT_CART_TTL_HOURS
from coffeeshop.custom_time import CustomTimeResolver
from coffeeshop.menu_items import MenuItem
from coffeeshop.pickup_slots import localize
from coffeeshop.utils import auth as utils_auth, app as utils_app, data as utils_data, exceptions
from coffeeshop.utils.logger import logger


def cart_ttl_hours() -> int:
    return int(os.environ.get('CART_TTL_HOURS', DEFAULT_CART_TTL_HOURS))


class Cart(EntityBase):
    """
    Customer's scratch cart, kept until checkout (or until the TTL expires).
    It is never part of an order row: checkout copies it into order lines.
    """
    pk = keys_structure.carts_pk
    sk = keys_structure.carts_sk

    required_fields_validation = {
        'id_': lambda x: isinstance(x, str),
        'menu_items': lambda x: isinstance(x, list),
    }

    optional_fields_validation = {
        'pickup_time': lambda x: isinstance(x, str),
    }

    def __init__(self, id_, request_body=None, resolver: CustomTimeResolver = None):
        EntityBase.__init__(self, id_)

        self.request_body: Dict = request_body or {}
        self.resolver = resolver or CustomTimeResolver()
        self.aggregator = CartAggregator()
        self.record_type: str = 'cart'

    @property
    def pickup_time(self) -> Optional[datetime]:
        return self.aggregator.pickup_time

    def _fill_db_item(self):
        try:
            db_record = self._get_db_item()
        except exceptions.RecordNotFound:
            logger.info(f'_fill_db_item ::: no cart yet for user={self.id_}')
            return
        pickup_time = utils_data.from_db_datetime(db_record.get('pickup_time'))
        if pickup_time is not None:
            pickup_time = localize(pickup_time, self.resolver.calendar.tz)
        self.aggregator = CartAggregator.from_records(db_record.get('menu_items', []), pickup_time)

    @classmethod
    def init_by_user_id(cls, user_id, resolver: CustomTimeResolver = None):
        c = cls(id_=user_id, resolver=resolver)
        c._fill_db_item()
        return c

    @classmethod
    @utils_auth.authenticate_class
    def init_endpoint(cls, request: Request, payload: Dict = None, resolver: CustomTimeResolver = None):
        logger.info("init_endpoint ::: started")
        user_id, _ = utils_auth.user_and_role(request)
        c = cls(id_=user_id, request_body=utils_data.parse_body(payload), resolver=resolver)
        c._fill_db_item()
        return c

    @utils_app.request_exception_handler
    @utils_app.log_start_finish
    def endpoint_get_cart(self):
        return utils_app.json_response({'cart': self.to_ui()})

    @utils_app.request_exception_handler
    @utils_app.log_start_finish
    def endpoint_add_item_to_cart(self):
        menu_item_id = self.request_body.get('menu_item_id')
        if not menu_item_id:
            raise exceptions.ValidationException('menu_item_id is required')
        menu_item = MenuItem.init_get_by_id(menu_item_id)
        if not menu_item.is_available_right_now():
            raise exceptions.ItemNotAvailable(f'{menu_item.name} is not available right now')
        size, temperature = self.request_body.get('size'), self.request_body.get('temperature')
        customizations = self.request_body.get('customizations') or {}
        if not isinstance(customizations, dict) or \
                not all(isinstance(key, str) and isinstance(value, str) for key, value in customizations.items()):
            raise exceptions.ValidationException('customizations must map a subcategory to one selection name')
        menu_item.check_selection(size, temperature, customizations)
        if menu_item.price is None:
            raise exceptions.ValidationException(f'{menu_item.name} has no price')

        qty = self.request_body.get('qty')
        if qty is not None and (not isinstance(qty, int) or isinstance(qty, bool) or qty < 1):
            raise exceptions.ValidationException('qty must be a positive integer')
        self.aggregator.add_item(CartLine(
            item_id=menu_item.id_,
            name=menu_item.name,
            unit_price=menu_item.price,
            size=size,
            temperature=temperature,
            customizations=customizations,
            quantity=qty
        ))
        self.save()
        return utils_app.json_response({'cart': self.to_ui()})

    @utils_app.request_exception_handler
    @utils_app.log_start_finish
    def endpoint_set_quantity(self, menu_item_id, size=None, temperature=None):
        quantity = self.request_body.get('qty')
        if not isinstance(quantity, int) or isinstance(quantity, bool):
            raise exceptions.ValidationException('qty must be an integer')
        updated = self.aggregator.set_quantity(menu_item_id, quantity, size=size, temperature=temperature)
        if not updated:
            raise exceptions.RecordNotFound(f'No cart lines for menu item {menu_item_id}')
        self.save()
        return utils_app.json_response({'cart': self.to_ui()})

    @utils_app.request_exception_handler
    @utils_app.log_start_finish
    def endpoint_remove_item_from_cart(self, menu_item_id, size=None, temperature=None):
        removed = self.aggregator.remove_item(menu_item_id, size=size, temperature=temperature)
        self.save()
        return utils_app.json_response({'cart': self.to_ui(), 'removed': removed})

    @utils_app.request_exception_handler
    @utils_app.log_start_finish
    def endpoint_clear_cart(self):
        self.clear()
        return utils_app.json_response({'message': 'Cart was successfully cleared'})

    @utils_app.request_exception_handler
    @utils_app.log_start_finish
    def endpoint_set_pickup_time(self):
        """
        Accepts either a typed time ({"time": "1:12 PM"}) or an offered slot ({"pickup_time": ISO})
        """
        if self.request_body.get('time'):
            result = self.resolver.resolve(self.request_body['time'])
        elif self.request_body.get('pickup_time'):
            try:
                candidate = datetime.fromisoformat(self.request_body['pickup_time'])
            except (TypeError, ValueError) as error:
                raise exceptions.ValidationException('pickup_time must be an ISO timestamp') from error
            result = self.resolver.check_offered(localize(candidate, self.resolver.calendar.tz))
        else:
            raise exceptions.ValidationException('time or pickup_time is required')

        if not result.ok:
            return utils_app.rejected_response(result)
        self.aggregator.set_pickup_time(result.value)
        self.save()
        return utils_app.json_response({'cart': self.to_ui()})

    def _get_pk_sk(self) -> Tuple[str, str]:
        return self.pk, self.sk.format(user_id=self.id_)

    def _to_dict(self):
        return {
            'id_': self.id_,
            'menu_items': self.aggregator.to_records(),
            'pickup_time': utils_data.to_db_datetime(self.pickup_time),
        }

    def _init_db_record(self):
        super()._init_db_record()
        expires_at = datetime.now() + timedelta(hours=cart_ttl_hours())
        self.db_record['ttl_'] = int(expires_at.timestamp())
        if self.db_record['pickup_time'] is None:
            del self.db_record['pickup_time']

    def save(self):
        self._create_db_record()

    def clear(self):
        self.aggregator.clear()
        self._delete_db_record()

    def to_ui(self) -> Dict:
        item = self._to_ui()
        item['total'] = self.aggregator.total()
        return item
