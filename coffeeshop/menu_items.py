from decimal import Decimal
from typing import List, Dict, Tuple, Optional

from boto3.dynamodb.conditions import Attr, Key
from starlette.requests import Request

from coffeeshop.base_class_entity import EntityBase
from coffeeshop.constants import keys_structure
from coffeeshop.constants.constants import MENU_CATEGORIES, ADMIN_MENU_CATEGORIES, ALL_ITEMS_CATEGORY
from coffeeshop.utils import db as utils_db, app as utils_app, auth as utils_auth, exceptions
from coffeeshop.utils.logger import logger


def start_menu_request(request: Request, for_admin: bool):
    utils_auth.start_request_logging(request)
    if for_admin:
        utils_auth.require_admin(utils_auth.get_auth_result(request), 'see admin-only menu categories')


class MenuItem(EntityBase):
    """
    Read-only view of a menu item; the menu is maintained outside this service
    """
    pk = keys_structure.menu_items_pk
    sk = keys_structure.menu_items_sk

    def __init__(self, id_, **kwargs):
        EntityBase.__init__(self, id_)

        self.name: str = kwargs.get('name_') or kwargs.get('name')
        self.category: str = kwargs.get('category')
        self.description: str = kwargs.get('description')
        self.price: Decimal = Decimal(str(kwargs.get('price'))).quantize(Decimal('1.00')) if \
            type(kwargs.get('price')) in [int, float, Decimal, str] else None
        self.sizes: list = kwargs.get('sizes', [])
        self.temperatures: list = kwargs.get('temperatures', [])
        self.customizations: dict = kwargs.get('customizations', {})
        self.image_url: str = kwargs.get('image_url')
        self.is_available: bool = kwargs.get('is_available', True)
        self.archived: bool = kwargs.get('archived', False)
        self.record_type = 'menu_item'

    @classmethod
    def init_get_by_id(cls, menu_item_id):
        logger.info(f"init_get_by_id ::: started {menu_item_id=}")
        return cls(**cls(menu_item_id)._get_db_item())

    @staticmethod
    @utils_app.request_exception_handler
    @utils_app.log_start_finish
    def endpoint_get_menu_items(request: Request, category: Optional[str] = None, search: Optional[str] = None,
                                for_admin: bool = False):
        """
        Non-archived items, optionally of one category and/or matching a search text.
        Admin-only categories (customization options) are listed for shop admins only.
        """
        start_menu_request(request, for_admin)
        if category == ALL_ITEMS_CATEGORY:
            category = None
        if category in ADMIN_MENU_CATEGORIES and not for_admin:
            logger.info(f"endpoint_get_menu_items ::: {category=} is admin only")
            return utils_app.json_response({'menu_items': []})

        filter_expression = Attr('archived').eq(False)
        if category:
            filter_expression = filter_expression & Attr('category').eq(category)
        if not for_admin:
            for admin_category in ADMIN_MENU_CATEGORIES:
                filter_expression = filter_expression & Attr('category').ne(admin_category)
        menu_item_db_records: List[Dict] = utils_db.query_items_paged(
            Key('partkey').eq(keys_structure.menu_items_pk),
            filter_expression=filter_expression
        )
        menu_items: List[Dict] = [
            item.to_ui() for item in (MenuItem(**record) for record in menu_item_db_records)
            if item.matches_search(search)
        ]
        logger.info(f"endpoint_get_menu_items ::: {category=} {search=} "
                    f"returning menu items={[item['id'] for item in menu_items]}")
        return utils_app.json_response({'menu_items': menu_items})

    @staticmethod
    @utils_app.request_exception_handler
    @utils_app.log_start_finish
    def endpoint_get_menu_categories(request: Request, for_admin: bool = False):
        start_menu_request(request, for_admin)
        categories = [ALL_ITEMS_CATEGORY, *MENU_CATEGORIES]
        if for_admin:
            categories.extend(ADMIN_MENU_CATEGORIES)
        return utils_app.json_response({'categories': categories})

    def _get_pk_sk(self) -> Tuple[str, str]:
        return self.pk, self.sk.format(menu_item_id=self.id_)

    def matches_search(self, search: Optional[str]) -> bool:
        """Case-insensitive match on name or description, blank search matches everything"""
        text = (search or '').strip().lower()
        if not text:
            return True
        return any(text in (value or '').lower() for value in (self.name, self.description))

    def is_available_right_now(self) -> bool:
        return self.is_available and not self.archived

    def check_selection(self, size=None, temperature=None, customizations=None):
        if size and self.sizes and size not in self.sizes:
            raise exceptions.ValidationException(f'Size {size} is not offered for {self.name}')
        if temperature and self.temperatures and temperature not in self.temperatures:
            raise exceptions.ValidationException(f'Temperature {temperature} is not offered for {self.name}')
        for subcategory, selection in (customizations or {}).items():
            options = self.customizations.get(subcategory)
            if options is not None and selection not in options:
                raise exceptions.ValidationException(f'{subcategory}={selection} is not offered for {self.name}')

    def _to_dict(self):
        return {
            'id_': self.id_,
            'name_': self.name,
            'category': self.category,
            'description': self.description,
            'price': self.price,
            'sizes': self.sizes,
            'temperatures': self.temperatures,
            'customizations': self.customizations,
            'image_url': self.image_url,
            'is_available': self.is_available,
            'archived': self.archived
        }
