from typing import Optional

from fastapi import FastAPI, Request

from coffeeshop import carts, dashboard, menu_items, orders, pickup
from coffeeshop.constants.constants import TOP_ITEMS_LIMIT
from coffeeshop.utils import app as utils_app

app = FastAPI(title='coffeeshop-order-fulfillment')


@app.get('/health-check')
def health_check():
    return utils_app.json_response({'status': 'ok'})


# PICKUP TIMES
@app.get('/business-hours')
def get_business_hours(request: Request):
    return pickup.endpoint_get_business_hours(request)


@app.get('/pickup-slots')
def get_pickup_slots(request: Request, floor: Optional[str] = None):
    """
    floor is the current pickup time of an order being edited
    """
    return pickup.endpoint_get_pickup_slots(request, floor)


@app.post('/pickup-slots/custom')
def resolve_custom_time(request: Request, payload: dict):
    return pickup.endpoint_resolve_custom_time(request, payload)


# MENU ITEMS
@app.get('/menu-items')
def get_menu_items(request: Request, category: Optional[str] = None, q: Optional[str] = None, admin: bool = False):
    """
    admin=true also lists admin-only categories and requires an admin user
    """
    return menu_items.MenuItem.endpoint_get_menu_items(request, category=category, search=q, for_admin=admin)


@app.get('/menu-categories')
def get_menu_categories(request: Request, admin: bool = False):
    return menu_items.MenuItem.endpoint_get_menu_categories(request, for_admin=admin)


# CARTS
@utils_app.request_exception_handler
def _with_cart(request: Request, action: str, payload: Optional[dict] = None, **kwargs):
    cart = carts.Cart.init_endpoint(request, payload)
    return getattr(cart, action)(**kwargs)


@app.get('/carts')
def get_cart(request: Request):
    return _with_cart(request, 'endpoint_get_cart')


@app.post('/carts')
def add_item_to_cart(request: Request, payload: dict):
    return _with_cart(request, 'endpoint_add_item_to_cart', payload)


@app.put('/carts/pickup-time')
def set_cart_pickup_time(request: Request, payload: dict):
    return _with_cart(request, 'endpoint_set_pickup_time', payload)


@app.put('/carts/{menu_item_id}')
def set_cart_item_quantity(request: Request, menu_item_id: str, payload: dict,
                           size: Optional[str] = None, temperature: Optional[str] = None):
    return _with_cart(request, 'endpoint_set_quantity', payload,
                      menu_item_id=menu_item_id, size=size, temperature=temperature)


@app.delete('/carts/{menu_item_id}')
def remove_item_from_cart(request: Request, menu_item_id: str,
                          size: Optional[str] = None, temperature: Optional[str] = None):
    return _with_cart(request, 'endpoint_remove_item_from_cart',
                      menu_item_id=menu_item_id, size=size, temperature=temperature)


@app.delete('/carts')
def clear_cart(request: Request):
    return _with_cart(request, 'endpoint_clear_cart')


# ORDERS
@app.post('/orders')
def create_order(request: Request, payload: Optional[dict] = None):
    """
    checkout of the customer's cart
    """
    return orders.endpoint_create_order(request, payload)


@app.get('/orders')
def get_orders(request: Request, view: str = 'active'):
    return orders.endpoint_get_orders(request, view)


@app.get('/orders/admin')
def get_all_orders(request: Request, view: str = 'active'):
    """
    admin operation
    """
    return orders.endpoint_get_orders(request, view, all_customers=True)


@app.get('/orders/admin/dashboard')
def get_sales_dashboard(request: Request, top: int = TOP_ITEMS_LIMIT):
    """
    admin operation
    """
    return dashboard.endpoint_get_dashboard(request, top)


@app.get('/orders/{order_id}')
def get_order_by_id(request: Request, order_id: str):
    return orders.endpoint_get_order_by_id(request, order_id)


@app.put('/orders/{order_id}/status')
def set_order_status(request: Request, order_id: str, payload: dict):
    """
    admin operation
    """
    return orders.endpoint_set_fulfillment_status(request, order_id, payload)


@app.put('/orders/{order_id}/customer-status')
def set_order_customer_status(request: Request, order_id: str, payload: dict):
    return orders.endpoint_set_customer_status(request, order_id, payload)


@app.put('/orders/{order_id}/pickup-time')
def set_order_pickup_time(request: Request, order_id: str, payload: dict):
    return orders.endpoint_set_pickup_time(request, order_id, payload)
