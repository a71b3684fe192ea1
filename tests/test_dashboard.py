from datetime import date, datetime
from decimal import Decimal

import pytest

from coffeeshop import dashboard, orders
from conftest import auth_headers, id_admin, id_customer

PRICES = {'latte': Decimal('4.50'), 'mocha': Decimal('5.25'), 'cookie': Decimal('1.75'),
          'muffin': Decimal('3.00'), 'chai': Decimal('4.00')}


def stored_order(order_id, created_at, lines, status='completed'):
    total = sum((PRICES[item] * quantity for item, quantity in lines), Decimal('0'))
    order = orders.Order(order_id, customer_id=id_customer, total_amount=total, fulfillment_status=status,
                         created_at=created_at)
    order._create_db_record()
    for line_no, (item, quantity) in enumerate(lines, start=1):
        orders.OrderLine(order_id, line_no, menu_item_id=item, name=item.title(), quantity=quantity,
                         price_at_time=PRICES[item], customizations={}).create()
    return order


@pytest.fixture
def sales(gen_table):
    # today is Monday 2024-01-08
    stored_order('morning', '2024-01-08T07:30:00', [('latte', 2), ('muffin', 1)])
    stored_order('rush', '2024-01-08T08:00:00', [('latte', 1), ('cookie', 2)])
    stored_order('declined', '2024-01-08T07:45:00', [('mocha', 5)], status='cancelled')
    stored_order('saturday', '2024-01-06T12:00:00', [('chai', 3)])
    stored_order('last-monday', '2024-01-01T12:00:00', [('latte', 2), ('muffin', 1), ('cookie', 1)])
    return gen_table


def test_dashboard_data(sales):
    data = dashboard.dashboard_data(now=datetime(2024, 1, 8, 8, 3))

    assert data['metrics'] == {
        'todays_sales': Decimal('20.00'),
        'orders_today': 2,
        'average_per_order': Decimal('10.00')
    }
    assert [(entry['day'], entry['date'], entry['sales']) for entry in data['weekly_sales']] == [
        ('Tue', '2024-01-02', Decimal('0.00')),
        ('Wed', '2024-01-03', Decimal('0.00')),
        ('Thu', '2024-01-04', Decimal('0.00')),
        ('Fri', '2024-01-05', Decimal('0.00')),
        ('Sat', '2024-01-06', Decimal('12.00')),
        ('Sun', '2024-01-07', Decimal('0.00')),
        ('Mon', '2024-01-08', Decimal('20.00')),
    ]
    assert data['top_items'] == [
        {'rank': 1, 'menu_item_id': 'latte', 'name': 'Latte', 'sold': 3},
        {'rank': 2, 'menu_item_id': 'cookie', 'name': 'Cookie', 'sold': 2},
        {'rank': 3, 'menu_item_id': 'muffin', 'name': 'Muffin', 'sold': 1},
    ]


def test_quiet_day(gen_table):
    data = dashboard.dashboard_data(now=datetime(2024, 1, 8, 8, 3))
    assert data['metrics'] == {
        'todays_sales': Decimal('0.00'),
        'orders_today': 0,
        'average_per_order': Decimal('0.00')
    }
    assert len(data['weekly_sales']) == 7
    assert data['top_items'] == []


def test_top_items_limit(sales):
    top = dashboard.dashboard_data(now=datetime(2024, 1, 8, 8, 3), top=1)['top_items']
    assert [item['menu_item_id'] for item in top] == ['latte']


def test_weekly_sales_names_days_sunday_first():
    days = dashboard.weekly_sales([], date(2024, 1, 13))
    assert [entry['day'] for entry in days] == ['Sun', 'Mon', 'Tue', 'Wed', 'Thu', 'Fri', 'Sat']


def test_dashboard_endpoint(client, sales):
    response = client.get('/orders/admin/dashboard', headers=auth_headers(id_admin))
    assert response.status_code == 200
    body = response.json()
    assert body['date'] == '2024-01-08'
    assert body['metrics'] == {'todays_sales': 20.0, 'orders_today': 2, 'average_per_order': 10.0}
    assert [item['menu_item_id'] for item in body['top_items']] == ['latte', 'cookie', 'muffin']

    assert client.get('/orders/admin/dashboard', params={'top': 1},
                      headers=auth_headers(id_admin)).json()['top_items'][0]['sold'] == 3
    assert client.get('/orders/admin/dashboard', params={'top': 0}, headers=auth_headers(id_admin)).status_code == 400
    assert client.get('/orders/admin/dashboard', headers=auth_headers(id_customer)).status_code == 403
