from conftest import auth_headers, id_customer, id_other_customer

from coffeeshop.custom_time import REASON_BEFORE_FIRST_SLOT


def add_latte(client, user_id=id_customer, **selection):
    body = {'menu_item_id': 'latte', 'size': 'large', 'temperature': 'hot', **selection}
    return client.post('/carts', json=body, headers=auth_headers(user_id))


def test_cart_requires_authorization(client):
    assert client.get('/carts').status_code == 401
    assert client.get('/carts', headers=auth_headers('stranger')).status_code == 401


def test_empty_cart(client):
    response = client.get('/carts', headers=auth_headers(id_customer))
    assert response.status_code == 200
    assert response.json()['cart'] == {'id': id_customer, 'menu_items': [], 'pickup_time': None, 'total': 0.0}


def test_add_item_merges_same_selection(client):
    add_latte(client, customizations={'milk': 'oat'})
    response = add_latte(client, customizations={'milk': 'oat'}, qty=2)
    assert response.status_code == 200
    cart = response.json()['cart']
    assert len(cart['menu_items']) == 1
    assert cart['menu_items'][0]['quantity'] == 3
    assert cart['menu_items'][0]['name'] == 'Latte'
    assert cart['total'] == 13.5


def test_cart_is_per_customer(client):
    add_latte(client)
    response = client.get('/carts', headers=auth_headers(id_other_customer))
    assert response.json()['cart']['menu_items'] == []


def test_add_item_validation(client):
    assert add_latte(client, size='venti').status_code == 400
    assert add_latte(client, customizations={'milk': 'goat'}).status_code == 400
    assert add_latte(client, customizations=['oat']).status_code == 400
    assert add_latte(client, customizations={'milk': ['oat', 'whole']}).status_code == 400
    assert add_latte(client, qty=0).status_code == 400
    unavailable = client.post('/carts', json={'menu_item_id': 'seasonal'}, headers=auth_headers(id_customer))
    assert unavailable.status_code == 400
    assert unavailable.json()['exception'] == 'ItemNotAvailable'
    missing = client.post('/carts', json={'menu_item_id': 'espresso'}, headers=auth_headers(id_customer))
    assert missing.status_code == 404


def test_set_quantity(client):
    add_latte(client, size='large')
    add_latte(client, size='small')
    response = client.put('/carts/latte', params={'size': 'small'}, json={'qty': 0},
                          headers=auth_headers(id_customer))
    assert response.status_code == 200
    quantities = {line['size']: line['quantity'] for line in response.json()['cart']['menu_items']}
    assert quantities == {'large': 1, 'small': 1}

    response = client.put('/carts/latte', json={'qty': 4}, headers=auth_headers(id_customer))
    assert {line['quantity'] for line in response.json()['cart']['menu_items']} == {4}
    assert client.put('/carts/mocha', json={'qty': 2}, headers=auth_headers(id_customer)).status_code == 404


def test_remove_item(client):
    add_latte(client, size='large', customizations={'milk': 'oat'})
    add_latte(client, size='large')
    add_latte(client, size='small')
    response = client.delete('/carts/latte', params={'size': 'large'}, headers=auth_headers(id_customer))
    assert response.json()['removed'] == 2
    assert [line['size'] for line in response.json()['cart']['menu_items']] == ['small']


def test_pickup_time_by_custom_text(client):
    # clock is fixed at Monday 08:03, first slot 08:30
    response = client.put('/carts/pickup-time', json={'time': '9:00 am'}, headers=auth_headers(id_customer))
    assert response.status_code == 200
    assert response.json()['cart']['pickup_time'] == '2024-01-08T09:00:00'

    response = client.put('/carts/pickup-time', json={'time': '8:15 AM'}, headers=auth_headers(id_customer))
    assert response.status_code == 400
    assert response.json()['error'] == REASON_BEFORE_FIRST_SLOT

    response = client.put('/carts/pickup-time', json={'time': 'soon'}, headers=auth_headers(id_customer))
    assert response.status_code == 400
    assert response.json()['exception'] == 'ParseFailure'


def test_pickup_time_by_offered_slot(client):
    response = client.put('/carts/pickup-time', json={'pickup_time': '2024-01-08T08:30:00'},
                          headers=auth_headers(id_customer))
    assert response.status_code == 200
    assert response.json()['cart']['pickup_time'] == '2024-01-08T08:30:00'
    bad = client.put('/carts/pickup-time', json={'pickup_time': 'half past eight'}, headers=auth_headers(id_customer))
    assert bad.status_code == 400


def test_clear_cart(client):
    add_latte(client)
    client.put('/carts/pickup-time', json={'time': '9:00 AM'}, headers=auth_headers(id_customer))
    assert client.delete('/carts', headers=auth_headers(id_customer)).status_code == 200
    cart = client.get('/carts', headers=auth_headers(id_customer)).json()['cart']
    assert cart['menu_items'] == []
    assert cart['pickup_time'] is None
