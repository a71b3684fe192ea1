from decimal import Decimal

import boto3
import pytest
from fastapi.testclient import TestClient
from moto import mock_aws

from coffeeshop.constants import keys_structure
from coffeeshop.constants.constants import ROLE_ADMIN, ROLE_CUSTOMER
from coffeeshop.utils import db

TEST_TABLE_NAME = 'coffeeshop-test'
TEST_REGION = 'eu-central-1'

# Monday 2024-01-08
MONDAY_0803 = '2024-01-08T08:03:00'

id_admin = 'admin-0001'
id_customer = 'customer-0001'
id_other_customer = 'customer-0002'


@pytest.fixture
def aws_env(monkeypatch):
    monkeypatch.setenv('AWS_ACCESS_KEY_ID', 'testing')
    monkeypatch.setenv('AWS_SECRET_ACCESS_KEY', 'testing')
    monkeypatch.setenv('AWS_SECURITY_TOKEN', 'testing')
    monkeypatch.setenv('AWS_SESSION_TOKEN', 'testing')
    monkeypatch.setenv('AWS_DEFAULT_REGION', TEST_REGION)
    monkeypatch.setenv('GEN_TABLE_NAME', TEST_TABLE_NAME)
    monkeypatch.setenv('CURRENT_TIME_OVERRIDE', MONDAY_0803)
    monkeypatch.delenv('ENDPOINT_URL', raising=False)
    monkeypatch.delenv('SHOP_TIMEZONE', raising=False)


@pytest.fixture
def gen_table(aws_env):
    with mock_aws():
        table = boto3.resource('dynamodb', region_name=TEST_REGION).create_table(
            TableName=TEST_TABLE_NAME,
            KeySchema=[
                {'AttributeName': 'partkey', 'KeyType': 'HASH'},
                {'AttributeName': 'sortkey', 'KeyType': 'RANGE'},
            ],
            AttributeDefinitions=[
                {'AttributeName': 'partkey', 'AttributeType': 'S'},
                {'AttributeName': 'sortkey', 'AttributeType': 'S'},
            ],
            BillingMode='PAY_PER_REQUEST'
        )
        db.reset_gen_table()
        seed_user(table, id_admin, ROLE_ADMIN)
        seed_user(table, id_customer, ROLE_CUSTOMER)
        seed_user(table, id_other_customer, ROLE_CUSTOMER)
        seed_menu_item(table, 'latte', 'Latte', Decimal('4.50'))
        seed_menu_item(table, 'mocha', 'Mocha', Decimal('5.25'))
        seed_menu_item(table, 'seasonal', 'Seasonal Brew', Decimal('3.00'), is_available=False)
        yield table
        db.reset_gen_table()


@pytest.fixture
def client(gen_table):
    from app import app
    yield TestClient(app)


def seed_user(table, user_id, role):
    table.put_item(Item={
        'partkey': keys_structure.users_pk,
        'sortkey': keys_structure.users_sk.format(user_id=user_id),
        'record_type': 'user',
        'id_': user_id,
        'role': role
    })


def seed_menu_item(table, menu_item_id, name, price, is_available=True, category='Coffee', description=''):
    table.put_item(Item={
        'partkey': keys_structure.menu_items_pk,
        'sortkey': keys_structure.menu_items_sk.format(menu_item_id=menu_item_id),
        'record_type': 'menu_item',
        'id_': menu_item_id,
        'name_': name,
        'category': category,
        'description': description,
        'price': price,
        'sizes': ['small', 'large'],
        'temperatures': ['hot', 'iced'],
        'customizations': {'milk': ['whole', 'oat']},
        'is_available': is_available,
        'archived': False
    })


def auth_headers(user_id):
    return {'Authorization': user_id}
