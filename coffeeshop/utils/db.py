import functools
import os
import time
from random import uniform
from typing import Dict, List, Optional

import boto3
from botocore.exceptions import ClientError

from coffeeshop.utils import exceptions
from coffeeshop.utils.boto_clients import aws_config_ddb
from coffeeshop.utils.logger import logger, log_exception

# For safe db operations
RETRY_EXCEPTIONS = ('ProvisionedThroughputExceededException', 'ThrottlingException')
need_return_capacity = ('put_item', 'get_item', 'update_item', 'delete_item')
MAX_RETRIES = 8

_DB = None


def error_code(error: ClientError) -> str:
    return error.response.get('Error', {}).get('Code', '')


def exp_db_backoff(func):
    """
        should be used for any atomic
        get/put/update/delete item in the code
    """

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        logger.debug(f'{func.__name__}:: args={args}, kwargs={kwargs}')
        if func.__name__ not in need_return_capacity:
            raise RuntimeError("This decorator only for DynamoDB methods")
        kwargs.update({'ReturnConsumedCapacity': 'TOTAL'})

        for retries in range(MAX_RETRIES):
            try:
                result = func(*args, **kwargs)
                logger.info(f'{func.__name__}:: SUCCESS')
                return result
            except ClientError as e:
                if error_code(e) not in RETRY_EXCEPTIONS:
                    raise
                timeout = uniform(0.1, 0.99) * (2 ** retries) / 10
                logger.warning(f'{func.__name__}:: throttled, retry={retries + 1} in {timeout:.2f}s')
                time.sleep(timeout)

        raise exceptions.NumberOfRetriesExceeded(
            f"MaxNumber={MAX_RETRIES} of DB retries has exceeded"
        )

    return wrapper


def get_table(table_name: str):
    if os.environ.get('ENDPOINT_URL'):
        table = boto3.resource('dynamodb', endpoint_url=os.environ.get('ENDPOINT_URL')).Table(table_name)
    else:
        table = boto3.resource('dynamodb', config=aws_config_ddb).Table(table_name)

    table.put_item = exp_db_backoff(table.put_item)
    table.get_item = exp_db_backoff(table.get_item)
    table.update_item = exp_db_backoff(table.update_item)
    table.delete_item = exp_db_backoff(table.delete_item)
    return table


def get_gen_table():
    global _DB
    if _DB is None:
        _DB = get_table(os.environ.get('GEN_TABLE_NAME', 'coffeeshop'))
    return _DB


def reset_gen_table():
    global _DB
    _DB = None


def put_db_record(item: dict, condition_expression=None, table=None):
    kwargs = {'Item': item}
    if condition_expression is not None:
        kwargs['ConditionExpression'] = condition_expression
    (table or get_gen_table)().put_item(**kwargs)


def delete_db_record(partkey: str, sortkey: str, table=None):
    (table or get_gen_table)().delete_item(Key={'partkey': partkey, 'sortkey': sortkey})


def update_db_fields(key: dict, fields: Dict, list_appends: Optional[Dict[str, List]] = None,
                     condition_expression=None, table=None) -> Dict:
    """
    Narrow update of the given attributes only, the rest of the record is not touched.
    list_appends adds elements to list attributes (created when missing).
    Raises ClientError ConditionalCheckFailedException when condition_expression does not hold.
    """
    table = table or get_gen_table
    set_parts, expr_attr_names, expr_attr_values = [], {}, {}
    for field, value in fields.items():
        expr_attr_names[f'#{field}'] = field
        expr_attr_values[f':{field}'] = value
        set_parts.append(f'#{field}=:{field}')
    for field, values in (list_appends or {}).items():
        expr_attr_names[f'#{field}'] = field
        expr_attr_values[f':{field}'] = values
        expr_attr_values[':empty_list'] = []
        set_parts.append(f'#{field}=list_append(if_not_exists(#{field}, :empty_list), :{field})')

    kwargs = {
        'Key': key,
        'UpdateExpression': 'SET ' + ', '.join(set_parts),
        'ExpressionAttributeNames': expr_attr_names,
        'ExpressionAttributeValues': expr_attr_values,
        'ReturnValues': 'ALL_NEW'
    }
    if condition_expression is not None:
        kwargs['ConditionExpression'] = condition_expression
    return table().update_item(**kwargs).get('Attributes', {})


def get_db_item(partkey, sortkey, table=None):
    result = (table or get_gen_table)().get_item(
        Key={
            'partkey': partkey,
            'sortkey': sortkey
        }
    )

    if 'Item' in result:
        return result['Item']
    logger.info(f"get_db_item ::: record partkey={partkey} sortkey={sortkey} not found")
    raise exceptions.RecordNotFound(f'record partkey={partkey} sortkey={sortkey} not found')


def query_items_paginated(
        key_condition_expression,
        filter_expression=None,
        projection_expression=None,
        table=None,
        index_name=None,
        expr_attr_names=None,
        limit=None,
        start_key=None
):
    kwargs = {'KeyConditionExpression': key_condition_expression}
    if filter_expression is not None:
        kwargs.update({'FilterExpression': filter_expression})

    if projection_expression:
        kwargs.update({'ProjectionExpression': projection_expression})

    if expr_attr_names:
        kwargs.update({'ExpressionAttributeNames': expr_attr_names})

    if limit:
        kwargs.update({'Limit': int(limit)})

    if index_name:
        kwargs.update({'IndexName': index_name})

    if start_key:
        kwargs.update({'ExclusiveStartKey': start_key})

    resp = (table or get_gen_table)().query(**kwargs)
    return resp['Items'], resp.get('LastEvaluatedKey')


def query_items_paged(key_condition_expression, filter_expression=None, projection_expression=None,
                      table=None, index_name=None, expr_attr_names=None):
    """ This method shall be used whenever you think the query will
        return more than 1mb of data at once"""
    all_items = []
    last_evaluated_key = None
    while True:
        items, last_evaluated_key = query_items_paginated(
            key_condition_expression,
            filter_expression=filter_expression,
            projection_expression=projection_expression,
            table=table,
            index_name=index_name,
            expr_attr_names=expr_attr_names,
            start_key=last_evaluated_key
        )
        all_items.extend(items)
        if last_evaluated_key is None:
            return all_items


def is_conditional_check_failure(error: Exception) -> bool:
    return isinstance(error, ClientError) and error_code(error) == 'ConditionalCheckFailedException'


def wrap_store_failure(func):
    """
    Re-raises boto errors as StoreFailure so callers above the store see one exception type
    """

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except ClientError as error:
            log_exception(error, msg=f'{func.__name__} ::: store call failed')
            raise exceptions.StoreFailure(f'{func.__name__} failed: {error_code(error)}') from error

    return wrapper
