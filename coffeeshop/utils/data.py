import json
from datetime import datetime
from decimal import Decimal
from typing import Optional, Dict

from coffeeshop.utils.exceptions import ValidationException


def replace_dict_key(item, orig_key, new_key):
    if orig_key in item:
        if new_key not in item:
            item[new_key] = item[orig_key]
        del item[orig_key]


def substitute_keys(dict_to_process: dict, base_keys: dict, opt_dict=None):
    if opt_dict is None:
        opt_dict = {}
    all_keys = {**base_keys, **opt_dict}
    for key, val in all_keys.items():
        if val:
            replace_dict_key(dict_to_process, key, val)
        elif key in dict_to_process.keys():
            dict_to_process.pop(key, None)


def parse_body(payload: Optional[Dict]) -> Dict:
    """
    JSON body of a request as a dict ready for the store: blank values dropped, floats as Decimal
    """
    if not payload:
        return {}
    if not isinstance(payload, dict):
        raise ValidationException('Request body must be a JSON object')
    return fix_values_from_ui(item=payload)


def fix_values_from_ui(item: Dict) -> Dict:
    item = cleanup_dict(item, ['', None])
    return json.loads(json.dumps(item), parse_float=Decimal)


def cleanup_dict(item: dict, list_of_values: list):
    """Drops the listed values, one level of nesting deep"""

    def sub_clean(sub_item):
        return {
            key: value
            for key, value in sub_item.items()
            if value not in list_of_values
        }

    clean = {}
    for k, v in item.items():
        if isinstance(v, dict):
            nested = sub_clean(v)
            if len(nested.keys()) > 0:
                clean[k] = nested
        elif v not in list_of_values:
            clean[k] = v
    return clean


def to_db_datetime(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat(timespec='seconds') if value is not None else None


def from_db_datetime(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None
