from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from coffeeshop.utils.logger import logger

CENTS = Decimal('1.00')


class CartLine:
    """
    One cart row: a menu item in a given size/temperature with a set of customizations
    """

    def __init__(self, item_id: str, name: str, unit_price, size: Optional[str] = None,
                 temperature: Optional[str] = None, customizations: Optional[Dict[str, str]] = None,
                 quantity: Optional[int] = None):
        self.item_id = item_id
        self.name = name
        self.unit_price: Decimal = Decimal(str(unit_price)).quantize(CENTS)
        self.size = size or None
        self.temperature = temperature or None
        self.customizations: Dict[str, str] = dict(customizations or {})
        self.quantity = quantity

    def identity_key(self) -> Tuple:
        return self.item_id, self.size, self.temperature, tuple(sorted(self.customizations.items()))

    def line_total(self) -> Decimal:
        return (self.unit_price * self.quantity).quantize(CENTS)

    def to_dict(self) -> Dict:
        return {
            'item_id': self.item_id,
            'name': self.name,
            'unit_price': self.unit_price,
            'size': self.size,
            'temperature': self.temperature,
            'customizations': self.customizations,
            'quantity': self.quantity
        }

    @classmethod
    def from_dict(cls, record: Dict):
        return cls(
            item_id=record['item_id'],
            name=record.get('name'),
            unit_price=record['unit_price'],
            size=record.get('size'),
            temperature=record.get('temperature'),
            customizations=record.get('customizations'),
            quantity=int(record.get('quantity') or 1)
        )

    def to_order_line(self) -> Dict:
        """
        Snapshot taken at checkout, price_at_time is never recomputed afterwards.
        Subcategory selections stay nested so they can not shadow size or temperature.
        """
        customizations = {'selections': dict(self.customizations)}
        if self.size:
            customizations['size'] = self.size
        if self.temperature:
            customizations['temperature'] = self.temperature
        return {
            'menu_item_id': self.item_id,
            'name': self.name,
            'quantity': self.quantity,
            'price_at_time': self.unit_price,
            'customizations': customizations
        }

    def __repr__(self):
        return f'CartLine({self.item_id!r}, size={self.size!r}, temperature={self.temperature!r}, ' \
               f'customizations={self.customizations!r}, quantity={self.quantity!r})'


def matches(line: CartLine, item_id: str, size: Optional[str] = None, temperature: Optional[str] = None) -> bool:
    """
    Coarse filter for remove/set-quantity: customizations are ignored and an
    unsupplied size or temperature matches anything
    """
    size_matches = line.size == size if size else True
    temperature_matches = line.temperature == temperature if temperature else True
    return line.item_id == item_id and size_matches and temperature_matches


class CartAggregator:

    def __init__(self, lines: List[CartLine] = None, pickup_time: Optional[datetime] = None):
        self.lines: List[CartLine] = list(lines or [])
        self.pickup_time = pickup_time

    def add_item(self, line: CartLine) -> CartLine:
        quantity = line.quantity or 1
        key = line.identity_key()
        for existing in self.lines:
            if existing.identity_key() == key:
                existing.quantity += quantity
                logger.debug(f'add_item ::: merged {line.item_id=} into existing line, quantity={existing.quantity}')
                return existing
        line.quantity = quantity
        self.lines.append(line)
        logger.debug(f'add_item ::: new line {line.item_id=}, {quantity=}')
        return line

    def remove_item(self, item_id: str, size: Optional[str] = None, temperature: Optional[str] = None) -> int:
        kept = [line for line in self.lines if not matches(line, item_id, size, temperature)]
        removed = len(self.lines) - len(kept)
        self.lines = kept
        logger.debug(f'remove_item ::: {item_id=}, {size=}, {temperature=}, {removed=}')
        return removed

    def set_quantity(self, item_id: str, quantity: int, size: Optional[str] = None,
                     temperature: Optional[str] = None) -> int:
        updated = 0
        for line in self.lines:
            if matches(line, item_id, size, temperature):
                line.quantity = max(1, quantity)
                updated += 1
        return updated

    def clear(self):
        self.lines = []
        self.pickup_time = None

    def set_pickup_time(self, pickup_time: Optional[datetime]):
        self.pickup_time = pickup_time

    def is_empty(self) -> bool:
        return not self.lines

    def total(self) -> Decimal:
        return sum((line.line_total() for line in self.lines), Decimal('0')).quantize(CENTS)

    def to_order_lines(self) -> List[Dict]:
        return [line.to_order_line() for line in self.lines]

    def to_records(self) -> List[Dict]:
        return [line.to_dict() for line in self.lines]

    @classmethod
    def from_records(cls, records: List[Dict], pickup_time: Optional[datetime] = None):
        return cls([CartLine.from_dict(record) for record in records or []], pickup_time)
