"""
Order status rules.

An order carries two independent statuses:

* fulfillment status, moved by the shop admin:
  pending -> accepted -> preparing -> ready -> completed, with cancelled
  reachable from pending (decline) and from accepted/preparing/ready (cancel).
  completed and cancelled are terminal.
* customer status, moved by the customer: not_started, on_the_way, arrived.
  Any value may follow any other and it never gates fulfillment.
"""
from enum import Enum
from typing import Dict, FrozenSet, List, Optional, Union

from coffeeshop.utils.results import Ok, Rejected


class FulfillmentStatus(str, Enum):
    PENDING = 'pending'
    ACCEPTED = 'accepted'
    PREPARING = 'preparing'
    READY = 'ready'
    COMPLETED = 'completed'
    CANCELLED = 'cancelled'


class CustomerStatus(str, Enum):
    NOT_STARTED = 'not_started'
    ON_THE_WAY = 'on_the_way'
    ARRIVED = 'arrived'


INITIAL_FULFILLMENT_STATUS = FulfillmentStatus.PENDING
INITIAL_CUSTOMER_STATUS = CustomerStatus.NOT_STARTED

TRANSITIONS: Dict[FulfillmentStatus, FrozenSet[FulfillmentStatus]] = {
    FulfillmentStatus.PENDING: frozenset({FulfillmentStatus.ACCEPTED, FulfillmentStatus.CANCELLED}),
    FulfillmentStatus.ACCEPTED: frozenset({FulfillmentStatus.PREPARING, FulfillmentStatus.CANCELLED}),
    FulfillmentStatus.PREPARING: frozenset({FulfillmentStatus.READY, FulfillmentStatus.CANCELLED}),
    FulfillmentStatus.READY: frozenset({FulfillmentStatus.COMPLETED, FulfillmentStatus.CANCELLED}),
    FulfillmentStatus.COMPLETED: frozenset(),
    FulfillmentStatus.CANCELLED: frozenset(),
}

ACTIVE_STATUSES = (FulfillmentStatus.PENDING, FulfillmentStatus.ACCEPTED,
                   FulfillmentStatus.PREPARING, FulfillmentStatus.READY)
PAST_STATUSES = (FulfillmentStatus.COMPLETED, FulfillmentStatus.CANCELLED)

ORDER_VIEWS = {
    'active': ACTIVE_STATUSES,
    'past': PAST_STATUSES,
}


def _fulfillment(value) -> Optional[FulfillmentStatus]:
    try:
        return FulfillmentStatus(value)
    except ValueError:
        return None


def can_transition(from_status, to_status) -> bool:
    current, target = _fulfillment(from_status), _fulfillment(to_status)
    if current is None or target is None:
        return False
    return target in TRANSITIONS[current]


def check_transition(from_status, to_status) -> Union[Ok, Rejected]:
    current, target = _fulfillment(from_status), _fulfillment(to_status)
    if target is None:
        return Rejected(f'Unknown order status {to_status}.')
    if current is None:
        return Rejected(f'Order has unknown status {from_status}.')
    if not TRANSITIONS[current]:
        return Rejected(f'Order is already {current.value} and can not be changed.')
    if target not in TRANSITIONS[current]:
        return Rejected(f'Order can not move from {current.value} to {target.value}.')
    return Ok(target)


def allowed_transitions(status) -> List[FulfillmentStatus]:
    current = _fulfillment(status)
    if current is None:
        return []
    return [target for target in FulfillmentStatus if target in TRANSITIONS[current]]


def transition_name(from_status, to_status) -> Optional[str]:
    """Admin action label: cancelling a pending order is a decline"""
    if not can_transition(from_status, to_status):
        return None
    current, target = FulfillmentStatus(from_status), FulfillmentStatus(to_status)
    if target is FulfillmentStatus.CANCELLED:
        return 'decline' if current is FulfillmentStatus.PENDING else 'cancel'
    return {
        FulfillmentStatus.ACCEPTED: 'accept',
        FulfillmentStatus.PREPARING: 'start_preparing',
        FulfillmentStatus.READY: 'mark_ready',
        FulfillmentStatus.COMPLETED: 'complete',
    }[target]


def check_customer_status(value) -> Union[Ok, Rejected]:
    try:
        return Ok(CustomerStatus(value))
    except ValueError:
        return Rejected(f'Unknown customer status {value}.')


def statuses_for_view(view: str) -> Union[Ok, Rejected]:
    if view not in ORDER_VIEWS:
        return Rejected(f'Unknown orders view {view}, expected one of {sorted(ORDER_VIEWS)}.')
    return Ok(ORDER_VIEWS[view])
