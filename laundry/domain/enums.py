from __future__ import annotations

from .errors import ValidationError


class OrderStatus:
    """Lifecycle state for orders.

    CREATED -> WASHING -> READY -> DELIVERED, with WASHING -> CREATED when the
    merchant rejects the order.
    """

    CREATED = 'CREATED'
    WASHING = 'WASHING'
    READY = 'READY'
    DELIVERED = 'DELIVERED'

    ALL = (CREATED, WASHING, READY, DELIVERED)


ALLOWED_TRANSITIONS: dict[str, set[str]] = {
    OrderStatus.CREATED: {OrderStatus.WASHING},
    OrderStatus.WASHING: {OrderStatus.READY, OrderStatus.CREATED},
    OrderStatus.READY: {OrderStatus.DELIVERED},
    OrderStatus.DELIVERED: set(),
}


def assert_transition(from_state: str, to_state: str) -> None:
    if to_state not in ALLOWED_TRANSITIONS.get(from_state, set()):
        raise ValidationError(f'Invalid order transition {from_state} -> {to_state}.')


class MerchantAction:
    WASHED = 'WASHED'
    REJECTED = 'REJECTED'

    ALL = (WASHED, REJECTED)


class MerchantPaymentStatus:
    PENDING = 'PENDING'
    REVERSED = 'REVERSED'


class OrderType:
    SUBSCRIPTION = 'SUBSCRIPTION'
    COMMAND = 'COMMAND'


class CommandType:
    SUBSCRIPTION = 'SUBSCRIPTION'
    COMMAND = 'COMMAND'


class CommandStatus:
    PENDING = 'PENDING'
    ACTIVE = 'ACTIVE'
    EXPIRED = 'EXPIRED'


class InvoiceStatus:
    CREATED = 'CREATED'
    PENDING = 'PENDING'
    SUCCESS = 'SUCCESS'
    CANCELED = 'CANCELED'


class InvoiceType:
    SUBSCRIPTION_OVERWEIGHT = 'SUBSCRIPTION_OVERWEIGHT'
    COMMAND_LAUNDRY = 'COMMAND_LAUNDRY'
    SUBSCRIPTION_LAUNDRY = 'SUBSCRIPTION_LAUNDRY'


class UserRole:
    CLIENT = 'CLIENT'
    CLEANER = 'CLEANER'
    ADMIN = 'ADMIN'

