"""Order lifecycle: weighing, merchant actions and customer confirmation.

State machine (see domain.enums)::

    CREATED --weigh--> WASHING --washed--> READY --received--> DELIVERED
                          \\--rejected--> CREATED

Every function takes ``tx``, the session of the transaction it runs in. The
caller owns commit/rollback (utils.transactions.transaction); a raised error
must leave the command, order and invoices exactly as they were. Rows that
are about to change are re-read with ``SELECT ... FOR UPDATE``.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Iterable, List, Optional, Sequence

from flask import current_app

from laundry.domain.addons import REPASSAGE, dump_addon_costs
from laundry.domain.enums import (
    InvoiceStatus,
    MerchantAction,
    MerchantPaymentStatus,
    OrderStatus,
    OrderType,
    UserRole,
    assert_transition,
)
from laundry.domain.errors import ConsistencyFailure, NotFoundError, ValidationError
from laundry.domain.money import ZERO, positive_weight, to_decimal
from laundry.domain.pricing import OrderDraft, evaluate_weight, price_standalone_order
from laundry.domain.scheduler import PickupHours
from laundry.models import Command, Invoice, Order, Package, ServiceAddon, User
from laundry.services.invoicing import issue_order_invoice, quote_order_invoice
from laundry.utils.order_codes import app_secret, derive_order_code, normalize_order_code


logger = logging.getLogger(__name__)


def order_from_draft(draft: OrderDraft, **fields) -> Order:
    order = Order(
        execution_date=draft.execution_date,
        execution_duration=draft.execution_duration,
        delivery_date=draft.delivery_date,
        delivery_type=draft.delivery_type,
        picking_hours=list(draft.picking_hours),
        capacity_kg=draft.capacity_kg,
        delivery_cost=draft.delivery_cost,
        merchant_kg_cost=draft.merchant_kg_cost,
        customer_order_kg_price=draft.customer_order_kg_price,
        customer_order_initial_price=draft.customer_order_initial_price,
        customer_order_final_price=ZERO,
        addons=dump_addon_costs(draft.addons),
        status=OrderStatus.CREATED,
        **fields,
    )
    return order


def assign_order_code(tx, order: Order, secret: Optional[str] = None) -> None:
    """The code derives from the primary key, so the row is flushed first."""
    tx.flush()
    order.order_code = derive_order_code(secret or app_secret(), order.id)


def _lock_command(tx, command_id: int) -> Command:
    command = tx.query(Command).filter(Command.id == command_id).with_for_update().populate_existing().first()
    if command is None:
        raise ConsistencyFailure(f'Command {command_id} referenced by an order does not exist.')
    return command


def evaluate_order(
    tx,
    order_code: str,
    weight_kg,
    merchant_id: Optional[int],
    preview: bool = False,
    country: Optional[str] = None,
) -> Order:
    """Price an order for the weight reported by a merchant.

    In preview mode nothing is locked or written: the computation runs on a
    detached copy of the order and the command's consumed weight is left
    untouched. Otherwise the merchant takes the order, it moves to WASHING and
    any overweight (or, for a standalone order, the whole order) is invoiced.
    """

    code = normalize_order_code(order_code)
    kg = positive_weight(weight_kg)

    query = tx.query(Order).filter(Order.order_code == code, Order.status == OrderStatus.CREATED)
    if not preview:
        query = query.with_for_update().populate_existing()
    order = query.first()
    if order is None:
        raise NotFoundError(f'No CREATED order with code {code!r}.')

    command = None
    if order.command_id is not None:
        if preview:
            command = tx.get(Command, order.command_id)
            if command is None:
                raise ConsistencyFailure(f'Command {order.command_id} referenced by order {order.id} does not exist.')
        else:
            command = _lock_command(tx, order.command_id)

    terms = order.terms()
    evaluation = evaluate_weight(terms, kg, command.allowance() if command is not None else None)

    if preview:
        if evaluation.requires_invoice:
            quote_order_invoice(tx, order, terms, evaluation)
        quote = order.detached_copy()
        quote.apply_evaluation(evaluation)
        return quote

    if merchant_id is None:
        raise ValidationError('Only a merchant can take an order.')

    assert_transition(order.status, OrderStatus.WASHING)
    if command is not None:
        command.command_spent_kg = evaluation.command_spent_kg
    order.apply_evaluation(evaluation)
    order.merchant_id = merchant_id
    order.status = OrderStatus.WASHING
    order.merchant_payment_status = MerchantPaymentStatus.PENDING

    if evaluation.requires_invoice:
        issue_order_invoice(
            tx, order, terms, evaluation,
            country or current_app.config.get('OPERATING_COUNTRY', 'BJ'),
        )

    tx.flush()
    logger.info(
        'Order %s weighed at %s kg by merchant %s (fees=%s, margin=%s)',
        order.id, evaluation.user_kg, merchant_id, evaluation.customer_fees_to_pay, evaluation.margin,
    )
    return order


def submit_order_action(tx, order_id: int, action: str, merchant_id: int) -> Order:
    """Merchant marks a WASHING order as washed or rejects it.

    A rejection puts the order back up for grabs: the weight it consumed on
    its command is given back and an unpaid invoice is deleted.
    """

    if action not in MerchantAction.ALL:
        raise ValidationError(f'Unknown action {action!r}.')

    order = (
        tx.query(Order)
        .filter(
            Order.id == order_id,
            Order.status == OrderStatus.WASHING,
            Order.merchant_id == merchant_id,
        )
        .with_for_update()
        .populate_existing()
        .first()
    )
    if order is None:
        raise NotFoundError(f'No WASHING order {order_id} for merchant {merchant_id}.')

    if action == MerchantAction.WASHED:
        assert_transition(order.status, OrderStatus.READY)
        order.status = OrderStatus.READY
        tx.flush()
        logger.info('Order %s washed by merchant %s', order.id, merchant_id)
        return order

    assert_transition(order.status, OrderStatus.CREATED)
    order.status = OrderStatus.CREATED
    order.merchant_id = None
    order.merchant_payment_status = None

    if order.command_id is not None and order.user_kg:
        command = _lock_command(tx, order.command_id)
        spent = Decimal(command.command_spent_kg or 0) - Decimal(order.user_kg)
        if spent < ZERO:
            raise ConsistencyFailure(
                f'Rolling back order {order.id} would make command {command.id} consumed weight negative ({spent}).'
            )
        command.command_spent_kg = spent

    if order.invoice_id is not None:
        invoice = tx.get(Invoice, order.invoice_id, with_for_update=True, populate_existing=True)
        if invoice is not None and invoice.status != InvoiceStatus.SUCCESS:
            order.invoice_id = None
            tx.flush()
            tx.delete(invoice)

    tx.flush()
    logger.info('Order %s rejected by merchant %s', order.id, merchant_id)
    return order


def confirm_reception(tx, order_id: int, user_id: int) -> Order:
    """Customer confirms delivery; the merchant becomes payable."""

    order = (
        tx.query(Order)
        .filter(
            Order.id == order_id,
            Order.status == OrderStatus.READY,
            Order.user_id == user_id,
        )
        .with_for_update()
        .populate_existing()
        .first()
    )
    if order is None:
        raise NotFoundError(f'No READY order {order_id} for user {user_id}.')

    assert_transition(order.status, OrderStatus.DELIVERED)
    order.status = OrderStatus.DELIVERED
    order.merchant_payment_status = MerchantPaymentStatus.REVERSED
    tx.flush()
    logger.info('Order %s received by user %s', order.id, user_id)
    return order


def _scoped(query, actor: User):
    if actor.role == UserRole.CLEANER:
        return query.filter(Order.merchant_id == actor.merchant_id)
    if actor.role == UserRole.CLIENT:
        return query.filter(Order.user_id == actor.id)
    return query


def get_order(tx, order_id: int, actor: User) -> Order:
    order = _scoped(tx.query(Order).filter(Order.id == order_id), actor).first()
    if order is None:
        raise NotFoundError(f'Order {order_id} not visible to user {actor.id}.')
    return order


def list_order_history(tx, actor: User) -> List[Order]:
    query = _scoped(tx.query(Order), actor)
    return query.order_by(
        Order.execution_date.desc(),
        Order.command_execution_index.desc(),
        Order.order_execution_index.desc(),
    ).all()


def create_standalone_order(
    tx,
    user_id: int,
    package: Package,
    addons: Sequence[ServiceAddon],
    execution_date,
    picking_hours: PickupHours,
    merchant_kg_unit_cost=None,
    delivery_cost=None,
) -> Order:
    """One-off order outside any subscription, billed once weighed."""

    config = current_app.config
    if merchant_kg_unit_cost is None:
        merchant_kg_unit_cost = config.get('STANDALONE_MERCHANT_KG_COST', '300')
    if delivery_cost is None:
        delivery_cost = config.get('STANDALONE_DELIVERY_COST', '500')

    draft = price_standalone_order(
        package.terms(),
        [addon.selection() for addon in addons],
        to_decimal(merchant_kg_unit_cost, field='merchant kg cost'),
        to_decimal(delivery_cost, field='delivery cost'),
        execution_date,
        picking_hours,
    )
    title = package.name
    if any(addon.key == REPASSAGE for addon in addons):
        title += ' with ironing'

    order = order_from_draft(
        draft,
        user_id=user_id,
        package_id=package.id,
        command_id=None,
        order_type=OrderType.COMMAND,
        title=title,
        command_execution_index=1,
        order_execution_index=1,
    )
    tx.add(order)
    assign_order_code(tx, order)
    return order


def addons_by_codes(tx, codes: Iterable[str]) -> List[ServiceAddon]:
    codes = [c for c in codes if c]
    if not codes:
        return []
    found = tx.query(ServiceAddon).filter(ServiceAddon.code.in_(codes)).all()
    missing = set(codes) - {a.code for a in found}
    if missing:
        raise ValidationError(f'Unknown service addon(s): {", ".join(sorted(missing))}.')
    return found
