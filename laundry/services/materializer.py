"""Subscription materialization.

Turns a command's weekly pickup table into concrete, priced orders, one
weekly batch at a time, until the command has been materialized
``MAX_COMMAND_EXECUTIONS`` times.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import List, Optional

from flask import current_app
from sqlalchemy import func

from laundry.domain.enums import CommandStatus, CommandType, OrderType
from laundry.domain.errors import NotFoundError, ValidationError
from laundry.domain.pricing import price_subscription_order
from laundry.domain.scheduler import Pickup, compute_pickups
from laundry.extensions import db
from laundry.models import Command, Order
from laundry.services.orders import assign_order_code, order_from_draft
from laundry.utils.transactions import transaction


logger = logging.getLogger(__name__)


def create_next_order(
    tx,
    command: Command,
    pickup: Pickup,
    command_execution_index: int,
    order_execution_index: int,
    secret: Optional[str] = None,
) -> Order:
    if pickup is None or not pickup.date or not pickup.hours:
        raise ValidationError(
            'Missing or invalid execution date and pickup hours for this command. '
            'Contact the customer to update them.'
        )

    draft = price_subscription_order(
        command.terms(),
        command.package.terms(),
        [addon.selection() for addon in command.addons],
        pickup,
    )
    order = order_from_draft(
        draft,
        command_id=command.id,
        user_id=command.user_id,
        package_id=command.package_id,
        order_type=OrderType.SUBSCRIPTION if command.command_type == CommandType.SUBSCRIPTION else OrderType.COMMAND,
        title=command.description,
        command_execution_index=command_execution_index,
        order_execution_index=order_execution_index,
    )
    tx.add(order)
    assign_order_code(tx, order, secret)
    return order


def _last_execution_date(tx, command: Command) -> datetime:
    latest = tx.query(func.max(Order.execution_date)).filter(Order.command_id == command.id).scalar()
    return latest or command.command_start_at


def materialize_next_batches(tx, command_id: int, max_executions: Optional[int] = None) -> List[Order]:
    """Generate the command's remaining weekly batches of orders.

    Batches are numbered ``total_execution + 1`` up to ``max_executions``;
    each holds one order per pickup rule, placed in the week following the
    previous batch. ``total_execution`` is moved once, to the last batch
    number, so a failure anywhere leaves it untouched with the transaction.

    Each batch takes the first pickup strictly after the cursor. The cursor
    starts at the latest order's execution date, or at ``command_start_at``
    for a fresh command, so the start date itself never gets an order: the
    first batch falls in the days after it.
    """

    if max_executions is None:
        max_executions = current_app.config.get('MAX_COMMAND_EXECUTIONS', 4)

    command = tx.query(Command).filter(Command.id == command_id).with_for_update().populate_existing().first()
    if command is None:
        raise NotFoundError(f'Command {command_id} does not exist.', public_message='Subscription not found.')

    if command.total_execution >= max_executions:
        return []

    if command.command_start_at is None:
        raise ValidationError(f'Command {command.id} has no execution start date.')
    rules = command.pickup_rules()
    if not rules:
        raise ValidationError(f'Command {command.id} has no pickup days.')

    cursor = _last_execution_date(tx, command)
    created: List[Order] = []
    batch_index = command.total_execution
    for batch_index in range(command.total_execution + 1, max_executions + 1):
        pickups = compute_pickups(cursor, rules, include_reference_day=False)
        for position, pickup in enumerate(pickups, start=1):
            created.append(create_next_order(tx, command, pickup, batch_index, position))
        cursor = max(p.date for p in pickups)

    command.total_execution = batch_index
    tx.flush()
    logger.info(
        'Command %s materialized up to batch %s (%d orders created)',
        command.id, batch_index, len(created),
    )
    return created


def materialize_due_commands(session=None, command_ids: Optional[List[int]] = None) -> dict:
    """Materialize every active subscription, each in its own transaction.

    One command failing is logged and rolled back; the others still run.
    """

    session = session or db.session
    max_executions = current_app.config.get('MAX_COMMAND_EXECUTIONS', 4)

    if command_ids is None:
        command_ids = [
            row.id
            for row in session.query(Command.id)
            .filter(
                Command.command_type == CommandType.SUBSCRIPTION,
                Command.status == CommandStatus.ACTIVE,
                Command.total_execution < max_executions,
            )
            .order_by(Command.id)
        ]
        session.rollback()

    report = {'processed': 0, 'orders': 0, 'failed': []}
    for command_id in command_ids:
        try:
            with transaction(session) as tx:
                orders = materialize_next_batches(tx, command_id, max_executions)
        except Exception as exc:
            logger.exception('Failed to materialize command %s: %s', command_id, exc)
            report['failed'].append(command_id)
            continue
        report['processed'] += 1
        report['orders'] += len(orders)
    return report
