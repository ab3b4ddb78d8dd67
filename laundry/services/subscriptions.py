"""Subscription activation and status."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from flask import current_app

from laundry.domain.enums import CommandStatus
from laundry.domain.scheduler import compute_subscription_window
from laundry.models import Command
from laundry.utils.clock import system_clock


logger = logging.getLogger(__name__)


def activate_subscription(tx, command: Command, payment_date: Optional[datetime] = None, clock=system_clock) -> Command:
    """Open the validity window of a paid subscription.

    The window starts on the first pickup day on or after the payment and
    lasts four weeks plus the delivery delay of the last pickup.
    """

    payment_date = payment_date or clock.now()
    delay = current_app.config.get('SUBSCRIPTION_DELIVERY_DELAY_HOURS', 48)
    start, end = compute_subscription_window(payment_date, command.pickup_rules(), delay)

    command.command_start_at = start
    command.start_at = start
    command.end_at = end
    command.status = CommandStatus.ACTIVE
    tx.flush()
    logger.info('Command %s activated from %s to %s', command.id, start.isoformat(), end.isoformat())
    return command


def subscription_status(command: Command, now: Optional[datetime] = None) -> str:
    if command.end_at is None:
        return CommandStatus.PENDING
    now = now or system_clock.now()
    return CommandStatus.ACTIVE if command.end_at >= now else CommandStatus.EXPIRED
