"""Overweight and standalone-order invoicing.

Runs inside the weighing transaction. For a given order there is at most one
open invoice: earlier PENDING ones are canceled, SUCCESS and CANCELED ones are
kept as history and whatever was already paid is credited on the new amount.
"""

from __future__ import annotations

import logging
from decimal import Decimal

from sqlalchemy import func

from laundry.domain.enums import InvoiceStatus
from laundry.domain.errors import ConsistencyFailure, NotFoundError
from laundry.domain.money import ZERO
from laundry.domain.pricing import InvoiceQuote, OrderTerms, WeightEvaluation, quote_invoice
from laundry.models import Invoice, Order, PaymentAccount


logger = logging.getLogger(__name__)


def invoice_meta(order: Order) -> str:
    return f'order-{order.id}'


def default_payment_account(tx, country: str) -> PaymentAccount:
    account = (
        tx.query(PaymentAccount)
        .filter(PaymentAccount.is_default.is_(True), PaymentAccount.country == country)
        .order_by(PaymentAccount.id)
        .first()
    )
    if account is None:
        raise NotFoundError(
            f'No default payment account configured for country {country}.',
            public_message='Payment is not available in your country yet.',
        )
    return account


def prior_paid_amount(tx, user_id: int, meta: str) -> Decimal:
    # amount is stored as a decimal string; sum in Python to stay exact.
    amounts = (
        tx.query(Invoice.amount)
        .filter(Invoice.user_id == user_id, Invoice.meta == meta, Invoice.status == InvoiceStatus.SUCCESS)
        .all()
    )
    return sum((Decimal(amount) for (amount,) in amounts), ZERO)


def quote_order_invoice(tx, order: Order, terms: OrderTerms, evaluation: WeightEvaluation) -> InvoiceQuote:
    """Read-only quote, safe for previews."""
    return quote_invoice(terms, evaluation, prior_paid_amount(tx, order.user_id, invoice_meta(order)))


def issue_order_invoice(tx, order: Order, terms: OrderTerms, evaluation: WeightEvaluation, country: str) -> Invoice:
    """Create or refresh the open invoice of ``order`` and attach it."""

    meta = invoice_meta(order)
    quote = quote_order_invoice(tx, order, terms, evaluation)
    account = default_payment_account(tx, country)

    canceled = (
        tx.query(Invoice)
        .filter(Invoice.user_id == order.user_id, Invoice.meta == meta, Invoice.status == InvoiceStatus.PENDING)
        .update({Invoice.status: InvoiceStatus.CANCELED}, synchronize_session='fetch')
    )

    invoice = (
        tx.query(Invoice)
        .filter(Invoice.user_id == order.user_id, Invoice.meta == meta, Invoice.status == InvoiceStatus.CREATED)
        .with_for_update()
        .populate_existing()
        .order_by(Invoice.id.desc())
        .first()
    )
    if invoice is None:
        invoice = Invoice(user_id=order.user_id, meta=meta)
        tx.add(invoice)

    invoice.amount = str(quote.amount)
    invoice.margin = quote.margin
    invoice.invoice_type = quote.invoice_type
    invoice.status = InvoiceStatus.CREATED
    invoice.payment_account_id = account.id
    tx.flush()

    if count_open_invoices(tx, order.user_id, meta) > 1:
        raise ConsistencyFailure(f'More than one open invoice for user {order.user_id} and {meta}.')

    order.invoice_id = invoice.id
    logger.info(
        'Invoice %s issued for order %s: amount=%s margin=%s prior_paid=%s canceled_pending=%d',
        invoice.id, order.id, quote.amount, quote.margin, quote.prior_paid, canceled,
    )
    return invoice


def count_open_invoices(tx, user_id: int, meta: str) -> int:
    return (
        tx.query(func.count(Invoice.id))
        .filter(
            Invoice.user_id == user_id,
            Invoice.meta == meta,
            Invoice.status.notin_((InvoiceStatus.SUCCESS, InvoiceStatus.CANCELED)),
        )
        .scalar()
    )
