"""Order pricing engine.

Computes every money field of an order: the quote fixed when a subscription
order is generated, the costs and margin once the merchant reports the real
weight, and the overweight/standalone invoice that weight may trigger.

The functions only take and return frozen dataclasses holding ``Decimal``
values. They never touch the database, so a preview is the very same
computation as a commit, minus the persistence done by the order services.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Optional, Sequence, Tuple

from .addons import (
    REPASSAGE,
    SHIPPING,
    AddonCost,
    SelectedAddon,
    cost_entry_for,
    with_weight,
)
from .enums import InvoiceType
from .errors import ConsistencyFailure, ValidationError
from .money import ZERO, positive_weight, quantize_kg_price, quantize_money, to_decimal
from .scheduler import Pickup, PickupHours, combine_slot_end


@dataclass(frozen=True)
class PackageTerms:
    amount: Decimal
    kg: Decimal
    code: str = ''
    name: str = ''

    def __post_init__(self):
        if self.kg <= ZERO:
            raise ConsistencyFailure(f'Package {self.code or "?"} has a non-positive weight ({self.kg}).')


@dataclass(frozen=True)
class CommandTerms:
    order_min_price: Decimal
    merchant_kg_unit_cost: Decimal
    delivery_per_day_cost: Decimal


@dataclass(frozen=True)
class OrderDraft:
    """Priced fields of an order that has not been weighed yet."""

    execution_date: datetime
    execution_duration: int
    delivery_date: datetime
    delivery_type: str
    picking_hours: PickupHours
    capacity_kg: Decimal
    delivery_cost: Decimal
    merchant_kg_cost: Decimal
    customer_order_kg_price: Decimal
    customer_order_initial_price: Decimal
    addons: Tuple[AddonCost, ...]


@dataclass(frozen=True)
class OrderTerms:
    """What the weight evaluation needs to know about an existing order."""

    has_command: bool
    merchant_kg_cost: Decimal
    customer_order_kg_price: Decimal
    delivery_cost: Decimal
    addons: Tuple[AddonCost, ...] = ()


@dataclass(frozen=True)
class Allowance:
    command_kg: Decimal
    spent_kg: Decimal


@dataclass(frozen=True)
class WeightEvaluation:
    user_kg: Decimal
    pay_for_kg: Decimal
    merchant_total_cost: Decimal
    customer_order_final_price: Decimal
    customer_fees_to_pay: Decimal
    total_cost: Decimal
    margin: Decimal
    addons: Tuple[AddonCost, ...]
    has_command: bool
    command_spent_kg: Optional[Decimal] = None

    @property
    def requires_invoice(self) -> bool:
        return self.customer_fees_to_pay > ZERO and self.pay_for_kg > ZERO


@dataclass(frozen=True)
class InvoiceQuote:
    amount: Decimal
    margin: Decimal
    invoice_type: str
    prior_paid: Decimal


def _accumulate_addons(addons: Sequence[SelectedAddon]):
    duration: Optional[int] = None
    delivery_type: Optional[str] = None
    addons_kg_cost = ZERO
    addons_merchant_cost = ZERO
    entries = []

    for addon in addons:
        if addon.key not in (SHIPPING, REPASSAGE):
            continue
        if addon.key == SHIPPING:
            duration = addon.duration_hours
            delivery_type = addon.code
        addons_kg_cost += addon.price
        addons_merchant_cost += addon.merchant_cost
        entries.append(cost_entry_for(addon))

    return duration, delivery_type, addons_kg_cost, addons_merchant_cost, tuple(entries)


def price_subscription_order(
    terms: CommandTerms,
    package: PackageTerms,
    addons: Sequence[SelectedAddon],
    pickup: Pickup,
) -> OrderDraft:
    """Price one order generated from a subscription command.

    The per-order price implied by the package and addons must match the
    price the customer subscribed at, otherwise the order is not created.
    """

    duration, delivery_type, addons_kg_cost, _, entries = _accumulate_addons(addons)
    delivery_cost = terms.delivery_per_day_cost
    if not (duration and delivery_type and delivery_cost):
        raise ConsistencyFailure(
            'Command has no usable shipping addon '
            f'(duration={duration!r}, type={delivery_type!r}, delivery cost={delivery_cost!r}).'
        )

    picking_end_at = combine_slot_end(pickup.date, pickup.hours)
    delivery_date = picking_end_at + timedelta(hours=duration)

    kg_price = package.amount / package.kg + addons_kg_cost
    initial_price = quantize_money(kg_price * package.kg)
    if initial_price != quantize_money(terms.order_min_price):
        raise ValidationError(
            'The unit price per order differs from the subscribed price. '
            f'Subscribed order price: {terms.order_min_price}, '
            f'order price at execution: {initial_price}.'
        )

    return OrderDraft(
        execution_date=pickup.date,
        execution_duration=duration,
        delivery_date=delivery_date,
        delivery_type=delivery_type,
        picking_hours=pickup.hours,
        capacity_kg=package.kg,
        delivery_cost=delivery_cost,
        merchant_kg_cost=terms.merchant_kg_unit_cost,
        customer_order_kg_price=quantize_kg_price(kg_price),
        customer_order_initial_price=initial_price,
        addons=entries,
    )


def price_standalone_order(
    package: PackageTerms,
    addons: Sequence[SelectedAddon],
    merchant_kg_unit_cost: Decimal,
    delivery_cost: Decimal,
    execution_date: datetime,
    picking_hours: PickupHours,
) -> OrderDraft:
    """Price a one-off order. It is billed entirely once weighed."""

    duration, delivery_type, addons_kg_cost, addons_merchant_cost, entries = _accumulate_addons(addons)
    if not (duration and delivery_type):
        raise ValidationError('A shipping option is required to place an order.')

    picking_end_at = combine_slot_end(execution_date, picking_hours)
    return OrderDraft(
        execution_date=execution_date,
        execution_duration=duration,
        delivery_date=picking_end_at + timedelta(hours=duration),
        delivery_type=delivery_type,
        picking_hours=(picking_hours[0], picking_hours[1]),
        capacity_kg=ZERO,
        delivery_cost=delivery_cost,
        merchant_kg_cost=merchant_kg_unit_cost + addons_merchant_cost,
        customer_order_kg_price=quantize_kg_price(package.amount / package.kg + addons_kg_cost),
        customer_order_initial_price=ZERO,
        addons=entries,
    )


def _overage(spent: Decimal, allowance: Decimal) -> Decimal:
    return max(ZERO, spent - allowance)


def evaluate_weight(terms: OrderTerms, kg, allowance: Optional[Allowance] = None) -> WeightEvaluation:
    """Recompute an order's costs for the weight reported by the merchant.

    For a subscription order only the kilograms that push the command past
    its allowance are billable; the billed overage of a sequence of weighings
    therefore always adds up to ``max(0, total weight - allowance)``.
    Standalone orders bill every kilogram and fold the delivery cost into the
    final price.
    """

    kg = positive_weight(kg)

    spent_after = None
    if terms.has_command and allowance is not None:
        spent_before = allowance.spent_kg
        spent_after = spent_before + kg
        pay_for_kg = _overage(spent_after, allowance.command_kg) - _overage(spent_before, allowance.command_kg)
    else:
        pay_for_kg = kg

    merchant_total_cost = quantize_money(terms.merchant_kg_cost * kg)
    final_price = terms.customer_order_kg_price * kg
    if not terms.has_command:
        final_price += terms.delivery_cost
    final_price = quantize_money(final_price)
    fees_to_pay = quantize_money(pay_for_kg * terms.customer_order_kg_price)
    total_cost = terms.delivery_cost + merchant_total_cost

    return WeightEvaluation(
        user_kg=kg,
        pay_for_kg=pay_for_kg,
        merchant_total_cost=merchant_total_cost,
        customer_order_final_price=final_price,
        customer_fees_to_pay=fees_to_pay,
        total_cost=total_cost,
        margin=final_price - total_cost,
        addons=tuple(with_weight(entry, kg) for entry in terms.addons),
        has_command=terms.has_command,
        command_spent_kg=spent_after,
    )


def quote_invoice(
    terms: OrderTerms,
    evaluation: WeightEvaluation,
    prior_paid=ZERO,
) -> InvoiceQuote:
    """Amount and margin of the invoice raised by a weighing.

    Whatever the customer already paid for this order is credited; the amount
    due never goes below zero.
    """

    prior_paid = to_decimal(prior_paid or ZERO, field='prior paid amount')
    extra_kg = evaluation.pay_for_kg

    if evaluation.has_command:
        if extra_kg <= ZERO:
            raise ValidationError('No overweight detected.')
        extra_cost = terms.merchant_kg_cost * extra_kg
        extra_amount = terms.customer_order_kg_price * extra_kg
    else:
        extra_cost = evaluation.total_cost
        extra_amount = evaluation.customer_order_final_price

    margin = quantize_money(extra_amount - extra_cost)
    if margin < ZERO:
        raise ValidationError(
            f'Overweight fees do not cover the additional costs (margin {margin}).'
        )

    amount = max(ZERO, evaluation.customer_fees_to_pay - prior_paid)
    return InvoiceQuote(
        amount=quantize_money(amount),
        margin=margin,
        invoice_type=InvoiceType.SUBSCRIPTION_OVERWEIGHT if evaluation.has_command else InvoiceType.COMMAND_LAUNDRY,
        prior_paid=prior_paid,
    )
