"""Service addons and their per-order merchant cost entries.

A command carries the addons the customer picked from the catalog
(:class:`SelectedAddon`). Each generated order keeps its own copy of the
merchant cost breakdown as a list of tagged entries, one variant per addon
kind, so pricing code can match on the kind instead of digging in a free-form
mapping.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, ClassVar, Dict, Iterable, List, Mapping, Optional, Union

from .errors import ValidationError
from .money import ZERO, quantize_money, to_decimal


SHIPPING = 'SHIPPING'
REPASSAGE = 'REPASSAGE'


def _parse_hours(value: Any, code: str) -> Optional[int]:
    if value is None or value == '':
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f'{code} timeDurationApprox must be a whole number of hours.') from None


@dataclass(frozen=True)
class SelectedAddon:
    key: str
    code: str
    price: Decimal
    merchant_cost: Decimal
    duration_hours: Optional[int] = None

    @classmethod
    def from_catalog(cls, key: str, code: str, price: Any, value: Mapping[str, Any] | None) -> 'SelectedAddon':
        value = value or {}
        return cls(
            key=key,
            code=code,
            price=to_decimal(price, field=f'{code} price'),
            merchant_cost=to_decimal(value.get('merchantCost', 0), field=f'{code} merchantCost'),
            duration_hours=_parse_hours(value.get('timeDurationApprox'), code),
        )


@dataclass(frozen=True)
class ShippingCost:
    kind: ClassVar[str] = SHIPPING

    unit_cost: Decimal
    total_cost: Decimal = ZERO
    duration_hours: Optional[int] = None


@dataclass(frozen=True)
class IroningCost:
    kind: ClassVar[str] = REPASSAGE

    unit_cost: Decimal
    total_cost: Decimal = ZERO


AddonCost = Union[ShippingCost, IroningCost]


def cost_entry_for(addon: SelectedAddon) -> AddonCost | None:
    if addon.key == SHIPPING:
        return ShippingCost(unit_cost=addon.merchant_cost, duration_hours=addon.duration_hours)
    if addon.key == REPASSAGE:
        return IroningCost(unit_cost=addon.merchant_cost)
    return None


def with_weight(entry: AddonCost, kg: Decimal) -> AddonCost:
    return dataclasses.replace(entry, total_cost=quantize_money(entry.unit_cost * kg))


def dump_addon_costs(entries: Iterable[AddonCost]) -> List[Dict[str, Any]]:
    payload: List[Dict[str, Any]] = []
    for entry in entries:
        item: Dict[str, Any] = {
            'kind': entry.kind,
            'unitCost': str(entry.unit_cost),
            'totalCost': str(entry.total_cost),
        }
        if isinstance(entry, ShippingCost):
            item['durationHours'] = entry.duration_hours
        payload.append(item)
    return payload


def load_addon_costs(raw: Any) -> List[AddonCost]:
    """Rebuild cost entries from the JSON stored on an order.

    Accepts the list form written by :func:`dump_addon_costs` as well as the
    older ``{"SHIPPING": {"unitCost": .., "totalCost": ..}}`` mapping.
    """

    if not raw:
        return []
    if isinstance(raw, Mapping):
        raw = [dict(value or {}, kind=kind) for kind, value in raw.items()]

    entries: List[AddonCost] = []
    for item in raw:
        kind = item.get('kind')
        unit_cost = to_decimal(item.get('unitCost', 0), field='unitCost')
        total_cost = to_decimal(item.get('totalCost', 0), field='totalCost')
        if kind == SHIPPING:
            duration = item.get('durationHours')
            entries.append(ShippingCost(unit_cost, total_cost, int(duration) if duration is not None else None))
        elif kind == REPASSAGE:
            entries.append(IroningCost(unit_cost, total_cost))
        else:
            raise ValidationError(f'Unknown addon kind {kind!r}.')
    return entries
