"""Weekly pickup scheduling.

Pickup rules are stored on a command as ``[[weekday, ["HH:MM", "HH:MM"]], ...]``
with weekdays numbered on a Sunday-start week: 1 = Monday ... 6 = Saturday and
7 (or 0) = Sunday.

Everything here is pure: the same inputs always produce the same dates, so the
functions are safe for preview computations.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Any, Iterable, List, Sequence, Tuple

from .errors import ValidationError


SUBSCRIPTION_WEEKS = 4

PickupHours = Tuple[str, str]
PickupRule = Tuple[int, PickupHours]


@dataclass(frozen=True)
class Pickup:
    date: datetime  # midnight of the pickup day
    weekday: int  # weekday as given in the rule (1-7)
    hours: PickupHours


def _sunday_start_weekday(value: date) -> int:
    # Python: Monday=0 ... Sunday=6. Sunday-start week: Sunday=0 ... Saturday=6.
    return (value.weekday() + 1) % 7


def _parse_hhmm(value: Any) -> time:
    try:
        hours, minutes = str(value).strip().split(':')[:2]
        return time(int(hours), int(minutes))
    except (TypeError, ValueError):
        raise ValidationError(f'Invalid pickup time {value!r}, expected HH:MM.') from None


def parse_pickup_rules(raw: Iterable[Any] | None) -> List[PickupRule]:
    """Validate and normalize stored pickup rules."""

    rules: List[PickupRule] = []
    for entry in raw or ():
        try:
            weekday, hours = entry
            start, end = hours
            weekday = int(weekday)
        except (TypeError, ValueError):
            raise ValidationError(f'Malformed pickup rule {entry!r}.') from None

        if weekday < 0 or weekday > 7:
            raise ValidationError(f'Pickup weekday must be between 1 and 7, got {weekday}.')
        if _parse_hhmm(start) >= _parse_hhmm(end):
            raise ValidationError(f'Pickup slot {start}-{end} must start before it ends.')

        rules.append((weekday, (str(start), str(end))))
    return rules


def compute_pickups(
    reference_date: date | datetime,
    pickup_rules: Sequence[PickupRule],
    include_reference_day: bool = True,
) -> List[Pickup]:
    """Next occurrence of every rule's weekday on or after ``reference_date``.

    When ``include_reference_day`` is false a rule falling on the reference
    weekday rolls forward a full week. Output order follows the rules.
    """

    if isinstance(reference_date, datetime):
        reference_day = reference_date.date()
    else:
        reference_day = reference_date
    today = _sunday_start_weekday(reference_day)

    pickups: List[Pickup] = []
    for weekday, hours in pickup_rules:
        day = 0 if weekday == 7 else weekday

        days_to_add = day - today
        if days_to_add < 0:
            days_to_add += 7
        elif days_to_add == 0 and not include_reference_day:
            days_to_add = 7

        pickup_day = reference_day + timedelta(days=days_to_add)
        pickups.append(
            Pickup(
                date=datetime.combine(pickup_day, time.min),
                weekday=weekday,
                hours=(hours[0], hours[1]),
            )
        )
    return pickups


def compute_subscription_window(
    payment_date: date | datetime,
    pickup_rules: Sequence[PickupRule],
    delivery_delay_hours: int = 48,
) -> Tuple[datetime, datetime]:
    """Validity window of a subscription, anchored to its first pickup."""

    pickups = compute_pickups(payment_date, pickup_rules, include_reference_day=True)
    if not pickups:
        raise ValidationError('A subscription needs at least one pickup day.')

    start = min(p.date for p in pickups)
    end = start + timedelta(days=SUBSCRIPTION_WEEKS * 7) + timedelta(hours=delivery_delay_hours)
    return start, end


def combine_slot_end(pickup_date: date | datetime, hours: PickupHours) -> datetime:
    """Datetime at which the pickup slot closes on ``pickup_date``."""

    if isinstance(pickup_date, datetime):
        pickup_date = pickup_date.date()
    return datetime.combine(pickup_date, _parse_hhmm(hours[1]))
