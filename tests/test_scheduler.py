import unittest
from datetime import datetime, timedelta

from laundry.domain.errors import ValidationError
from laundry.domain.scheduler import (
    combine_slot_end,
    compute_pickups,
    compute_subscription_window,
    parse_pickup_rules,
)


MONDAY = datetime(2024, 1, 1, 15, 30)


class ComputePickupsTests(unittest.TestCase):
    def test_later_weekday_in_same_week(self):
        pickups = compute_pickups(MONDAY, [(3, ('08:00', '10:00'))])
        self.assertEqual(pickups[0].date, datetime(2024, 1, 3))
        self.assertEqual(pickups[0].weekday, 3)
        self.assertEqual(pickups[0].hours, ('08:00', '10:00'))

    def test_earlier_weekday_rolls_to_next_week(self):
        pickups = compute_pickups(datetime(2024, 1, 4), [(1, ('08:00', '10:00'))])
        self.assertEqual(pickups[0].date, datetime(2024, 1, 8))

    def test_same_day_included_by_default(self):
        pickups = compute_pickups(MONDAY, [(1, ('08:00', '10:00'))])
        self.assertEqual(pickups[0].date, datetime(2024, 1, 1))

    def test_same_day_excluded_rolls_a_full_week(self):
        pickups = compute_pickups(MONDAY, [(1, ('08:00', '10:00'))], include_reference_day=False)
        self.assertEqual(pickups[0].date, datetime(2024, 1, 8))

    def test_weekday_seven_is_sunday(self):
        seven = compute_pickups(MONDAY, [(7, ('09:00', '11:00'))])
        zero = compute_pickups(MONDAY, [(0, ('09:00', '11:00'))])
        self.assertEqual(seven[0].date, datetime(2024, 1, 7))
        self.assertEqual(seven[0].date, zero[0].date)
        self.assertEqual(seven[0].date.weekday(), 6)

    def test_dates_are_normalized_to_midnight(self):
        for pickup in compute_pickups(MONDAY, [(2, ('08:00', '10:00')), (6, ('12:00', '13:00'))]):
            self.assertEqual((pickup.date.hour, pickup.date.minute, pickup.date.second), (0, 0, 0))

    def test_output_follows_rule_order(self):
        pickups = compute_pickups(MONDAY, [(5, ('08:00', '10:00')), (2, ('08:00', '10:00'))])
        self.assertEqual([p.weekday for p in pickups], [5, 2])

    def test_no_rules_no_pickups(self):
        self.assertEqual(compute_pickups(MONDAY, []), [])


class SubscriptionWindowTests(unittest.TestCase):
    def test_window_starts_at_first_pickup(self):
        rules = [(4, ('08:00', '10:00')), (2, ('08:00', '10:00'))]
        start, end = compute_subscription_window(MONDAY, rules)
        self.assertEqual(start, datetime(2024, 1, 2))
        self.assertEqual(end, datetime(2024, 1, 2) + timedelta(days=28, hours=48))

    def test_custom_delivery_delay(self):
        start, end = compute_subscription_window(MONDAY, [(1, ('08:00', '10:00'))], delivery_delay_hours=24)
        self.assertEqual(start, datetime(2024, 1, 1))
        self.assertEqual(end, datetime(2024, 1, 30))

    def test_window_needs_a_pickup_day(self):
        with self.assertRaises(ValidationError):
            compute_subscription_window(MONDAY, [])


class ParsePickupRulesTests(unittest.TestCase):
    def test_valid_rules(self):
        rules = parse_pickup_rules([[1, ['08:00', '10:00']], ['7', ['18:00', '20:30']]])
        self.assertEqual(rules, [(1, ('08:00', '10:00')), (7, ('18:00', '20:30'))])

    def test_empty_rules(self):
        self.assertEqual(parse_pickup_rules(None), [])

    def test_rejects_weekday_out_of_range(self):
        with self.assertRaises(ValidationError):
            parse_pickup_rules([[8, ['08:00', '10:00']]])

    def test_rejects_bad_time(self):
        with self.assertRaises(ValidationError):
            parse_pickup_rules([[1, ['8h', '10:00']]])

    def test_rejects_inverted_slot(self):
        with self.assertRaises(ValidationError):
            parse_pickup_rules([[1, ['10:00', '08:00']]])

    def test_rejects_malformed_entry(self):
        with self.assertRaises(ValidationError):
            parse_pickup_rules([[1]])


def test_combine_slot_end_uses_end_time():
    assert combine_slot_end(datetime(2024, 1, 3), ('08:00', '10:30')) == datetime(2024, 1, 3, 10, 30)


if __name__ == '__main__':
    unittest.main()
