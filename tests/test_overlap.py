import unittest

from lending_portal import errors, lifecycle, overlap
from tests.support import DatabaseTestCase, days_from_today


class RangesOverlapTests(unittest.TestCase):
    def test_boundaries_are_inclusive(self):
        a, b, c, d = (days_from_today(n) for n in (1, 5, 5, 9))
        self.assertTrue(overlap.ranges_overlap(a, b, c, d))
        self.assertTrue(overlap.ranges_overlap(c, d, a, b))

    def test_disjoint_ranges(self):
        a, b, c, d = (days_from_today(n) for n in (1, 4, 5, 9))
        self.assertFalse(overlap.ranges_overlap(a, b, c, d))
        self.assertFalse(overlap.ranges_overlap(c, d, a, b))

    def test_containment(self):
        a, b, c, d = (days_from_today(n) for n in (1, 10, 3, 4))
        self.assertTrue(overlap.ranges_overlap(a, b, c, d))


class CommittedQuantityTests(DatabaseTestCase):
    def setUp(self):
        super().setUp()
        self.equipment = self.make_equipment(quantity=10)
        self.equipment_id = self.equipment.equipment_id

    def committed(self, start, end):
        return overlap.committed_quantity(
            self.db, self.equipment_id, days_from_today(start), days_from_today(end)
        )

    def test_sums_pending_and_approved_in_range(self):
        first = self.file_request(self.equipment, 2, 10, 15)
        self.file_request(self.equipment, 3, 14, 20)
        lifecycle.approve_request(self.db, first.request_id, approver=self.admin)

        self.assertEqual(self.committed(12, 16), 5)
        self.assertEqual(self.committed(15, 15), 5)
        self.assertEqual(self.committed(16, 30), 3)
        self.assertEqual(self.committed(1, 9), 0)

    def test_ignores_closed_requests_and_other_items(self):
        rejected = self.file_request(self.equipment, 2, 10, 15)
        lifecycle.reject_request(self.db, rejected.request_id, approver=self.admin)
        returned = self.file_request(self.equipment, 4, 10, 15)
        lifecycle.approve_request(self.db, returned.request_id, approver=self.admin)
        lifecycle.mark_returned(self.db, returned.request_id, approver=self.admin)

        other = self.make_equipment(quantity=5, name="Football")
        self.file_request(other, 5, 10, 15)

        self.assertEqual(self.committed(10, 15), 0)

    def test_touching_ranges_count(self):
        self.file_request(self.equipment, 2, 10, 15)
        self.file_request(self.equipment, 1, 20, 25)

        self.assertEqual(self.committed(15, 20), 3)
        self.assertEqual(self.committed(16, 19), 0)


class CheckCapacityTests(DatabaseTestCase):
    def test_overlapping_request_reports_remaining_units(self):
        equipment = self.make_equipment(quantity=5)
        self.file_request(equipment, 3, 10, 15)

        with self.assertRaises(errors.CapacityExceededError) as ctx:
            self.file_request(equipment, 3, 12, 20)
        self.assertEqual(ctx.exception.remaining, 2)
        self.assertEqual(ctx.exception.message, "Only 2 units available for these dates")

    def test_non_overlapping_requests_do_not_compete(self):
        equipment = self.make_equipment(quantity=2)
        for week in range(5):
            start = 7 * week + 1
            self.file_request(equipment, 2, start, start + 5)

    def test_nothing_available_now(self):
        equipment = self.make_equipment(quantity=2, available=0)
        with self.assertRaises(errors.InsufficientAvailabilityError) as ctx:
            self.file_request(equipment, 1, 1, 3)
        self.assertEqual(ctx.exception.message, "Equipment is not available for borrowing")

    def test_more_than_available_now(self):
        equipment = self.make_equipment(quantity=5, available=2)
        with self.assertRaises(errors.InsufficientAvailabilityError) as ctx:
            self.file_request(equipment, 3, 1, 3)
        self.assertEqual(ctx.exception.message, "Only 2 units available for borrowing")

    def test_returns_units_left_for_range(self):
        equipment = self.make_equipment(quantity=5)
        self.file_request(equipment, 1, 1, 4)
        left = overlap.check_capacity(self.db, equipment, 2, days_from_today(2), days_from_today(3))
        self.assertEqual(left, 2)


if __name__ == "__main__":
    unittest.main()
