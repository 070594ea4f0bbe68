import unittest

from lending_portal import errors, ledger, models, schemas
from tests.support import DatabaseTestCase


class CreateEquipmentTests(DatabaseTestCase):
    def test_available_defaults_to_quantity(self):
        equipment = self.make_equipment(quantity=4)
        self.assertEqual(equipment.quantity, 4)
        self.assertEqual(equipment.available, 4)
        self.assertEqual(equipment.borrowed, 0)

    def test_available_above_quantity_is_rejected(self):
        with self.assertRaises(errors.ValidationError) as ctx:
            self.make_equipment(quantity=2, available=3)
        self.assertEqual(ctx.exception.message, "Available quantity cannot exceed total quantity")
        self.assertEqual(self.db.query(models.Equipment).count(), 0)

    def test_counter_minimums(self):
        with self.assertRaises(errors.ValidationError):
            self.make_equipment(quantity=0)
        with self.assertRaises(errors.ValidationError):
            self.make_equipment(quantity=3, available=-1)

    def test_zero_available_is_allowed(self):
        equipment = self.make_equipment(quantity=3, available=0)
        self.assertEqual(equipment.borrowed, 3)

    def test_only_admins_manage_equipment(self):
        payload = schemas.EquipmentCreate(
            name="Microscope", category="Lab", description="Optical", location="Lab 2", quantity=1
        )
        with self.assertRaises(errors.PermissionDeniedError):
            ledger.create_equipment(self.db, payload, actor=self.student)


class UpdateEquipmentTests(DatabaseTestCase):
    def setUp(self):
        super().setUp()
        self.equipment = self.make_equipment(quantity=5, available=3)
        self.equipment_id = self.equipment.equipment_id

    def test_available_checked_against_stored_quantity(self):
        with self.assertRaises(errors.ValidationError):
            ledger.update_equipment(
                self.db, self.equipment_id, schemas.EquipmentUpdate(available=6), actor=self.admin
            )
        self.assertEqual(self.available_of(self.equipment_id), 3)

    def test_quantity_checked_against_stored_available(self):
        with self.assertRaises(errors.ValidationError):
            ledger.update_equipment(
                self.db, self.equipment_id, schemas.EquipmentUpdate(quantity=2), actor=self.admin
            )
        stored = self.db.get(models.Equipment, self.equipment_id, populate_existing=True)
        self.assertEqual((stored.quantity, stored.available), (5, 3))

    def test_available_one_above_quantity_applies_nothing(self):
        with self.assertRaises(errors.ValidationError):
            ledger.update_equipment(
                self.db,
                self.equipment_id,
                schemas.EquipmentUpdate(name="Renamed ball", available=6),
                actor=self.admin,
            )
        stored = self.db.get(models.Equipment, self.equipment_id, populate_existing=True)
        self.assertEqual(stored.name, "Basketball")
        self.assertEqual(stored.available, 3)

    def test_valid_patch_changes_only_supplied_fields(self):
        updated = ledger.update_equipment(
            self.db,
            self.equipment_id,
            schemas.EquipmentUpdate(quantity=8, condition="Fair", description=None),
            actor=self.admin,
        )
        self.assertEqual(updated.quantity, 8)
        self.assertEqual(updated.available, 3)
        self.assertEqual(updated.condition, "Fair")
        self.assertEqual(updated.description, "Basketball for school use")

    def test_unknown_id(self):
        with self.assertRaises(errors.NotFoundError):
            ledger.update_equipment(self.db, 9999, schemas.EquipmentUpdate(available=1), actor=self.admin)


class CounterTests(DatabaseTestCase):
    def setUp(self):
        super().setUp()
        self.equipment_id = self.make_equipment(quantity=3, available=2).equipment_id

    def test_decrease_and_increase(self):
        ledger.decrease_available(self.db, self.equipment_id, 2)
        self.db.commit()
        self.assertEqual(self.available_of(self.equipment_id), 0)

        ledger.increase_available(self.db, self.equipment_id, 3)
        self.db.commit()
        self.assertEqual(self.available_of(self.equipment_id), 3)

    def test_decrease_below_zero(self):
        with self.assertRaises(errors.InsufficientAvailabilityError) as ctx:
            ledger.decrease_available(self.db, self.equipment_id, 3)
        self.assertEqual(ctx.exception.available, 2)
        self.assertEqual(ctx.exception.requested, 3)
        self.db.rollback()
        self.assertEqual(self.available_of(self.equipment_id), 2)

    def test_increase_above_quantity(self):
        with self.assertRaises(errors.OverReturnError):
            ledger.increase_available(self.db, self.equipment_id, 2)
        self.db.rollback()
        self.assertEqual(self.available_of(self.equipment_id), 2)

    def test_counts_must_be_positive(self):
        with self.assertRaises(errors.ValidationError):
            ledger.decrease_available(self.db, self.equipment_id, 0)
        with self.assertRaises(errors.ValidationError):
            ledger.increase_available(self.db, self.equipment_id, -1)

    def test_unknown_item(self):
        with self.assertRaises(errors.NotFoundError):
            ledger.decrease_available(self.db, 9999, 1)
        with self.assertRaises(errors.NotFoundError):
            ledger.increase_available(self.db, 9999, 1)


class DeleteEquipmentTests(DatabaseTestCase):
    def test_delete_keeps_borrow_requests(self):
        equipment = self.make_equipment(quantity=2)
        equipment_id = equipment.equipment_id
        request_id = self.file_request(equipment, 1, 1, 3).request_id

        self.assertEqual(ledger.delete_equipment(self.db, equipment_id, actor=self.admin), equipment_id)

        self.assertIsNone(ledger.get_equipment(self.db, equipment_id))
        remaining = self.db.get(models.BorrowRequest, request_id)
        self.assertIsNotNone(remaining)
        self.assertEqual(remaining.equipment_name, "Basketball")

    def test_delete_unknown(self):
        with self.assertRaises(errors.NotFoundError):
            ledger.delete_equipment(self.db, 9999, actor=self.admin)


if __name__ == "__main__":
    unittest.main()
