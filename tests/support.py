import shutil
import tempfile
import unittest
from datetime import date, timedelta
from pathlib import Path

from sqlalchemy.orm import sessionmaker

from lending_portal import auth, ledger, lifecycle, models, schemas
from lending_portal.database import make_engine


def days_from_today(days: int) -> date:
    return date.today() + timedelta(days=days)


class DatabaseTestCase(unittest.TestCase):
    """Runs every test against a fresh SQLite file with one admin and one student."""

    def setUp(self):
        tmpdir = tempfile.mkdtemp()
        self.addCleanup(shutil.rmtree, tmpdir, True)

        self.engine = make_engine(f"sqlite:///{Path(tmpdir) / 'lending.db'}")
        self.addCleanup(self.engine.dispose)
        models.Base.metadata.create_all(bind=self.engine)

        self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)
        self.db = self.SessionLocal()
        self.addCleanup(self.db.close)

        self.admin = self.make_user("Admin User", "admin@example.com", "admin")
        self.student = self.make_user("John Doe", "student@example.com", "student")

    def make_user(self, name, email, role, password="password123"):
        return auth.register_user(
            self.db, schemas.UserCreate(name=name, email=email, password=password, role=role)
        )

    def make_equipment(self, quantity=5, available=None, name="Basketball", category="Sports"):
        return ledger.create_equipment(
            self.db,
            schemas.EquipmentCreate(
                name=name,
                category=category,
                description=f"{name} for school use",
                location="Store room A",
                quantity=quantity,
                available=available,
            ),
            actor=self.admin,
        )

    def file_request(self, equipment, quantity, start, end, requester=None, notes="Team practice"):
        """Files a request for ``quantity`` units from day ``start`` to day ``end`` (relative to today)."""
        return lifecycle.create_request(
            self.db,
            schemas.RequestCreate(
                equipment_id=equipment.equipment_id,
                quantity=quantity,
                borrow_from_date=days_from_today(start),
                borrow_to_date=days_from_today(end),
                notes=notes,
            ),
            requester=requester or self.student,
        )

    def available_of(self, equipment_id) -> int:
        return self.db.get(models.Equipment, equipment_id, populate_existing=True).available

    def status_of(self, request_id) -> str:
        return self.db.get(models.BorrowRequest, request_id, populate_existing=True).status
