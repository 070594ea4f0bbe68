# File: lending_portal/models.py

from datetime import date, datetime

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
)
from sqlalchemy.orm import relationship

from .database import Base

ROLES = ("student", "staff", "admin")
BORROWER_ROLES = ("student", "staff")
CATEGORIES = ("Sports", "Lab", "Camera", "Musical", "Computing", "Tools", "Other")
CONDITIONS = ("Excellent", "Good", "Fair", "Poor")

# Borrow request statuses
PENDING = "pending"
APPROVED = "approved"
REJECTED = "rejected"
RETURNED = "returned"
REQUEST_STATUSES = (PENDING, APPROVED, REJECTED, RETURNED)


# 1. Users Table Model
class User(Base):
    __tablename__ = "users"

    user_id = Column(Integer, primary_key=True, index=True)
    name = Column(String(50), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    hashed_password = Column(String, nullable=False)
    role = Column(String(10), index=True, nullable=False, default="student")
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=datetime.now)

    # Two foreign keys on borrow_requests point here, so each side
    # spells out its join condition.
    borrow_requests = relationship(
        "BorrowRequest",
        back_populates="requester",
        primaryjoin="User.user_id == BorrowRequest.student_id",
    )

    approved_requests = relationship(
        "BorrowRequest",
        back_populates="approver",
        primaryjoin="User.user_id == BorrowRequest.approved_by",
    )


# 2. Equipment Table Model
class Equipment(Base):
    __tablename__ = "equipment"
    __table_args__ = (
        CheckConstraint("quantity >= 1", name="ck_equipment_quantity_min"),
        CheckConstraint("available >= 0", name="ck_equipment_available_min"),
        CheckConstraint("available <= quantity", name="ck_equipment_available_max"),
    )

    equipment_id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), index=True, nullable=False)
    category = Column(String(20), index=True, nullable=False)
    description = Column(String(500), nullable=False)
    condition = Column(String(10), nullable=False, default="Good")
    quantity = Column(Integer, nullable=False)
    available = Column(Integer, nullable=False)
    location = Column(String(100), nullable=False)
    image = Column(String(500), nullable=True)
    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)

    @property
    def borrowed(self) -> int:
        return self.quantity - self.available


# 3. Borrow Requests Table Model
class BorrowRequest(Base):
    __tablename__ = "borrow_requests"
    __table_args__ = (
        CheckConstraint("quantity >= 1", name="ck_borrow_requests_quantity_min"),
        Index("ix_borrow_requests_student_status", "student_id", "status"),
        Index("ix_borrow_requests_equipment_status", "equipment_id", "status"),
    )

    request_id = Column(Integer, primary_key=True, index=True)

    student_id = Column(Integer, ForeignKey("users.user_id"), nullable=False)
    student_name = Column(String(50), nullable=False)
    student_email = Column(String(255), nullable=False)

    # No foreign key: deleting equipment leaves its borrow history in place.
    equipment_id = Column(Integer, nullable=False)
    equipment_name = Column(String(100), nullable=False)

    quantity = Column(Integer, nullable=False)
    borrow_from_date = Column(Date, nullable=False)
    borrow_to_date = Column(Date, nullable=False)
    requested_date = Column(DateTime, index=True, default=datetime.now)
    notes = Column(String(500), nullable=False)

    status = Column(String(10), index=True, nullable=False, default=PENDING)

    approved_by = Column(Integer, ForeignKey("users.user_id"), nullable=True)
    approved_by_name = Column(String(50), nullable=True)
    approval_date = Column(DateTime, nullable=True)
    approval_notes = Column(String(300), nullable=True)

    rejection_reason = Column(String(300), nullable=True)

    actual_return_date = Column(DateTime, nullable=True)
    returned_condition = Column(String(10), nullable=True)
    return_notes = Column(String(300), nullable=True)

    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)

    requester = relationship("User", back_populates="borrow_requests", foreign_keys=[student_id])

    approver = relationship(
        "User",
        back_populates="approved_requests",
        foreign_keys=[approved_by],
    )

    @property
    def is_overdue(self) -> bool:
        if self.status != APPROVED:
            return False
        return date.today() > self.borrow_to_date

    @property
    def days_requested(self) -> int:
        return (self.borrow_to_date - self.borrow_from_date).days
