# File: lending_portal/overlap.py
"""
Overlap accounting for new borrow requests.

``available`` only reflects loans that are already approved. To stop the
portal from promising the same units twice, a new request is also checked
against every pending or approved request on the same item whose date range
intersects its own: together they may never ask for more than the item's
total quantity.
"""

from datetime import date

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from . import errors, models

COMMITTING_STATUSES = (models.PENDING, models.APPROVED)


def ranges_overlap(start_a, end_a, start_b, end_b):
    """
    Inclusive intersection test: touching ranges overlap.
    Works on plain dates (returns a bool) and on column expressions
    (returns a SQL condition), so the query below uses the same rule.
    """
    return (start_a <= end_b) & (end_a >= start_b)


def committed_quantity(db: Session, equipment_id: int, borrow_from: date, borrow_to: date) -> int:
    """Units already promised (pending + approved) for any day of the range."""
    stmt = select(func.coalesce(func.sum(models.BorrowRequest.quantity), 0)).where(
        models.BorrowRequest.equipment_id == equipment_id,
        models.BorrowRequest.status.in_(COMMITTING_STATUSES),
        ranges_overlap(
            models.BorrowRequest.borrow_from_date,
            models.BorrowRequest.borrow_to_date,
            borrow_from,
            borrow_to,
        ),
    )
    return int(db.execute(stmt).scalar_one())


def check_capacity(
    db: Session,
    equipment: models.Equipment,
    quantity: int,
    borrow_from: date,
    borrow_to: date,
) -> int:
    """
    Raises unless ``quantity`` more units can be promised for the range.

    Two independent checks, both must pass:
      1. the point-in-time ``available`` counter covers the request;
      2. committed units over the range plus the request fit in ``quantity``.

    Returns the number of units still obtainable for the range after this request.
    """
    if equipment.available <= 0:
        raise errors.InsufficientAvailabilityError(
            requested=quantity,
            available=equipment.available,
            message="Equipment is not available for borrowing",
        )
    if quantity > equipment.available:
        raise errors.InsufficientAvailabilityError(requested=quantity, available=equipment.available)

    committed = committed_quantity(db, equipment.equipment_id, borrow_from, borrow_to)
    if committed + quantity > equipment.quantity:
        raise errors.CapacityExceededError(remaining=max(equipment.quantity - committed, 0))

    return equipment.quantity - committed - quantity
