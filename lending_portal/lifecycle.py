# File: lending_portal/lifecycle.py
"""
Borrow request lifecycle.

    pending --approve--> approved --return--> returned
    pending --reject---> rejected

``rejected`` and ``returned`` are terminal. Each transition is applied with a
compare-and-set UPDATE (``... WHERE status = <source>``) in the same
transaction as its ledger write, so two admins acting on the same request at
once cannot both succeed and the counters never drift from the statuses.
"""

import logging
from datetime import date, datetime
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from . import auth, errors, ledger, models, overlap, schemas

logger = logging.getLogger("lending_portal.requests")

TRANSITIONS = {
    models.PENDING: {models.APPROVED, models.REJECTED},
    models.APPROVED: {models.RETURNED},
    models.REJECTED: set(),
    models.RETURNED: set(),
}

NOTES_MAX_LENGTH = 500
DECISION_NOTES_MAX_LENGTH = 300


def _clean_optional(text: Optional[str], label: str, max_length: int) -> Optional[str]:
    if text is None:
        return None
    text = text.strip()
    if len(text) > max_length:
        raise errors.ValidationError(f"{label} cannot exceed {max_length} characters")
    return text or None


def get_request_or_404(db: Session, request_id: int) -> models.BorrowRequest:
    db_request = db.get(models.BorrowRequest, request_id, populate_existing=True)
    if db_request is None:
        raise errors.NotFoundError("Request not found")
    return db_request


def _assert_transition(db_request: models.BorrowRequest, target: str, action: str) -> None:
    if target not in TRANSITIONS.get(db_request.status, set()):
        raise errors.InvalidStateTransitionError(current=db_request.status, target=target, action=action)


def _claim_transition(db: Session, request_id: int, source: str, target: str, action: str, **fields) -> None:
    """Moves the row from ``source`` to ``target`` only if it is still in ``source``."""
    result = db.execute(
        update(models.BorrowRequest)
        .where(
            models.BorrowRequest.request_id == request_id,
            models.BorrowRequest.status == source,
        )
        .values(status=target, **fields)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 1:
        return

    current = db.execute(
        select(models.BorrowRequest.status).where(models.BorrowRequest.request_id == request_id)
    ).scalar_one_or_none()
    if current is None:
        raise errors.NotFoundError("Request not found")
    raise errors.InvalidStateTransitionError(current=current, target=target, action=action)


def create_request(
    db: Session,
    payload: schemas.RequestCreate,
    requester: models.User,
    today: Optional[date] = None,
) -> models.BorrowRequest:
    """
    Files a new pending request after validating the payload and checking
    that the item can cover it for the whole date range.
    """
    auth.require_role(requester, *models.BORROWER_ROLES)
    today = today or date.today()

    quantity = payload.quantity
    if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity < 1:
        raise errors.ValidationError("Quantity must be a positive whole number")
    if payload.borrow_from_date < today:
        raise errors.ValidationError("Borrow date cannot be in the past")
    if payload.borrow_to_date <= payload.borrow_from_date:
        raise errors.ValidationError("Return date must be after borrow date")

    notes = (payload.notes or "").strip()
    if not notes:
        raise errors.ValidationError("Please provide purpose for borrowing")
    if len(notes) > NOTES_MAX_LENGTH:
        raise errors.ValidationError(f"Notes cannot exceed {NOTES_MAX_LENGTH} characters")
    if not requester.name or not requester.email:
        raise errors.ValidationError("Requester name and email are required")

    try:
        equipment = ledger.lock_equipment(db, payload.equipment_id)
        overlap.check_capacity(db, equipment, quantity, payload.borrow_from_date, payload.borrow_to_date)

        db_request = models.BorrowRequest(
            student_id=requester.user_id,
            student_name=requester.name,
            student_email=requester.email,
            equipment_id=equipment.equipment_id,
            equipment_name=equipment.name,
            quantity=quantity,
            borrow_from_date=payload.borrow_from_date,
            borrow_to_date=payload.borrow_to_date,
            requested_date=datetime.now(),
            notes=notes,
            status=models.PENDING,
        )
        db.add(db_request)
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(db_request)
    logger.info(
        "Request %s filed by user %s for %s x equipment %s (%s to %s)",
        db_request.request_id, requester.user_id, quantity, equipment.equipment_id,
        payload.borrow_from_date, payload.borrow_to_date,
    )
    return db_request


def approve_request(
    db: Session,
    request_id: int,
    approver: models.User,
    notes: Optional[str] = None,
) -> models.BorrowRequest:
    """
    Approves a pending request and takes its units out of the ledger.
    Fails if the units are no longer available at approval time.
    """
    auth.require_role(approver, "admin")
    notes = _clean_optional(notes, "Approval notes", DECISION_NOTES_MAX_LENGTH)

    db_request = get_request_or_404(db, request_id)
    _assert_transition(db_request, models.APPROVED, "approve")

    try:
        ledger.decrease_available(db, db_request.equipment_id, db_request.quantity)
        _claim_transition(
            db, request_id, models.PENDING, models.APPROVED, "approve",
            approved_by=approver.user_id,
            approved_by_name=approver.name,
            approval_date=datetime.now(),
            approval_notes=notes,
        )
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(db_request)
    logger.info("Request %s approved by user %s", request_id, approver.user_id)
    return db_request


def reject_request(
    db: Session,
    request_id: int,
    approver: models.User,
    reason: Optional[str] = None,
) -> models.BorrowRequest:
    auth.require_role(approver, "admin")
    reason = _clean_optional(reason, "Rejection reason", DECISION_NOTES_MAX_LENGTH)

    db_request = get_request_or_404(db, request_id)
    _assert_transition(db_request, models.REJECTED, "reject")

    try:
        _claim_transition(
            db, request_id, models.PENDING, models.REJECTED, "reject",
            rejection_reason=reason,
        )
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(db_request)
    logger.info("Request %s rejected by user %s", request_id, approver.user_id)
    return db_request


def mark_returned(
    db: Session,
    request_id: int,
    approver: models.User,
    condition: str = "Good",
    notes: Optional[str] = None,
) -> models.BorrowRequest:
    """
    Closes an approved loan and puts its units back into the ledger.
    If the item was deleted in the meantime the request is still closed.
    """
    auth.require_role(approver, "admin")
    if condition not in models.CONDITIONS:
        raise errors.ValidationError(f"Condition must be one of: {', '.join(models.CONDITIONS)}")
    notes = _clean_optional(notes, "Return notes", DECISION_NOTES_MAX_LENGTH)

    db_request = get_request_or_404(db, request_id)
    _assert_transition(db_request, models.RETURNED, "return")

    try:
        try:
            ledger.increase_available(db, db_request.equipment_id, db_request.quantity)
        except errors.NotFoundError:
            logger.warning(
                "Equipment %s no longer exists; request %s closed without crediting the ledger",
                db_request.equipment_id, request_id,
            )
        _claim_transition(
            db, request_id, models.APPROVED, models.RETURNED, "return",
            actual_return_date=datetime.now(),
            returned_condition=condition,
            return_notes=notes,
        )
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(db_request)
    logger.info("Request %s returned in %s condition", request_id, condition)
    return db_request
