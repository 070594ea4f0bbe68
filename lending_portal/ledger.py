# File: lending_portal/ledger.py
"""
Equipment ledger: owns the total/available counters of every equipment item.

All writes to ``Equipment.available`` go through this module. The two counter
operations used by the request lifecycle (``decrease_available`` and
``increase_available``) are single conditional UPDATE statements, so the
check and the write happen in one step inside the database. They do not
commit; the caller's transaction decides whether they stick.
"""

import logging

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from . import auth, errors, models, schemas

logger = logging.getLogger("lending_portal.ledger")


def _is_count(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _check_counts(quantity, available) -> None:
    if not _is_count(quantity) or quantity < 1:
        raise errors.ValidationError("Quantity must be at least 1")
    if not _is_count(available) or available < 0:
        raise errors.ValidationError("Available quantity cannot be negative")
    if available > quantity:
        raise errors.ValidationError("Available quantity cannot exceed total quantity")


def get_equipment(db: Session, equipment_id: int):
    return db.get(models.Equipment, equipment_id)


def get_equipment_or_404(db: Session, equipment_id: int) -> models.Equipment:
    db_equipment = get_equipment(db, equipment_id)
    if db_equipment is None:
        raise errors.NotFoundError("Equipment not found")
    return db_equipment


def lock_equipment(db: Session, equipment_id: int) -> models.Equipment:
    """
    Reads an item with a row lock (SELECT ... FOR UPDATE) for the rest of the
    transaction. SQLite ignores FOR UPDATE, so there a no-op UPDATE of the row
    is issued first: it opens the write transaction and takes the database
    write lock, which other writers wait on until commit or rollback.
    """
    if db.get_bind().dialect.name == "sqlite":
        db.execute(
            update(models.Equipment)
            .where(models.Equipment.equipment_id == equipment_id)
            .values(available=models.Equipment.available, updated_at=models.Equipment.updated_at)
            .execution_options(synchronize_session=False)
        )

    stmt = (
        select(models.Equipment)
        .where(models.Equipment.equipment_id == equipment_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    db_equipment = db.execute(stmt).scalar_one_or_none()
    if db_equipment is None:
        raise errors.NotFoundError("Equipment not found")
    return db_equipment


def create_equipment(db: Session, equipment: schemas.EquipmentCreate, actor: models.User) -> models.Equipment:
    auth.require_role(actor, "admin")

    data = equipment.model_dump()
    if data.get("available") is None:
        data["available"] = data["quantity"]
    _check_counts(data["quantity"], data["available"])

    db_equipment = models.Equipment(**data)
    db.add(db_equipment)
    db.commit()
    db.refresh(db_equipment)
    logger.info(
        "Created equipment %s (%s) quantity=%s available=%s",
        db_equipment.equipment_id, db_equipment.name, db_equipment.quantity, db_equipment.available,
    )
    return db_equipment


def update_equipment(
    db: Session,
    equipment_id: int,
    patch: schemas.EquipmentUpdate,
    actor: models.User,
) -> models.Equipment:
    """
    Applies an administrative edit. The quantity/available invariant is checked
    against the pair the item would end up with, so a patch that touches only
    one of the two counters is compared with the stored value of the other.
    """
    auth.require_role(actor, "admin")

    update_data = {key: value for key, value in patch.model_dump(exclude_unset=True).items() if value is not None}
    try:
        db_equipment = lock_equipment(db, equipment_id)
        _check_counts(
            update_data.get("quantity", db_equipment.quantity),
            update_data.get("available", db_equipment.available),
        )
        for key, value in update_data.items():
            setattr(db_equipment, key, value)
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(db_equipment)
    logger.info("Updated equipment %s fields=%s", equipment_id, sorted(update_data))
    return db_equipment


def delete_equipment(db: Session, equipment_id: int, actor: models.User) -> int:
    """
    Removes an item. Borrow requests that reference it are kept as they are.
    """
    auth.require_role(actor, "admin")

    db_equipment = get_equipment_or_404(db, equipment_id)
    db.delete(db_equipment)
    db.commit()
    logger.info("Deleted equipment %s; existing borrow requests are left untouched", equipment_id)
    return equipment_id


def decrease_available(db: Session, equipment_id: int, count: int) -> None:
    """Takes ``count`` units out of ``available`` iff at least that many are free."""
    if not _is_count(count) or count < 1:
        raise errors.ValidationError("Count must be a positive whole number")

    result = db.execute(
        update(models.Equipment)
        .where(
            models.Equipment.equipment_id == equipment_id,
            models.Equipment.available >= count,
        )
        .values(available=models.Equipment.available - count)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 1:
        logger.info("Equipment %s available -%s", equipment_id, count)
        return

    db_equipment = db.get(models.Equipment, equipment_id, populate_existing=True)
    if db_equipment is None:
        raise errors.NotFoundError("Equipment not found")
    raise errors.InsufficientAvailabilityError(
        requested=count,
        available=db_equipment.available,
        message=f"Requested quantity no longer available: {count} requested, {db_equipment.available} available",
    )


def increase_available(db: Session, equipment_id: int, count: int) -> None:
    """Puts ``count`` units back into ``available`` iff that stays within ``quantity``."""
    if not _is_count(count) or count < 1:
        raise errors.ValidationError("Count must be a positive whole number")

    result = db.execute(
        update(models.Equipment)
        .where(
            models.Equipment.equipment_id == equipment_id,
            models.Equipment.available + count <= models.Equipment.quantity,
        )
        .values(available=models.Equipment.available + count)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 1:
        logger.info("Equipment %s available +%s", equipment_id, count)
        return

    db_equipment = db.get(models.Equipment, equipment_id, populate_existing=True)
    if db_equipment is None:
        raise errors.NotFoundError("Equipment not found")
    raise errors.OverReturnError(
        f"Cannot return more than total quantity: {db_equipment.available} of "
        f"{db_equipment.quantity} already available, {count} returned"
    )
