# File: lending_portal/crud.py

import math
from datetime import date
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from . import config, models, schemas

# --- User CRUD Functions ---

def get_user_by_id(db: Session, user_id: int):
    return db.get(models.User, user_id)

def get_user_by_email(db: Session, email: str):
    return db.query(models.User).filter(models.User.email == email.strip().lower()).first()

def create_user(db: Session, user: schemas.UserCreate, hashed_password: str):
    db_user = models.User(
        name=user.name.strip(),
        email=user.email.strip().lower(),
        hashed_password=hashed_password,
        role=user.role,
    )
    db.add(db_user)
    db.commit()
    db.refresh(db_user)
    return db_user

# --- Pagination ---

def _page_params(page: Optional[int], limit: Optional[int]):
    page = page if page and page >= 1 else 1
    limit = limit if limit and limit >= 1 else config.DEFAULT_PAGE_SIZE
    return page, min(limit, config.MAX_PAGE_SIZE)

def _paginate(query, page: Optional[int], limit: Optional[int]):
    page, limit = _page_params(page, limit)
    total = query.count()
    items = query.offset((page - 1) * limit).limit(limit).all()
    return {
        "items": items,
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "pages": math.ceil(total / limit),
        },
    }

def _icontains(column, text: str):
    return func.lower(column).contains(text.lower(), autoescape=True)

# --- Equipment Queries ---

def get_all_equipment(
    db: Session,
    search: Optional[str] = None,
    category: Optional[str] = None,
    availability: Optional[str] = None,
    page: int = 1,
    limit: int = 10,
):
    query = db.query(models.Equipment)
    if search:
        query = query.filter(
            _icontains(models.Equipment.name, search) | _icontains(models.Equipment.description, search)
        )
    if category:
        query = query.filter(models.Equipment.category == category)
    if availability == "available":
        query = query.filter(models.Equipment.available > 0)
    elif availability == "unavailable":
        query = query.filter(models.Equipment.available == 0)

    query = query.order_by(models.Equipment.created_at.desc(), models.Equipment.equipment_id.desc())
    return _paginate(query, page, limit)

def get_equipment_stats(db: Session):
    total_items, total_quantity, total_available = db.query(
        func.count(models.Equipment.equipment_id),
        func.coalesce(func.sum(models.Equipment.quantity), 0),
        func.coalesce(func.sum(models.Equipment.available), 0),
    ).one()

    by_category = db.query(
        models.Equipment.category,
        func.count(models.Equipment.equipment_id),
        func.sum(models.Equipment.quantity),
        func.sum(models.Equipment.available),
    ).group_by(
        models.Equipment.category
    ).order_by(
        models.Equipment.category
    ).all()

    return {
        "total_items": total_items,
        "total_quantity": total_quantity,
        "total_available": total_available,
        "total_borrowed": total_quantity - total_available,
        "by_category": [
            {"category": category, "count": count, "total_quantity": quantity, "available": available}
            for category, count, quantity, available in by_category
        ],
    }

# --- Request Queries ---

def _newest_first(query):
    return query.order_by(models.BorrowRequest.requested_date.desc(), models.BorrowRequest.request_id.desc())

def get_requests_by_user(
    db: Session,
    user_id: int,
    status: Optional[str] = None,
    page: int = 1,
    limit: int = 10,
):
    query = db.query(models.BorrowRequest).filter(models.BorrowRequest.student_id == user_id)
    if status:
        query = query.filter(models.BorrowRequest.status == status)
    return _paginate(_newest_first(query), page, limit)

def get_all_requests(
    db: Session,
    status: Optional[str] = None,
    student_name: Optional[str] = None,
    equipment_name: Optional[str] = None,
    student_id: Optional[int] = None,
    page: int = 1,
    limit: int = 10,
):
    query = db.query(models.BorrowRequest)
    if status:
        query = query.filter(models.BorrowRequest.status == status)
    if student_name:
        query = query.filter(_icontains(models.BorrowRequest.student_name, student_name))
    if equipment_name:
        query = query.filter(_icontains(models.BorrowRequest.equipment_name, equipment_name))
    if student_id is not None:
        query = query.filter(models.BorrowRequest.student_id == student_id)
    return _paginate(_newest_first(query), page, limit)

def get_all_pending_requests(db: Session):
    query = db.query(models.BorrowRequest).filter(models.BorrowRequest.status == models.PENDING)
    return query.order_by(models.BorrowRequest.requested_date.asc()).all()

def get_requests_by_user_admin(db: Session, user_id: int):
    if get_user_by_id(db, user_id) is None:
        return None
    query = db.query(models.BorrowRequest).filter(models.BorrowRequest.student_id == user_id)
    return _newest_first(query).all()

def get_all_overdue_items(db: Session, today: Optional[date] = None):
    today = today or date.today()
    return db.query(models.BorrowRequest).filter(
        models.BorrowRequest.status == models.APPROVED,
        models.BorrowRequest.borrow_to_date < today,
    ).order_by(models.BorrowRequest.borrow_to_date.asc()).all()

# --- History & Analytics ---

def get_usage_analytics(db: Session):
    return db.query(
        models.Equipment.equipment_id,
        models.Equipment.name,
        func.count(models.BorrowRequest.request_id).label("request_count")
    ).join(
        models.BorrowRequest, models.Equipment.equipment_id == models.BorrowRequest.equipment_id
    ).group_by(
        models.Equipment.equipment_id, models.Equipment.name
    ).order_by(
        func.count(models.BorrowRequest.request_id).desc()
    ).all()

def get_admin_stats(db: Session):
    equipment = get_equipment_stats(db)

    request_counts = {status: 0 for status in models.REQUEST_STATUSES}
    rows = db.query(models.BorrowRequest.status, func.count(models.BorrowRequest.request_id)).group_by(
        models.BorrowRequest.status
    ).all()
    for status, count in rows:
        request_counts[status] = count

    user_counts = {role: 0 for role in models.ROLES}
    rows = db.query(models.User.role, func.count(models.User.user_id)).group_by(models.User.role).all()
    for role, count in rows:
        user_counts[role] = count

    return {
        "total_equipment": equipment["total_items"],
        "available_equipment": equipment["total_available"],
        "borrowed_equipment": equipment["total_borrowed"],
        "pending_requests": request_counts[models.PENDING],
        "total_users": sum(user_counts.values()),
        "user_breakdown": user_counts,
        "request_breakdown": request_counts,
    }
