# File: lending_portal/main.py

import logging
from typing import List, Optional

from fastapi import Depends, FastAPI, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy import text
from sqlalchemy.orm import Session

# Import all our different modules
from . import auth, config, crud, errors, ledger, lifecycle, models, schemas
from .database import engine, get_db

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

# Create all database tables
models.Base.metadata.create_all(bind=engine)

app = FastAPI(title="School Equipment Lending Portal API")

# --- CORS: the websites we trust (see CORS_ALLOW_ORIGINS) ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ALLOW_ORIGINS,
    allow_credentials=config.CORS_ALLOW_CREDENTIALS,
    allow_methods=["*"],
    allow_headers=["*"],
)

errors.register_error_handlers(app)

# --- API Endpoints ---

@app.get("/")
def read_root():
    return {"message": "Welcome to the School Equipment Lending Portal API!"}


@app.get("/health")
def health_check(db: Session = Depends(get_db)):
    try:
        db.execute(text("SELECT 1"))
        database = "connected"
    except Exception:
        logging.getLogger("lending_portal.api").exception("Health check could not reach the database")
        database = "disconnected"
    return {"status": "OK", "database": database}


# --- Auth Endpoints ---

@app.post("/register/", response_model=schemas.User, status_code=status.HTTP_201_CREATED)
def register_user(user: schemas.UserCreate, db: Session = Depends(get_db)):
    """
    Registers a new user.
    """
    return auth.register_user(db, user)


@app.post("/token", response_model=schemas.Token)
def login_for_access_token(
    db: Session = Depends(get_db),
    form_data: OAuth2PasswordRequestForm = Depends()
):
    """
    Login endpoint. Uses OAuth2 form data; the username field carries the email.
    """
    user = auth.authenticate_user(db, form_data.username, form_data.password)
    if not user:
        raise errors.AuthenticationError("Incorrect email or password")

    return {"access_token": auth.create_token_for_user(user), "token_type": "bearer"}


@app.get("/users/me/", response_model=schemas.User)
def read_users_me(current_user: models.User = Depends(auth.get_current_user)):
    return current_user


# --- Equipment Endpoints ---

@app.get("/equipment/", response_model=schemas.EquipmentPage)
def read_all_equipment(
    search: Optional[str] = None,
    category: Optional[schemas.Category] = None,
    availability: Optional[str] = None,
    page: int = 1,
    limit: int = config.DEFAULT_PAGE_SIZE,
    db: Session = Depends(get_db)
):
    """
    Get a page of equipment. This is public for all users.
    availability: 'available' (at least one unit free) or 'unavailable'.
    """
    return crud.get_all_equipment(
        db, search=search, category=category, availability=availability, page=page, limit=limit
    )


@app.get("/equipment/stats", response_model=schemas.EquipmentStats)
def read_equipment_stats(
    db: Session = Depends(get_db),
    admin_user: models.User = Depends(auth.get_current_admin_user)
):
    return crud.get_equipment_stats(db)


@app.get("/equipment/{equipment_id}", response_model=schemas.Equipment)
def read_single_equipment(
    equipment_id: int,
    db: Session = Depends(get_db)
):
    return ledger.get_equipment_or_404(db, equipment_id)


@app.post("/equipment/", response_model=schemas.Equipment, status_code=status.HTTP_201_CREATED)
def create_new_equipment(
    equipment: schemas.EquipmentCreate,
    db: Session = Depends(get_db),
    admin_user: models.User = Depends(auth.get_current_admin_user)
):
    return ledger.create_equipment(db, equipment, actor=admin_user)


@app.put("/equipment/{equipment_id}", response_model=schemas.Equipment)
def update_existing_equipment(
    equipment_id: int,
    equipment_update: schemas.EquipmentUpdate,
    db: Session = Depends(get_db),
    admin_user: models.User = Depends(auth.get_current_admin_user)
):
    return ledger.update_equipment(db, equipment_id, equipment_update, actor=admin_user)


@app.delete("/equipment/{equipment_id}", response_model=dict)
def delete_existing_equipment(
    equipment_id: int,
    db: Session = Depends(get_db),
    admin_user: models.User = Depends(auth.get_current_admin_user)
):
    deleted_id = ledger.delete_equipment(db, equipment_id, actor=admin_user)
    return {"message": "Equipment deleted successfully", "id": deleted_id}


# --- Request Endpoints ---

@app.post("/requests/", response_model=schemas.Request, status_code=status.HTTP_201_CREATED)
def create_new_request(
    request: schemas.RequestCreate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(auth.get_current_user)
):
    """
    Create a new borrow request. (Students and staff)
    """
    return lifecycle.create_request(db, request, requester=current_user)


@app.get("/requests/my/", response_model=schemas.RequestPage)
def get_my_requests(
    status: Optional[schemas.RequestStatus] = None,
    page: int = 1,
    limit: int = config.DEFAULT_PAGE_SIZE,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(auth.get_current_user)
):
    return crud.get_requests_by_user(db, user_id=current_user.user_id, status=status, page=page, limit=limit)


@app.get("/requests/", response_model=schemas.RequestPage)
def get_all_requests(
    status: Optional[schemas.RequestStatus] = None,
    student_name: Optional[str] = None,
    equipment_name: Optional[str] = None,
    student_id: Optional[int] = None,
    page: int = 1,
    limit: int = config.DEFAULT_PAGE_SIZE,
    db: Session = Depends(get_db),
    admin_user: models.User = Depends(auth.get_current_admin_user)
):
    return crud.get_all_requests(
        db,
        status=status,
        student_name=student_name,
        equipment_name=equipment_name,
        student_id=student_id,
        page=page,
        limit=limit,
    )


@app.get("/requests/pending/", response_model=List[schemas.Request])
def get_pending_requests(
    db: Session = Depends(get_db),
    admin_user: models.User = Depends(auth.get_current_admin_user)
):
    return crud.get_all_pending_requests(db)


@app.get("/requests/overdue/", response_model=List[schemas.Request])
def get_overdue_requests(
    db: Session = Depends(get_db),
    admin_user: models.User = Depends(auth.get_current_admin_user)
):
    """
    Approved loans whose return date has passed. (Admin Only)
    """
    return crud.get_all_overdue_items(db)


@app.get("/requests/{request_id}", response_model=schemas.Request)
def read_single_request(
    request_id: int,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(auth.get_current_user)
):
    db_request = lifecycle.get_request_or_404(db, request_id)

    # Allow if user is an admin OR the original requester
    if current_user.role != "admin" and db_request.student_id != current_user.user_id:
        raise errors.PermissionDeniedError("Not authorized to view this request")
    return db_request


@app.post("/requests/{request_id}/approve", response_model=schemas.Request)
def approve_pending_request(
    request_id: int,
    approval_data: Optional[schemas.RequestApprove] = None,
    db: Session = Depends(get_db),
    admin_user: models.User = Depends(auth.get_current_admin_user)
):
    """
    Approve a borrow request. (Admin Only)
    """
    notes = approval_data.approval_notes if approval_data else None
    return lifecycle.approve_request(db, request_id, approver=admin_user, notes=notes)


@app.post("/requests/{request_id}/reject", response_model=schemas.Request)
def reject_pending_request(
    request_id: int,
    rejection: Optional[schemas.RequestReject] = None,
    db: Session = Depends(get_db),
    admin_user: models.User = Depends(auth.get_current_admin_user)
):
    reason = rejection.reason if rejection else None
    return lifecycle.reject_request(db, request_id, approver=admin_user, reason=reason)


@app.post("/requests/{request_id}/return", response_model=schemas.Request)
def return_approved_equipment(
    request_id: int,
    return_data: Optional[schemas.RequestReturn] = None,
    db: Session = Depends(get_db),
    admin_user: models.User = Depends(auth.get_current_admin_user)
):
    """
    Mark an approved item as returned. (Admin Only)
    """
    return_data = return_data or schemas.RequestReturn()
    return lifecycle.mark_returned(
        db,
        request_id,
        approver=admin_user,
        condition=return_data.condition,
        notes=return_data.return_notes,
    )


# --- History & Analytics Endpoints (Admin Only) ---

@app.get("/users/{user_id}/requests", response_model=List[schemas.Request])
def read_user_requests(
    user_id: int,
    db: Session = Depends(get_db),
    admin_user: models.User = Depends(auth.get_current_admin_user)
):
    requests = crud.get_requests_by_user_admin(db, user_id=user_id)
    if requests is None:
        raise errors.NotFoundError("User not found")
    return requests


@app.get("/analytics/usage", response_model=List[schemas.UsageAnalytics])
def get_equipment_usage_analytics(
    db: Session = Depends(get_db),
    admin_user: models.User = Depends(auth.get_current_admin_user)
):
    """
    Most requested equipment first. (Admin Only)
    """
    return crud.get_usage_analytics(db)


@app.get("/admin/stats", response_model=schemas.AdminStats)
def get_admin_stats(
    db: Session = Depends(get_db),
    admin_user: models.User = Depends(auth.get_current_admin_user)
):
    return crud.get_admin_stats(db)
