# File: lending_portal/schemas.py

from datetime import date, datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

Role = Literal["student", "staff", "admin"]
Category = Literal["Sports", "Lab", "Camera", "Musical", "Computing", "Tools", "Other"]
Condition = Literal["Excellent", "Good", "Fair", "Poor"]
RequestStatus = Literal["pending", "approved", "rejected", "returned"]

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"

# --- User Schemas ---

class UserCreate(BaseModel):
    name: str = Field(min_length=3, max_length=50)
    email: str = Field(pattern=EMAIL_PATTERN, max_length=255)
    password: str
    role: Role = "student"

class User(BaseModel):
    user_id: int
    name: str
    email: str
    role: str
    is_active: bool

    class Config:
        from_attributes = True

# --- Auth Schemas ---

class Token(BaseModel):
    access_token: str
    token_type: str

class TokenData(BaseModel):
    email: Optional[str] = None
    role: Optional[str] = None

# --- Equipment Schemas ---

class EquipmentBase(BaseModel):
    name: str = Field(min_length=3, max_length=100)
    category: Category
    description: str = Field(min_length=1, max_length=500)
    condition: Condition = "Good"
    location: str = Field(min_length=1, max_length=100)
    image: Optional[str] = Field(default=None, max_length=500)

class EquipmentCreate(EquipmentBase):
    quantity: int
    # Defaults to quantity when omitted
    available: Optional[int] = None

class EquipmentUpdate(BaseModel):
    # Every field is optional; omitted or null fields keep their stored value
    name: Optional[str] = Field(default=None, min_length=3, max_length=100)
    category: Optional[Category] = None
    description: Optional[str] = Field(default=None, min_length=1, max_length=500)
    condition: Optional[Condition] = None
    location: Optional[str] = Field(default=None, min_length=1, max_length=100)
    image: Optional[str] = Field(default=None, max_length=500)
    quantity: Optional[int] = None
    available: Optional[int] = None

class Equipment(EquipmentBase):
    equipment_id: int
    quantity: int
    available: int
    borrowed: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

# --- Request Schemas ---

class RequestCreate(BaseModel):
    equipment_id: int
    quantity: int
    borrow_from_date: date
    borrow_to_date: date
    notes: str

class RequestApprove(BaseModel):
    approval_notes: Optional[str] = None

class RequestReject(BaseModel):
    reason: Optional[str] = None

class RequestReturn(BaseModel):
    condition: Condition = "Good"
    return_notes: Optional[str] = None

class Request(BaseModel):
    request_id: int
    student_id: int
    student_name: str
    student_email: str
    equipment_id: int
    equipment_name: str
    quantity: int
    borrow_from_date: date
    borrow_to_date: date
    requested_date: datetime
    notes: str
    status: RequestStatus

    approved_by: Optional[int] = None
    approved_by_name: Optional[str] = None
    approval_date: Optional[datetime] = None
    approval_notes: Optional[str] = None
    rejection_reason: Optional[str] = None
    actual_return_date: Optional[datetime] = None
    returned_condition: Optional[str] = None
    return_notes: Optional[str] = None

    is_overdue: bool
    days_requested: int

    class Config:
        from_attributes = True

# --- Pagination ---

class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int

class EquipmentPage(BaseModel):
    items: List[Equipment]
    pagination: Pagination

class RequestPage(BaseModel):
    items: List[Request]
    pagination: Pagination

# --- Analytics Schemas ---

class UsageAnalytics(BaseModel):
    equipment_id: int
    name: str
    request_count: int

    class Config:
        from_attributes = True

class CategoryStats(BaseModel):
    category: str
    count: int
    total_quantity: int
    available: int

class EquipmentStats(BaseModel):
    total_items: int
    total_quantity: int
    total_available: int
    total_borrowed: int
    by_category: List[CategoryStats]

class UserBreakdown(BaseModel):
    admin: int = 0
    staff: int = 0
    student: int = 0

class RequestBreakdown(BaseModel):
    pending: int = 0
    approved: int = 0
    rejected: int = 0
    returned: int = 0

class AdminStats(BaseModel):
    total_equipment: int
    available_equipment: int
    borrowed_equipment: int
    pending_requests: int
    total_users: int
    user_breakdown: UserBreakdown
    request_breakdown: RequestBreakdown
