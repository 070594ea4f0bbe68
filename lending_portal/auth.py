# File: lending_portal/auth.py

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from . import config, crud, database, errors, models, schemas

logger = logging.getLogger("lending_portal.auth")

MIN_PASSWORD_LENGTH = 6

# --- CONFIGURATION ---

# 1. Password Hashing
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=config.BCRYPT_ROUNDS)

# 2. OAuth2 Scheme
# This tells FastAPI what the "login" endpoint will be
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/token")

# --- UTILITY FUNCTIONS ---

def verify_password(plain_password, hashed_password):
    """Checks if the plain password matches the stored hash."""
    return pwd_context.verify(plain_password, hashed_password)

def get_password_hash(password):
    """Hashes a plain password."""
    return pwd_context.hash(password)

def create_access_token(data: dict, expires_delta: Optional[timedelta] = None):
    """Creates a new JWT Access Token."""
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(minutes=15)

    to_encode.update({"exp": expire})
    encoded_jwt = jwt.encode(to_encode, config.SECRET_KEY, algorithm=config.ALGORITHM)
    return encoded_jwt

def create_token_for_user(user: models.User) -> str:
    access_token_expires = timedelta(minutes=config.ACCESS_TOKEN_EXPIRE_MINUTES)
    return create_access_token(
        data={"sub": user.email, "role": user.role, "uid": user.user_id},
        expires_delta=access_token_expires,
    )

# --- REGISTRATION ---

def register_user(db: Session, user: schemas.UserCreate) -> models.User:
    """
    Creates a new account.
    Raises ValidationError for a short password and ConflictError if
    the email is already registered.
    """
    if len(user.password) < MIN_PASSWORD_LENGTH:
        raise errors.ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    if crud.get_user_by_email(db, email=user.email):
        raise errors.ConflictError("Email already registered")

    db_user = crud.create_user(db, user, hashed_password=get_password_hash(user.password))
    logger.info("Registered user %s with role %s", db_user.user_id, db_user.role)
    return db_user

# --- AUTHENTICATION & AUTHORIZATION ---

def authenticate_user(db: Session, email: str, password: str):
    """
    Finds a user in the DB and verifies their password.
    Returns the user object if successful, otherwise None.
    """
    user = crud.get_user_by_email(db, email=email)
    if not user:
        return None  # User doesn't exist
    if not user.is_active:
        return None
    if not verify_password(password, user.hashed_password):
        return None  # Incorrect password

    return user # Authentication successful

def get_current_user(db: Session = Depends(database.get_db), token: str = Depends(oauth2_scheme)):
    """
    Dependency to get the current user from a token.
    This will be used to protect our endpoints.
    """
    credentials_exception = errors.AuthenticationError("Could not validate credentials")
    try:
        payload = jwt.decode(token, config.SECRET_KEY, algorithms=[config.ALGORITHM])
        email: str = payload.get("sub")
        if email is None:
            raise credentials_exception
        token_data = schemas.TokenData(email=email, role=payload.get("role"))
    except JWTError:
        raise credentials_exception

    user = crud.get_user_by_email(db, email=token_data.email)
    if user is None or not user.is_active:
        raise credentials_exception
    return user

def get_current_admin_user(current_user: models.User = Depends(get_current_user)):
    """
    Dependency that checks if the current user is an admin.
    If not, it raises a 403 Forbidden error.
    """
    if current_user.role != "admin":
        raise errors.PermissionDeniedError("Operation not permitted: Requires admin role")
    return current_user

def require_role(actor: models.User, *roles: str) -> None:
    """
    Capability check run at the start of every ledger and lifecycle mutation.
    The caller's role is passed in explicitly rather than read from request state.
    """
    if actor is None or actor.role not in roles:
        role = getattr(actor, "role", None)
        logger.warning("Denied %s role for an operation requiring %s", role, "/".join(roles))
        raise errors.PermissionDeniedError(f"Access denied - Required role: {' or '.join(roles)}")
