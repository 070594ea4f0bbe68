# File: lending_portal/config.py

import os

from dotenv import load_dotenv

# Values in a local .env file are picked up, real environment variables win.
load_dotenv()


def _int_env(name: str, default: int) -> int:
    raw = os.environ.get(name)
    try:
        return int(raw) if raw else default
    except ValueError:
        return default


def _parse_csv_env(name: str, default: str) -> list[str]:
    raw = os.environ.get(name, default)
    return [item.strip() for item in str(raw).split(",") if item.strip()]


# --- Database ---
DATABASE_URL = os.environ.get("DATABASE_URL", "sqlite:///./equipment.db")

# --- JWT ---
#    Generate a real key with:  openssl rand -hex 32
SECRET_KEY = os.environ.get("SECRET_KEY", "dev-only-change-me-8146f8c693b0ac9364d6c17e1f7bcd10")
ALGORITHM = os.environ.get("JWT_ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = _int_env("ACCESS_TOKEN_EXPIRE_MINUTES", 24 * 60)

# --- Password hashing ---
BCRYPT_ROUNDS = _int_env("BCRYPT_ROUNDS", 12)

# --- CORS ---
CORS_ALLOW_ORIGINS = _parse_csv_env("CORS_ALLOW_ORIGINS", "http://localhost:3000")
CORS_ALLOW_CREDENTIALS = str(os.environ.get("CORS_ALLOW_CREDENTIALS", "true")).strip().lower() in {"1", "true", "yes", "on"}
if "*" in CORS_ALLOW_ORIGINS:
    # Browsers reject wildcard origins with credentials.
    CORS_ALLOW_CREDENTIALS = False

# --- Misc ---
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
DEFAULT_PAGE_SIZE = _int_env("DEFAULT_PAGE_SIZE", 10)
MAX_PAGE_SIZE = _int_env("MAX_PAGE_SIZE", 100)
