# File: lending_portal/database.py

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from . import config


def make_engine(url: str):
    """
    Creates the SQLAlchemy engine for a database URL.
    'check_same_thread' is only needed for SQLite.
    """
    connect_args = {}
    if url.startswith("sqlite"):
        connect_args = {"check_same_thread": False, "timeout": 15}
    return create_engine(url, connect_args=connect_args, pool_pre_ping=True)


# 1. The engine for the configured DATABASE_URL
engine = make_engine(config.DATABASE_URL)

# 2. Session factory used by the API
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# 3. Base class for all table models (User, Equipment, BorrowRequest)
Base = declarative_base()


def get_db():
    """
    Database dependency generator.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
