#!/usr/bin/env python3
"""
Seed the lending portal database with its default accounts, or add one user.

    python scripts/seed_database.py seed
    python scripts/seed_database.py add-user --name "Jane Smith" --email jane@example.com \
        --password secret1 --role student
"""
from __future__ import annotations

import argparse
import logging

from sqlalchemy.orm import sessionmaker

from lending_portal import auth, config, crud, errors, models, schemas
from lending_portal.database import make_engine

logger = logging.getLogger("lending_portal.seed")

DEFAULT_PASSWORD = "password123"

USERS_TO_SEED = [
    {"name": "Admin User", "email": "admin@example.com", "role": "admin"},
    {"name": "Super Admin", "email": "superadmin@example.com", "role": "admin"},
    {"name": "Staff Member", "email": "staff@example.com", "role": "staff"},
    {"name": "Lab Assistant", "email": "assistant@example.com", "role": "staff"},
    {"name": "John Doe", "email": "student@example.com", "role": "student"},
    {"name": "Jane Smith", "email": "jane.smith@example.com", "role": "student"},
]


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Create the default portal users or add a single one.")
    parser.add_argument(
        "--db-url",
        default=config.DATABASE_URL,
        help="SQLAlchemy DB URL; defaults to DATABASE_URL.",
    )
    subcommands = parser.add_subparsers(dest="command", required=True)

    seed = subcommands.add_parser("seed", help="Create the default users in an empty database.")
    seed.add_argument(
        "--password",
        default=DEFAULT_PASSWORD,
        help="Password given to every seeded account.",
    )

    add_user = subcommands.add_parser("add-user", help="Add one user; skipped if the email exists.")
    add_user.add_argument("--name", required=True)
    add_user.add_argument("--email", required=True)
    add_user.add_argument("--password", required=True)
    add_user.add_argument("--role", choices=list(models.ROLES), default="student")
    return parser


def seed_users(db, password: str) -> int:
    if db.query(models.User).count() > 0:
        logger.info("Users already exist; nothing seeded")
        return 0

    for user_data in USERS_TO_SEED:
        auth.register_user(db, schemas.UserCreate(password=password, **user_data))
        logger.info("Seeded %s (%s)", user_data["email"], user_data["role"])
    return len(USERS_TO_SEED)


def add_user(db, name: str, email: str, password: str, role: str) -> bool:
    if crud.get_user_by_email(db, email):
        logger.warning("User with email %s already exists; skipped", email)
        return False
    auth.register_user(db, schemas.UserCreate(name=name, email=email, password=password, role=role))
    logger.info("Added %s (%s)", email, role)
    return True


def main() -> int:
    logging.basicConfig(level=config.LOG_LEVEL, format="%(levelname)s %(message)s")
    parser = _build_parser()
    args = parser.parse_args()

    engine = make_engine(args.db_url)
    models.Base.metadata.create_all(bind=engine)
    db = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        if args.command == "seed":
            seed_users(db, args.password)
        else:
            add_user(db, args.name, args.email, args.password, args.role)
    except errors.LendingError as exc:
        parser.error(exc.message)
    finally:
        db.close()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
