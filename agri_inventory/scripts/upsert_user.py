#!/usr/bin/env python3
from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

APP_DIR = Path(__file__).resolve().parents[1]
if str(APP_DIR) not in sys.path:
    sys.path.insert(0, str(APP_DIR))

from services.access_policy import ROLE_ADMIN, ROLE_DEPT_HEAD, ROLE_PUBLIC
from services.user_service import MIN_PASSWORD_LENGTH, upsert_user


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Create/update one dashboard user directly from terminal.",
    )
    parser.add_argument("--email", required=True, help="Login email (case-insensitive)")
    parser.add_argument("--role", choices=[ROLE_ADMIN, ROLE_DEPT_HEAD, ROLE_PUBLIC], default=ROLE_DEPT_HEAD)
    parser.add_argument("--name", default=None, help="Display name")
    parser.add_argument("--department", default=None, help="DepartmentID; required for DEPT_HEAD")
    parser.add_argument(
        "--password",
        default=None,
        help="Password to set. Required for new users, omit to keep the existing one.",
    )
    parser.add_argument("--deactivate", action="store_true", help="Disable login for this user.")
    parser.add_argument(
        "--db-url",
        default=os.environ.get("INVENTORY_DB_URL", "").strip(),
        help="SQLAlchemy DB URL; defaults to INVENTORY_DB_URL env var.",
    )
    return parser


def main() -> int:
    parser = _build_parser()
    args = parser.parse_args()

    if not args.db_url:
        parser.error("Missing DB URL. Set INVENTORY_DB_URL or pass --db-url.")
    if args.password is not None and len(args.password.strip()) < MIN_PASSWORD_LENGTH:
        parser.error(f"--password must be at least {MIN_PASSWORD_LENGTH} characters.")
    if args.role == ROLE_DEPT_HEAD and not args.department:
        parser.error("--department is required for DEPT_HEAD users.")

    engine = create_engine(args.db_url, pool_pre_ping=True, future=True)
    session_factory = sessionmaker(bind=engine, expire_on_commit=False, future=True)
    with session_factory() as db:
        try:
            user = upsert_user(
                db,
                email=args.email,
                role=args.role,
                name=args.name,
                department_id=args.department,
                password=args.password,
                is_active=False if args.deactivate else True,
            )
        except ValueError as exc:
            db.rollback()
            print(f"ERROR {exc}")
            return 2

    print(
        f"OK user_id={user.UserID} email={user.Email} role={user.Role} "
        f"department={user.DepartmentID} active={bool(user.IsActive)} updated_at={user.UpdatedAt}"
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
