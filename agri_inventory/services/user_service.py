from __future__ import annotations

import hashlib
import hmac
import secrets
from datetime import datetime
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from models.inventory_models import Department, User
from services.access_policy import ROLE_DEPT_HEAD, ROLES


MIN_PASSWORD_LENGTH = 8
PBKDF2_ITERATIONS = 120000


def _normalize_email(raw_email: str | None) -> str:
    return (raw_email or "").strip().lower()


def _normalize_role(raw_role: str | None) -> str:
    role = (raw_role or "").strip().upper()
    if role in ROLES:
        return role
    return ROLE_DEPT_HEAD


def password_hash(password: str, salt: str) -> str:
    raw = hashlib.pbkdf2_hmac(
        "sha256",
        (password or "").encode("utf-8"),
        salt.encode("utf-8"),
        PBKDF2_ITERATIONS,
    )
    return raw.hex()


def get_user_by_email(db: Session, email: str | None) -> User | None:
    normalized = _normalize_email(email)
    if not normalized:
        return None
    stmt = select(User).where(func.lower(User.Email) == normalized)
    return db.execute(stmt).scalars().first()


def verify_password(user: User | None, password: str | None) -> bool:
    if user is None or not user.PasswordHash or not user.PasswordSalt:
        return False
    candidate = password_hash(password or "", user.PasswordSalt)
    return hmac.compare_digest(candidate, user.PasswordHash)


def session_payload(user: User) -> dict[str, Any]:
    return {
        "userID": user.UserID,
        "email": user.Email,
        "name": user.Name or user.Email,
        "role": _normalize_role(user.Role),
        "departmentId": user.DepartmentID,
    }


def upsert_user(
    db: Session,
    *,
    email: str,
    role: str | None = None,
    name: str | None = None,
    department_id: str | None = None,
    password: str | None = None,
    is_active: bool | None = None,
) -> User:
    normalized_email = _normalize_email(email)
    if not normalized_email or "@" not in normalized_email:
        raise ValueError("A valid email address is required.")

    next_role = _normalize_role(role)
    if next_role == ROLE_DEPT_HEAD:
        if not department_id:
            raise ValueError("Department head must be assigned to a department.")
    if department_id and db.get(Department, department_id) is None:
        raise ValueError(f"Unknown department: {department_id}")

    user = get_user_by_email(db, normalized_email)
    if user is None:
        if password is None:
            raise ValueError("A password is required for new users.")
        user = User(Email=normalized_email, CreatedAt=datetime.now(), IsActive=True)
        db.add(user)

    user.Role = next_role
    user.DepartmentID = department_id or None
    if name is not None:
        user.Name = name.strip() or None
    if is_active is not None:
        user.IsActive = bool(is_active)
    if password is not None:
        trimmed = str(password).strip()
        if len(trimmed) < MIN_PASSWORD_LENGTH:
            raise ValueError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters.")
        salt = secrets.token_hex(16)
        user.PasswordSalt = salt
        user.PasswordHash = password_hash(trimmed, salt)
    user.UpdatedAt = datetime.now()

    db.commit()
    db.refresh(user)
    return user
