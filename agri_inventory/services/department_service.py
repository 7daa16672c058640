from __future__ import annotations

import re
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from models.inventory_models import Department, Equipment


_NON_SLUG = re.compile(r"[^a-z0-9]+")


def slugify(value: str | None) -> str:
    return _NON_SLUG.sub("-", (value or "").strip().lower()).strip("-")


def serialize_department(department: Department, equipment_count: int | None = None) -> dict:
    payload = {
        "id": department.DepartmentID,
        "name": department.Name,
        "location": department.Location,
        "description": department.Description,
        "focalPerson": department.FocalPerson,
        "designation": department.Designation,
        "email": department.Email,
        "phone": department.Phone,
        "logo": department.Logo,
    }
    if equipment_count is not None:
        payload["equipmentCount"] = equipment_count
    return payload


def list_departments(db: Session) -> list[Department]:
    return list(db.execute(select(Department).order_by(Department.Name)).scalars().all())


def get_department_by_slug(db: Session, slug: str) -> Optional[Department]:
    """Resolve a department by its id, or by the slug of its name."""
    wanted = slugify(slug)
    if not wanted:
        return None
    department = db.get(Department, wanted) or db.get(Department, slug)
    if department:
        return department
    for candidate in list_departments(db):
        if slugify(candidate.Name) == wanted:
            return candidate
    return None


def find_department(db: Session, department_id: str, name: str | None = None) -> Optional[Department]:
    department = db.get(Department, department_id)
    if department or not name:
        return department
    stmt = select(Department).where(func.lower(Department.Name) == name.strip().lower())
    return db.execute(stmt).scalars().first()


def name_taken(db: Session, name: str, exclude_id: str | None = None) -> bool:
    stmt = select(Department.DepartmentID).where(func.lower(Department.Name) == name.strip().lower())
    if exclude_id:
        stmt = stmt.where(Department.DepartmentID != exclude_id)
    return db.execute(stmt).first() is not None


def equipment_count(db: Session, department_id: str) -> int:
    return int(
        db.execute(
            select(func.count(Equipment.EquipmentID)).where(Equipment.DepartmentID == department_id)
        ).scalar()
        or 0
    )


def map_department_field(field: str) -> str:
    mapping = {
        "name": "Name",
        "location": "Location",
        "description": "Description",
        "focalPerson": "FocalPerson",
        "designation": "Designation",
        "email": "Email",
        "phone": "Phone",
        "logo": "Logo",
    }
    return mapping.get(field, field)
