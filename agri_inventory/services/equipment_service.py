from __future__ import annotations

import re
from decimal import Decimal
from typing import Any, Optional

from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.orm import Session

from models.inventory_models import Department, Equipment, MaintenanceLog


STATUS_AVAILABLE = "AVAILABLE"
STATUS_IN_USE = "IN_USE"
STATUS_NEEDS_REPAIR = "NEEDS_REPAIR"
STATUS_DISCARDED = "DISCARDED"
EQUIPMENT_STATUSES = (STATUS_AVAILABLE, STATUS_IN_USE, STATUS_NEEDS_REPAIR, STATUS_DISCARDED)

# Checked in order; the first marker found in the status text wins.
STATUS_MARKERS = (
    (STATUS_NEEDS_REPAIR, ("REPAIR",)),
    (STATUS_DISCARDED, ("DISCARDED", "OUT_OF_ORDER")),
    (STATUS_IN_USE, ("IN_USE", "OCCUPIED")),
)

_SEPARATORS = re.compile(r"[\s\-]+")

FRIENDLY_FIELD_MESSAGES = {
    ("name", "string_too_short"): "Equipment name is required",
    ("name", "string_too_long"): "Name is too long",
    ("type", "string_too_short"): "Equipment type is required",
    ("type", "string_too_long"): "Type is too long",
    ("status", "literal_error"): "Invalid equipment status",
    ("purchaseDate", "date_from_datetime_parsing"): "Invalid purchase date",
    ("purchaseDate", "date_parsing"): "Invalid purchase date",
    ("purchaseDate", "date_type"): "Invalid purchase date",
    ("departmentId", "string_too_short"): "Department is required",
    ("name", "missing"): "Equipment name is required",
    ("type", "missing"): "Equipment type is required",
    ("status", "missing"): "Invalid equipment status",
    ("purchaseDate", "missing"): "Invalid purchase date",
    ("departmentId", "missing"): "Department is required",
}


def normalize_status(raw_status: Optional[str]) -> str:
    """Map a free-text legacy status onto the four-value status enum."""
    status = _SEPARATORS.sub("_", str(raw_status or "").strip().upper())
    for target, markers in STATUS_MARKERS:
        if any(marker in status for marker in markers):
            return target
    return STATUS_AVAILABLE


def field_errors(exc: ValidationError) -> dict[str, list[str]]:
    """Flatten pydantic errors into ``{field: [message, ...]}``."""
    errors: dict[str, list[str]] = {}
    for item in exc.errors():
        location = item.get("loc") or ("_root",)
        field = str(location[0])
        message = FRIENDLY_FIELD_MESSAGES.get((field, item.get("type")))
        if message is None:
            message = str(item.get("msg") or "Invalid value")
            if message.startswith("Value error, "):
                message = message[len("Value error, "):]
        errors.setdefault(field, []).append(message)
    return errors


def department_exists(db: Session, department_id: Optional[str]) -> bool:
    if not department_id:
        return False
    return db.get(Department, department_id) is not None


def money(value: Any) -> float:
    if value is None:
        return 0.0
    if isinstance(value, Decimal):
        return float(value)
    return float(value or 0)


def serialize_department_ref(department: Optional[Department], include_location: bool = False) -> Optional[dict]:
    if department is None:
        return None
    payload = {"id": department.DepartmentID, "name": department.Name}
    if include_location:
        payload["location"] = department.Location
    return payload


def serialize_maintenance_log(log: MaintenanceLog) -> dict:
    return {
        "id": log.MaintenanceLogID,
        "equipmentId": log.EquipmentID,
        "date": log.LogDate,
        "cost": money(log.Cost),
        "description": log.Description,
        "createdAt": log.CreatedAt,
    }


def serialize_equipment(equipment: Equipment, include_logs: bool = False) -> dict:
    payload = {
        "id": equipment.EquipmentID,
        "name": equipment.Name,
        "type": equipment.Type,
        "status": equipment.Status,
        "purchaseDate": equipment.PurchaseDate,
        "imageUrl": equipment.ImageUrl,
        "departmentId": equipment.DepartmentID,
        "department": serialize_department_ref(equipment.Department, include_location=include_logs),
        "createdAt": equipment.CreatedAt,
        "updatedAt": equipment.UpdatedAt,
    }
    if include_logs:
        payload["maintenanceLogs"] = [serialize_maintenance_log(log) for log in equipment.MaintenanceLogs]
    return payload


def map_equipment_field(field: str) -> str:
    mapping = {
        "name": "Name",
        "type": "Type",
        "status": "Status",
        "purchaseDate": "PurchaseDate",
        "imageUrl": "ImageUrl",
        "departmentId": "DepartmentID",
    }
    return mapping.get(field, field)


def list_maintenance_logs(db: Session, equipment_id: int) -> list[MaintenanceLog]:
    stmt = (
        select(MaintenanceLog)
        .where(MaintenanceLog.EquipmentID == equipment_id)
        .order_by(MaintenanceLog.LogDate.desc(), MaintenanceLog.MaintenanceLogID.desc())
    )
    return list(db.execute(stmt).scalars().all())
