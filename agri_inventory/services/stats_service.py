"""Dashboard statistics over the unified and the legacy per-department tables.

Every row in scope is loaded, its status normalized, then counted. A scope of
``None`` covers the whole organization; otherwise only rows whose department
equals the scope contribute.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from models.inventory_models import Department, Equipment, MaintenanceLog
from models.register_models import ERSSStockRegister, FoodAnalysisLabEquipment
from services.equipment_service import (
    STATUS_AVAILABLE,
    STATUS_DISCARDED,
    STATUS_IN_USE,
    STATUS_NEEDS_REPAIR,
    money,
    normalize_status,
)


RECENT_EQUIPMENT_LIMIT = 10
UNKNOWN_TYPE = "Unknown"


@dataclass
class InventoryRow:
    source: str
    id: int
    name: str
    type: str
    status: str
    purchase_date: Optional[date]
    created_at: Optional[datetime]
    department_id: str


def _scoped(stmt, column, department_id: Optional[str]):
    if department_id:
        return stmt.where(column == department_id)
    return stmt


def _as_date(value: Optional[datetime]) -> Optional[date]:
    if value is None:
        return None
    return value.date() if isinstance(value, datetime) else value


def collect_rows(db: Session, department_id: Optional[str]) -> list[InventoryRow]:
    rows: list[InventoryRow] = []

    for item in db.execute(_scoped(select(Equipment), Equipment.DepartmentID, department_id)).scalars():
        rows.append(
            InventoryRow(
                source="equipment",
                id=item.EquipmentID,
                name=item.Name,
                type=item.Type or UNKNOWN_TYPE,
                status=normalize_status(item.Status),
                purchase_date=item.PurchaseDate,
                created_at=item.CreatedAt,
                department_id=item.DepartmentID,
            )
        )

    lab_stmt = _scoped(select(FoodAnalysisLabEquipment), FoodAnalysisLabEquipment.DepartmentID, department_id)
    for item in db.execute(lab_stmt).scalars():
        rows.append(
            InventoryRow(
                source="food-analysis-lab",
                id=item.ItemID,
                name=item.Name,
                type=item.Type or UNKNOWN_TYPE,
                status=normalize_status(item.Status),
                purchase_date=_as_date(item.CreatedAt),
                created_at=item.CreatedAt,
                department_id=item.DepartmentID,
            )
        )

    stock_stmt = _scoped(select(ERSSStockRegister), ERSSStockRegister.DepartmentID, department_id)
    for item in db.execute(stock_stmt).scalars():
        rows.append(
            InventoryRow(
                source="erss-stock",
                id=item.ItemID,
                name=item.Name,
                type=item.Type or UNKNOWN_TYPE,
                status=normalize_status(item.Status),
                purchase_date=item.DateReceived or _as_date(item.CreatedAt),
                created_at=item.CreatedAt,
                department_id=item.DepartmentID,
            )
        )
    return rows


def maintenance_costs(db: Session, department_id: Optional[str]) -> list[float]:
    stmt = select(MaintenanceLog.Cost).join(Equipment, Equipment.EquipmentID == MaintenanceLog.EquipmentID)
    stmt = _scoped(stmt, Equipment.DepartmentID, department_id)
    return [money(cost) for cost in db.execute(stmt).scalars()]


def summarize(rows: list[InventoryRow], costs: list[float], department_names: dict[str, str]) -> dict:
    status_counts = Counter(row.status for row in rows)
    type_counts = Counter(row.type for row in rows)

    equipment_by_type = [
        {"type": type_name, "count": count}
        for type_name, count in sorted(type_counts.items(), key=lambda item: (-item[1], item[0]))
    ]

    newest_first = sorted(rows, key=lambda row: row.created_at or datetime.min, reverse=True)
    recent_equipment = [
        {
            "id": row.id,
            "source": row.source,
            "name": row.name,
            "type": row.type,
            "status": row.status,
            "purchaseDate": row.purchase_date,
            "department": {"id": row.department_id, "name": department_names.get(row.department_id, row.department_id)},
        }
        for row in newest_first[:RECENT_EQUIPMENT_LIMIT]
    ]

    return {
        "totalEquipment": len(rows),
        "availableCount": status_counts.get(STATUS_AVAILABLE, 0),
        "inUseCount": status_counts.get(STATUS_IN_USE, 0),
        "needsRepairCount": status_counts.get(STATUS_NEEDS_REPAIR, 0),
        "discardedCount": status_counts.get(STATUS_DISCARDED, 0),
        "equipmentByType": equipment_by_type,
        "recentEquipment": recent_equipment,
        "totalMaintenanceCost": round(sum(costs), 2),
    }


def build_dashboard_stats(db: Session, department_id: Optional[str]) -> dict:
    rows = collect_rows(db, department_id)
    department_names = dict(db.execute(select(Department.DepartmentID, Department.Name)).all())
    stats = summarize(rows, maintenance_costs(db, department_id), department_names)
    stats["departmentId"] = department_id
    return stats
