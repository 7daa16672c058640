"""Payload builders for the department-specific register pages.

Each builder loads one department's legacy rows and reduces them into the
totals, groupings and chart series the department page renders.
"""

from __future__ import annotations

import re
from collections import OrderedDict
from typing import Any, Callable, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from models.register_models import (
    AdaptiveResearchPosition,
    AgriculturalExtensionOffice,
    AgronomyLabEquipment,
    ERSSStockRegister,
    FoodAnalysisLabEquipment,
    MNSUAMEstateFacility,
    RAEDCEquipment,
    RARIAsset,
    SoilWaterTestingProject,
)
from services.department_service import find_department, serialize_department
from services.equipment_service import money, normalize_status
from services.errors import NotFoundError


RAEDC_BUDGET = {
    "year": "2024-25",
    "development": {"allocation": 64549.145, "expenditure": 36758.311},
    "nonDevelopment": {"allocation": 28770.73, "expenditure": 25497.23},
}

SOIL_WATER_OPERATING_TYPES = {"Communication A032", "Utilities A033", "Occupancy A034", "Travel A038", "General A039"}
SOIL_WATER_CAPITAL_TYPES = {"Physical Assets A09", "Civil Work A12", "Repair & Maintenance A13"}

UTILIZED_STATUS = "Utilized"
UNUSED_STATUS = "Un used"

VACANCY_LEADER_LIMIT = 6

MNSUAM_NOTES = (
    "Facilities are available to partner departments on request through the Directorate of University Farms."
)


def _percentage(part: float, whole: float) -> float:
    if not whole:
        return 0.0
    return round(part / whole * 100, 1)


def _group_by(rows: list, key: Callable[[Any], Optional[str]], default: str = "Unspecified") -> "OrderedDict[str, list]":
    groups: "OrderedDict[str, list]" = OrderedDict()
    for row in rows:
        groups.setdefault(key(row) or default, []).append(row)
    return groups


def _require_department(db: Session, department_id: str, label: str, name: str | None = None):
    department = find_department(db, department_id, name)
    if not department:
        raise NotFoundError(f"{label} department not found")
    return department


def _rows(db: Session, model, department_id: str, *order_by) -> list:
    stmt = select(model).where(model.DepartmentID == department_id)
    if order_by:
        stmt = stmt.order_by(*order_by)
    return list(db.execute(stmt).scalars().all())


def serialize_raedc_item(item: RAEDCEquipment) -> dict:
    return {
        "id": item.ItemID,
        "name": item.Name,
        "type": item.Type,
        "facilityType": item.FacilityType,
        "capacity": item.Capacity,
        "location": item.Location,
        "functionality": item.Functionality,
        "status": item.Status,
    }


def build_raedc_register(db: Session) -> dict:
    department = _require_department(db, "raedc", "RAEDC", name="RAEDC")
    equipment = _rows(db, RAEDCEquipment, department.DepartmentID, RAEDCEquipment.CreatedAt, RAEDCEquipment.ItemID)

    facility_groups = _group_by(equipment, lambda item: item.FacilityType)
    total_facilities = len(equipment)
    total_capacity = sum(item.Capacity or 0 for item in equipment)
    operational_count = sum(1 for item in equipment if item.Status == "AVAILABLE")

    facility_type_distribution = [
        {"name": name, "value": len(items), "percentage": _percentage(len(items), total_facilities)}
        for name, items in facility_groups.items()
    ]
    capacity_by_facility = sorted(
        (
            {"name": name, "capacity": sum(item.Capacity or 0 for item in items), "count": len(items)}
            for name, items in facility_groups.items()
        ),
        key=lambda entry: entry["capacity"],
        reverse=True,
    )

    return {
        "department": serialize_department(department),
        "equipment": [serialize_raedc_item(item) for item in equipment],
        "stats": {
            "totalFacilities": total_facilities,
            "totalCapacity": total_capacity,
            "operationalCount": operational_count,
            "facilityTypeCount": len(facility_groups),
            "operationalPercentage": _percentage(operational_count, total_facilities),
        },
        "charts": {
            "facilityTypeDistribution": facility_type_distribution,
            "capacityByFacility": capacity_by_facility,
        },
        "budget": RAEDC_BUDGET,
    }


def serialize_soil_water_item(item: SoilWaterTestingProject) -> dict:
    return {
        "id": item.ItemID,
        "name": item.Name,
        "type": item.Type,
        "category": item.Category,
        "bps": item.BPS,
        "quantityRequired": item.QuantityRequired,
        "budgetAllocationTotalMillion": money(item.BudgetAllocationTotalMillion)
        if item.BudgetAllocationTotalMillion is not None
        else None,
        "justificationOrYear": item.JustificationOrYear,
    }


def build_soil_water_register(db: Session) -> dict:
    department = _require_department(db, "soil-water", "Soil & Water Testing Laboratory")
    assets = _rows(db, SoilWaterTestingProject, department.DepartmentID, SoilWaterTestingProject.ItemID)

    def of_type(predicate: Callable[[str], bool]) -> list:
        return [item for item in assets if predicate(item.Type or "")]

    budget_data = of_type(lambda value: value == "Budget")
    hr_officers = of_type(lambda value: value == "HR - Officers")
    hr_officials = of_type(lambda value: value == "HR - Officials")
    machinery = of_type(lambda value: value == "Machinery")

    total_officers = sum(item.QuantityRequired or 0 for item in hr_officers)
    total_officials = sum(item.QuantityRequired or 0 for item in hr_officials)

    sections = {
        "budgetData": budget_data,
        "budgetDetails": of_type(lambda value: value.startswith("Budget Detail")),
        "allowances": of_type(lambda value: value == "Allowance A012-1"),
        "contingent": of_type(lambda value: value == "Contingent A01277"),
        "hrOfficers": hr_officers,
        "hrOfficials": hr_officials,
        "machinery": machinery,
        "operatingCosts": of_type(lambda value: value in SOIL_WATER_OPERATING_TYPES),
        "capitalCosts": of_type(lambda value: value in SOIL_WATER_CAPITAL_TYPES),
        "grandTotals": of_type(lambda value: value == "Grand Total"),
    }
    payload: dict[str, Any] = {"department": serialize_department(department)}
    for key, items in sections.items():
        payload[key] = [serialize_soil_water_item(item) for item in items]
    payload["statistics"] = {
        "totalBudget": round(sum(money(item.BudgetAllocationTotalMillion) for item in budget_data), 3),
        "totalHR": total_officers + total_officials,
        "totalOfficers": total_officers,
        "totalOfficials": total_officials,
        "totalMachinery": sum(item.QuantityRequired or 0 for item in machinery),
    }
    return payload


def serialize_extension_office(item: AgriculturalExtensionOffice) -> dict:
    return {
        "id": item.ItemID,
        "name": item.Name,
        "location": item.Location,
        "areaSquareFeet": item.AreaSquareFeet,
        "status": item.Status,
        "remarks": item.Remarks,
    }


def build_extension_wing_register(db: Session) -> dict:
    department = _require_department(
        db,
        "agricultural-extension-wing",
        "Agricultural Extension Wing",
        name="Agricultural Extension Wing",
    )
    offices = _rows(
        db,
        AgriculturalExtensionOffice,
        department.DepartmentID,
        AgriculturalExtensionOffice.CreatedAt,
        AgriculturalExtensionOffice.ItemID,
    )
    status_groups = _group_by(offices, lambda item: item.Status)
    total_offices = len(offices)
    utilized_count = sum(1 for item in offices if item.Status == UTILIZED_STATUS)

    return {
        "department": serialize_department(department),
        "offices": [serialize_extension_office(item) for item in offices],
        "stats": {
            "totalOffices": total_offices,
            "totalArea": sum(item.AreaSquareFeet or 0 for item in offices),
            "utilizedCount": utilized_count,
            "unusedCount": sum(1 for item in offices if item.Status == UNUSED_STATUS),
            "utilizationPercentage": _percentage(utilized_count, total_offices),
        },
        "groups": {
            status: [serialize_extension_office(item) for item in items]
            for status, items in status_groups.items()
        },
    }


def serialize_position(item: AdaptiveResearchPosition) -> dict:
    return {
        "id": item.PositionID,
        "attachedDepartment": item.AttachedDepartment,
        "postName": item.PostName,
        "bpsScale": item.BPSScale,
        "sanctionedPosts": item.SanctionedPosts or 0,
        "filledPosts": item.FilledPosts or 0,
        "vacantPosts": item.VacantPosts or 0,
        "promotionPosts": item.PromotionPosts or 0,
        "initialRecruitmentPosts": item.InitialRecruitmentPosts or 0,
        "remarks": item.Remarks,
        "orderNumber": item.OrderNumber,
    }


def _bps_sort_key(bps: str) -> tuple:
    digits = re.findall(r"\d+", bps)
    return (-int(digits[0]) if digits else 0, bps)


def build_arc_register(db: Session) -> dict:
    department = _require_department(db, "arc", "Adaptive Research")
    positions = _rows(
        db,
        AdaptiveResearchPosition,
        department.DepartmentID,
        AdaptiveResearchPosition.OrderNumber,
        AdaptiveResearchPosition.PositionID,
    )
    serialized = [serialize_position(item) for item in positions]

    total_sanctioned = sum(item["sanctionedPosts"] for item in serialized)
    total_filled = sum(item["filledPosts"] for item in serialized)
    total_vacant = sum(item["vacantPosts"] for item in serialized)

    by_bps: dict[str, dict[str, Any]] = {}
    for item in serialized:
        bps = item["bpsScale"] or "N/A"
        bucket = by_bps.setdefault(bps, {"bps": bps, "sanctioned": 0, "filled": 0, "vacant": 0})
        bucket["sanctioned"] += item["sanctionedPosts"]
        bucket["filled"] += item["filledPosts"]
        bucket["vacant"] += item["vacantPosts"]

    vacancy_leaders = sorted(
        (item for item in serialized if item["vacantPosts"] > 0),
        key=lambda item: (-item["vacantPosts"], item["postName"]),
    )[:VACANCY_LEADER_LIMIT]

    return {
        "department": serialize_department(department),
        "positions": serialized,
        "stats": {
            "totalSanctioned": total_sanctioned,
            "totalFilled": total_filled,
            "totalVacant": total_vacant,
            "promotionPosts": sum(item["promotionPosts"] for item in serialized),
            "initialRecruitmentPosts": sum(item["initialRecruitmentPosts"] for item in serialized),
            "vacancyRate": _percentage(total_vacant, total_sanctioned),
        },
        "breakdown": {
            "bpsBreakdown": sorted(by_bps.values(), key=lambda entry: _bps_sort_key(entry["bps"])),
            "vacancyLeaders": vacancy_leaders,
        },
    }


def serialize_facility(item: MNSUAMEstateFacility) -> dict:
    return {
        "id": item.FacilityID,
        "name": item.Name,
        "blockName": item.BlockName,
        "facilityType": item.FacilityType,
        "capacityPersons": item.CapacityPersons,
        "capacityLabel": item.CapacityLabel,
        "imageUrl": item.ImageUrl,
        "type": item.Type,
    }


def serialize_agronomy_item(item: AgronomyLabEquipment) -> dict:
    return {
        "id": item.ItemID,
        "name": item.Name,
        "type": item.Type,
        "quantity": item.Quantity,
        "focalPerson1": item.FocalPerson,
    }


def build_mnsuam_register(db: Session) -> dict:
    department = _require_department(db, "mnsuam", "MNS University of Agriculture")
    facilities = _rows(
        db,
        MNSUAMEstateFacility,
        department.DepartmentID,
        MNSUAMEstateFacility.DisplayOrder,
        MNSUAMEstateFacility.FacilityID,
    )
    agronomy = _rows(db, AgronomyLabEquipment, department.DepartmentID, AgronomyLabEquipment.ItemID)

    block_summary = [
        {
            "blockName": block,
            "rooms": len(items),
            "capacity": sum(item.CapacityPersons or 0 for item in items),
        }
        for block, items in _group_by(facilities, lambda item: item.BlockName).items()
    ]
    units_by_type: dict[str, int] = {}
    for item in agronomy:
        type_name = item.Type or "Unknown"
        units_by_type[type_name] = units_by_type.get(type_name, 0) + (item.Quantity or 1)
    equipment_by_type = [
        {"type": type_name, "count": count}
        for type_name, count in sorted(units_by_type.items(), key=lambda entry: (-entry[1], entry[0]))
    ]

    focal_persons = []
    if department.FocalPerson:
        focal_persons.append(
            {"name": department.FocalPerson, "role": department.Designation or "", "email": department.Email or ""}
        )
    for person in sorted({item.FocalPerson for item in agronomy if item.FocalPerson}):
        if all(existing["name"] != person for existing in focal_persons):
            focal_persons.append({"name": person, "role": "Agronomy Lab", "email": ""})

    return {
        "department": serialize_department(department),
        "facilities": [serialize_facility(item) for item in facilities],
        "agronomyEquipment": [serialize_agronomy_item(item) for item in agronomy],
        "stats": {
            "totalFacilities": len(facilities),
            "totalCapacity": sum(item.CapacityPersons or 0 for item in facilities),
            "blockSummary": block_summary,
            "equipmentSummary": {
                "totalTypes": len(units_by_type),
                "totalUnits": sum(units_by_type.values()),
                "equipmentByType": equipment_by_type,
            },
        },
        "focalPersons": focal_persons,
        "notes": MNSUAM_NOTES,
    }


def serialize_rari_asset(item: RARIAsset) -> dict:
    quantity = item.Quantity
    if quantity is not None and float(quantity).is_integer():
        quantity = int(quantity)
    return {
        "id": item.AssetID,
        "name": item.Name,
        "type": item.Type,
        "category": item.Category,
        "quantity": quantity,
        "conditionStatus": item.ConditionStatus,
        "useApplication": item.UseApplication,
    }


def is_working_condition(condition: Optional[str]) -> bool:
    """Non-functional assets sort after working ones; "non" anywhere marks them."""
    if "NON" in str(condition or "").upper():
        return False
    return normalize_status(condition) == "AVAILABLE"


def _rari_sort_key(item: RARIAsset) -> tuple:
    return (0 if is_working_condition(item.ConditionStatus) else 1, -(item.Quantity or 0), item.Name or "")


def build_rari_register(db: Session) -> dict:
    department = _require_department(db, "rari", "Regional Agricultural Research Institute")
    assets = _rows(db, RARIAsset, department.DepartmentID, RARIAsset.AssetID)

    def of_type(type_name: str) -> list[RARIAsset]:
        return [item for item in assets if (item.Type or "").strip().lower() == type_name.lower()]

    land = of_type("Land")
    buildings = of_type("Building")
    machinery = sorted(of_type("Farm Machinery"), key=_rari_sort_key)
    lab_equipment = sorted(of_type("Lab Equipment"), key=_rari_sort_key)
    officers = of_type("HR - Officers")
    officials = of_type("HR - Officials")

    def quantity(items: list[RARIAsset]) -> float:
        total = sum(item.Quantity or 0 for item in items)
        return int(total) if float(total).is_integer() else round(total, 2)

    return {
        "department": serialize_department(department),
        "landData": [serialize_rari_asset(item) for item in land],
        "buildingData": [serialize_rari_asset(item) for item in buildings],
        "farmMachinery": [serialize_rari_asset(item) for item in machinery],
        "labEquipment": [serialize_rari_asset(item) for item in lab_equipment],
        "hrOfficers": [serialize_rari_asset(item) for item in officers],
        "hrOfficials": [serialize_rari_asset(item) for item in officials],
        "stats": {
            "totalLandArea": quantity(land),
            "totalBuildings": len(buildings),
            "totalMachinery": quantity(machinery),
            "totalLabEquipment": quantity(lab_equipment),
            "totalHR": quantity(officers) + quantity(officials),
            "totalOfficers": quantity(officers),
            "totalOfficials": quantity(officials),
        },
    }


def serialize_lab_item(item: FoodAnalysisLabEquipment) -> dict:
    return {
        "id": item.ItemID,
        "name": item.Name,
        "type": item.Type,
        "status": normalize_status(item.Status),
        "rawStatus": item.Status,
        "labSectionName": item.LabSectionName,
        "roomNumber": item.RoomNumber,
        "quantity": item.Quantity,
        "departmentId": item.DepartmentID,
        "createdAt": item.CreatedAt,
    }


def list_lab_equipment(db: Session, department_id: str) -> list[dict]:
    rows = _rows(db, FoodAnalysisLabEquipment, department_id, FoodAnalysisLabEquipment.LabSectionName, FoodAnalysisLabEquipment.ItemID)
    return [serialize_lab_item(item) for item in rows]


REGISTER_BUILDERS: dict[str, Callable[[Session], dict]] = {
    "raedc": build_raedc_register,
    "soil-water": build_soil_water_register,
    "agricultural-extension-wing": build_extension_wing_register,
    "arc": build_arc_register,
    "mnsuam": build_mnsuam_register,
    "rari": build_rari_register,
}


def serialize_stock_item(item: ERSSStockRegister) -> dict:
    return {
        "id": item.ItemID,
        "name": item.Name,
        "type": item.Type,
        "quantityStr": item.QuantityStr,
        "dateReceived": item.DateReceived,
        "lastVerificationDate": item.LastVerificationDate,
        "currentStatusRemarks": item.CurrentStatusRemarks,
        "status": item.Status,
        "imageUrl": item.ImageUrl,
        "departmentId": item.DepartmentID,
        "createdAt": item.CreatedAt,
        "updatedAt": item.UpdatedAt,
    }


def map_stock_field(field: str) -> str:
    mapping = {
        "name": "Name",
        "type": "Type",
        "quantityStr": "QuantityStr",
        "dateReceived": "DateReceived",
        "lastVerificationDate": "LastVerificationDate",
        "currentStatusRemarks": "CurrentStatusRemarks",
        "status": "Status",
        "imageUrl": "ImageUrl",
    }
    return mapping.get(field, field)
