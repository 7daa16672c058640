#!/usr/bin/env python3
"""Database overview and integrity checks for the inventory dashboard."""

from __future__ import annotations

import argparse
import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.engine import Engine

APP_DIR = Path(__file__).resolve().parents[1]
if str(APP_DIR) not in sys.path:
    sys.path.insert(0, str(APP_DIR))

from db.base import Base
from models import inventory_models, register_models  # noqa: F401  (register tables on Base.metadata)
from services.equipment_service import EQUIPMENT_STATUSES


@dataclass
class CheckResult:
    name: str
    ok: bool
    detail: str


def _print_section(title: str) -> None:
    print(f"\n=== {title} ===")


def _get_engine(db_url: str) -> Engine:
    return create_engine(db_url, pool_pre_ping=True, future=True)


def _scalar(engine: Engine, sql: str, params: dict | None = None):
    with engine.connect() as conn:
        return conn.execute(text(sql), params or {}).scalar()


def _rows(engine: Engine, sql: str, params: dict | None = None):
    with engine.connect() as conn:
        return conn.execute(text(sql), params or {}).all()


def _run_existence_checks(engine: Engine, existing: set[str]) -> list[CheckResult]:
    results: list[CheckResult] = []
    for table in Base.metadata.sorted_tables:
        present = table.name in existing
        results.append(CheckResult(f"table:{table.name}", present, "present" if present else "missing"))
    return results


def _run_column_checks(engine: Engine, existing: set[str]) -> list[CheckResult]:
    inspector = inspect(engine)
    results: list[CheckResult] = []
    for table in Base.metadata.sorted_tables:
        if table.name not in existing:
            results.append(CheckResult(f"columns:{table.name}", False, "table missing"))
            continue
        actual = {column["name"] for column in inspector.get_columns(table.name)}
        missing = [column.name for column in table.columns if column.name not in actual]
        results.append(
            CheckResult(
                f"columns:{table.name}",
                not missing,
                "ok" if not missing else f"missing={','.join(missing)}",
            )
        )
    return results


def _count_check(engine: Engine, name: str, sql: str) -> CheckResult:
    count = int(_scalar(engine, sql) or 0)
    return CheckResult(name, count == 0, f"count={count}")


def _run_integrity_checks(engine: Engine, existing: set[str]) -> list[CheckResult]:
    checks: list[CheckResult] = []

    if {"MaintenanceLogs", "Equipment"} <= existing:
        checks.append(
            _count_check(
                engine,
                "maintenancelogs:orphan_equipmentid",
                """
                SELECT COUNT(*)
                FROM MaintenanceLogs m
                LEFT JOIN Equipment e ON e.EquipmentID = m.EquipmentID
                WHERE e.EquipmentID IS NULL
                """,
            )
        )

    if {"Equipment", "Departments"} <= existing:
        checks.append(
            _count_check(
                engine,
                "equipment:orphan_departmentid",
                """
                SELECT COUNT(*)
                FROM Equipment e
                LEFT JOIN Departments d ON d.DepartmentID = e.DepartmentID
                WHERE d.DepartmentID IS NULL
                """,
            )
        )
        allowed = ", ".join(f"'{status}'" for status in EQUIPMENT_STATUSES)
        checks.append(
            _count_check(
                engine,
                "equipment:unknown_status",
                f"SELECT COUNT(*) FROM Equipment WHERE Status NOT IN ({allowed})",
            )
        )

    if {"Users", "Departments"} <= existing:
        checks.append(
            _count_check(
                engine,
                "users:dept_head_without_department",
                "SELECT COUNT(*) FROM Users WHERE Role = 'DEPT_HEAD' AND DepartmentID IS NULL",
            )
        )

    return checks


def _print_results(title: str, rows: Iterable[CheckResult]) -> None:
    _print_section(title)
    for row in rows:
        status = "OK" if row.ok else "FAIL"
        print(f"[{status}] {row.name} :: {row.detail}")


def _print_row_counts(engine: Engine, existing: set[str]) -> None:
    _print_section("Row Counts")
    for table in Base.metadata.sorted_tables:
        if table.name not in existing:
            print(f"{table.name}: missing")
            continue
        count = _scalar(engine, f'SELECT COUNT(*) FROM "{table.name}"')
        print(f"{table.name}: {int(count or 0)}")


def _print_department_summary(engine: Engine, existing: set[str]) -> None:
    if not {"Departments", "Equipment"} <= existing:
        return
    _print_section("Equipment per Department")
    rows = _rows(
        engine,
        """
        SELECT d.DepartmentID, d.Name, COUNT(e.EquipmentID)
        FROM Departments d
        LEFT JOIN Equipment e ON e.DepartmentID = d.DepartmentID
        GROUP BY d.DepartmentID, d.Name
        ORDER BY d.Name
        """,
    )
    for department_id, name, count in rows:
        print(f"  - {department_id} ({name}): {int(count or 0)}")


def main() -> int:
    parser = argparse.ArgumentParser(description="Inventory dashboard DB overview")
    parser.add_argument("--db-url", default=os.environ.get("INVENTORY_DB_URL", ""))
    parser.add_argument("--create-missing", action="store_true", help="Create missing tables before checking.")
    args = parser.parse_args()

    db_url = (args.db_url or "").strip()
    if not db_url:
        print("INVENTORY_DB_URL is not set. Provide --db-url or export env first.")
        return 2

    try:
        engine = _get_engine(db_url)
        _scalar(engine, "SELECT 1")
    except Exception as exc:
        print(f"Could not connect to DB: {exc}")
        return 3

    if args.create_missing:
        Base.metadata.create_all(engine)

    existing = set(inspect(engine).get_table_names())
    _print_results("Table Existence", _run_existence_checks(engine, existing))
    _print_results("Column Checks", _run_column_checks(engine, existing))
    _print_results("Integrity Checks", _run_integrity_checks(engine, existing))
    _print_row_counts(engine, existing)
    _print_department_summary(engine, existing)
    return 0


if __name__ == "__main__":
    sys.exit(main())
