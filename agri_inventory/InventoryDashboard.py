import logging
import os
from datetime import datetime
from pathlib import Path

from fastapi import Depends, FastAPI, File, Header, HTTPException, Query, Request, UploadFile
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel, ConfigDict, ValidationError
from sqlalchemy import or_, select, text
from sqlalchemy.orm import Session, selectinload
from starlette.middleware.sessions import SessionMiddleware

try:
    from dotenv import load_dotenv

    load_dotenv()
except Exception:
    pass

from db.deps import get_inventory_db
from models.inventory_models import Department, Equipment, MaintenanceLog
from models.register_models import ERSSStockRegister
from schemas.departments import DepartmentPatch, DepartmentUpsert, ERSSStockInput
from schemas.equipment import EquipmentCreate, EquipmentUpdate, MaintenanceLogCreate
from services import view_cache
from services.access_policy import (
    ROLE_DEPT_HEAD,
    department_of,
    require_admin,
    require_department_access,
    require_user,
    resolve_department_scope,
    role_of,
    scope_for_listing,
)
from services.department_service import (
    equipment_count,
    get_department_by_slug,
    list_departments,
    map_department_field,
    name_taken,
    serialize_department,
    slugify,
)
from services.equipment_service import (
    department_exists,
    field_errors,
    list_maintenance_logs,
    map_equipment_field,
    serialize_equipment,
    serialize_maintenance_log,
)
from services.errors import (
    ForbiddenError,
    InventoryError,
    NotFoundError,
    ThrottledError,
    UnauthorizedError,
    ValidationFailedError,
)
from services.register_service import (
    REGISTER_BUILDERS,
    list_lab_equipment,
    map_stock_field,
    serialize_stock_item,
)
from services.stats_service import build_dashboard_stats
from services.storage_service import (
    MAX_IMAGE_BYTES,
    build_object_path,
    get_image_store,
    local_upload_dir,
    uses_local_store,
    validate_image,
)
from services.user_access_service import (
    SESSION_TTL_SECONDS,
    create_session,
    get_session,
    login_guard,
    remove_session,
)
from services.user_service import get_user_by_email, session_payload, verify_password

BASE_DIR = Path(__file__).resolve().parent
ERSS_DEPARTMENT_ID = "erss"

app = FastAPI()

def _parse_csv_env(name: str, default: str) -> list[str]:
    raw = os.environ.get(name, default)
    return [item.strip() for item in str(raw).split(",") if item.strip()]


_CORS_ALLOW_ORIGINS = _parse_csv_env(
    "CORS_ALLOW_ORIGINS",
    "http://127.0.0.1,http://localhost,http://127.0.0.1:3000,http://localhost:3000",
)
_CORS_ALLOW_CREDENTIALS = str(os.environ.get("CORS_ALLOW_CREDENTIALS", "true")).strip().lower() in {"1", "true", "yes", "on"}
if "*" in _CORS_ALLOW_ORIGINS:
    # Browsers reject wildcard origins with credentials.
    _CORS_ALLOW_CREDENTIALS = False

app.add_middleware(
    CORSMiddleware,
    allow_origins=_CORS_ALLOW_ORIGINS,
    allow_credentials=_CORS_ALLOW_CREDENTIALS,
    allow_methods=["*"],
    allow_headers=["*"]
)
app.add_middleware(
    SessionMiddleware,
    secret_key=(os.environ.get("SESSION_SIGNING_SECRET") or "").strip(),
    session_cookie="agri_inventory_session",
    max_age=SESSION_TTL_SECONDS,
    same_site="lax",
    https_only=False,
)

AUTH_LOGGER = logging.getLogger("agri_inventory.auth")
EQUIPMENT_LOGGER = logging.getLogger("agri_inventory.equipment")
STATS_LOGGER = logging.getLogger("agri_inventory.stats")
REGISTER_LOGGER = logging.getLogger("agri_inventory.registers")
DEPARTMENT_LOGGER = logging.getLogger("agri_inventory.departments")
STORAGE_LOGGER = logging.getLogger("agri_inventory.storage")


class AuthLoginRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    email: str
    password: str


@app.exception_handler(InventoryError)
def handle_inventory_error(request: Request, exc: InventoryError):
    return JSONResponse(status_code=exc.status_code, content=jsonable_encoder(exc.to_payload()), headers=exc.headers)


def _success(data=None, message: str | None = None) -> dict:
    payload = {"success": True}
    if message:
        payload["message"] = message
    if data is not None:
        payload["data"] = data
    return payload


def _failure(message: str) -> dict:
    return {"success": False, "message": message}


def _validated(model: type[BaseModel], payload: dict):
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        raise ValidationFailedError(field_errors(exc)) from exc


def _get_client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        candidate = forwarded.split(",")[0].strip()
        if candidate:
            return candidate
    return request.client.host if request.client and request.client.host else "unknown"


def _get_active_session(request: Request, session_token: str | None) -> dict | None:
    session_from_cookie = request.session.get("user")
    if isinstance(session_from_cookie, dict):
        return dict(session_from_cookie)
    session_from_token = get_session(session_token)
    if session_from_token:
        request.session["user"] = dict(session_from_token)
        return dict(session_from_token)
    return None


def current_user(request: Request, x_session_token: str | None = Header(None, alias="X-Session-Token")) -> dict | None:
    return _get_active_session(request, x_session_token)


def _load_equipment(db: Session, equipment_id: int) -> Equipment:
    equipment = db.get(Equipment, equipment_id)
    if not equipment:
        raise NotFoundError("Equipment not found")
    return equipment


def _require_erss_department(db: Session) -> Department:
    department = db.get(Department, ERSS_DEPARTMENT_ID)
    if not department:
        raise NotFoundError("ERSS department not found")
    return department


def _load_stock_item(db: Session, item_id: int) -> ERSSStockRegister:
    item = db.get(ERSSStockRegister, item_id)
    if not item or item.DepartmentID != ERSS_DEPARTMENT_ID:
        raise NotFoundError("Stock item not found")
    return item


@app.get("/healthz")
def healthcheck():
    return {"status": "ok"}


@app.get("/api/healthz")
def healthcheck_api(db: Session = Depends(get_inventory_db)):
    try:
        db.execute(text("SELECT 1"))
        return {"status": "ok"}
    except Exception as exc:
        raise HTTPException(status_code=503, detail=f"db_unavailable: {exc}") from exc


@app.post("/api/auth/login")
def auth_login(payload: dict, request: Request, db: Session = Depends(get_inventory_db)):
    client_ip = _get_client_ip(request)
    try:
        parsed = AuthLoginRequest.model_validate(payload)
    except ValidationError:
        AUTH_LOGGER.warning("Login rejected ip=%s reason=invalid_payload", client_ip)
        raise InventoryError("Invalid login request.")

    email = parsed.email.strip().lower()
    if not email:
        AUTH_LOGGER.warning("Login rejected ip=%s reason=missing_identity", client_ip)
        raise InventoryError("Invalid login request.")
    account_key = f"user:{email}"

    retry_after = login_guard.retry_after(client_ip, account_key)
    if retry_after is not None:
        AUTH_LOGGER.warning("Login throttled ip=%s key=%s retry_after=%s", client_ip, account_key, retry_after)
        raise ThrottledError(retry_after)

    user = get_user_by_email(db, email)
    if user is None or not user.IsActive or not verify_password(user, parsed.password):
        login_guard.record_failure(client_ip, account_key)
        reason = "invalid_password" if user is not None and user.IsActive else "unknown_or_inactive_user"
        AUTH_LOGGER.warning("Login failed ip=%s key=%s reason=%s", client_ip, account_key, reason)
        raise UnauthorizedError("Invalid credentials.")

    user_session = session_payload(user)
    token = create_session(user_session)
    request.session["user"] = dict(user_session)
    login_guard.record_success(account_key)
    AUTH_LOGGER.info("Login success ip=%s key=%s user_id=%s", client_ip, account_key, user.UserID)
    return _success({"sessionToken": token, "user": user_session}, "Logged in successfully")


@app.post("/api/auth/logout")
def auth_logout(request: Request, x_session_token: str | None = Header(None, alias="X-Session-Token")):
    request.session.clear()
    remove_session(x_session_token)
    return _success(message="Logged out")


@app.get("/api/auth/me")
def auth_me(user: dict | None = Depends(current_user)):
    return _success({"user": require_user(user)})


@app.get("/api/departments")
def get_departments(db: Session = Depends(get_inventory_db)):
    return _success([serialize_department(department) for department in list_departments(db)])


@app.post("/api/departments")
def create_department(payload: dict, user: dict | None = Depends(current_user), db: Session = Depends(get_inventory_db)):
    require_admin(user)
    parsed = _validated(DepartmentUpsert, payload)
    department_id = parsed.id or slugify(parsed.name)
    if not department_id:
        raise ValidationFailedError({"id": ["Department id could not be derived from the name"]})
    if db.get(Department, department_id) is not None:
        raise InventoryError("A department with this id already exists")
    if name_taken(db, parsed.name):
        raise InventoryError("A department with this name already exists")

    try:
        department = Department(DepartmentID=department_id)
        for field, value in parsed.model_dump(exclude={"id"}).items():
            setattr(department, map_department_field(field), value)
        department.CreatedAt = datetime.now()
        department.UpdatedAt = datetime.now()
        db.add(department)
        db.commit()
        db.refresh(department)
    except Exception:
        db.rollback()
        DEPARTMENT_LOGGER.exception("Department create failed department=%s", department_id)
        return _failure("Failed to create department")

    view_cache.invalidate_departments([department_id])
    return _success(serialize_department(department, 0), "Department created successfully")


@app.get("/api/departments/by-slug/{slug}")
def get_department_slug(slug: str, db: Session = Depends(get_inventory_db)):
    department = get_department_by_slug(db, slug)
    if not department:
        raise NotFoundError("Department not found")
    return _success(serialize_department(department, equipment_count(db, department.DepartmentID)))


def _register_endpoint(slug: str):
    builder = REGISTER_BUILDERS[slug]

    def endpoint(db: Session = Depends(get_inventory_db)):
        try:
            return _success(builder(db))
        except InventoryError:
            raise
        except Exception:
            REGISTER_LOGGER.exception("Register build failed register=%s", slug)
            return _failure(f"An error occurred while loading the {slug} register")

    endpoint.__name__ = f"get_{slug.replace('-', '_')}_register"
    return endpoint


for _register_slug in REGISTER_BUILDERS:
    app.get(f"/api/departments/{_register_slug}")(_register_endpoint(_register_slug))


@app.get("/api/departments/{department_id}/lab-equipment")
def get_lab_equipment(department_id: str, db: Session = Depends(get_inventory_db)):
    if not department_exists(db, department_id):
        raise NotFoundError("Department not found")
    return _success(list_lab_equipment(db, department_id))


@app.get("/api/departments/{department_id}")
def get_department(department_id: str, db: Session = Depends(get_inventory_db)):
    department = db.get(Department, department_id)
    if not department:
        raise NotFoundError("Department not found")
    return _success(serialize_department(department, equipment_count(db, department_id)))


@app.put("/api/departments/{department_id}")
def update_department(
    department_id: str,
    payload: dict,
    user: dict | None = Depends(current_user),
    db: Session = Depends(get_inventory_db),
):
    require_admin(user)
    department = db.get(Department, department_id)
    if not department:
        raise NotFoundError("Department not found")
    parsed = _validated(DepartmentPatch, payload)
    if parsed.name and name_taken(db, parsed.name, exclude_id=department_id):
        raise InventoryError("A department with this name already exists")

    try:
        for field, value in parsed.model_dump(exclude_unset=True).items():
            if field in {"name", "location"} and value is None:
                continue
            setattr(department, map_department_field(field), value)
        department.UpdatedAt = datetime.now()
        db.commit()
        db.refresh(department)
        count = equipment_count(db, department_id)
    except Exception:
        db.rollback()
        DEPARTMENT_LOGGER.exception("Department update failed department=%s", department_id)
        return _failure("Failed to update department")

    view_cache.invalidate_departments([department_id])
    return _success(serialize_department(department, count), "Department updated successfully")


@app.get("/api/equipment")
def get_equipment(
    status: str | None = Query(None),
    equipment_type: str | None = Query(None, alias="type"),
    search: str | None = Query(None),
    user: dict | None = Depends(current_user),
    db: Session = Depends(get_inventory_db),
):
    scope = scope_for_listing(user)
    stmt = select(Equipment).options(selectinload(Equipment.Department))
    if scope:
        stmt = stmt.where(Equipment.DepartmentID == scope)
    if status and status.strip():
        stmt = stmt.where(Equipment.Status == status.strip().upper())
    if equipment_type and equipment_type.strip():
        stmt = stmt.where(Equipment.Type == equipment_type.strip())
    term = (search or "").strip()
    if term:
        stmt = stmt.where(or_(Equipment.Name.ilike(f"%{term}%"), Equipment.Type.ilike(f"%{term}%")))
    try:
        rows = db.execute(stmt.order_by(Equipment.CreatedAt.desc(), Equipment.EquipmentID.desc())).scalars().all()
        return _success([serialize_equipment(equipment) for equipment in rows])
    except Exception:
        EQUIPMENT_LOGGER.exception("Equipment list failed scope=%s", scope or view_cache.ORGANIZATION_SCOPE)
        return _failure("An error occurred while fetching equipment")


@app.get("/api/equipment/{equipment_id}")
def get_equipment_item(equipment_id: int, user: dict | None = Depends(current_user), db: Session = Depends(get_inventory_db)):
    require_user(user)
    equipment = _load_equipment(db, equipment_id)
    require_department_access(user, equipment.DepartmentID, "view equipment from", write=False)
    try:
        return _success(serialize_equipment(equipment, include_logs=True))
    except Exception:
        EQUIPMENT_LOGGER.exception("Equipment detail failed id=%s", equipment_id)
        return _failure("An error occurred while fetching equipment")


@app.post("/api/equipment")
def create_equipment(payload: dict, user: dict | None = Depends(current_user), db: Session = Depends(get_inventory_db)):
    require_user(user)
    parsed = _validated(EquipmentCreate, payload)
    require_department_access(user, parsed.departmentId, "create equipment for")
    if not department_exists(db, parsed.departmentId):
        raise ValidationFailedError({"departmentId": ["Invalid department selected"]}, message="Invalid department selected")

    try:
        equipment = Equipment()
        for field, value in parsed.model_dump().items():
            if field == "imageUrl":
                value = value or None
            setattr(equipment, map_equipment_field(field), value)
        equipment.CreatedAt = datetime.now()
        equipment.UpdatedAt = datetime.now()
        db.add(equipment)
        db.commit()
        db.refresh(equipment)
    except Exception:
        db.rollback()
        EQUIPMENT_LOGGER.exception("Equipment create failed department=%s", parsed.departmentId)
        return _failure("An error occurred while creating equipment")

    view_cache.invalidate_departments([equipment.DepartmentID])
    EQUIPMENT_LOGGER.info(
        "Equipment created id=%s department=%s user_id=%s",
        equipment.EquipmentID,
        equipment.DepartmentID,
        user.get("userID"),
    )
    return _success(serialize_equipment(equipment), "Equipment created successfully")


@app.put("/api/equipment/{equipment_id}")
def update_equipment(
    equipment_id: int,
    payload: dict,
    user: dict | None = Depends(current_user),
    db: Session = Depends(get_inventory_db),
):
    require_user(user)
    equipment = _load_equipment(db, equipment_id)
    require_department_access(user, equipment.DepartmentID, "update equipment from")
    parsed = _validated(EquipmentUpdate, payload)

    previous_department = equipment.DepartmentID
    changes = parsed.model_dump(exclude_unset=True)
    target_department = changes.get("departmentId")
    if target_department and target_department != previous_department:
        if role_of(user) == ROLE_DEPT_HEAD:
            raise ForbiddenError("You cannot transfer equipment to another department")
        if not department_exists(db, target_department):
            raise ValidationFailedError({"departmentId": ["Invalid department selected"]}, message="Invalid department selected")

    try:
        for field, value in changes.items():
            if value is None:
                continue
            if field == "imageUrl" and not value:
                continue
            setattr(equipment, map_equipment_field(field), value)
        equipment.UpdatedAt = datetime.now()
        db.commit()
        db.refresh(equipment)
    except Exception:
        db.rollback()
        EQUIPMENT_LOGGER.exception("Equipment update failed id=%s", equipment_id)
        return _failure("An error occurred while updating equipment")

    view_cache.invalidate_departments([previous_department, equipment.DepartmentID])
    EQUIPMENT_LOGGER.info("Equipment updated id=%s department=%s user_id=%s", equipment_id, equipment.DepartmentID, user.get("userID"))
    return _success(serialize_equipment(equipment), "Equipment updated successfully")


@app.delete("/api/equipment/{equipment_id}")
def delete_equipment(equipment_id: int, user: dict | None = Depends(current_user), db: Session = Depends(get_inventory_db)):
    require_user(user)
    equipment = _load_equipment(db, equipment_id)
    require_department_access(user, equipment.DepartmentID, "delete equipment from")
    department_id = equipment.DepartmentID

    try:
        db.delete(equipment)
        db.commit()
    except Exception:
        db.rollback()
        EQUIPMENT_LOGGER.exception("Equipment delete failed id=%s", equipment_id)
        return _failure("An error occurred while deleting equipment")

    view_cache.invalidate_departments([department_id])
    EQUIPMENT_LOGGER.info("Equipment deleted id=%s department=%s user_id=%s", equipment_id, department_id, user.get("userID"))
    return _success(message="Equipment deleted successfully")


@app.get("/api/equipment/{equipment_id}/maintenance")
def get_maintenance_logs(equipment_id: int, user: dict | None = Depends(current_user), db: Session = Depends(get_inventory_db)):
    require_user(user)
    equipment = _load_equipment(db, equipment_id)
    require_department_access(user, equipment.DepartmentID, "view equipment from", write=False)
    try:
        return _success([serialize_maintenance_log(log) for log in list_maintenance_logs(db, equipment_id)])
    except Exception:
        EQUIPMENT_LOGGER.exception("Maintenance log list failed equipment_id=%s", equipment_id)
        return _failure("An error occurred while fetching maintenance logs")


@app.post("/api/equipment/{equipment_id}/maintenance")
def create_maintenance_log(
    equipment_id: int,
    payload: dict,
    user: dict | None = Depends(current_user),
    db: Session = Depends(get_inventory_db),
):
    require_user(user)
    equipment = _load_equipment(db, equipment_id)
    require_department_access(user, equipment.DepartmentID, "update equipment from")
    parsed = _validated(MaintenanceLogCreate, payload)

    department_id = equipment.DepartmentID
    try:
        log = MaintenanceLog(
            EquipmentID=equipment.EquipmentID,
            LogDate=parsed.date,
            Cost=parsed.cost,
            Description=parsed.description,
            CreatedAt=datetime.now(),
        )
        db.add(log)
        db.commit()
        db.refresh(log)
    except Exception:
        db.rollback()
        EQUIPMENT_LOGGER.exception("Maintenance log create failed equipment_id=%s", equipment_id)
        return _failure("An error occurred while adding the maintenance log")

    view_cache.invalidate_departments([department_id])
    return _success(serialize_maintenance_log(log), "Maintenance log added successfully")


@app.delete("/api/maintenance/{log_id}")
def delete_maintenance_log(log_id: int, user: dict | None = Depends(current_user), db: Session = Depends(get_inventory_db)):
    require_user(user)
    log = db.get(MaintenanceLog, log_id)
    if not log:
        raise NotFoundError("Maintenance log not found")
    equipment = _load_equipment(db, log.EquipmentID)
    require_department_access(user, equipment.DepartmentID, "update equipment from")
    department_id = equipment.DepartmentID

    try:
        db.delete(log)
        db.commit()
    except Exception:
        db.rollback()
        EQUIPMENT_LOGGER.exception("Maintenance log delete failed log_id=%s", log_id)
        return _failure("An error occurred while deleting the maintenance log")

    view_cache.invalidate_departments([department_id])
    return _success(message="Maintenance log deleted successfully")


def _cached_stats(db: Session, department_id: str | None) -> dict:
    return view_cache.get_or_build("dashboard", department_id, lambda: build_dashboard_stats(db, department_id))


@app.get("/api/stats/dashboard")
def get_dashboard_stats(
    department_id: str | None = Query(None, alias="departmentId"),
    user: dict | None = Depends(current_user),
    db: Session = Depends(get_inventory_db),
):
    scope = resolve_department_scope(user, department_id)
    try:
        return _success(_cached_stats(db, scope))
    except Exception:
        STATS_LOGGER.exception("Dashboard stats failed scope=%s", scope or view_cache.ORGANIZATION_SCOPE)
        return _failure("An error occurred while fetching dashboard statistics")


@app.get("/api/stats/all-departments")
def get_all_departments_stats(db: Session = Depends(get_inventory_db)):
    try:
        return _success(_cached_stats(db, None))
    except Exception:
        STATS_LOGGER.exception("Organization stats failed")
        return _failure("An error occurred while fetching dashboard statistics")


@app.get("/api/stats/by-slug/{slug}")
def get_department_stats_by_slug(slug: str, db: Session = Depends(get_inventory_db)):
    department = get_department_by_slug(db, slug)
    if not department:
        raise NotFoundError("Department not found")
    try:
        stats = _cached_stats(db, department.DepartmentID)
    except Exception:
        STATS_LOGGER.exception("Department stats failed department=%s", department.DepartmentID)
        return _failure("An error occurred while fetching dashboard statistics")
    stats["department"] = serialize_department(department)
    return _success(stats)


@app.get("/api/entomology/stock")
def get_stock_items(user: dict | None = Depends(current_user), db: Session = Depends(get_inventory_db)):
    require_department_access(user, ERSS_DEPARTMENT_ID, "view stock of", write=False)
    _require_erss_department(db)
    try:
        rows = db.execute(
            select(ERSSStockRegister)
            .where(ERSSStockRegister.DepartmentID == ERSS_DEPARTMENT_ID)
            .order_by(ERSSStockRegister.CreatedAt.desc(), ERSSStockRegister.ItemID.desc())
        ).scalars().all()
        return _success([serialize_stock_item(item) for item in rows])
    except Exception:
        REGISTER_LOGGER.exception("ERSS stock list failed")
        return _failure("Failed to fetch ERSS stock items")


@app.get("/api/entomology/stock/{item_id}")
def get_stock_item(item_id: int, user: dict | None = Depends(current_user), db: Session = Depends(get_inventory_db)):
    require_department_access(user, ERSS_DEPARTMENT_ID, "view stock of", write=False)
    _require_erss_department(db)
    item = _load_stock_item(db, item_id)
    try:
        return _success(serialize_stock_item(item))
    except Exception:
        REGISTER_LOGGER.exception("ERSS stock detail failed item_id=%s", item_id)
        return _failure("Failed to fetch ERSS stock item")


@app.post("/api/entomology/stock")
def create_stock_item(payload: dict, user: dict | None = Depends(current_user), db: Session = Depends(get_inventory_db)):
    require_department_access(user, ERSS_DEPARTMENT_ID, "manage stock of")
    _require_erss_department(db)
    parsed = _validated(ERSSStockInput, payload)

    try:
        item = ERSSStockRegister(DepartmentID=ERSS_DEPARTMENT_ID)
        for field, value in parsed.model_dump().items():
            setattr(item, map_stock_field(field), value)
        item.CreatedAt = datetime.now()
        item.UpdatedAt = datetime.now()
        db.add(item)
        db.commit()
        db.refresh(item)
    except Exception:
        db.rollback()
        REGISTER_LOGGER.exception("ERSS stock create failed name=%s", parsed.name)
        return _failure("Failed to create ERSS stock item")

    view_cache.invalidate_departments([ERSS_DEPARTMENT_ID])
    REGISTER_LOGGER.info("ERSS stock created item_id=%s user_id=%s", item.ItemID, user.get("userID"))
    return _success(serialize_stock_item(item), "Stock item created successfully")


@app.put("/api/entomology/stock/{item_id}")
def update_stock_item(
    item_id: int,
    payload: dict,
    user: dict | None = Depends(current_user),
    db: Session = Depends(get_inventory_db),
):
    require_department_access(user, ERSS_DEPARTMENT_ID, "manage stock of")
    _require_erss_department(db)
    item = _load_stock_item(db, item_id)
    parsed = _validated(ERSSStockInput, payload)

    try:
        for field, value in parsed.model_dump(exclude_unset=True).items():
            setattr(item, map_stock_field(field), value)
        item.UpdatedAt = datetime.now()
        db.commit()
        db.refresh(item)
    except Exception:
        db.rollback()
        REGISTER_LOGGER.exception("ERSS stock update failed item_id=%s", item_id)
        return _failure("Failed to update ERSS stock item")

    view_cache.invalidate_departments([ERSS_DEPARTMENT_ID])
    REGISTER_LOGGER.info("ERSS stock updated item_id=%s user_id=%s", item_id, user.get("userID"))
    return _success(serialize_stock_item(item), "Stock item updated successfully")


@app.delete("/api/entomology/stock/{item_id}")
def delete_stock_item(item_id: int, user: dict | None = Depends(current_user), db: Session = Depends(get_inventory_db)):
    require_department_access(user, ERSS_DEPARTMENT_ID, "manage stock of")
    _require_erss_department(db)
    item = _load_stock_item(db, item_id)
    try:
        db.delete(item)
        db.commit()
    except Exception:
        db.rollback()
        REGISTER_LOGGER.exception("ERSS stock delete failed item_id=%s", item_id)
        return _failure("Failed to delete ERSS stock item")

    view_cache.invalidate_departments([ERSS_DEPARTMENT_ID])
    REGISTER_LOGGER.info("ERSS stock deleted item_id=%s user_id=%s", item_id, user.get("userID"))
    return _success(message="Stock item deleted successfully")


@app.post("/api/upload")
def upload_image(file: UploadFile | None = File(None), user: dict | None = Depends(current_user)):
    if not user:
        raise UnauthorizedError("Unauthorized")
    if file is None:
        raise InventoryError("No file provided")

    content_type = (file.content_type or "").lower()
    validate_image(content_type, 0)
    data = file.file.read(MAX_IMAGE_BYTES + 1)
    validate_image(content_type, len(data))

    path = build_object_path(file.filename, content_type)
    try:
        url = get_image_store().put(path, data, content_type)
    except Exception:
        STORAGE_LOGGER.exception("Image upload failed path=%s user_id=%s", path, user.get("userID"))
        raise InventoryError("Failed to upload file", status_code=500)

    STORAGE_LOGGER.info(
        "Image uploaded path=%s bytes=%s department=%s user_id=%s",
        path,
        len(data),
        department_of(user),
        user.get("userID"),
    )
    return _success({"url": url, "path": path}, "File uploaded successfully")


if uses_local_store():
    app.mount("/uploads", StaticFiles(directory=str(local_upload_dir()), check_dir=False), name="uploads")
