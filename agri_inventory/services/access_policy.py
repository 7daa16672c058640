"""Role and department checks shared by every data-access endpoint.

A session user is the plain dict stored in the cookie session or carried by a
signed token: ``{"userID", "email", "name", "role", "departmentId"}``. Requests
without a session resolve to the PUBLIC role.
"""

from __future__ import annotations

from typing import Any, Optional

from services.errors import ForbiddenError, UnauthorizedError


ROLE_ADMIN = "ADMIN"
ROLE_DEPT_HEAD = "DEPT_HEAD"
ROLE_PUBLIC = "PUBLIC"
ROLES = {ROLE_ADMIN, ROLE_DEPT_HEAD, ROLE_PUBLIC}
EDITOR_ROLES = {ROLE_ADMIN, ROLE_DEPT_HEAD}

UNAUTHORIZED_MESSAGE = "Unauthorized. Please log in."
UNASSIGNED_HEAD_MESSAGE = "Department head must be assigned to a department"


def role_of(user: Optional[dict[str, Any]]) -> str:
    if not user:
        return ROLE_PUBLIC
    return str(user.get("role") or "").strip().upper()


def department_of(user: Optional[dict[str, Any]]) -> Optional[str]:
    if not user:
        return None
    value = str(user.get("departmentId") or "").strip()
    return value or None


def require_user(user: Optional[dict[str, Any]]) -> dict[str, Any]:
    if not user:
        raise UnauthorizedError(UNAUTHORIZED_MESSAGE)
    return user


def require_admin(user: Optional[dict[str, Any]]) -> dict[str, Any]:
    require_user(user)
    if role_of(user) != ROLE_ADMIN:
        raise ForbiddenError("Admin role required.")
    return user


def require_editor(user: Optional[dict[str, Any]]) -> dict[str, Any]:
    require_user(user)
    if role_of(user) not in EDITOR_ROLES:
        raise ForbiddenError("Your role does not allow changes to inventory records.")
    return user


def _head_department_or_403(user: dict[str, Any]) -> str:
    department_id = department_of(user)
    if not department_id:
        raise ForbiddenError(UNASSIGNED_HEAD_MESSAGE)
    return department_id


def require_department_access(
    user: Optional[dict[str, Any]],
    department_id: Optional[str],
    phrase: str,
    *,
    write: bool = True,
) -> None:
    """Allow ADMIN everywhere and DEPT_HEAD only inside its own department.

    ``phrase`` completes the refusal message, e.g. ``"update equipment from"``
    gives "You can only update equipment from your own department". Other
    signed-in roles may read but never write.
    """
    if write:
        require_editor(user)
    else:
        require_user(user)
    if role_of(user) != ROLE_DEPT_HEAD:
        return
    own_department = _head_department_or_403(user)
    if department_id != own_department:
        raise ForbiddenError(f"You can only {phrase} your own department")


def resolve_department_scope(user: Optional[dict[str, Any]], requested_department_id: Optional[str]) -> Optional[str]:
    """Department a read is limited to; ``None`` means organization-wide."""
    requested = (requested_department_id or "").strip() or None
    role = role_of(user)
    if role in {ROLE_ADMIN, ROLE_PUBLIC}:
        return requested
    if role == ROLE_DEPT_HEAD:
        return _head_department_or_403(user)
    raise ForbiddenError("Invalid role")


def scope_for_listing(user: Optional[dict[str, Any]]) -> Optional[str]:
    """Department filter for authenticated equipment listings."""
    require_user(user)
    role = role_of(user)
    if role == ROLE_DEPT_HEAD:
        return _head_department_or_403(user)
    if role in ROLES:
        return None
    raise ForbiddenError("Invalid role")
