from __future__ import annotations

from typing import Any


class InventoryError(RuntimeError):
    """Base for failures that are reported to the caller as a failed envelope."""

    status_code = 400

    def __init__(self, message: str, *, data: Any = None, status_code: int | None = None, headers: dict[str, str] | None = None):
        super().__init__(message)
        self.message = message
        self.data = data
        self.headers = headers
        if status_code is not None:
            self.status_code = status_code

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"success": False, "message": self.message}
        if self.data is not None:
            payload["data"] = self.data
        return payload


class UnauthorizedError(InventoryError):
    status_code = 401


class ForbiddenError(InventoryError):
    status_code = 403


class NotFoundError(InventoryError):
    status_code = 404


class ValidationFailedError(InventoryError):
    status_code = 400

    def __init__(self, field_errors: dict[str, list[str]], message: str = "Invalid input data"):
        super().__init__(message, data=field_errors)
        self.field_errors = field_errors


class ThrottledError(InventoryError):
    status_code = 429

    def __init__(self, retry_after: int):
        super().__init__(
            "Too many login attempts. Please try again later.",
            headers={"Retry-After": str(retry_after)},
        )
        self.retry_after = retry_after
