# errors.py
# Every error a client can see carries a machine code, an HTTP status and a
# message in the storefront's language (Thai).

from __future__ import annotations

from typing import Any, Dict, List, Optional


class OrderError(Exception):
    code = "ERROR"
    status_code = 400
    default_message = "เกิดข้อผิดพลาด"

    def __init__(self, message: Optional[str] = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message}


class ValidationError(OrderError):
    """Carries every violated field, not only the first one found."""

    code = "VALIDATION_ERROR"
    default_message = "ข้อมูลไม่ครบถ้วน"

    def __init__(self, fields: Dict[str, str], message: Optional[str] = None) -> None:
        self.fields = dict(fields)
        super().__init__(message)

    @property
    def field_names(self) -> List[str]:
        return list(self.fields)

    def to_dict(self) -> Dict[str, Any]:
        d = super().to_dict()
        d["fields"] = self.fields
        return d


class InvalidStatusError(OrderError):
    code = "INVALID_STATUS"
    default_message = "สถานะไม่ถูกต้อง"


class FileRequiredError(OrderError):
    code = "FILE_REQUIRED"
    default_message = "กรุณาแนบไฟล์สลิป"


class InvalidFileError(OrderError):
    code = "INVALID_FILE"
    default_message = "อนุญาตเฉพาะ JPG, PNG, PDF"


class UnauthorizedError(OrderError):
    code = "UNAUTHORIZED"
    status_code = 401
    default_message = "Unauthorized"


class NotFoundError(OrderError):
    code = "NOT_FOUND"
    status_code = 404
    default_message = "ไม่พบ Order"


class DuplicateOrderError(OrderError):
    code = "DUPLICATE_ORDER"
    status_code = 409
    default_message = "Order ID ซ้ำ"


class StoreUnavailableError(OrderError):
    code = "DB_ERROR"
    status_code = 500
    default_message = "Database not connected"


class NotificationFailure(Exception):
    """Raised inside the LINE adapter only; callers never see it."""
