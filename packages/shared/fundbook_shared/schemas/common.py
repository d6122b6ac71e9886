from enum import Enum
from typing import Optional
from pydantic import BaseModel


class UserRole(str, Enum):
    USER = "USER"
    ADMIN = "ADMIN"
    SUPERADMIN = "SUPERADMIN"


# Baseline roles allowed through an unqualified "require user" check
DEFAULT_ALLOWED_ROLES: frozenset["UserRole"] = frozenset({UserRole.USER, UserRole.ADMIN})


class ReimbursementRequestStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    VOID = "VOID"


class ToastKind(str, Enum):
    SUCCESS = "success"
    ERROR = "error"
    INFO = "info"


class Toast(BaseModel):
    kind: ToastKind = ToastKind.INFO
    title: str
    description: Optional[str] = None


class ErrorBody(BaseModel):
    code: str
    message: str
    status: int


class ErrorResponse(BaseModel):
    error: ErrorBody
