"""Models package."""

from .case import Attachment, Case, generate_case_id
from .requests import (
    AuthStatusResponse,
    AuthUser,
    CaseCreateRequest,
    CaseUpdateRequest,
    DeleteCaseResponse,
    ErrorDetail,
    ErrorResponse,
    HealthResponse,
    LoginRequest,
    LoginResponse,
    UploadedFile,
)

__all__ = [
    "Attachment",
    "Case",
    "generate_case_id",
    "AuthStatusResponse",
    "AuthUser",
    "CaseCreateRequest",
    "CaseUpdateRequest",
    "DeleteCaseResponse",
    "ErrorDetail",
    "ErrorResponse",
    "HealthResponse",
    "LoginRequest",
    "LoginResponse",
    "UploadedFile",
]
