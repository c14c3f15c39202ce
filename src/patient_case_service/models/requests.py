"""API request and response models."""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class _CaseTextFields(BaseModel):
    """Narrative fields shared by create and patch requests."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    age: Optional[int] = Field(default=None, ge=0)
    gender: Optional[str] = Field(default=None, max_length=50)
    entry_date: Optional[str] = Field(default=None, max_length=50)
    history: Optional[str] = None
    progression_notes: Optional[str] = None

    @field_validator("age", mode="before")
    @classmethod
    def blank_age_is_none(cls, value):
        # Multipart forms send "" for a cleared number input
        if isinstance(value, str) and not value.strip():
            return None
        return value


class CaseCreateRequest(_CaseTextFields):
    """Text fields of a new case.

    ``patient_name`` is checked by the case manager, not here, so that an
    empty name is reported as a service ``ValidationError``.
    """

    patient_name: str = Field(default="", max_length=200)


class CaseUpdateRequest(_CaseTextFields):
    """Partial patch of a case's text fields.

    Only fields explicitly present in the request are applied; use
    ``model_dump(exclude_unset=True)`` to read them. An empty string is a
    change, an omitted key is not.
    """

    patient_name: Optional[str] = Field(default=None, max_length=200)


class UploadedFile(BaseModel):
    """An uploaded file already read into memory, not yet stored."""

    filename: str
    content_type: str = "application/octet-stream"
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


class DeleteCaseResponse(BaseModel):
    """Response for a successful case deletion."""

    ok: bool = True
    message: str = "Case deleted successfully"
    warnings: List[str] = Field(default_factory=list)


class LoginRequest(BaseModel):
    """Credentials for the fixed clinician identity."""

    email: str
    password: str


class LoginResponse(BaseModel):
    ok: bool
    message: str


class AuthUser(BaseModel):
    email: str


class AuthStatusResponse(BaseModel):
    """Whether the caller holds a valid session token."""

    authenticated: bool
    user: Optional[AuthUser] = None


class ErrorDetail(BaseModel):
    kind: str
    message: str


class ErrorResponse(BaseModel):
    """Structured error body returned for every service failure."""

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    service: str
    version: str
    case_storage: str
    blob_storage: str
