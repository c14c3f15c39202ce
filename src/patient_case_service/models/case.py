"""Case data models for patient-case-service.

A case is a patient record with narrative fields and an ordered list of
investigation file attachments. Attachment metadata lives inside the case
record; the file bytes live in the blob store under ``storage_key``.
"""

from datetime import datetime, timezone
from typing import List, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def generate_case_id() -> str:
    return f"case_{uuid4().hex[:12]}"


class Attachment(BaseModel):
    """Metadata for one uploaded investigation file. Immutable once created."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        from_attributes=True,
    )

    storage_key: str = Field(min_length=1)
    original_name: str
    mime_type: str = "application/octet-stream"
    size_bytes: int = Field(ge=0)
    uploaded_at: datetime = Field(default_factory=_utcnow)


class Case(BaseModel):
    """Patient case domain model."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )

    id: str = Field(default_factory=generate_case_id)
    patient_name: str = Field(min_length=1, max_length=200)
    age: Optional[int] = Field(default=None, ge=0)
    gender: Optional[str] = Field(default=None, max_length=50)
    entry_date: Optional[str] = Field(default=None, max_length=50)
    history: Optional[str] = None
    attachments: List[Attachment] = Field(default_factory=list)
    progression_notes: Optional[str] = None

    created_by: str
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    @property
    def storage_keys(self) -> List[str]:
        return [a.storage_key for a in self.attachments]
