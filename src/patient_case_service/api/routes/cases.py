"""Case API routes."""

import logging
from typing import Dict, List, Tuple, Type, TypeVar

from fastapi import APIRouter, Depends, Request, status
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from starlette.datastructures import FormData, UploadFile

from patient_case_service.api.dependencies import get_case_manager, get_current_user
from patient_case_service.core import CaseManager
from patient_case_service.core.exceptions import ValidationException
from patient_case_service.models import (
    Case,
    CaseCreateRequest,
    CaseUpdateRequest,
    DeleteCaseResponse,
    ErrorResponse,
    UploadedFile,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/cases", tags=["cases"])

FILES_FIELD = "investigation"
DELETED_FILES_FIELD = "deletedFiles"

TEXT_FIELDS = (
    "patientName",
    "age",
    "gender",
    "entryDate",
    "history",
    "progressionNotes",
)

ModelT = TypeVar("ModelT", bound=BaseModel)

ERROR_RESPONSES = {
    401: {"model": ErrorResponse, "description": "Missing, invalid or expired session token"},
    500: {"model": ErrorResponse, "description": "Case record could not be written"},
    503: {"model": ErrorResponse, "description": "Case or blob storage unavailable"},
}


# =============================================================================
# Multipart parsing
# =============================================================================

def _text_fields(form: FormData) -> Dict[str, str]:
    """Collect text fields explicitly present in the form.

    Empty strings are kept: for a patch they clear the field.
    """
    fields = {}
    for name in TEXT_FIELDS:
        value = form.get(name)
        if isinstance(value, str):
            fields[name] = value
    return fields


async def _uploaded_files(form: FormData, case_manager: CaseManager) -> List[UploadedFile]:
    # Browsers send an empty part for an untouched file input
    parts = [
        item for item in form.getlist(FILES_FIELD)
        if isinstance(item, UploadFile) and item.filename
    ]

    # Reject on count and declared size before any part is read into memory
    case_manager.check_upload_limits(len(parts), [item.size for item in parts])

    uploads = []
    for item in parts:
        # One byte past the limit is enough for the manager to reject it
        data = await item.read(case_manager.max_upload_bytes + 1)
        uploads.append(
            UploadedFile(
                filename=item.filename,
                content_type=item.content_type or "application/octet-stream",
                data=data,
            )
        )
        await item.close()
    return uploads


def _parse(model: Type[ModelT], fields: Dict[str, str]) -> ModelT:
    try:
        return model.model_validate(fields)
    except PydanticValidationError as e:
        errors = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise ValidationException(errors) from e


async def _read_multipart(
    request: Request, case_manager: CaseManager
) -> Tuple[FormData, List[UploadedFile]]:
    form = await request.form()
    return form, await _uploaded_files(form, case_manager)


# =============================================================================
# Core CRUD Endpoints
# =============================================================================

@router.get(
    "",
    response_model=List[Case],
    summary="List all cases",
    description="""
Returns every case, newest first (ordered by `createdAt` descending).

**Response Example**:
```json
[
  {
    "id": "case_a1b2c3d4e5f6",
    "patientName": "Jane Doe",
    "age": 54,
    "attachments": [
      {
        "storageKey": "1735689600000-3f2a9c0d4b8e4f1a9d6c2b7e5a1f0c3d.pdf",
        "originalName": "ct-report.pdf",
        "mimeType": "application/pdf",
        "sizeBytes": 48213,
        "uploadedAt": "2025-01-01T00:00:00Z"
      }
    ],
    "createdBy": "doctor@example.com",
    "createdAt": "2025-01-01T00:00:00Z"
  }
]
```

**Authorization**: Session token cookie or Bearer header
    """,
    responses=ERROR_RESPONSES,
)
async def list_cases(
    user: str = Depends(get_current_user),
    case_manager: CaseManager = Depends(get_case_manager),
):
    """List all cases."""
    return await case_manager.list_cases()


@router.get(
    "/{case_id}",
    response_model=Case,
    summary="Get case by ID",
    responses={**ERROR_RESPONSES, 404: {"model": ErrorResponse, "description": "Case not found"}},
)
async def get_case(
    case_id: str,
    user: str = Depends(get_current_user),
    case_manager: CaseManager = Depends(get_case_manager),
):
    """Get a case by ID."""
    return await case_manager.get_case(case_id)


@router.post(
    "",
    response_model=Case,
    status_code=status.HTTP_201_CREATED,
    summary="Create new patient case",
    description="""
Creates a case from a multipart form.

**Form Fields**:
- `patientName` (required, non-empty)
- `age`, `gender`, `entryDate`, `history`, `progressionNotes` (optional)
- `investigation`: up to 10 files, 20 MiB each

**Behavior**:
- Files are stored before the case record is written
- If the record write fails, the stored files are deleted again
- Nothing is stored when validation fails

**Authorization**: Session token cookie or Bearer header
    """,
    responses={
        **ERROR_RESPONSES,
        400: {"model": ErrorResponse, "description": "Empty patientName or too many files"},
        413: {"model": ErrorResponse, "description": "A file exceeds the size limit"},
    },
)
async def create_case(
    request: Request,
    user: str = Depends(get_current_user),
    case_manager: CaseManager = Depends(get_case_manager),
):
    """Create a new case."""
    form, uploads = await _read_multipart(request, case_manager)
    case_request = _parse(CaseCreateRequest, _text_fields(form))
    return await case_manager.create_case(user, case_request, uploads)


@router.patch(
    "/{case_id}",
    response_model=Case,
    summary="Partially update a case",
    description="""
Updates text fields and attachments of a case from a multipart form.

**Form Fields**:
- Any of `patientName`, `age`, `gender`, `entryDate`, `history`,
  `progressionNotes`. Only fields present in the form are changed; an
  empty value clears the field (`patientName` cannot be cleared).
- `deletedFiles`: storage keys of attachments to remove (repeatable).
  Unknown keys are ignored.
- `investigation`: new files to append

**Behavior**:
- New files are stored before the case record is written
- Removed files are deleted only after the record write succeeds

**Authorization**: Session token cookie or Bearer header
    """,
    responses={
        **ERROR_RESPONSES,
        400: {"model": ErrorResponse, "description": "Invalid field values or too many files"},
        404: {"model": ErrorResponse, "description": "Case not found"},
        413: {"model": ErrorResponse, "description": "A file exceeds the size limit"},
    },
)
async def update_case(
    case_id: str,
    request: Request,
    user: str = Depends(get_current_user),
    case_manager: CaseManager = Depends(get_case_manager),
):
    """Update a case."""
    form, uploads = await _read_multipart(request, case_manager)
    patch = _parse(CaseUpdateRequest, _text_fields(form))
    remove_keys = [k for k in form.getlist(DELETED_FILES_FIELD) if isinstance(k, str) and k]

    return await case_manager.update_case(case_id, patch, remove_keys, uploads)


@router.delete(
    "/{case_id}",
    response_model=DeleteCaseResponse,
    summary="Delete case permanently",
    description="""
Deletes a case and every attachment file it owns.

**WARNING**: This operation is irreversible.

**Behavior**:
- Attachment files are deleted first; a file that is already missing or
  cannot be deleted is reported in `warnings` and does not block deletion
- Deleting the same case twice returns 404 the second time

**Authorization**: Session token cookie or Bearer header
    """,
    responses={**ERROR_RESPONSES, 404: {"model": ErrorResponse, "description": "Case not found"}},
)
async def delete_case(
    case_id: str,
    user: str = Depends(get_current_user),
    case_manager: CaseManager = Depends(get_case_manager),
):
    """Delete a case."""
    result = await case_manager.delete_case(case_id)
    return DeleteCaseResponse(warnings=result.warnings)
