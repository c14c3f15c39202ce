"""Case business logic manager - Repository Pattern.

Blob and record writes are ordered so that a committed case never references
a missing blob:

- create and update store uploaded blobs before writing the case record;
- update deletes removed blobs only after the record write succeeded;
- delete purges blobs before removing the record, tolerating missing blobs.

If the record write of an update fails, the blobs uploaded by that request
are left unreferenced. Their keys are logged at WARNING level so a storage
sweep can reclaim them; this is the only orphan window.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Sequence

from starlette.concurrency import run_in_threadpool

from patient_case_service.config import settings
from patient_case_service.core.exceptions import (
    CaseNotFoundException,
    PersistenceException,
    StorageUnavailableException,
    UploadTooLargeException,
    ValidationException,
)
from patient_case_service.core.reconciler import reconcile
from patient_case_service.infrastructure.persistence import (
    CaseRepository,
    RepositoryException,
)
from patient_case_service.infrastructure.storage import BlobStore, BlobStoreException
from patient_case_service.models import (
    Attachment,
    Case,
    CaseCreateRequest,
    CaseUpdateRequest,
    UploadedFile,
)

logger = logging.getLogger(__name__)


@dataclass
class DeleteResult:
    """Outcome of a case deletion. Blob failures are warnings, not errors."""

    case_id: str
    warnings: List[str] = field(default_factory=list)


class CaseManager:
    """Business logic for case management operations.

    This class implements the service layer using the Repository pattern.
    It coordinates the blob store and the case repository, and delegates
    attachment list changes to the reconciler.
    """

    def __init__(
        self,
        repository: CaseRepository,
        blob_store: BlobStore,
        max_upload_files: Optional[int] = None,
        max_upload_bytes: Optional[int] = None,
    ):
        """Initialize case manager with its collaborators.

        Args:
            repository: CaseRepository implementation (InMemory or SQL)
            blob_store: BlobStore implementation (Local or InMemory)
            max_upload_files: Files allowed per request, defaults to settings
            max_upload_bytes: Bytes allowed per file, defaults to settings
        """
        self.repository = repository
        self.blob_store = blob_store
        self.max_upload_files = (
            max_upload_files if max_upload_files is not None else settings.max_upload_files
        )
        self.max_upload_bytes = (
            max_upload_bytes if max_upload_bytes is not None else settings.max_upload_bytes
        )

    # =========================================================================
    # Case operations
    # =========================================================================

    async def list_cases(self) -> List[Case]:
        """List all cases, newest first."""
        try:
            return await self.repository.find()
        except RepositoryException as e:
            logger.error(f"Failed to list cases: {e}")
            raise StorageUnavailableException("Case storage is unavailable") from e

    async def get_case(self, case_id: str) -> Case:
        """Get a case by ID.

        Raises:
            CaseNotFoundException: If no case has this id
        """
        case = await self._load(case_id)
        if case is None:
            raise CaseNotFoundException(case_id)
        return case

    async def create_case(
        self,
        created_by: str,
        request: CaseCreateRequest,
        uploads: Sequence[UploadedFile] = (),
    ) -> Case:
        """Create a new case with its uploaded files.

        Args:
            created_by: Authenticated identity
            request: Text fields of the case
            uploads: Files to attach, in upload order

        Returns:
            Created case with generated ID

        Raises:
            ValidationException: Empty patient name or upload limits exceeded
            StorageUnavailableException: A file could not be stored
            PersistenceException: The case record could not be written
        """
        patient_name = (request.patient_name or "").strip()
        if not patient_name:
            raise ValidationException("patientName is required")
        self._validate_uploads(uploads)

        attachments = await self._store_uploads(uploads)

        fields = request.model_dump(exclude={"patient_name"})
        case = Case(
            patient_name=patient_name,
            attachments=attachments,
            created_by=created_by,
            created_at=datetime.now(timezone.utc),
            **fields,
        )

        try:
            saved_case = await self.repository.create(case)
        except RepositoryException as e:
            logger.error(f"Failed to create case {case.id}, removing {len(attachments)} stored blob(s): {e}")
            await self._discard_blobs(a.storage_key for a in attachments)
            raise PersistenceException("Failed to save case") from e

        logger.info(f"Created case {saved_case.id} with {len(attachments)} attachment(s) for {created_by}")

        return saved_case

    async def update_case(
        self,
        case_id: str,
        request: CaseUpdateRequest,
        remove_keys: Iterable[str] = (),
        uploads: Sequence[UploadedFile] = (),
    ) -> Case:
        """Partially update a case.

        Args:
            case_id: Case identifier
            request: Text field patch, only fields explicitly set are applied
            remove_keys: Storage keys of attachments to remove
            uploads: New files to append, in upload order

        Returns:
            Updated case

        Raises:
            ValidationException: Bad patch values or upload limits exceeded
            CaseNotFoundException: If no case has this id
            StorageUnavailableException: Case or files could not be read/stored
            PersistenceException: The case record could not be written
        """
        self._validate_uploads(uploads)
        patch = request.model_dump(exclude_unset=True)
        if "patient_name" in patch:
            patch["patient_name"] = (patch["patient_name"] or "").strip()
            if not patch["patient_name"]:
                raise ValidationException("patientName cannot be empty")

        case = await self.get_case(case_id)

        for name, value in patch.items():
            setattr(case, name, value)

        added = await self._store_uploads(uploads)
        try:
            result = reconcile(case.attachments, remove_keys, added)
        except ValidationException:
            # Never touch blobs the committed case still references
            existing = set(case.storage_keys)
            await self._discard_blobs(
                sorted({a.storage_key for a in added} - existing)
            )
            raise
        case.attachments = result.attachments

        try:
            updated_case = await self.repository.save(case)
        except RepositoryException as e:
            if added:
                logger.warning(
                    f"Update of case {case_id} failed after storing blobs; "
                    f"orphaned blobs: {', '.join(a.storage_key for a in added)}"
                )
            raise PersistenceException("Failed to save case") from e

        # Removed blobs go only after the new attachment list is committed
        warnings = await self._discard_blobs(sorted(result.to_delete))
        for warning in warnings:
            logger.warning(f"Case {case_id}: {warning}")

        logger.info(
            f"Updated case {case_id}: +{len(added)} / -{len(result.to_delete)} attachment(s)"
        )

        return updated_case

    async def delete_case(self, case_id: str) -> DeleteResult:
        """Delete a case and all of its blobs.

        Raises:
            CaseNotFoundException: If no case has this id
            PersistenceException: The case record could not be removed
        """
        case = await self.get_case(case_id)

        warnings = await self._discard_blobs(case.storage_keys)
        for warning in warnings:
            logger.warning(f"Case {case_id}: {warning}")

        try:
            deleted = await self.repository.delete_by_id(case_id)
        except RepositoryException as e:
            raise PersistenceException(f"Failed to delete case {case_id}") from e

        if not deleted:
            raise CaseNotFoundException(case_id)

        logger.info(f"Deleted case {case_id} and {len(case.attachments)} attachment(s)")

        return DeleteResult(case_id=case_id, warnings=warnings)

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _load(self, case_id: str) -> Optional[Case]:
        try:
            return await self.repository.find_by_id(case_id)
        except RepositoryException as e:
            logger.error(f"Failed to load case {case_id}: {e}")
            raise StorageUnavailableException("Case storage is unavailable") from e

    def check_upload_limits(self, count: int, sizes: Iterable[Optional[int]] = ()) -> None:
        """Reject an upload batch by count and declared sizes.

        Unknown sizes (None) are skipped; they are checked again once read.

        Raises:
            ValidationException: More files than allowed
            UploadTooLargeException: A file exceeds the per-file limit
        """
        if count > self.max_upload_files:
            raise ValidationException(
                f"Too many files: {count} (max {self.max_upload_files})"
            )
        for size in sizes:
            if size is not None and size > self.max_upload_bytes:
                raise UploadTooLargeException(
                    f"File exceeds {self.max_upload_bytes} bytes"
                )

    def _validate_uploads(self, uploads: Sequence[UploadedFile]) -> None:
        self.check_upload_limits(len(uploads))
        for upload in uploads:
            if upload.size > self.max_upload_bytes:
                raise UploadTooLargeException(
                    f"File {upload.filename} exceeds {self.max_upload_bytes} bytes"
                )

    async def _store_uploads(self, uploads: Sequence[UploadedFile]) -> List[Attachment]:
        """Store every upload or none of them."""
        attachments: List[Attachment] = []
        for upload in uploads:
            try:
                # Blob I/O is blocking; keep it off the event loop
                storage_key = await run_in_threadpool(
                    self.blob_store.put, upload.data, upload.filename
                )
            except BlobStoreException as e:
                logger.error(f"Failed to store {upload.filename}, rolling back {len(attachments)} blob(s): {e}")
                await self._discard_blobs(a.storage_key for a in attachments)
                raise StorageUnavailableException(f"Failed to store file {upload.filename}") from e

            attachments.append(
                Attachment(
                    storage_key=storage_key,
                    original_name=upload.filename,
                    mime_type=upload.content_type or "application/octet-stream",
                    size_bytes=upload.size,
                )
            )
        return attachments

    async def _discard_blobs(self, storage_keys: Iterable[str]) -> List[str]:
        """Delete blobs independently, returning one warning per failure."""
        warnings = []
        for storage_key in storage_keys:
            try:
                if not await run_in_threadpool(self.blob_store.delete, storage_key):
                    warnings.append(f"blob {storage_key} was already missing")
            except BlobStoreException as e:
                warnings.append(f"failed to delete blob {storage_key}: {e}")
        return warnings
