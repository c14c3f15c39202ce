"""Shared fixtures: in-memory collaborators and failure-injecting fakes."""

from datetime import timedelta

import pytest

from patient_case_service.core import CaseManager
from patient_case_service.infrastructure.auth import FixedCredentialAuthenticator
from patient_case_service.infrastructure.persistence import (
    InMemoryCaseRepository,
    RepositoryException,
)
from patient_case_service.infrastructure.storage import BlobStoreException, InMemoryBlobStore
from patient_case_service.models import UploadedFile

TEST_EMAIL = "doctor@example.com"
TEST_PASSWORD = "MyStrongPass123"
TEST_SECRET = "test-secret"


def make_upload(name: str = "scan.pdf", data: bytes = b"%PDF-1.4 test", content_type: str = "application/pdf") -> UploadedFile:
    return UploadedFile(filename=name, content_type=content_type, data=data)


class FailingCaseRepository(InMemoryCaseRepository):
    """In-memory repository whose writes can be made to fail."""

    def __init__(self):
        super().__init__()
        self.fail_create = False
        self.fail_save = False
        self.fail_reads = False

    async def find(self):
        if self.fail_reads:
            raise RepositoryException("database unreachable")
        return await super().find()

    async def find_by_id(self, case_id):
        if self.fail_reads:
            raise RepositoryException("database unreachable")
        return await super().find_by_id(case_id)

    async def create(self, case):
        if self.fail_create:
            raise RepositoryException("insert failed")
        return await super().create(case)

    async def save(self, case):
        if self.fail_save:
            raise RepositoryException("update failed")
        return await super().save(case)


class FlakyBlobStore(InMemoryBlobStore):
    """In-memory blob store that fails selected puts or deletes.

    ``forced_keys`` are handed out by ``put`` in order before generated keys,
    to simulate key collisions.
    """

    def __init__(self):
        super().__init__()
        self.fail_put_after = None
        self.fail_delete_keys = set()
        self.forced_keys = []
        self.puts = 0

    def put(self, data, original_name):
        if self.fail_put_after is not None and self.puts >= self.fail_put_after:
            raise BlobStoreException("disk full")
        self.puts += 1
        if self.forced_keys:
            storage_key = self.forced_keys.pop(0)
            self._blobs[storage_key] = bytes(data)
            return storage_key
        return super().put(data, original_name)

    def delete(self, storage_key):
        if storage_key in self.fail_delete_keys:
            raise BlobStoreException("permission denied")
        return super().delete(storage_key)


@pytest.fixture
def repository():
    return FailingCaseRepository()


@pytest.fixture
def blob_store():
    return FlakyBlobStore()


@pytest.fixture
def case_manager(repository, blob_store):
    return CaseManager(repository, blob_store, max_upload_files=10, max_upload_bytes=1024)


@pytest.fixture
def authenticator():
    return FixedCredentialAuthenticator(
        email=TEST_EMAIL,
        password=TEST_PASSWORD,
        secret=TEST_SECRET,
        ttl=timedelta(minutes=5),
    )
