"""FastAPI dependency providers.

Collaborators are chosen from settings here and handed to ``CaseManager``
explicitly; tests replace them through ``app.dependency_overrides``.
"""

import logging
from datetime import timedelta
from typing import AsyncGenerator, Optional

from fastapi import Depends, Request

from patient_case_service.config import settings
from patient_case_service.core import CaseManager
from patient_case_service.infrastructure.auth import (
    Authenticator,
    FixedCredentialAuthenticator,
)
from patient_case_service.infrastructure.database import db_client
from patient_case_service.infrastructure.persistence import (
    CaseRepository,
    InMemoryCaseRepository,
    SQLCaseRepository,
)
from patient_case_service.infrastructure.storage import (
    BlobStore,
    InMemoryBlobStore,
    LocalBlobStore,
)

logger = logging.getLogger(__name__)

TOKEN_COOKIE = "token"

# Process-wide singletons (persist across requests)
_inmemory_repository: Optional[InMemoryCaseRepository] = None
_blob_store: Optional[BlobStore] = None
_authenticator: Optional[Authenticator] = None


async def get_case_repository() -> AsyncGenerator[CaseRepository, None]:
    """Dependency to get case repository.

    Returns the implementation selected by ``settings.case_storage_type``:
    - inmemory (default): InMemoryCaseRepository singleton for dev/testing
    - sql: SQLCaseRepository bound to a request-scoped session
    """
    if settings.case_storage_type.lower() == "sql":
        async for session in db_client.get_session():
            yield SQLCaseRepository(session)
    else:
        global _inmemory_repository
        if _inmemory_repository is None:
            _inmemory_repository = InMemoryCaseRepository()
        yield _inmemory_repository


def get_blob_store() -> BlobStore:
    """Dependency to get the blob store selected by ``settings.blob_storage_type``."""
    global _blob_store
    if _blob_store is None:
        if settings.blob_storage_type.lower() == "inmemory":
            _blob_store = InMemoryBlobStore()
        else:
            _blob_store = LocalBlobStore(settings.upload_dir)
        logger.info(f"Blob store initialized: {type(_blob_store).__name__}")
    return _blob_store


async def get_case_manager(
    repository: CaseRepository = Depends(get_case_repository),
    blob_store: BlobStore = Depends(get_blob_store),
) -> CaseManager:
    """Dependency to get case manager with its collaborators."""
    return CaseManager(repository, blob_store)


def get_authenticator() -> Authenticator:
    """Dependency to get the session token authenticator."""
    global _authenticator
    if _authenticator is None:
        _authenticator = FixedCredentialAuthenticator(
            email=settings.fixed_email,
            password=settings.fixed_password,
            secret=settings.jwt_secret,
            algorithm=settings.jwt_algorithm,
            ttl=timedelta(minutes=settings.token_ttl_minutes),
        )
    return _authenticator


def read_token(request: Request) -> Optional[str]:
    """Read the session token from the cookie or a Bearer header."""
    token = request.cookies.get(TOKEN_COOKIE)
    if token:
        return token

    authorization = request.headers.get("Authorization", "")
    scheme, _, credentials = authorization.partition(" ")
    if scheme.lower() == "bearer" and credentials:
        return credentials.strip()
    return None


async def get_current_user(
    request: Request,
    authenticator: Authenticator = Depends(get_authenticator),
) -> str:
    """Resolve the caller's identity, rejecting unauthenticated calls.

    Raises:
        UnauthorizedException: Rendered as 401 by the app's error handler
    """
    return authenticator.verify(read_token(request))
