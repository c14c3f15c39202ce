"""Case persistence layer - Repository Pattern implementation."""

from patient_case_service.infrastructure.persistence.case_repository import (
    CaseRepository,
    InMemoryCaseRepository,
    RepositoryException,
    SQLCaseRepository,
)

__all__ = [
    "CaseRepository",
    "InMemoryCaseRepository",
    "RepositoryException",
    "SQLCaseRepository",
]
