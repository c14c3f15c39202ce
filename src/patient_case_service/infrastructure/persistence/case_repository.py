"""Case Repository for patient case persistence.

This module provides the repository pattern for Case domain model persistence.
A case is always read and written as a whole record, attachments included;
there is no partial-field update primitive.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Dict, List, Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from patient_case_service.infrastructure.database.models import CaseDB
from patient_case_service.models import Attachment, Case


# ============================================================
# Repository Exception
# ============================================================

class RepositoryException(Exception):
    """Base exception for repository errors."""
    pass


# ============================================================
# Repository Interface
# ============================================================

class CaseRepository(ABC):
    """
    Abstract repository interface for Case persistence.

    Implementations:
    - SQLCaseRepository: SQLite/PostgreSQL via SQLAlchemy
    - InMemoryCaseRepository: Testing and development
    """

    @abstractmethod
    async def find(self) -> List[Case]:
        """
        List all cases, newest first.

        Returns:
            Cases ordered by created_at descending

        Raises:
            RepositoryException: If the query fails
        """
        pass

    @abstractmethod
    async def find_by_id(self, case_id: str) -> Optional[Case]:
        """
        Retrieve case by ID.

        Args:
            case_id: Case identifier

        Returns:
            Case if found, None otherwise

        Raises:
            RepositoryException: If retrieval fails
        """
        pass

    @abstractmethod
    async def create(self, case: Case) -> Case:
        """
        Insert a new case.

        Raises:
            RepositoryException: If a case with the same id exists or the
                insert fails
        """
        pass

    @abstractmethod
    async def save(self, case: Case) -> Case:
        """
        Overwrite an existing case record keyed by its id.

        Returns:
            Saved case with a refreshed updated_at

        Raises:
            RepositoryException: If the case does not exist or the write fails
        """
        pass

    @abstractmethod
    async def delete_by_id(self, case_id: str) -> bool:
        """
        Delete case by ID.

        Returns:
            True if deleted, False if not found

        Raises:
            RepositoryException: If deletion fails
        """
        pass


# ============================================================
# In-Memory Implementation (for Testing)
# ============================================================

class InMemoryCaseRepository(CaseRepository):
    """
    In-memory case repository for testing and development.

    Data stored in dictionary, not persistent across restarts.
    """

    def __init__(self):
        """Initialize empty in-memory store."""
        self._cases: Dict[str, Case] = {}

    async def find(self) -> List[Case]:
        cases = [c.model_copy(deep=True) for c in self._cases.values()]
        cases.sort(key=lambda c: c.created_at, reverse=True)
        return cases

    async def find_by_id(self, case_id: str) -> Optional[Case]:
        case = self._cases.get(case_id)
        return case.model_copy(deep=True) if case else None

    async def create(self, case: Case) -> Case:
        if case.id in self._cases:
            raise RepositoryException(f"Case {case.id} already exists")

        # Store a deep copy to simulate persistence
        self._cases[case.id] = case.model_copy(deep=True)
        return case

    async def save(self, case: Case) -> Case:
        if case.id not in self._cases:
            raise RepositoryException(f"Case {case.id} does not exist")

        case.updated_at = datetime.now(timezone.utc)
        self._cases[case.id] = case.model_copy(deep=True)
        return case

    async def delete_by_id(self, case_id: str) -> bool:
        if case_id in self._cases:
            del self._cases[case_id]
            return True
        return False

    def clear(self):
        """Clear all cases (testing utility)."""
        self._cases.clear()


# ============================================================
# SQL Implementation (Production)
# ============================================================

class SQLCaseRepository(CaseRepository):
    """
    SQL case repository for production use.

    Uses SQLAlchemy async sessions. Attachments are stored as a JSON column
    on the cases table.
    """

    def __init__(self, db_session: AsyncSession):
        """
        Initialize repository with database session.

        Args:
            db_session: SQLAlchemy async session
        """
        self.db = db_session

    async def find(self) -> List[Case]:
        try:
            result = await self.db.execute(
                select(CaseDB).order_by(CaseDB.created_at.desc())
            )
            rows = result.scalars().all()
        except SQLAlchemyError as e:
            raise RepositoryException(f"Failed to list cases: {e}") from e

        return [self._row_to_case(row) for row in rows]

    async def find_by_id(self, case_id: str) -> Optional[Case]:
        try:
            row = await self.db.get(CaseDB, case_id)
        except SQLAlchemyError as e:
            raise RepositoryException(f"Failed to load case {case_id}: {e}") from e

        return self._row_to_case(row) if row else None

    async def create(self, case: Case) -> Case:
        row = CaseDB(id=case.id)
        self._apply_case(row, case)
        row.created_at = case.created_at

        try:
            self.db.add(row)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise RepositoryException(f"Failed to create case {case.id}: {e}") from e

        return case

    async def save(self, case: Case) -> Case:
        case.updated_at = datetime.now(timezone.utc)

        try:
            row = await self.db.get(CaseDB, case.id)
            if row is None:
                raise RepositoryException(f"Case {case.id} does not exist")

            self._apply_case(row, case)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise RepositoryException(f"Failed to save case {case.id}: {e}") from e

        return case

    async def delete_by_id(self, case_id: str) -> bool:
        try:
            result = await self.db.execute(delete(CaseDB).where(CaseDB.id == case_id))
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise RepositoryException(f"Failed to delete case {case_id}: {e}") from e

        return result.rowcount > 0

    @staticmethod
    def _apply_case(row: CaseDB, case: Case) -> None:
        """Copy every mutable field of the domain case onto the row."""
        row.patient_name = case.patient_name
        row.age = case.age
        row.gender = case.gender
        row.entry_date = case.entry_date
        row.history = case.history
        row.progression_notes = case.progression_notes
        row.attachments = [a.model_dump(mode="json") for a in case.attachments]
        row.created_by = case.created_by
        row.updated_at = case.updated_at

    @staticmethod
    def _row_to_case(row: CaseDB) -> Case:
        """Convert database row to Case domain model."""
        return Case(
            id=row.id,
            patient_name=row.patient_name,
            age=row.age,
            gender=row.gender,
            entry_date=row.entry_date,
            history=row.history,
            progression_notes=row.progression_notes,
            attachments=[Attachment(**a) for a in (row.attachments or [])],
            created_by=row.created_by,
            created_at=_as_utc(row.created_at),
            updated_at=_as_utc(row.updated_at),
        )


def _as_utc(value: datetime) -> datetime:
    # SQLite drops tzinfo on DateTime(timezone=True) columns
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
