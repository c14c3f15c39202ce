"""SQLAlchemy database models."""

from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, Integer, String, Text
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class CaseDB(Base):
    """SQLAlchemy model for cases table.

    Attachment metadata is stored inline as a JSON array, so a case and its
    attachment list are always written together.
    """

    __tablename__ = "cases"

    id = Column(String(50), primary_key=True, index=True)

    patient_name = Column(String(200), nullable=False)
    age = Column(Integer, nullable=True)
    gender = Column(String(50), nullable=True)
    entry_date = Column(String(50), nullable=True)
    history = Column(Text, nullable=True)
    progression_notes = Column(Text, nullable=True)

    attachments = Column(JSON, nullable=False, default=list)

    created_by = Column(String(200), nullable=False)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        index=True,
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
