"""
ielts_backend/orm/base.py
Declarative base for exam, session and answer tables

Primary keys are integers in the database; the grading engine only ever
sees them as strings (QuestionRecord.id == str(ExamQuestion.id)).
"""
from datetime import datetime
from typing import Optional

from sqlalchemy import Column, Integer, DateTime
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def iso_timestamp(value: Optional[datetime]) -> Optional[str]:
    """Timestamp as ISO-8601 for to_dict() payloads."""
    return value.isoformat() if value else None


class BaseModel(Base):
    """Shared integer id plus created/updated timestamps."""
    __abstract__ = True

    id = Column(
        Integer,
        primary_key=True,
        autoincrement=True,
        index=True
    )

    created_at = Column(
        DateTime,
        default=datetime.utcnow,
        nullable=False,
        comment="Row creation time (UTC)"
    )

    updated_at = Column(
        DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False,
        comment="Last write time (UTC); bumped by autosave and regrade"
    )
