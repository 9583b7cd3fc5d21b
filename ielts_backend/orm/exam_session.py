"""
ielts_backend/orm/exam_session.py
Exam session with its persisted score

Key Design:
- One session per student attempt at an exam
- Raw answers are autosaved until submission
- Scores and bands are written once at submission and only change through
  an explicit admin regrade
"""

from sqlalchemy import Column, Integer, String, DateTime, Boolean, Float, ForeignKey, Index, Enum as SQLEnum
from sqlalchemy.orm import relationship
from datetime import datetime
from enum import Enum
from ielts_backend.orm.base import BaseModel, iso_timestamp


class ExamSessionStatus(str, Enum):
    IN_PROGRESS = "in_progress"
    SUBMITTED = "submitted"
    EXPIRED = "expired"


class ExamSession(BaseModel):
    """
    Tracks a single exam attempt.

    Lifecycle:
    1. Session created by the ticket flow (status=in_progress)
    2. Answers autosaved as ExamSessionAnswer rows
    3. Submit grades every answer and stores totals (status=submitted)

    Expired sessions may still be submitted late.
    """

    __tablename__ = "exam_sessions"

    exam_id = Column(
        Integer,
        ForeignKey("exams.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="Exam being taken"
    )

    student_id = Column(
        String(64),
        nullable=True,
        index=True,
        comment="External student identifier"
    )

    status = Column(
        SQLEnum(ExamSessionStatus),
        nullable=False,
        default=ExamSessionStatus.IN_PROGRESS,
        index=True,
        comment="Current session status"
    )

    started_at = Column(
        DateTime,
        nullable=False,
        default=datetime.utcnow,
        comment="When the exam was started"
    )

    expires_at = Column(
        DateTime,
        nullable=True,
        comment="Deadline; submission after it is still accepted"
    )

    submitted_at = Column(
        DateTime,
        nullable=True,
        comment="When the exam was submitted (NULL if in progress)"
    )

    total_score = Column(Float, nullable=True)
    max_possible_score = Column(Float, nullable=True)
    percentage_score = Column(Float, nullable=True)
    is_passed = Column(Boolean, nullable=True)

    listening_band = Column(Float, nullable=True)
    reading_band = Column(Float, nullable=True)
    writing_band = Column(Float, nullable=True)

    time_spent_seconds = Column(
        Integer,
        nullable=True,
        comment="Seconds between start and submission"
    )

    exam = relationship("Exam", lazy="joined")

    answers = relationship(
        "ExamSessionAnswer",
        back_populates="session",
        cascade="all, delete-orphan",
        lazy="selectin"
    )

    __table_args__ = (
        Index("ix_exam_session_exam_status", "exam_id", "status"),
    )

    def __repr__(self):
        return f"<ExamSession(id={self.id}, exam_id={self.exam_id}, status={self.status})>"

    @property
    def is_submitted(self) -> bool:
        return self.status == ExamSessionStatus.SUBMITTED

    def is_expired(self) -> bool:
        return self.expires_at is not None and datetime.utcnow() > self.expires_at

    def to_dict(self) -> dict:
        """Convert to dictionary for API responses."""
        return {
            "id": self.id,
            "examId": self.exam_id,
            "studentId": self.student_id,
            "status": self.status.value if self.status else None,
            "startedAt": iso_timestamp(self.started_at),
            "submittedAt": iso_timestamp(self.submitted_at),
            "totalScore": self.total_score,
            "maxPossibleScore": self.max_possible_score,
            "percentageScore": self.percentage_score,
            "isPassed": self.is_passed,
            "listeningBand": self.listening_band,
            "readingBand": self.reading_band,
            "writingBand": self.writing_band,
            "timeSpentSeconds": self.time_spent_seconds,
        }
