"""
ielts_backend/orm/exam_answer.py
Stored answer of one question within an exam session

Unique on (session_id, question_id): every write is an upsert, so a
retried submission leaves exactly one row per question. `student_answer`
holds the raw JSON the student sent, except for simple_table where it
holds the graded table structure.
"""

from sqlalchemy import Column, Integer, Boolean, Float, DateTime, ForeignKey, Index, JSON
from sqlalchemy.orm import relationship
from datetime import datetime
from ielts_backend.orm.base import BaseModel, iso_timestamp


class ExamSessionAnswer(BaseModel):
    """Answer row; is_correct stays NULL for human-graded types."""

    __tablename__ = "exam_session_answers"

    session_id = Column(
        Integer,
        ForeignKey("exam_sessions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="Parent exam session"
    )

    question_id = Column(
        Integer,
        ForeignKey("exam_questions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="Question being answered"
    )

    student_answer = Column(
        JSON,
        nullable=True,
        comment="Raw answer JSON"
    )

    is_correct = Column(Boolean, nullable=True)

    points_earned = Column(
        Float,
        nullable=False,
        default=0.0
    )

    answered_at = Column(
        DateTime,
        nullable=True,
        default=datetime.utcnow,
        comment="Last time the answer was written"
    )

    session = relationship("ExamSession", back_populates="answers")

    __table_args__ = (
        Index("ix_exam_session_answer_session_question", "session_id", "question_id", unique=True),
    )

    def __repr__(self):
        return f"<ExamSessionAnswer(session={self.session_id}, question={self.question_id})>"

    def to_dict(self) -> dict:
        return {
            "questionId": self.question_id,
            "studentAnswer": self.student_answer,
            "isCorrect": self.is_correct,
            "pointsEarned": self.points_earned,
            "answeredAt": iso_timestamp(self.answered_at),
        }
