"""
ielts_backend/orm/exam.py
Exam, section and question definitions

Authored on the admin side and read-only while grading. A question's
`correct_answer` keeps its stored string encoding and `metadata` its
per-type extras (heading banks, table grids, group pointers); both are
resolved by the grading engine, not here.
"""

from sqlalchemy import Column, Integer, String, Text, Float, ForeignKey, Index, JSON
from sqlalchemy.orm import relationship

from ielts_backend.orm.base import BaseModel
from ielts_backend.services.question_record import QuestionRecord, coerce_points, parse_metadata


class Exam(BaseModel):
    """An IELTS test paper made of ordered sections."""

    __tablename__ = "exams"

    title = Column(
        String(255),
        nullable=False,
        comment="Exam title"
    )

    exam_type = Column(
        String(50),
        nullable=False,
        default="academic",
        comment="academic or general_training; selects the reading band table"
    )

    duration_minutes = Column(
        Integer,
        nullable=True,
        comment="Allowed duration in minutes"
    )

    passing_score = Column(
        Float,
        nullable=False,
        default=0.0,
        comment="Minimum percentage to pass"
    )

    sections = relationship(
        "ExamSection",
        back_populates="exam",
        cascade="all, delete-orphan",
        order_by="ExamSection.section_order"
    )

    def __repr__(self):
        return f"<Exam(id={self.id}, type={self.exam_type})>"


class ExamSection(BaseModel):
    """Listening, reading, writing or speaking part of an exam."""

    __tablename__ = "exam_sections"

    exam_id = Column(
        Integer,
        ForeignKey("exams.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="Parent exam"
    )

    section_type = Column(
        String(30),
        nullable=False,
        comment="listening, reading, writing or speaking"
    )

    section_order = Column(
        Integer,
        nullable=False,
        default=0,
        comment="Display order within the exam"
    )

    title = Column(
        String(255),
        nullable=True
    )

    exam = relationship("Exam", back_populates="sections")

    questions = relationship(
        "ExamQuestion",
        back_populates="section",
        cascade="all, delete-orphan",
        order_by="ExamQuestion.question_number"
    )


class ExamQuestion(BaseModel):
    """A single gradable (or container) question."""

    __tablename__ = "exam_questions"

    section_id = Column(
        Integer,
        ForeignKey("exam_sections.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="Parent section"
    )

    question_number = Column(
        Integer,
        nullable=True,
        comment="Displayed question number"
    )

    question_type = Column(
        String(50),
        nullable=False,
        comment="Question kind, e.g. fill_blank, simple_table"
    )

    question_text = Column(
        Text,
        nullable=True
    )

    points = Column(
        Float,
        nullable=False,
        default=1.0,
        comment="Point weight; ignored for simple_table and containers"
    )

    correct_answer = Column(
        Text,
        nullable=True,
        comment="Stored answer encoding: plain, '|' variants, ';' blanks or JSON array"
    )

    question_metadata = Column(
        "metadata",
        JSON,
        nullable=True,
        comment="Per-type extras"
    )

    section = relationship("ExamSection", back_populates="questions")

    __table_args__ = (
        Index("ix_exam_question_section_number", "section_id", "question_number"),
    )

    def __repr__(self):
        return f"<ExamQuestion(id={self.id}, type={self.question_type}, number={self.question_number})>"

    def to_record(self, section_type: str = None) -> QuestionRecord:
        """Immutable grading view of this question; section type is loaded by the caller."""
        return QuestionRecord(
            id=str(self.id),
            type=self.question_type,
            points=coerce_points(self.points),
            correct_answer=self.correct_answer,
            metadata=parse_metadata(self.question_metadata),
            section_type=section_type,
            question_number=self.question_number,
        )

    def to_dict(self, include_answer: bool = False) -> dict:
        data = {
            "id": self.id,
            "sectionId": self.section_id,
            "questionNumber": self.question_number,
            "questionType": self.question_type,
            "questionText": self.question_text,
            "points": self.points,
        }
        if include_answer:
            data["correctAnswer"] = self.correct_answer
        return data
