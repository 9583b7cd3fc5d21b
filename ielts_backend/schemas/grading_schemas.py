"""
Exam Submission & Grading API Schemas (Pydantic)

Clients send camelCase keys; snake_case is accepted too.
"""
from pydantic import BaseModel, Field, field_validator
from typing import Optional, List, Dict, Any, Union


class SubmittedAnswerItem(BaseModel):
    """One answer in a submission. studentAnswer may be any JSON value."""
    question_id: Union[int, str] = Field(..., alias="questionId")
    student_answer: Any = Field(default=None, alias="studentAnswer")
    is_correct: Optional[bool] = Field(default=None, alias="isCorrect")
    points_earned: Optional[float] = Field(default=None, alias="pointsEarned")

    @field_validator('question_id')
    def stringify_question_id(cls, v):
        return str(v)

    class Config:
        populate_by_name = True


class SubmitExamRequest(BaseModel):
    """Request schema for submitting a session."""
    answers: List[SubmittedAnswerItem] = Field(default_factory=list)

    class Config:
        json_schema_extra = {
            "example": {
                "answers": [
                    {"questionId": 12, "studentAnswer": ["red", "blue"]},
                    {"questionId": 13, "studentAnswer": "A|C"},
                    {"questionId": 14, "studentAnswer": {"cells": {"1_1": "7"}}},
                ]
            }
        }


class SaveAnswerRequest(BaseModel):
    """Autosave of a single raw answer."""
    question_id: int = Field(..., alias="questionId")
    student_answer: Any = Field(default=None, alias="studentAnswer")

    class Config:
        populate_by_name = True


class QuestionVerdict(BaseModel):
    question_id: str = Field(..., alias="questionId")
    is_correct: Optional[bool] = Field(default=None, alias="isCorrect")
    points_earned: float = Field(..., alias="pointsEarned")
    max_points: float = Field(..., alias="maxPoints")

    class Config:
        populate_by_name = True


class SessionScoreResponse(BaseModel):
    total_score: float = Field(..., alias="totalScore")
    max_possible_score: float = Field(..., alias="maxPossibleScore")
    percentage_score: float = Field(..., alias="percentageScore")
    listening_band: Optional[float] = Field(default=None, alias="listeningBand")
    reading_band: Optional[float] = Field(default=None, alias="readingBand")
    writing_band: Optional[float] = Field(default=None, alias="writingBand")

    class Config:
        populate_by_name = True


class SubmitExamData(BaseModel):
    session: Dict[str, Any]
    score: SessionScoreResponse
    answers: List[QuestionVerdict]
    skipped_question_ids: List[str] = Field(default_factory=list, alias="skippedQuestionIds")

    class Config:
        populate_by_name = True


class SubmitExamResponse(BaseModel):
    """Envelope returned by submit and regrade."""
    success: bool = True
    data: SubmitExamData
