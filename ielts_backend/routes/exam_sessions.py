"""
ielts_backend/routes/exam_sessions.py
Student exam session API routes

Provides endpoints for:
- Autosaving an answer
- Submitting a session for grading
- Reading the graded results
"""

import os
import logging
from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession
from slowapi import Limiter
from slowapi.util import get_remote_address

from ielts_backend.database import get_db
from ielts_backend.schemas.grading_schemas import (
    SaveAnswerRequest,
    SubmitExamRequest,
    SubmitExamResponse,
)
from ielts_backend.services.submission_service import (
    SubmissionItem,
    get_session_results,
    save_answer,
    submit_exam_session,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/exams/sessions", tags=["exam-sessions"])

limiter = Limiter(key_func=get_remote_address)

SUBMIT_RATE_LIMIT = os.getenv("SUBMIT_RATE_LIMIT", "30/minute")


@router.put("/{session_id}/answers")
async def autosave_answer(
    session_id: int,
    body: SaveAnswerRequest,
    db: AsyncSession = Depends(get_db)
):
    """Store a raw answer while the exam is in progress."""
    answer = await save_answer(session_id, body.question_id, body.student_answer, db)
    return {"success": True, "data": answer}


@router.post("/{session_id}/submit", response_model=SubmitExamResponse)
@limiter.limit(SUBMIT_RATE_LIMIT)
async def submit_session(
    request: Request,  # Required by slowapi
    session_id: int,
    body: SubmitExamRequest,
    db: AsyncSession = Depends(get_db)
):
    """
    Grade and finalize a session.

    - Unknown question ids are skipped
    - Re-submitting a submitted session returns 400
    - Expired sessions are still accepted
    """
    items = [
        SubmissionItem(
            question_id=item.question_id,
            student_answer=item.student_answer,
            is_correct=item.is_correct,
            points_earned=item.points_earned,
        )
        for item in body.answers
    ]
    result = await submit_exam_session(session_id, items, db)
    return {"success": True, "data": result}


@router.get("/{session_id}/results")
async def session_results(
    session_id: int,
    db: AsyncSession = Depends(get_db)
):
    """Graded results of a submitted session, without correct answers."""
    result = await get_session_results(session_id, db, include_correct_answers=False)
    return {"success": True, "data": result}
