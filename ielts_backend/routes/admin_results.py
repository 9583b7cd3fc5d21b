"""
ielts_backend/routes/admin_results.py
Admin results and regrade routes
"""

import logging
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ielts_backend.config.feature_flags import feature_flags
from ielts_backend.database import get_db
from ielts_backend.errors import ErrorCode, ForbiddenError
from ielts_backend.schemas.grading_schemas import SubmitExamResponse
from ielts_backend.services.submission_service import get_session_results, regrade_session

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin/sessions", tags=["admin-results"])


def check_regrade_enabled():
    """Check if explicit regrade is enabled."""
    if not feature_flags.FEATURE_ADMIN_REGRADE:
        raise ForbiddenError("Session regrade is disabled", code=ErrorCode.FEATURE_DISABLED)


@router.get("/{session_id}/results")
async def admin_session_results(
    session_id: int,
    db: AsyncSession = Depends(get_db)
):
    """Full results including correct answers; in-progress sessions are reported too."""
    result = await get_session_results(
        session_id,
        db,
        include_correct_answers=True,
        allow_in_progress=True
    )
    return {"success": True, "data": result}


@router.post("/{session_id}/regrade", response_model=SubmitExamResponse)
async def admin_regrade_session(
    session_id: int,
    db: AsyncSession = Depends(get_db)
):
    """Recompute verdicts and totals of a submitted session from stored answers."""
    check_regrade_enabled()
    logger.info(f"Admin regrade requested for session {session_id}")
    result = await regrade_session(session_id, db)
    return {"success": True, "data": result}
