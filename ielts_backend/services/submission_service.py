"""
ielts_backend/services/submission_service.py
Exam submission, autosave, regrade and results

SYSTEM PURPOSE:
Turn a session's submitted answers into persisted verdicts and session
scores. Grading itself is pure (grade_submission); this module owns the
single batch fetch before it and the single batch write after it.

FLOW:
1. Load session + exam questions (one query)
2. Grade every submitted answer independently
3. Propagate group anchor verdicts to members
4. Aggregate totals and bands
5. Upsert answer rows keyed by (session_id, question_id), update session

RULES:
- Unknown question ids are skipped, never an error
- A submitted session cannot be submitted or autosaved again
- Late submission of an expired session is accepted
- Regrade is an explicit admin action only
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ielts_backend.config.feature_flags import feature_flags
from ielts_backend.errors import (
    ErrorCode,
    InvalidStateError,
    NotFoundError,
    already_submitted,
    session_not_found,
)
from ielts_backend.orm.exam import ExamQuestion, ExamSection
from ielts_backend.orm.exam_answer import ExamSessionAnswer
from ielts_backend.orm.exam_session import ExamSession, ExamSessionStatus
from ielts_backend.services.answer_grader import GradedRow, grade_answer
from ielts_backend.services.group_resolver import resolve_grouped_questions
from ielts_backend.services.question_record import QuestionRecord, QuestionType
from ielts_backend.services.result_metrics import summarize_results
from ielts_backend.services.score_aggregator import SessionScore, aggregate_session_score
from ielts_backend.services.simple_table import ensure_simple_table_normalized, strip_correct_answers

logger = logging.getLogger(__name__)


@dataclass
class SubmissionItem:
    """One submitted answer as received from the client."""
    question_id: str
    student_answer: Any = None
    is_correct: Optional[bool] = None
    points_earned: Optional[float] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SubmissionItem":
        return cls(
            question_id=str(data.get("questionId", data.get("question_id"))),
            student_answer=data.get("studentAnswer", data.get("student_answer")),
            is_correct=data.get("isCorrect", data.get("is_correct")),
            points_earned=data.get("pointsEarned", data.get("points_earned")),
        )


@dataclass
class GradedSubmission:
    rows: List[GradedRow]
    score: SessionScore
    skipped_question_ids: List[str] = field(default_factory=list)


# =============================================================================
# Pure grading
# =============================================================================

def grade_submission(
    questions: Dict[str, QuestionRecord],
    items: Iterable[SubmissionItem],
    exam_type: Optional[str] = None,
) -> GradedSubmission:
    """
    Grade a whole submission without touching the database.

    Args:
        questions: every question of the exam, keyed by str(id)
        items: submitted answers; a later item for the same question wins
        exam_type: selects the reading band table

    Returns:
        GradedSubmission with rows in submission order, group members
        appended after the rows the student sent
    """
    graded: Dict[str, GradedRow] = {}
    skipped: List[str] = []

    for item in items:
        question_id = str(item.question_id)
        question = questions.get(question_id)
        if question is None:
            skipped.append(question_id)
            logger.warning(f"Skipping answer for unknown question {question_id}")
            continue
        graded[question_id] = GradedRow(
            question=question,
            student_answer=item.student_answer,
            graded=grade_answer(
                question,
                item.student_answer,
                fallback_is_correct=item.is_correct,
                manual_points=item.points_earned,
            ),
        )

    rows = list(resolve_grouped_questions(graded, questions).values())
    return GradedSubmission(
        rows=rows,
        score=aggregate_session_score(rows, exam_type),
        skipped_question_ids=skipped,
    )


# =============================================================================
# Persistence helpers
# =============================================================================

async def _load_session(session_id: int, db: AsyncSession) -> ExamSession:
    result = await db.execute(select(ExamSession).where(ExamSession.id == session_id))
    session = result.unique().scalar_one_or_none()
    if session is None:
        raise session_not_found(session_id)
    return session


async def _load_questions(exam_id: int, db: AsyncSession) -> Dict[str, QuestionRecord]:
    """All questions of an exam in display order, as grading records."""
    stmt = (
        select(ExamQuestion, ExamSection.section_type)
        .join(ExamSection, ExamQuestion.section_id == ExamSection.id)
        .where(ExamSection.exam_id == exam_id)
        .order_by(ExamSection.section_order, ExamQuestion.question_number, ExamQuestion.id)
    )
    result = await db.execute(stmt)
    return {
        str(question.id): question.to_record(section_type)
        for question, section_type in result.all()
    }


async def _existing_answers(session_id: int, db: AsyncSession) -> Dict[str, ExamSessionAnswer]:
    result = await db.execute(
        select(ExamSessionAnswer).where(ExamSessionAnswer.session_id == session_id)
    )
    return {str(answer.question_id): answer for answer in result.scalars().all()}


async def _upsert_graded_rows(session_id: int, rows: List[GradedRow], db: AsyncSession) -> None:
    existing = await _existing_answers(session_id, db)
    now = datetime.utcnow()

    for row in rows:
        answer = existing.get(row.question_id)
        if answer is None:
            answer = ExamSessionAnswer(session_id=session_id, question_id=int(row.question_id))
            db.add(answer)
        answer.student_answer = row.graded.stored_answer
        answer.is_correct = row.graded.is_correct
        answer.points_earned = row.graded.points_earned
        answer.answered_at = now


def _apply_score(session: ExamSession, score: SessionScore) -> None:
    passing_score = session.exam.passing_score if session.exam else 0.0
    session.total_score = score.total_score
    session.max_possible_score = score.max_possible_score
    session.percentage_score = score.percentage
    session.is_passed = score.percentage >= (passing_score or 0.0)
    session.listening_band = score.listening_band
    session.reading_band = score.reading_band
    session.writing_band = score.writing_band


def _row_summary(row: GradedRow) -> Dict[str, Any]:
    return {
        "questionId": row.question_id,
        "isCorrect": row.graded.is_correct,
        "pointsEarned": row.graded.points_earned,
        "maxPoints": row.graded.max_points,
    }


# =============================================================================
# Operations
# =============================================================================

async def submit_exam_session(
    session_id: int,
    answers: List[SubmissionItem],
    db: AsyncSession
) -> Dict[str, Any]:
    """
    Grade and finalize a session.

    Args:
        session_id: Session being submitted
        answers: Submitted answers
        db: Database session

    Returns:
        Session data, score and per-question verdicts

    Raises:
        NotFoundError: unknown session
        InvalidStateError: session already submitted
    """
    session = await _load_session(session_id, db)
    if session.is_submitted:
        raise already_submitted(session_id)
    if session.is_expired():
        logger.info(f"Accepting late submission for expired session {session_id}")

    questions = await _load_questions(session.exam_id, db)
    exam_type = session.exam.exam_type if session.exam else None
    result = grade_submission(questions, answers, exam_type)

    await _upsert_graded_rows(session.id, result.rows, db)

    now = datetime.utcnow()
    _apply_score(session, result.score)
    session.status = ExamSessionStatus.SUBMITTED
    session.submitted_at = now
    if session.started_at:
        session.time_spent_seconds = max(0, int((now - session.started_at).total_seconds()))

    await db.commit()
    await db.refresh(session)

    logger.info(
        f"Submitted session {session_id}: score={result.score.total_score}/"
        f"{result.score.max_possible_score}, listening={result.score.listening_band}, "
        f"reading={result.score.reading_band}, writing={result.score.writing_band}"
    )

    return {
        "session": session.to_dict(),
        "score": result.score.to_dict(),
        "answers": [_row_summary(row) for row in result.rows],
        "skippedQuestionIds": result.skipped_question_ids,
    }


async def save_answer(
    session_id: int,
    question_id: int,
    student_answer: Any,
    db: AsyncSession
) -> Dict[str, Any]:
    """
    Autosave one raw answer. Nothing is graded until submission.

    Raises:
        NotFoundError: unknown session or question not in the session's exam
        InvalidStateError: session already submitted
    """
    session = await _load_session(session_id, db)
    if session.is_submitted:
        raise already_submitted(session_id)

    stmt = (
        select(ExamQuestion.id)
        .join(ExamSection, ExamQuestion.section_id == ExamSection.id)
        .where(ExamQuestion.id == question_id, ExamSection.exam_id == session.exam_id)
    )
    if (await db.execute(stmt)).scalar_one_or_none() is None:
        raise NotFoundError("Question", question_id, ErrorCode.NOT_FOUND)

    existing = await _existing_answers(session.id, db)
    answer = existing.get(str(question_id))
    if answer is None:
        answer = ExamSessionAnswer(session_id=session.id, question_id=question_id)
        db.add(answer)
    answer.student_answer = student_answer
    answer.is_correct = None
    answer.points_earned = 0.0
    answer.answered_at = datetime.utcnow()

    await db.commit()
    await db.refresh(answer)

    return answer.to_dict()


def _items_from_stored(
    stored: Dict[str, ExamSessionAnswer],
) -> List[SubmissionItem]:
    """
    Rebuild a submission from persisted rows. Stored verdicts travel along
    as the fallback flag and stored points as the manual score.
    """
    return [
        SubmissionItem(
            question_id=question_id,
            student_answer=answer.student_answer,
            is_correct=answer.is_correct,
            points_earned=answer.points_earned,
        )
        for question_id, answer in stored.items()
    ]


async def regrade_session(session_id: int, db: AsyncSession) -> Dict[str, Any]:
    """
    Explicit admin recompute of a submitted session from its stored answers.

    Raises:
        NotFoundError: unknown session
        InvalidStateError: session not submitted yet
    """
    session = await _load_session(session_id, db)
    if not session.is_submitted:
        raise InvalidStateError(
            "Only submitted sessions can be regraded",
            code=ErrorCode.NOT_SUBMITTED,
            details={"session_id": str(session_id)}
        )

    questions = await _load_questions(session.exam_id, db)
    stored = await _existing_answers(session.id, db)
    exam_type = session.exam.exam_type if session.exam else None
    result = grade_submission(questions, _items_from_stored(stored), exam_type)

    previous_total = session.total_score
    await _upsert_graded_rows(session.id, result.rows, db)
    _apply_score(session, result.score)

    await db.commit()
    await db.refresh(session)

    logger.info(
        f"Regraded session {session_id}: score {previous_total} -> {result.score.total_score}"
    )

    return {
        "session": session.to_dict(),
        "score": result.score.to_dict(),
        "answers": [_row_summary(row) for row in result.rows],
    }


def _result_row(
    answer: ExamSessionAnswer,
    question: Optional[QuestionRecord],
) -> Dict[str, Any]:
    student_answer = answer.student_answer
    if question is not None and question.question_type == QuestionType.SIMPLE_TABLE:
        student_answer = ensure_simple_table_normalized(student_answer, question.metadata)

    return {
        "questionId": answer.question_id,
        "questionNumber": question.question_number if question else None,
        "questionType": question.type if question else None,
        "sectionType": question.section_type if question else None,
        "points": question.points if question else None,
        "studentAnswer": student_answer,
        "correctAnswer": question.correct_answer if question else None,
        "questionMetadata": question.metadata if question else None,
        "isCorrect": answer.is_correct,
        "pointsEarned": answer.points_earned,
    }


def _public_row(row: Dict[str, Any], expose_correct_answers: bool) -> Dict[str, Any]:
    public = {key: value for key, value in row.items() if key != "questionMetadata"}
    if not expose_correct_answers:
        public.pop("correctAnswer", None)
        public["studentAnswer"] = strip_correct_answers(public["studentAnswer"])
    return public


async def get_session_results(
    session_id: int,
    db: AsyncSession,
    include_correct_answers: bool = False,
    allow_in_progress: bool = False
) -> Dict[str, Any]:
    """
    Stored verdicts plus a display summary.

    Args:
        session_id: Session to report
        db: Database session
        include_correct_answers: admin view; the student view only gets
            correct answers when FEATURE_EXPOSE_CORRECT_ANSWERS is on
        allow_in_progress: report sessions that are not submitted yet

    Raises:
        NotFoundError: unknown session
        InvalidStateError: session not submitted and allow_in_progress is off
    """
    session = await _load_session(session_id, db)
    if not session.is_submitted and not allow_in_progress:
        raise InvalidStateError(
            "Results are available after submission",
            code=ErrorCode.NOT_SUBMITTED,
            details={"session_id": str(session_id)}
        )

    questions = await _load_questions(session.exam_id, db)
    stored = await _existing_answers(session.id, db)
    rows = [_result_row(answer, questions.get(qid)) for qid, answer in stored.items()]
    rows.sort(key=_row_order(questions))

    exam_type = session.exam.exam_type if session.exam else None
    expose = include_correct_answers or feature_flags.FEATURE_EXPOSE_CORRECT_ANSWERS

    return {
        "session": session.to_dict(),
        "summary": summarize_results(rows, exam_type),
        "answers": [_public_row(row, expose) for row in rows],
    }


def _row_order(questions: Dict[str, QuestionRecord]):
    positions = {question_id: index for index, question_id in enumerate(questions)}

    def key(row: Dict[str, Any]) -> Tuple[int, int]:
        return positions.get(str(row["questionId"]), len(positions)), int(row["questionId"])

    return key
