"""
ielts_backend/services/group_resolver.py
Grouped-Question Resolver

An anchor question (metadata.groupRangeEnd set) owns the grading of a
range of displayed questions. Members point back at it with
metadata.groupMemberOf = anchorId and always inherit its verdict:

    member.is_correct    = anchor.is_correct
    member.points_earned = member.points if anchor.is_correct else 0

Runs strictly after every anchor has been graded. An anchor with no
graded row propagates nothing; its answered members stay ungraded
(is_correct None, no points, nothing towards the maximum) and keep their
raw answer for persistence.
"""

import logging
from typing import Dict, Iterable, List

from ielts_backend.services.answer_grader import GradedAnswer, GradedRow
from ielts_backend.services.question_record import QuestionRecord

logger = logging.getLogger(__name__)


def find_group_members(anchor_id: str, questions: Iterable[QuestionRecord]) -> List[QuestionRecord]:
    """Members of an anchor, in the order given. Ids are compared as strings."""
    anchor_key = str(anchor_id)
    return [q for q in questions if q.group_anchor_id == anchor_key and q.id != anchor_key]


def resolve_grouped_questions(
    graded_rows: Dict[str, GradedRow],
    questions: Dict[str, QuestionRecord],
) -> Dict[str, GradedRow]:
    """
    Copy anchor verdicts onto their group members.

    Args:
        graded_rows: question id -> row graded from the submission
        questions: every question of the exam, by id

    Returns:
        New mapping containing the original rows plus/overwritten member rows.
        A member's own submitted answer is kept for persistence; when the
        student did not answer it, the anchor's answer is stored instead.
    """
    resolved = dict(graded_rows)

    for anchor in questions.values():
        if not anchor.is_group_anchor:
            continue
        anchor_row = graded_rows.get(anchor.id)
        if anchor_row is None:
            continue

        members = find_group_members(anchor.id, questions.values())
        if not members:
            continue

        anchor_correct = bool(anchor_row.graded.is_correct)
        for member in members:
            existing = graded_rows.get(member.id)
            student_answer = existing.student_answer if existing is not None else anchor_row.student_answer
            resolved[member.id] = GradedRow(
                question=member,
                student_answer=student_answer,
                graded=GradedAnswer(
                    is_correct=anchor_correct,
                    points_earned=member.points if anchor_correct else 0.0,
                    max_points=member.points,
                    stored_answer=student_answer,
                ),
                propagated_from=anchor.id,
            )

        logger.debug(
            f"Propagated anchor {anchor.id} (correct={anchor_correct}) to {len(members)} member(s)"
        )

    for question_id, row in graded_rows.items():
        anchor_id = row.question.group_anchor_id
        if anchor_id is None or anchor_id == question_id or resolved[question_id].propagated_from:
            continue
        logger.warning(f"Member {question_id} answered without its anchor {anchor_id}; left ungraded")
        resolved[question_id] = GradedRow(
            question=row.question,
            student_answer=row.student_answer,
            graded=GradedAnswer(
                is_correct=None,
                points_earned=0.0,
                max_points=0.0,
                stored_answer=row.student_answer,
            ),
        )

    return resolved

