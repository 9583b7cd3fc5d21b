"""
ielts_backend/services/answer_grader.py
Per-type answer grading

Every question type maps to one pure grader:

    grader(expected: AnswerEncoding, metadata: dict, submitted: Any, points: float) -> GradedAnswer

The dispatch table is closed over QuestionType; adding a type without a
grader fails at import time.

GRADING RULES:
- multiple_choice / drag_drop / matching / multi_select: unordered set equality
- true_false: synonyms t/f/ng/notgiven before comparing
- fill_blank: per-blank variant groups, AND across blanks, numeric tolerance
- short_answer: punctuation stripped, 1-3 words only
- image_labeling: single normalized free-text comparison
- image_dnd: all-or-nothing over the placement map
- simple_table: delegated to the table-cell expander
- essay / writing_task1 / speaking_task: human-graded, points supplied externally

`is_correct=None` from a grader means "no accepted-variant data"; the
dispatcher then falls back to the caller-supplied flag.

NO DATABASE ACCESS - same (question, answer) in, same verdict out.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from ielts_backend.exceptions import GradingError, UnsupportedQuestionTypeError
from ielts_backend.services.answer_encoding import (
    AnswerEncoding,
    Variants,
    VariantSet,
    accepted_option_set,
    normalize_answer_text,
    option_sets_equal,
    submitted_option_set,
    true_false_matches,
    variant_matches,
)
from ielts_backend.services.question_record import (
    CONTAINER_TYPES,
    QuestionRecord,
    QuestionType,
    parse_json_object,
)
from ielts_backend.services.simple_table import (
    entries_from_stored,
    normalize_simple_table_answer,
)

logger = logging.getLogger(__name__)

SHORT_ANSWER_MAX_WORDS = 3
PUNCTUATION_PATTERN = re.compile(r"[^\w\s]", re.UNICODE)
SINGLE_LETTER_PATTERN = re.compile(r"^[a-z]$")

OPTION_SET_TYPES = frozenset({
    QuestionType.MULTIPLE_CHOICE,
    QuestionType.DRAG_DROP,
    QuestionType.MULTI_SELECT,
    QuestionType.MATCHING,
})


@dataclass(frozen=True)
class BlankResult:
    """Verdict for one blank of a multi-blank answer."""
    index: int
    student_answer: Any
    accepted: Variants
    is_correct: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "index": self.index,
            "studentAnswer": self.student_answer,
            "accepted": list(self.accepted),
            "isCorrect": self.is_correct,
        }


@dataclass
class GradedAnswer:
    """
    Outcome of grading one question.

    `max_points` is what the question contributes to the session's maximum
    (cell sum for simple_table, 0 for containers). `stored_answer` is the
    answer JSON to persist; it differs from the submission only for
    simple_table.
    """
    is_correct: Optional[bool]
    points_earned: float
    max_points: float = 0.0
    breakdown: Optional[List[BlankResult]] = None
    stored_answer: Any = None
    table_entries: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "isCorrect": self.is_correct,
            "pointsEarned": self.points_earned,
            "maxPoints": self.max_points,
        }
        if self.breakdown is not None:
            data["breakdown"] = [b.to_dict() for b in self.breakdown]
        if self.table_entries:
            data["graded"] = self.table_entries
        return data


Grader = Callable[[AnswerEncoding, Dict[str, Any], Any, float], GradedAnswer]


def _verdict(is_correct: Optional[bool], points: float, **extra) -> GradedAnswer:
    earned = points if is_correct else 0.0
    return GradedAnswer(is_correct=is_correct, points_earned=earned, max_points=points, **extra)


def _expected_options(expected: AnswerEncoding) -> Variants:
    return tuple(dict.fromkeys(expected.flat_variants()))


# =============================================================================
# Option-set graders
# =============================================================================

def grade_option_set(expected: AnswerEncoding, metadata: Dict[str, Any], submitted: Any, points: float) -> GradedAnswer:
    """multiple_choice / drag_drop / multi_select: unordered set equality."""
    accepted = _expected_options(expected)
    if not accepted:
        return _verdict(None, points)
    return _verdict(option_sets_equal(accepted, submitted_option_set(submitted)), points)


def _heading_letter(metadata: Dict[str, Any], option_letter: str) -> Optional[str]:
    bank = parse_json_object(metadata.get("headingBank"))
    options = bank.get("options") if bank else None
    if not isinstance(options, list):
        return None
    index = ord(option_letter) - ord("a")
    if index >= len(options) or not isinstance(options[index], dict):
        return None
    mapped = normalize_answer_text(options[index].get("letter"))
    return mapped or None


def grade_matching(expected: AnswerEncoding, metadata: Dict[str, Any], submitted: Any, points: float) -> GradedAnswer:
    """
    Matching questions.

    Students may answer with a positional option letter (A, B, C ...)
    while the correct answer stores heading letters (i, ii, iii ...). A
    single letter is mapped through metadata.headingBank.options first.
    """
    received = submitted
    if isinstance(submitted, str):
        received_norm = normalize_answer_text(submitted)
        if SINGLE_LETTER_PATTERN.match(received_norm):
            mapped = _heading_letter(metadata, received_norm)
            if mapped:
                received = mapped
    return grade_option_set(expected, metadata, received, points)


# =============================================================================
# Text graders
# =============================================================================

def grade_true_false(expected: AnswerEncoding, metadata: Dict[str, Any], submitted: Any, points: float) -> GradedAnswer:
    accepted = expected.flat_variants()
    if not accepted:
        return _verdict(None, points)
    return _verdict(any(true_false_matches(value, submitted) for value in accepted), points)


def grade_fill_blank(expected: AnswerEncoding, metadata: Dict[str, Any], submitted: Any, points: float) -> GradedAnswer:
    """
    Scalar answers compare against one variant group. Array answers are
    matched position by position and every blank must be correct; there is
    no partial credit at this level.
    """
    if not isinstance(submitted, list):
        accepted = expected.scalar_variants()
        if not accepted:
            return _verdict(None, points)
        return _verdict(variant_matches(accepted, submitted), points)

    if not expected.has_accepted:
        return _verdict(None, points)

    groups = expected.groups_for(len(submitted))
    breakdown = [
        BlankResult(
            index=index,
            student_answer=answer,
            accepted=groups[index],
            is_correct=variant_matches(groups[index], answer),
        )
        for index, answer in enumerate(submitted)
    ]
    is_correct = bool(breakdown) and all(b.is_correct for b in breakdown)
    return _verdict(is_correct, points, breakdown=breakdown)


def _strip_punctuation(value: Any) -> str:
    return normalize_answer_text(PUNCTUATION_PATTERN.sub(" ", normalize_answer_text(value)))


def grade_short_answer(expected: AnswerEncoding, metadata: Dict[str, Any], submitted: Any, points: float) -> GradedAnswer:
    """
    Short answers: "NO MORE THAN THREE WORDS".

    Accepted values come from metadata.acceptedAnswers, else from the
    encoding. Submissions outside 1-3 words are wrong whatever they say.
    """
    accepted_raw = metadata.get("acceptedAnswers")
    if isinstance(accepted_raw, list) and accepted_raw:
        candidates = accepted_raw
    else:
        candidates = expected.flat_variants()
    accepted = tuple(v for v in (_strip_punctuation(c) for c in candidates) if v)
    if not accepted:
        return _verdict(None, points)

    if isinstance(submitted, list):
        submitted = " ".join(str(part) for part in submitted if part is not None)
    received = _strip_punctuation(submitted)
    word_count = len(received.split())
    if word_count < 1 or word_count > SHORT_ANSWER_MAX_WORDS:
        return _verdict(False, points)
    return _verdict(variant_matches(accepted, received), points)


def grade_image_labeling(expected: AnswerEncoding, metadata: Dict[str, Any], submitted: Any, points: float) -> GradedAnswer:
    accepted = expected.scalar_variants()
    if not accepted:
        return _verdict(None, points)
    if isinstance(submitted, list):
        submitted = submitted[0] if len(submitted) == 1 else None
    return _verdict(variant_matches(accepted, submitted), points)


# =============================================================================
# Structured graders
# =============================================================================

def grade_image_dnd(expected: AnswerEncoding, metadata: Dict[str, Any], submitted: Any, points: float) -> GradedAnswer:
    """
    Drag-and-drop onto an image.

    Submission: {"placements": {anchorId: token}}. Compared against
    metadata.correctMap, all-or-nothing: every anchor must hold its token
    and no other anchor may hold one.
    """
    correct_map = parse_json_object(metadata.get("correctMap"))
    if not correct_map:
        return _verdict(None, points)

    if submitted is None:
        return _verdict(False, points)
    if not isinstance(submitted, dict):
        raise GradingError("image_dnd answer must be an object of placements")
    placements = submitted.get("placements", submitted)
    if not isinstance(placements, dict):
        raise GradingError("image_dnd placements must be an object")

    placed = {
        str(anchor): normalize_answer_text(token)
        for anchor, token in placements.items()
        if normalize_answer_text(token)
    }
    expected_map = {str(anchor): token for anchor, token in correct_map.items()}
    if set(placed) != set(expected_map):
        return _verdict(False, points)
    is_correct = all(
        variant_matches(tuple(v for v in (normalize_answer_text(t) for t in str(token).split("|")) if v), placed[anchor])
        for anchor, token in expected_map.items()
    )
    return _verdict(is_correct, points)


def grade_simple_table(expected: AnswerEncoding, metadata: Dict[str, Any], submitted: Any, points: float) -> GradedAnswer:
    """
    The table's own `points` is ignored: it scores the sum of its graded
    cells and contributes the sum of cell allotments to the maximum.
    """
    stored = normalize_simple_table_answer(submitted, metadata)
    entries = entries_from_stored(stored)
    earned = sum(float(e["points"]) for e in entries if e["isCorrect"])
    maximum = sum(float(e["points"]) for e in entries)
    return GradedAnswer(
        is_correct=bool(entries) and all(e["isCorrect"] for e in entries),
        points_earned=earned,
        max_points=maximum,
        stored_answer=stored,
        table_entries=entries,
    )


def grade_manual(expected: AnswerEncoding, metadata: Dict[str, Any], submitted: Any, points: float) -> GradedAnswer:
    """Essay, writing and speaking tasks; points are assigned by a human later."""
    return GradedAnswer(is_correct=None, points_earned=0.0, max_points=points)


def grade_container(expected: AnswerEncoding, metadata: Dict[str, Any], submitted: Any, points: float) -> GradedAnswer:
    """Legacy table containers; their cells are separate questions."""
    return GradedAnswer(is_correct=None, points_earned=0.0, max_points=0.0)


GRADERS: Dict[QuestionType, Grader] = {
    QuestionType.MULTIPLE_CHOICE: grade_option_set,
    QuestionType.DRAG_DROP: grade_option_set,
    QuestionType.MULTI_SELECT: grade_option_set,
    QuestionType.MATCHING: grade_matching,
    QuestionType.TRUE_FALSE: grade_true_false,
    QuestionType.FILL_BLANK: grade_fill_blank,
    QuestionType.SHORT_ANSWER: grade_short_answer,
    QuestionType.IMAGE_LABELING: grade_image_labeling,
    QuestionType.IMAGE_DND: grade_image_dnd,
    QuestionType.SIMPLE_TABLE: grade_simple_table,
    QuestionType.ESSAY: grade_manual,
    QuestionType.WRITING_TASK1: grade_manual,
    QuestionType.SPEAKING_TASK: grade_manual,
    QuestionType.TABLE_FILL_BLANK: grade_container,
    QuestionType.TABLE_DRAG_DROP: grade_container,
}

_missing = set(QuestionType) - set(GRADERS)
if _missing:
    raise RuntimeError(f"Question types without a grader: {sorted(t.value for t in _missing)}")


def _failed_verdict(question: QuestionRecord, submitted: Any) -> GradedAnswer:
    return GradedAnswer(
        is_correct=False,
        points_earned=0.0,
        max_points=0.0 if question.is_container else question.points,
        stored_answer=submitted,
    )


def _clamp_manual_points(value: Any, points: float) -> float:
    try:
        earned = float(value)
    except (TypeError, ValueError):
        return 0.0
    earned = max(earned, 0.0)
    if points > 0:
        earned = min(earned, points)
    return earned


def grade_answer(
    question: QuestionRecord,
    submitted: Any,
    fallback_is_correct: Optional[bool] = None,
    manual_points: Any = None,
) -> GradedAnswer:
    """
    Grade one submitted answer. Never raises.

    Args:
        question: Question definition (encoding already resolved)
        submitted: Raw student answer (any JSON value)
        fallback_is_correct: Caller-supplied verdict, used only when the
            question has no accepted-variant data
        manual_points: Externally assigned points for human-graded types

    Returns:
        GradedAnswer with points_earned in [0, max_points]
    """
    question_type = question.question_type
    try:
        if question_type is None:
            raise UnsupportedQuestionTypeError(question.type, question.id)
        expected = question.encoding
        if question_type in OPTION_SET_TYPES:
            expected = VariantSet(variants=accepted_option_set(question.correct_answer))
        graded = GRADERS[question_type](expected, question.metadata, submitted, question.points)
    except GradingError as e:
        logger.warning(f"Grading failed for question {question.id}: {e}")
        return _failed_verdict(question, submitted)
    except Exception as e:
        logger.exception(f"Malformed data for question {question.id} ({question.type}): {type(e).__name__}: {e}")
        return _failed_verdict(question, submitted)

    if question.is_manually_graded:
        graded.points_earned = _clamp_manual_points(manual_points, question.points)
    elif graded.is_correct is None and question_type not in CONTAINER_TYPES:
        graded.is_correct = bool(fallback_is_correct)
        graded.points_earned = question.points if graded.is_correct else 0.0

    if graded.stored_answer is None:
        graded.stored_answer = submitted

    logger.debug(
        f"Graded question {question.id} ({question.type}): "
        f"correct={graded.is_correct}, points={graded.points_earned}/{graded.max_points}"
    )
    return graded


@dataclass
class GradedRow:
    """One persisted answer row: the question, what was stored, and its verdict."""
    question: QuestionRecord
    student_answer: Any
    graded: GradedAnswer
    propagated_from: Optional[str] = None

    @property
    def question_id(self) -> str:
        return self.question.id
