"""
ielts_backend/services/result_metrics.py
Display-side result tallies

Re-derives correct/total counts from stored answer rows for result
summaries without re-running the graders. Rows are plain dicts:

    {questionType, sectionType, studentAnswer, correctAnswer,
     questionMetadata, isCorrect}

Counting rules:
- fill_blank arrays count one unit per blank, unless the metadata sets
  combineBlanks / singleNumber / conversation
- simple_table counts its graded cell entries
- everything else is one unit

These numbers are for presentation only. Where they disagree with a
stored verdict, the stored verdict is authoritative.
"""

from typing import Any, Dict, Iterable, Optional, Tuple

from ielts_backend.services.answer_encoding import answer_groups, variant_matches
from ielts_backend.services.band_calculator import cap_reading_counts, listening_band, reading_band
from ielts_backend.services.question_record import CONTAINER_TYPES, QuestionType, parse_metadata
from ielts_backend.services.simple_table import ensure_simple_table_normalized, entries_from_stored

Tally = Tuple[int, int]

COMBINE_BLANK_FLAGS = ("combineBlanks", "singleNumber", "conversation")


def to_metadata_object(raw: Any) -> Dict[str, Any]:
    return parse_metadata(raw)


def should_combine_fill_blank(metadata: Any) -> bool:
    meta = to_metadata_object(metadata)
    return any(bool(meta.get(flag)) for flag in COMBINE_BLANK_FLAGS)


def tally_fill_blank(
    student_answer: Any,
    correct_answer: Any = None,
    metadata: Any = None,
    is_correct: Optional[bool] = None,
) -> Tally:
    """(correct, total) for one fill_blank row."""
    if not isinstance(student_answer, list) or should_combine_fill_blank(metadata):
        return (1 if is_correct else 0), 1

    blank_count = len(student_answer)
    groups = answer_groups(correct_answer, blank_count)
    if not any(groups):
        return (blank_count if is_correct else 0), blank_count

    correct = sum(
        1 for index, answer in enumerate(student_answer)
        if variant_matches(groups[index], answer)
    )
    return correct, blank_count


def tally_simple_table(student_answer: Any, metadata: Any = None) -> Tally:
    stored = ensure_simple_table_normalized(student_answer, metadata)
    entries = entries_from_stored(stored)
    return sum(1 for e in entries if e.get("isCorrect")), len(entries)


def _question_type(value: Any) -> Optional[QuestionType]:
    try:
        return QuestionType(value)
    except ValueError:
        return None


def tally_row(row: Dict[str, Any]) -> Tally:
    question_type = _question_type(row.get("questionType"))
    if question_type in CONTAINER_TYPES:
        return 0, 0
    if question_type == QuestionType.SIMPLE_TABLE:
        return tally_simple_table(row.get("studentAnswer"), row.get("questionMetadata"))
    if question_type == QuestionType.FILL_BLANK:
        return tally_fill_blank(
            row.get("studentAnswer"),
            row.get("correctAnswer"),
            row.get("questionMetadata"),
            row.get("isCorrect"),
        )
    return (1 if row.get("isCorrect") else 0), 1


def _section_tally(rows: Iterable[Dict[str, Any]], section: str) -> Tally:
    correct = total = 0
    for row in rows:
        if (row.get("sectionType") or "").lower() != section:
            continue
        row_correct, row_total = tally_row(row)
        correct += row_correct
        total += row_total
    return correct, total


def summarize_results(rows: Iterable[Dict[str, Any]], exam_type: Optional[str] = None) -> Dict[str, Any]:
    """Overall and per-section correct counts with listening/reading bands."""
    rows = list(rows)
    overall_correct = overall_total = 0
    for row in rows:
        row_correct, row_total = tally_row(row)
        overall_correct += row_correct
        overall_total += row_total

    listening_correct, listening_total = _section_tally(rows, "listening")
    reading_correct, reading_total = cap_reading_counts(*_section_tally(rows, "reading"))

    return {
        "correct": overall_correct,
        "total": overall_total,
        "listening": {
            "correct": listening_correct,
            "total": listening_total,
            "band": listening_band(listening_correct) if listening_total > 0 else None,
        },
        "reading": {
            "correct": reading_correct,
            "total": reading_total,
            "band": reading_band(reading_correct, exam_type) if reading_total > 0 else None,
        },
    }
