"""
ielts_backend/services/score_aggregator.py
Session Score Aggregator

Folds graded rows into session totals:

- total_score: sum of points_earned over every graded row, including
  propagated group members and expanded table cells
- max_possible_score: each graded row's max_points once; containers add 0
  and simple_table adds the sum of its cell allotments
- percentage: total / max * 100, 0 when max is 0
- listening/reading bands from correct-unit counts per section
- writing band from Task 1 / Task 2 scores

When any Task 1 or Task 2 answer is present the writing band replaces the
raw points sum as the session score (band / 9 as the percentage).
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Tuple

from ielts_backend.config.feature_flags import feature_flags
from ielts_backend.services.answer_grader import GradedRow
from ielts_backend.services.band_calculator import (
    cap_reading_counts,
    listening_band,
    reading_band,
    writing_band,
)
from ielts_backend.services.question_record import QuestionType, WRITING_TYPES
from ielts_backend.services.result_metrics import tally_row

logger = logging.getLogger(__name__)

MAX_BAND = 9.0


@dataclass
class SessionScore:
    total_score: float
    max_possible_score: float
    percentage: float
    listening_correct: int = 0
    listening_total: int = 0
    reading_correct: int = 0
    reading_total: int = 0
    listening_band: Optional[float] = None
    reading_band: Optional[float] = None
    writing_band: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalScore": self.total_score,
            "maxPossibleScore": self.max_possible_score,
            "percentageScore": self.percentage,
            "listeningCorrect": self.listening_correct,
            "listeningTotal": self.listening_total,
            "readingCorrect": self.reading_correct,
            "readingTotal": self.reading_total,
            "listeningBand": self.listening_band,
            "readingBand": self.reading_band,
            "writingBand": self.writing_band,
        }


def calculate_percentage(total: float, maximum: float) -> float:
    if maximum <= 0:
        return 0.0
    return total / maximum * 100


def count_correct_units(row: GradedRow) -> Tuple[int, int]:
    """
    (correct, total) countable units of one row, counted exactly like the
    results summary counts the stored row.
    """
    return tally_row({
        "questionType": row.question.type,
        "studentAnswer": row.graded.stored_answer,
        "correctAnswer": row.question.correct_answer,
        "questionMetadata": row.question.metadata,
        "isCorrect": row.graded.is_correct,
    })


def _section_counts(rows: Iterable[GradedRow], section: str) -> Tuple[int, int]:
    correct = total = 0
    for row in rows:
        if (row.question.section_type or "").lower() != section:
            continue
        row_correct, row_total = count_correct_units(row)
        correct += row_correct
        total += row_total
    return correct, total


def _mean(values: List[float]) -> Optional[float]:
    return sum(values) / len(values) if values else None


def session_writing_band(rows: List[GradedRow]) -> Optional[float]:
    """Task 1 = writing_task1 rows, Task 2 = essay rows; several of one kind are averaged."""
    task1 = [r.graded.points_earned for r in rows if r.question.question_type == QuestionType.WRITING_TASK1]
    task2 = [r.graded.points_earned for r in rows if r.question.question_type == QuestionType.ESSAY]
    return writing_band(_mean(task1), _mean(task2))


def aggregate_session_score(rows: List[GradedRow], exam_type: Optional[str] = None) -> SessionScore:
    """
    Args:
        rows: every graded row of the session (after group resolution)
        exam_type: "academic" or anything else for General Training reading

    Returns:
        SessionScore with totals, percentage and bands
    """
    total = sum(row.graded.points_earned for row in rows)
    maximum = sum(row.graded.max_points for row in rows)

    listening_correct, listening_total = _section_counts(rows, "listening")
    reading_correct, reading_total = _section_counts(rows, "reading")
    reading_correct, reading_total = cap_reading_counts(reading_correct, reading_total)

    score = SessionScore(
        total_score=total,
        max_possible_score=maximum,
        percentage=calculate_percentage(total, maximum),
        listening_correct=listening_correct,
        listening_total=listening_total,
        reading_correct=reading_correct,
        reading_total=reading_total,
        listening_band=listening_band(listening_correct) if listening_total > 0 else None,
        reading_band=reading_band(reading_correct, exam_type) if reading_total > 0 else None,
        writing_band=session_writing_band(rows),
    )

    has_writing = any(row.question.question_type in WRITING_TYPES for row in rows)
    if has_writing and score.writing_band is not None and feature_flags.FEATURE_WRITING_BAND_OVERRIDE:
        score.total_score = score.writing_band
        score.max_possible_score = MAX_BAND
        score.percentage = calculate_percentage(score.writing_band, MAX_BAND)

    logger.debug(
        f"Aggregated {len(rows)} rows: total={score.total_score}, max={score.max_possible_score}, "
        f"listening={score.listening_band}, reading={score.reading_band}, writing={score.writing_band}"
    )
    return score
