"""
ielts_backend/services/band_calculator.py
IELTS band score lookup

Raw correct-answer counts map to bands (2.0 - 9.0 in 0.5 steps) through
fixed threshold tables. Each table is ordered from the highest threshold
down; the first threshold the count reaches wins, anything below the last
one is band 2.0.

Reading has separate tables for Academic and General Training and caps the
raw count at 40. Writing is derived from the two task scores instead:

    band = round_to_nearest_half((task1 + 2 * task2) / 3)
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Tuple

BandTable = Tuple[Tuple[int, float], ...]

MIN_BAND = 2.0
READING_MAX_QUESTIONS = 40

LISTENING_BANDS: BandTable = (
    (39, 9.0),
    (37, 8.5),
    (35, 8.0),
    (32, 7.5),
    (30, 7.0),
    (26, 6.5),
    (23, 6.0),
    (18, 5.5),
    (16, 5.0),
    (13, 4.5),
    (10, 4.0),
    (7, 3.5),
    (5, 3.0),
    (3, 2.5),
)

ACADEMIC_READING_BANDS: BandTable = (
    (39, 9.0),
    (37, 8.5),
    (35, 8.0),
    (33, 7.5),
    (30, 7.0),
    (27, 6.5),
    (23, 6.0),
    (19, 5.5),
    (15, 5.0),
    (13, 4.5),
    (10, 4.0),
    (8, 3.5),
    (6, 3.0),
    (4, 2.5),
)

GENERAL_TRAINING_READING_BANDS: BandTable = (
    (40, 9.0),
    (39, 8.5),
    (37, 8.0),
    (36, 7.5),
    (34, 7.0),
    (32, 6.5),
    (30, 6.0),
    (27, 5.5),
    (23, 5.0),
    (19, 4.5),
    (15, 4.0),
    (12, 3.5),
    (9, 3.0),
    (6, 2.5),
)

ACADEMIC_EXAM_TYPE = "academic"


def lookup_band(correct_count: int, table: BandTable) -> float:
    for threshold, band in table:
        if correct_count >= threshold:
            return band
    return MIN_BAND


def listening_band(correct_count: int) -> float:
    return lookup_band(correct_count, LISTENING_BANDS)


def reading_table(exam_type: Optional[str]) -> BandTable:
    """Anything that is not explicitly Academic uses the General Training table."""
    if (exam_type or "").strip().lower() == ACADEMIC_EXAM_TYPE:
        return ACADEMIC_READING_BANDS
    return GENERAL_TRAINING_READING_BANDS


def reading_band(correct_count: int, exam_type: Optional[str] = ACADEMIC_EXAM_TYPE) -> float:
    capped = min(correct_count, READING_MAX_QUESTIONS)
    return lookup_band(capped, reading_table(exam_type))


def cap_reading_counts(correct_count: int, total_count: int) -> Tuple[int, int]:
    """Reading sections never report more than 40 questions."""
    capped_total = min(total_count, READING_MAX_QUESTIONS)
    return min(correct_count, capped_total), capped_total


def round_to_nearest_half(value: float) -> float:
    """Round to the nearest 0.5, ties upwards (6.25 -> 6.5, 6.667 -> 6.5)."""
    doubled = (Decimal(str(value)) * 2).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return float(doubled / 2)


def writing_band(task1_score: Optional[float], task2_score: Optional[float]) -> Optional[float]:
    """
    Task 2 carries twice the weight of Task 1. With only one task scored the
    band is that task's score rounded; with neither there is no band.
    """
    if task1_score is None and task2_score is None:
        return None
    if task1_score is None:
        return round_to_nearest_half(task2_score)
    if task2_score is None:
        return round_to_nearest_half(task1_score)
    return round_to_nearest_half((task1_score + 2 * task2_score) / 3)
