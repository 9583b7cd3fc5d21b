"""
ielts_backend/services/simple_table.py
Table-Cell Expander for simple_table questions

A simple_table question carries its own grid in metadata:

    metadata.simpleTable.rows = [
        [{"type": "label", ...}, {"type": "question", "questionType": "fill_blank",
                                  "correctAnswer": "red;blue", "points": 1,
                                  "multiNumbers": [7, 8]}],
        ...
    ]

and the student submits {"cells": {"{row}_{col}": value}}.

Every question cell is flattened into one graded leaf entry per blank.
Each blank is worth the cell's full `points` ("one mark per blank"), so a
two-blank cell with points=1 is worth 2 marks in total. The table
question's own `points` is never used.

The stored answer keeps the raw cells and the graded entries so results
can be re-displayed without re-grading.
"""

import logging
import math
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from ielts_backend.services.answer_encoding import (
    option_sets_equal,
    parse_cell_encoding,
    submitted_option_set,
    true_false_matches,
    variant_matches,
)
from ielts_backend.services.question_record import coerce_points, parse_metadata

logger = logging.getLogger(__name__)

STORED_ANSWER_TYPE = "simple_table"
STORED_ANSWER_VERSION = 2

WHITESPACE_SPLIT = re.compile(r"\s+")


@dataclass(frozen=True)
class SimpleTableEntry:
    """One graded leaf blank of a simple_table."""
    key: str
    base_key: str
    question_type: str
    question_number: Optional[int]
    student_answer: Any
    correct_answer: Optional[str]
    points: float
    is_correct: bool

    @property
    def points_earned(self) -> float:
        return self.points if self.is_correct else 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "key": self.key,
            "baseKey": self.base_key,
            "questionType": self.question_type,
            "questionNumber": self.question_number,
            "studentAnswer": self.student_answer,
            "correctAnswer": self.correct_answer,
            "points": self.points,
            "isCorrect": self.is_correct,
        }


def split_student_string(raw: str, expected_length: int) -> Optional[List[str]]:
    """
    Split a single-string answer for a multi-blank cell.

    Tries ';', then ',', then whitespace and keeps the first split whose
    token count equals `expected_length`. The order is fixed; historical
    submissions were graded with it.
    """
    attempts = (raw.split(";"), raw.split(","), WHITESPACE_SPLIT.split(raw))
    for tokens in attempts:
        cleaned = [token.strip() for token in tokens if token.strip()]
        if len(cleaned) == expected_length:
            return cleaned
    return None


def _table_rows(metadata: Dict[str, Any]) -> List[Any]:
    table = metadata.get("simpleTable")
    if not isinstance(table, dict):
        return []
    rows = table.get("rows")
    return rows if isinstance(rows, list) else []


def _cells_from_answer(raw_answer: Any) -> Dict[str, Any]:
    if isinstance(raw_answer, dict):
        cells = raw_answer.get("cells")
        if isinstance(cells, dict):
            return cells
    return {}


def _multi_numbers(cell: Dict[str, Any]) -> List[int]:
    raw = cell.get("multiNumbers")
    if not isinstance(raw, list):
        return []
    numbers = []
    for value in raw:
        if isinstance(value, bool):
            continue
        try:
            number = float(value)
        except (TypeError, ValueError):
            continue
        if math.isfinite(number):
            numbers.append(int(number))
    return numbers


def _cell_points(cell: Dict[str, Any]) -> float:
    points = coerce_points(cell.get("points"), default=1.0)
    return points or 1.0


def _blank_is_correct(question_type: str, variants, student_value: Any) -> bool:
    if question_type == "multiple_choice":
        return option_sets_equal(variants, submitted_option_set(student_value))
    if question_type == "true_false":
        return true_false_matches(variants[0] if variants else "", student_value)
    return variant_matches(variants, student_value)


def _expand_cell(cell: Dict[str, Any], base_key: str, student_raw: Any) -> List[SimpleTableEntry]:
    question_type = cell.get("questionType") or "fill_blank"
    points = _cell_points(cell)
    correct_raw = cell.get("correctAnswer") if isinstance(cell.get("correctAnswer"), str) else ""
    raw_groups = correct_raw.split(";") if ";" in correct_raw else [correct_raw]
    encoding = parse_cell_encoding(correct_raw)
    multi_numbers = _multi_numbers(cell)

    blank_count = max(
        len(multi_numbers),
        len(student_raw) if isinstance(student_raw, list) else 0,
        len(raw_groups) if len(raw_groups) > 1 else 1,
        1,
    )

    base_number = cell.get("questionNumber")
    if (isinstance(base_number, bool) or not isinstance(base_number, (int, float))
            or not math.isfinite(base_number)):
        base_number = multi_numbers[0] if multi_numbers else None

    if isinstance(student_raw, list):
        student_tokens = student_raw
    elif blank_count > 1 and isinstance(student_raw, str):
        student_tokens = split_student_string(student_raw, blank_count)
    else:
        student_tokens = None

    groups = encoding.groups_for(blank_count)
    entries = []
    for index in range(blank_count):
        if student_tokens is not None:
            student_value = student_tokens[index] if index < len(student_tokens) else None
        elif blank_count == 1 or index == 0:
            # legacy single-blank data stored the whole answer as one string
            student_value = student_raw
        else:
            student_value = None

        if index < len(multi_numbers):
            question_number = multi_numbers[index]
        elif base_number is not None:
            question_number = int(base_number) + index if blank_count > 1 else int(base_number)
        else:
            question_number = None

        group_raw = raw_groups[index] if index < len(raw_groups) else raw_groups[0]
        entries.append(SimpleTableEntry(
            key=f"{base_key}_b{index}" if blank_count > 1 else base_key,
            base_key=base_key,
            question_type=question_type,
            question_number=question_number,
            student_answer=student_value,
            correct_answer=group_raw.strip() or None,
            points=points,
            is_correct=_blank_is_correct(question_type, groups[index], student_value),
        ))
    return entries


def expand_simple_table(metadata: Any, raw_answer: Any) -> List[SimpleTableEntry]:
    """Grade every question cell of the table, in row-major order."""
    meta = parse_metadata(metadata)
    cells = _cells_from_answer(raw_answer)
    entries: List[SimpleTableEntry] = []

    for row_index, row in enumerate(_table_rows(meta)):
        if not isinstance(row, list):
            continue
        for col_index, cell in enumerate(row):
            if not isinstance(cell, dict) or cell.get("type") != "question":
                continue
            base_key = f"{row_index}_{col_index}"
            entries.extend(_expand_cell(cell, base_key, cells.get(base_key)))

    logger.debug(
        f"Expanded simple_table: entries={len(entries)}, "
        f"correct={sum(1 for e in entries if e.is_correct)}"
    )
    return entries


def normalize_simple_table_answer(raw_answer: Any, metadata: Any) -> Dict[str, Any]:
    """
    Grade a table submission into its stored form.

    Always re-grades from `cells`; extra keys of the submitted object are
    preserved.
    """
    base = dict(raw_answer) if isinstance(raw_answer, dict) else {}
    entries = expand_simple_table(metadata, base)
    return {
        **base,
        "type": STORED_ANSWER_TYPE,
        "version": base.get("version", STORED_ANSWER_VERSION),
        "cells": _cells_from_answer(base),
        "graded": [entry.to_dict() for entry in entries],
    }


def is_normalized_simple_table(raw_answer: Any) -> bool:
    return (
        isinstance(raw_answer, dict)
        and raw_answer.get("type") == STORED_ANSWER_TYPE
        and isinstance(raw_answer.get("graded"), list)
        and len(raw_answer["graded"]) > 0
    )


def ensure_simple_table_normalized(raw_answer: Any, metadata: Any) -> Dict[str, Any]:
    """Display path: keep an already graded answer, grade anything else."""
    if is_normalized_simple_table(raw_answer):
        return {
            **raw_answer,
            "version": raw_answer.get("version", STORED_ANSWER_VERSION),
        }
    return normalize_simple_table_answer(raw_answer, metadata)


def entries_from_stored(stored_answer: Dict[str, Any]) -> List[Dict[str, Any]]:
    graded = stored_answer.get("graded") if isinstance(stored_answer, dict) else None
    return [entry for entry in graded or [] if isinstance(entry, dict)]


def strip_correct_answers(stored_answer: Any) -> Any:
    """Copy of a stored table answer without the per-cell correct answers."""
    if not is_normalized_simple_table(stored_answer):
        return stored_answer
    graded = [
        {key: value for key, value in entry.items() if key != "correctAnswer"}
        for entry in entries_from_stored(stored_answer)
    ]
    return {**stored_answer, "graded": graded}
