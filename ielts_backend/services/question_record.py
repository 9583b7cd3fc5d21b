"""
ielts_backend/services/question_record.py
Read-only question definition used by the grading engine

Question rows reach the engine as ORM objects or plain dicts:
    {id, type, points, correctAnswer, metadata}
`metadata` may arrive JSON-stringified or already parsed; malformed JSON
is treated as an empty object.
"""

import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

from ielts_backend.services.answer_encoding import AnswerEncoding, parse_answer_encoding

logger = logging.getLogger(__name__)


class QuestionType(str, Enum):
    MULTIPLE_CHOICE = "multiple_choice"
    TRUE_FALSE = "true_false"
    FILL_BLANK = "fill_blank"
    SHORT_ANSWER = "short_answer"
    MATCHING = "matching"
    MULTI_SELECT = "multi_select"
    DRAG_DROP = "drag_drop"
    ESSAY = "essay"
    WRITING_TASK1 = "writing_task1"
    SPEAKING_TASK = "speaking_task"
    IMAGE_LABELING = "image_labeling"
    IMAGE_DND = "image_dnd"
    SIMPLE_TABLE = "simple_table"
    TABLE_FILL_BLANK = "table_fill_blank"
    TABLE_DRAG_DROP = "table_drag_drop"


# Scored through their cells, never directly
CONTAINER_TYPES = frozenset({
    QuestionType.TABLE_FILL_BLANK,
    QuestionType.TABLE_DRAG_DROP,
})

# Points come from a human grader
MANUALLY_GRADED_TYPES = frozenset({
    QuestionType.ESSAY,
    QuestionType.WRITING_TASK1,
    QuestionType.SPEAKING_TASK,
})

WRITING_TYPES = frozenset({
    QuestionType.ESSAY,
    QuestionType.WRITING_TASK1,
})


def parse_metadata(raw: Any) -> Dict[str, Any]:
    """Metadata as a dict, whether stored parsed or as a JSON string."""
    if not raw:
        return {}
    if isinstance(raw, dict):
        return raw
    if isinstance(raw, str):
        try:
            parsed = json.loads(raw)
        except (ValueError, TypeError):
            logger.warning("Ignoring malformed question metadata JSON")
            return {}
        return parsed if isinstance(parsed, dict) else {}
    return {}


def parse_json_object(raw: Any) -> Optional[Dict[str, Any]]:
    """Nested metadata blobs (heading banks, correct maps) use the same rules."""
    parsed = parse_metadata(raw)
    return parsed or None


def coerce_points(value: Any, default: float = 1.0) -> float:
    if value is None or isinstance(value, bool):
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


@dataclass(frozen=True)
class QuestionRecord:
    """
    One question as seen by the grader.

    The correct-answer encoding is resolved once, at construction, and
    reused for every submission graded against this question.
    """
    id: str
    type: str
    points: float = 1.0
    correct_answer: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    section_type: Optional[str] = None
    question_number: Optional[int] = None
    encoding: AnswerEncoding = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        object.__setattr__(self, "encoding", parse_answer_encoding(self.correct_answer))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "QuestionRecord":
        return cls(
            id=str(data.get("id")),
            type=str(data.get("type") or data.get("questionType") or ""),
            points=coerce_points(data.get("points")),
            correct_answer=data.get("correctAnswer", data.get("correct_answer")),
            metadata=parse_metadata(data.get("metadata")),
            section_type=data.get("sectionType", data.get("section_type")),
            question_number=data.get("questionNumber", data.get("question_number")),
        )

    @property
    def question_type(self) -> Optional[QuestionType]:
        try:
            return QuestionType(self.type)
        except ValueError:
            return None

    @property
    def is_container(self) -> bool:
        return self.question_type in CONTAINER_TYPES

    @property
    def is_manually_graded(self) -> bool:
        return self.question_type in MANUALLY_GRADED_TYPES

    @property
    def group_anchor_id(self) -> Optional[str]:
        """Anchor id if this question is a group member."""
        anchor = self.metadata.get("groupMemberOf")
        return str(anchor) if anchor not in (None, "") else None

    @property
    def is_group_anchor(self) -> bool:
        return self.metadata.get("groupRangeEnd") is not None
