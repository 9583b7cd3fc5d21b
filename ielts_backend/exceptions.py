"""
ielts_backend/exceptions.py
Engine-level exceptions for answer grading

Raised inside the grading services only. The per-question dispatcher
catches them, so a single malformed question never aborts a session.
"""


class IeltsGraderException(Exception):
    """Base exception for the grading engine"""

    def __init__(self, message: str, question_id: str = None):
        self.message = message
        self.question_id = question_id
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.question_id:
            return f"{self.message} (question: {self.question_id})"
        return self.message


class GradingError(IeltsGraderException):
    """
    Raised when a submission cannot be graded against its question.

    Examples:
    - image_dnd submission without a placement map
    - image_dnd placements that are not an object
    """

    def __init__(self, message: str = "Answer could not be graded", question_id: str = None):
        super().__init__(message, question_id)


class UnsupportedQuestionTypeError(GradingError):
    """Raised when no grader is registered for a question type."""

    def __init__(self, question_type: str, question_id: str = None):
        self.question_type = question_type
        super().__init__(f"No grader registered for question type '{question_type}'", question_id)
