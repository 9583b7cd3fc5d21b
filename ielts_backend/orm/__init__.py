from .base import Base

from .exam import Exam, ExamSection, ExamQuestion
from .exam_session import ExamSession, ExamSessionStatus
from .exam_answer import ExamSessionAnswer
