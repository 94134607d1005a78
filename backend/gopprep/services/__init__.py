"""Services for the exam catalog and the attempt lifecycle."""

from .availability import AvailabilityGate, derive_exam_status
from .quota import QuotaTracker
from .scoring import ScoreSummary, score_attempt
from .catalog import CatalogService, QuestionFilter, ExamFilter
from .attempts import AttemptService
from .question_generator import QuestionGenerator, GeminiQuestionGenerator

__all__ = [
    "AvailabilityGate",
    "derive_exam_status",
    "QuotaTracker",
    "ScoreSummary",
    "score_attempt",
    "CatalogService",
    "QuestionFilter",
    "ExamFilter",
    "AttemptService",
    "QuestionGenerator",
    "GeminiQuestionGenerator",
]
