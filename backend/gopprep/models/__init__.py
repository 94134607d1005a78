"""Pydantic models for GopPrep application"""

from .catalog import (
    OPTION_LABELS,
    Category,
    Language,
    Difficulty,
    ExamStatus,
    Option,
    Question,
    QuestionCreate,
    QuestionUpdate,
    Exam,
    ExamCreate,
    SubjectTopic,
    GenerateQuestionsRequest,
    SaveQuestionsRequest,
)
from .attempt import (
    AnswerRecord,
    ExamAttempt,
    AttemptResult,
    AnswerInput,
    SaveAnswersRequest,
    PauseRequest,
)
from .user import User, ProfileUpdate, PreferredLanguage

__all__ = [
    # Catalog models
    "OPTION_LABELS",
    "Category",
    "Language",
    "Difficulty",
    "ExamStatus",
    "Option",
    "Question",
    "QuestionCreate",
    "QuestionUpdate",
    "Exam",
    "ExamCreate",
    "SubjectTopic",
    "GenerateQuestionsRequest",
    "SaveQuestionsRequest",

    # Attempt models
    "AnswerRecord",
    "ExamAttempt",
    "AttemptResult",
    "AnswerInput",
    "SaveAnswersRequest",
    "PauseRequest",

    # User models
    "User",
    "ProfileUpdate",
    "PreferredLanguage",
]
