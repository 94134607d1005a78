"""Question and exam catalog Pydantic models"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..utils import ensure_utc

OPTION_LABELS = ("A", "B", "C", "D")


class Category(str, Enum):
    SSC = "SSC"
    BANKING = "Banking"
    HSSC = "HSSC"


class Language(str, Enum):
    HINDI = "Hindi"
    ENGLISH = "English"
    BOTH = "Both"


class Difficulty(str, Enum):
    EASY = "Easy"
    MEDIUM = "Medium"
    HARD = "Hard"


class ExamStatus(str, Enum):
    """draft -> scheduled -> active -> completed"""
    DRAFT = "draft"
    SCHEDULED = "scheduled"
    ACTIVE = "active"
    COMPLETED = "completed"


class Option(BaseModel):
    option_label: str
    option_text: str

    @field_validator("option_label")
    @classmethod
    def _label(cls, v: str) -> str:
        v = v.strip().upper()
        if v not in OPTION_LABELS:
            raise ValueError(f"Option label must be one of {', '.join(OPTION_LABELS)}")
        return v


def _check_options(options: Optional[List[Option]], field_name: str) -> None:
    if options is None:
        return
    labels = [o.option_label for o in options]
    if len(options) != 4 or sorted(labels) != list(OPTION_LABELS):
        raise ValueError(f"{field_name} must contain exactly four options labelled A-D")


class QuestionBase(BaseModel):
    model_config = ConfigDict(use_enum_values=True, validate_default=True)
    question_text: str
    options: List[Option]
    correct_answer: str
    explanation: str
    category: Category
    subject: str
    topic: Optional[str] = None
    marks: float = Field(1, gt=0)
    difficulty: Difficulty = Difficulty.MEDIUM
    language: Language = Language.ENGLISH
    question_text_hindi: Optional[str] = None
    options_hindi: Optional[List[Option]] = None
    explanation_hindi: Optional[str] = None
    question_image: Optional[str] = None
    is_ai_generated: bool = False

    @field_validator("correct_answer")
    @classmethod
    def _correct_label(cls, v: str) -> str:
        v = v.strip().upper()
        if v not in OPTION_LABELS:
            raise ValueError("correct_answer must be one of A, B, C, D")
        return v

    @model_validator(mode="after")
    def _four_options(self):
        _check_options(self.options, "options")
        _check_options(self.options_hindi, "options_hindi")
        return self


class QuestionCreate(QuestionBase):
    """Model for creating a question (admin or AI generated)"""


class QuestionUpdate(BaseModel):
    """Partial admin edit of a question"""
    model_config = ConfigDict(use_enum_values=True, validate_default=True)
    question_text: Optional[str] = None
    options: Optional[List[Option]] = None
    correct_answer: Optional[str] = None
    explanation: Optional[str] = None
    category: Optional[Category] = None
    subject: Optional[str] = None
    topic: Optional[str] = None
    marks: Optional[float] = Field(None, gt=0)
    difficulty: Optional[Difficulty] = None
    language: Optional[Language] = None
    question_text_hindi: Optional[str] = None
    options_hindi: Optional[List[Option]] = None
    explanation_hindi: Optional[str] = None
    question_image: Optional[str] = None


class Question(QuestionBase):
    model_config = ConfigDict(extra="ignore", use_enum_values=True, validate_default=True)
    question_id: str
    created_by: Optional[str] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def public_view(self) -> Dict[str, Any]:
        """Question content without the correct answer or explanations."""
        return self.model_dump(
            mode="json",
            exclude={"correct_answer", "explanation", "explanation_hindi", "created_by", "is_ai_generated"},
        )


class Exam(BaseModel):
    model_config = ConfigDict(extra="ignore", use_enum_values=True, validate_default=True)
    exam_id: str
    title: str
    category: Category
    scheduled_time: datetime
    duration: int  # minutes
    question_ids: List[str] = []
    total_marks: float
    language: Language = Language.ENGLISH
    status: ExamStatus = ExamStatus.DRAFT  # stored publication state only
    expires_at: Optional[datetime] = None
    created_by: Optional[str] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @field_validator("scheduled_time", "expires_at", "created_at")
    @classmethod
    def _utc(cls, v):
        return ensure_utc(v)


class ExamCreate(BaseModel):
    """Model for creating an exam from manually or automatically selected questions"""
    model_config = ConfigDict(use_enum_values=True, validate_default=True)
    title: str
    category: Category
    duration: int = Field(..., gt=0)
    selection_method: str = "manual"  # manual, auto
    questions: List[str] = []
    subjects: List[str] = []
    question_count: int = Field(50, gt=0)
    total_marks: Optional[float] = Field(None, ge=0)
    language: Language = Language.ENGLISH
    status: ExamStatus = ExamStatus.DRAFT
    scheduled_time: Optional[datetime] = None
    expires_at: Optional[datetime] = None

    @field_validator("selection_method")
    @classmethod
    def _method(cls, v: str) -> str:
        if v not in ("manual", "auto"):
            raise ValueError("selection_method must be 'manual' or 'auto'")
        return v

    @field_validator("status")
    @classmethod
    def _creatable_status(cls, v: ExamStatus) -> ExamStatus:
        if v not in (ExamStatus.DRAFT, ExamStatus.SCHEDULED):
            raise ValueError("status must be 'draft' or 'scheduled'")
        return v

    @field_validator("scheduled_time", "expires_at")
    @classmethod
    def _utc(cls, v):
        return ensure_utc(v)


class SubjectTopic(BaseModel):
    model_config = ConfigDict(extra="ignore", use_enum_values=True, validate_default=True)
    subject: str
    topic: str = ""
    category: Category
    usage_count: int = 1
    last_used: Optional[datetime] = None


class GenerateQuestionsRequest(BaseModel):
    """Admin request for AI generated questions (validated by the generator)"""
    category: str
    subject: str
    topic: Optional[str] = None
    count: int = 10
    difficulty: str = "Medium"
    language: str = "English"


class SaveQuestionsRequest(BaseModel):
    questions: List[QuestionCreate]
