"""Exam attempt Pydantic models and request bodies"""

import json
from datetime import datetime, timezone
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..utils import ensure_utc
from .catalog import OPTION_LABELS


class AnswerRecord(BaseModel):
    """One answer slot of an attempt"""
    question_id: str
    selected_answer: Optional[str] = None
    is_correct: bool = False
    marks_obtained: float = 0


class ExamAttempt(BaseModel):
    model_config = ConfigDict(extra="ignore")
    attempt_id: str
    user_id: str
    exam_id: str
    answers: List[AnswerRecord] = []
    start_time: datetime
    end_time: Optional[datetime] = None
    time_taken: Optional[int] = None  # seconds, wall clock including pauses
    total_score: float = 0
    correct_answers: int = 0
    incorrect_answers: int = 0
    unattempted: int = 0
    percentage: float = 0
    is_completed: bool = False
    is_paused: bool = False
    paused_at: Optional[datetime] = None
    paused_duration: int = 0  # seconds
    answers_version: int = 0  # bumped on every answer write
    last_resumed_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @field_validator("start_time", "end_time", "paused_at", "last_resumed_at", "created_at")
    @classmethod
    def _utc(cls, v):
        return ensure_utc(v)

    @property
    def state(self) -> str:
        if self.is_completed:
            return "completed"
        if self.is_paused:
            return "paused"
        return "active"


class AttemptResult(BaseModel):
    """Compact result summary returned by submit"""
    attempt_id: str
    total_score: float
    total_marks: float
    percentage: str  # two decimal places
    correct_answers: int
    incorrect_answers: int
    unattempted: int
    time_taken: int


# ============ REQUEST BODIES ============

class AnswerInput(BaseModel):
    """
    A single answer as sent by clients.

    Accepts ``question_id``/``question``/``questionId`` (a plain id or a
    populated question object) and ``selected_answer``/``selectedAnswer``.
    Empty selections become ``None``.
    """
    question_id: str
    selected_answer: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def _normalize_keys(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        question = data.get("question_id", data.get("question", data.get("questionId")))
        if isinstance(question, dict):
            question = question.get("question_id") or question.get("_id")
        selected = data.get("selected_answer", data.get("selectedAnswer"))
        return {"question_id": question, "selected_answer": selected}

    @field_validator("question_id", mode="before")
    @classmethod
    def _question_id(cls, v):
        if v is None or str(v).strip() == "":
            raise ValueError("question_id is required")
        return str(v).strip()

    @field_validator("selected_answer", mode="before")
    @classmethod
    def _selected(cls, v):
        if v is None:
            return None
        v = str(v).strip().upper()
        if v == "":
            return None
        if v not in OPTION_LABELS:
            raise ValueError("selected_answer must be one of A, B, C, D")
        return v

    def to_record(self) -> AnswerRecord:
        # correctness is only ever computed on submit
        return AnswerRecord(question_id=self.question_id, selected_answer=self.selected_answer)


def _decode_answers(v):
    """FormData clients send the answer list as a JSON string."""
    if isinstance(v, str):
        v = v.strip()
        if not v:
            return []
        try:
            return json.loads(v)
        except json.JSONDecodeError as e:
            raise ValueError(f"answers is not valid JSON: {e.msg}")
    return v


class SaveAnswersRequest(BaseModel):
    answers: List[AnswerInput]

    @field_validator("answers", mode="before")
    @classmethod
    def _answers(cls, v):
        return _decode_answers(v)

    def records(self) -> List[AnswerRecord]:
        return [a.to_record() for a in self.answers]


class PauseRequest(BaseModel):
    answers: Optional[List[AnswerInput]] = None

    @field_validator("answers", mode="before")
    @classmethod
    def _answers(cls, v):
        # A blank form field means "pause without saving"
        if isinstance(v, str) and not v.strip():
            return None
        return _decode_answers(v)

    def records(self) -> Optional[List[AnswerRecord]]:
        if self.answers is None:
            return None
        return [a.to_record() for a in self.answers]
