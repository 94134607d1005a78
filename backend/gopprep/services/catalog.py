"""
Catalog service - questions and exams consumed by the attempt engine.

Filters are typed models with an enumerated field set; ``to_query`` is the
only place a Mongo predicate is assembled.
"""

import logging
import math
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from ..config.settings import settings
from ..errors import InvalidStateError, NotFoundError, ValidationError
from ..models import (
    Category,
    Difficulty,
    Exam,
    ExamCreate,
    ExamStatus,
    Language,
    Question,
    QuestionCreate,
    QuestionUpdate,
    SubjectTopic,
    User,
)
from ..utils import new_id, utcnow
from .availability import STARTABLE_STATUSES, AvailabilityGate, derive_exam_status

logger = logging.getLogger(__name__)


# ============ FILTERS ============

class QuestionFilter(BaseModel):
    model_config = ConfigDict(use_enum_values=True)
    category: Optional[Category] = None
    subject: Optional[str] = None
    difficulty: Optional[Difficulty] = None
    language: Optional[Language] = None
    page: int = Field(1, ge=1)
    limit: int = Field(50, ge=1, le=100)

    def to_query(self) -> Dict[str, Any]:
        query = {}
        for name in ("category", "subject", "difficulty", "language"):
            value = getattr(self, name)
            if value:
                query[name] = value
        return query


class ExamFilter(BaseModel):
    model_config = ConfigDict(use_enum_values=True)
    category: Optional[Category] = None
    status: Optional[ExamStatus] = None  # derived status

    def to_query(self) -> Dict[str, Any]:
        query = {}
        if self.category:
            query["category"] = self.category
        if self.status == ExamStatus.DRAFT:
            query["status"] = ExamStatus.DRAFT.value
        elif self.status:
            query["status"] = {"$in": list(STARTABLE_STATUSES)}
        return query


def _validation_message(error: PydanticValidationError) -> str:
    parts = []
    for err in error.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()))
        parts.append(f"{loc}: {err.get('msg')}" if loc else err.get("msg", ""))
    return "; ".join(parts)


class CatalogService:
    """Question and exam catalog backed by MongoDB."""

    def __init__(self, db: AsyncIOMotorDatabase, gate: Optional[AvailabilityGate] = None):
        self.db = db
        self.gate = gate or AvailabilityGate()

    # ============ LOOKUPS ============

    async def get_exam(self, exam_id: str) -> Exam:
        doc = await self.db.exams.find_one({"exam_id": exam_id}, {"_id": 0})
        if not doc:
            raise NotFoundError("Exam not found")
        return Exam(**doc)

    async def get_question(self, question_id: str) -> Question:
        doc = await self.db.questions.find_one({"question_id": question_id}, {"_id": 0})
        if not doc:
            raise NotFoundError("Question not found")
        return Question(**doc)

    async def get_questions(self, question_ids: Iterable[str]) -> Dict[str, Question]:
        """Questions keyed by question_id; missing ids are simply absent."""
        ids = list(dict.fromkeys(question_ids))
        if not ids:
            return {}
        docs = await self.db.questions.find(
            {"question_id": {"$in": ids}},
            {"_id": 0}
        ).to_list(length=None)
        return {d["question_id"]: Question(**d) for d in docs}

    # ============ QUESTIONS ============

    async def create_question(self, data: QuestionCreate, created_by: Optional[str] = None) -> Question:
        question = Question(
            question_id=new_id("question"),
            created_by=created_by,
            **data.model_dump()
        )
        await self.db.questions.insert_one(question.model_dump())
        await self._track_subject_topic(question.subject, question.topic, question.category)
        logger.info(f"Question {question.question_id} created ({question.category}/{question.subject})")
        return question

    async def list_questions(self, filters: QuestionFilter) -> Dict[str, Any]:
        query = filters.to_query()
        total = await self.db.questions.count_documents(query)
        docs = await self.db.questions.find(query, {"_id": 0}) \
            .sort("created_at", -1) \
            .skip((filters.page - 1) * filters.limit) \
            .limit(filters.limit) \
            .to_list(length=filters.limit)

        return {
            "questions": [Question(**d).model_dump(mode="json") for d in docs],
            "total": total,
            "total_pages": math.ceil(total / filters.limit),
            "current_page": filters.page,
        }

    async def update_question(self, question_id: str, update: QuestionUpdate) -> Question:
        current = await self.get_question(question_id)
        changes = update.model_dump(exclude_unset=True)
        merged = {**current.model_dump(), **changes}

        try:
            QuestionCreate(**merged)
        except PydanticValidationError as e:
            raise ValidationError(_validation_message(e))

        question = Question(**merged)
        await self.db.questions.update_one(
            {"question_id": question_id},
            {"$set": question.model_dump(exclude={"question_id", "created_by", "created_at"})}
        )
        await self._track_subject_topic(question.subject, question.topic, question.category)
        logger.info(f"Question {question_id} updated: {sorted(changes)}")
        return question

    async def delete_question(self, question_id: str) -> None:
        await self.get_question(question_id)

        in_use = await self.db.exams.count_documents({
            "question_ids": question_id,
            "status": {"$ne": ExamStatus.DRAFT.value}
        })
        if in_use:
            raise InvalidStateError("Question is used by a published exam")

        await self.db.questions.delete_one({"question_id": question_id})
        logger.info(f"Question {question_id} deleted")

    async def _track_subject_topic(self, subject: str, topic: Optional[str], category: str) -> None:
        """Count subject/topic usage; failures here never fail the question write."""
        try:
            await self.db.subject_topics.update_one(
                {"subject": subject.strip(), "topic": (topic or "").strip(), "category": category},
                {"$inc": {"usage_count": 1}, "$set": {"last_used": utcnow()}},
                upsert=True
            )
        except Exception as e:
            logger.warning(f"Subject-topic tracking failed for {subject}/{topic}: {e}")

    async def list_subject_topics(self, category: Optional[str] = None) -> List[Dict[str, Any]]:
        query = {"category": category} if category else {}
        docs = await self.db.subject_topics.find(query, {"_id": 0}) \
            .sort("usage_count", -1) \
            .to_list(length=None)
        return [SubjectTopic(**d).model_dump(mode="json") for d in docs]

    # ============ EXAMS ============

    async def create_exam(
        self,
        data: ExamCreate,
        created_by: Optional[str] = None,
        now: Optional[datetime] = None
    ) -> Exam:
        """
        Create an exam from manually or automatically selected questions.

        ``total_marks`` is the sum of the selected questions' marks unless an
        explicit value is supplied.
        """
        now = now or utcnow()

        if data.selection_method == "manual":
            question_ids = list(dict.fromkeys(data.questions))
            questions = await self.get_questions(question_ids)
            missing = [q for q in question_ids if q not in questions]
            if missing:
                raise ValidationError(f"Unknown questions: {', '.join(missing)}")
        else:
            query = {"category": data.category}
            if data.subjects:
                query["subject"] = {"$in": data.subjects}
            if data.language != Language.BOTH:
                query["language"] = {"$in": [data.language, Language.BOTH.value]}
            docs = await self.db.questions.find(query, {"_id": 0}) \
                .sort("created_at", -1) \
                .limit(data.question_count) \
                .to_list(length=data.question_count)
            questions = {d["question_id"]: Question(**d) for d in docs}
            question_ids = [d["question_id"] for d in docs]

        if not question_ids:
            raise ValidationError("No questions selected")

        if data.status == ExamStatus.SCHEDULED:
            scheduled_time = data.scheduled_time or now
        else:
            scheduled_time = data.scheduled_time or now + timedelta(hours=settings.DRAFT_SCHEDULE_OFFSET_HOURS)

        if data.expires_at is not None and data.expires_at <= scheduled_time:
            raise ValidationError("expires_at must be after scheduled_time")

        total_marks = data.total_marks
        if total_marks is None:
            total_marks = sum(questions[q].marks for q in question_ids)

        exam = Exam(
            exam_id=new_id("exam"),
            title=data.title,
            category=data.category,
            scheduled_time=scheduled_time,
            duration=data.duration,
            question_ids=question_ids,
            total_marks=total_marks,
            language=data.language,
            status=data.status,
            expires_at=data.expires_at,
            created_by=created_by,
            created_at=now,
        )
        await self.db.exams.insert_one(exam.model_dump())
        logger.info(f"Exam {exam.exam_id} created with {len(question_ids)} questions ({exam.status})")
        return exam

    async def list_exams(self, filters: ExamFilter, now: Optional[datetime] = None) -> List[Dict[str, Any]]:
        now = now or utcnow()
        docs = await self.db.exams.find(filters.to_query(), {"_id": 0}) \
            .sort("created_at", -1) \
            .to_list(length=None)

        exams = []
        for doc in docs:
            exam = Exam(**doc)
            if filters.status and derive_exam_status(exam, now) != filters.status:
                continue
            exams.append(self.exam_view(exam, now))
        return exams

    async def publish_exam(self, exam_id: str) -> Exam:
        exam = await self.get_exam(exam_id)
        if exam.status != ExamStatus.DRAFT:
            raise InvalidStateError("Can only publish draft exams")

        result = await self.db.exams.update_one(
            {"exam_id": exam_id, "status": ExamStatus.DRAFT.value},
            {"$set": {"status": ExamStatus.SCHEDULED.value}}
        )
        if result.modified_count == 0:
            raise InvalidStateError("Can only publish draft exams")

        logger.info(f"Exam {exam_id} published")
        return exam.model_copy(update={"status": ExamStatus.SCHEDULED.value})

    async def delete_exam(self, exam_id: str) -> None:
        exam = await self.get_exam(exam_id)
        if exam.status != ExamStatus.DRAFT:
            raise InvalidStateError("Can only delete draft exams")
        await self.db.exams.delete_one({"exam_id": exam_id, "status": ExamStatus.DRAFT.value})
        logger.info(f"Exam {exam_id} deleted")

    # ============ VIEWS ============

    def exam_view(
        self,
        exam: Exam,
        now: datetime,
        questions: Optional[List[Dict[str, Any]]] = None
    ) -> Dict[str, Any]:
        """Exam metadata with derived status and either question content or a count."""
        view = exam.model_dump(mode="json", exclude={"question_ids"})
        view["status"] = derive_exam_status(exam, now)
        view["question_count"] = len(exam.question_ids)
        if questions is not None:
            view["questions"] = questions
        return view

    async def questions_for(self, exam: Exam, include_answers: bool) -> List[Dict[str, Any]]:
        """
        Question content in exam order.

        Correct answers and explanations are only included when
        ``include_answers`` is set (an attempt is in progress or finished).
        """
        questions = await self.get_questions(exam.question_ids)
        ordered = [questions[q] for q in exam.question_ids if q in questions]
        if include_answers:
            return [q.model_dump(mode="json") for q in ordered]
        return [q.public_view() for q in ordered]

    async def get_exam_details(
        self,
        exam_id: str,
        user: User,
        include_questions: bool = False,
        now: Optional[datetime] = None
    ) -> Dict[str, Any]:
        now = now or utcnow()
        exam = await self.get_exam(exam_id)

        questions = None
        if include_questions:
            questions = await self.questions_for(exam, include_answers=False)

        attempt = await self.db.exam_attempts.find_one(
            {"user_id": user.user_id, "exam_id": exam_id},
            {"_id": 0, "attempt_id": 1, "is_completed": 1, "is_paused": 1}
        )
        is_completed = bool(attempt and attempt.get("is_completed"))
        is_paused = bool(attempt and not attempt.get("is_completed") and attempt.get("is_paused"))

        return {
            "exam": self.exam_view(exam, now, questions),
            "attempt_status": {
                "is_completed": is_completed,
                "is_paused": is_paused,
                "completed_attempt_id": attempt["attempt_id"] if is_completed else None,
                "paused_attempt_id": attempt["attempt_id"] if is_paused else None,
            },
        }

    async def list_available_exams(
        self,
        user: User,
        now: Optional[datetime] = None,
        limit: Optional[int] = None
    ) -> List[Dict[str, Any]]:
        """Exams passing the availability gate for the user's categories, newest first."""
        now = now or utcnow()
        if not user.exam_preparations:
            return []

        docs = await self.db.exams.find(
            {
                "category": {"$in": list(user.exam_preparations)},
                "status": {"$in": list(STARTABLE_STATUSES)},
            },
            {"_id": 0}
        ).sort("scheduled_time", -1).to_list(length=None)

        exams = [Exam(**d) for d in docs]
        exams = [e for e in exams if self.gate.is_available(e, now, user.exam_preparations)]
        if limit is not None:
            exams = exams[:limit]

        attempts = await self.db.exam_attempts.find(
            {"user_id": user.user_id, "exam_id": {"$in": [e.exam_id for e in exams]}},
            {"_id": 0, "attempt_id": 1, "exam_id": 1, "is_completed": 1, "is_paused": 1}
        ).to_list(length=None)
        by_exam = {a["exam_id"]: a for a in attempts}

        result = []
        for exam in exams:
            view = self.exam_view(exam, now)
            attempt = by_exam.get(exam.exam_id)
            view["is_attempted"] = bool(attempt and attempt.get("is_completed"))
            view["is_paused"] = bool(attempt and not attempt.get("is_completed") and attempt.get("is_paused"))
            view["attempt_id"] = attempt["attempt_id"] if attempt else None
            result.append(view)
        return result
