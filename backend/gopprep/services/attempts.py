"""
Attempt service - the exam attempt lifecycle.

STATES:
    NONE -> ACTIVE <-> PAUSED -> COMPLETED (terminal)

Every write is conditional on the state it was checked against, so two
concurrent requests for the same attempt cannot both apply: attempt creation
is an upsert keyed on (user_id, exam_id), and resume/save/pause/submit filter
on ``is_completed`` / ``is_paused``. A write that matches nothing re-reads the
attempt and reports which guard failed.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument

from ..errors import (
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    QuotaExceededError,
    ValidationError,
)
from ..models import AnswerRecord, AttemptResult, Exam, ExamAttempt, User
from ..utils import new_id, utcnow, whole_seconds_between
from .availability import AvailabilityGate
from .catalog import CatalogService
from .quota import QuotaTracker
from .scoring import score_attempt

logger = logging.getLogger(__name__)

ALREADY_SUBMITTED = "Exam already submitted"
ALREADY_COMPLETED = "Exam already completed"
ALREADY_PAUSED = "Exam is already paused"
RESUME_FIRST = "Exam is paused. Please resume first."


class AttemptService:
    """Start, save, pause, resume and submit exam attempts."""

    def __init__(
        self,
        db: AsyncIOMotorDatabase,
        catalog: Optional[CatalogService] = None,
        quota: Optional[QuotaTracker] = None,
        gate: Optional[AvailabilityGate] = None
    ):
        self.db = db
        self.gate = gate or AvailabilityGate()
        self.catalog = catalog or CatalogService(db, self.gate)
        self.quota = quota or QuotaTracker(db)

    # ============ START / RESUME ============

    async def start(self, user: User, exam_id: str, now: Optional[datetime] = None) -> Dict[str, Any]:
        """
        Start a new attempt or resume the existing one.

        Returns:
            {
                "attempt": {...},
                "exam": {... "questions": [... with correct answers]},
                "is_resumed": bool
            }
        """
        now = now or utcnow()
        exam = await self.catalog.get_exam(exam_id)

        existing = await self._find_for_exam(user.user_id, exam.exam_id)
        if existing and existing.is_completed:
            raise InvalidStateError(ALREADY_COMPLETED)

        self.gate.check(exam, now, user.exam_preparations)

        if existing is None:
            attempt, created = await self._create(user, exam, now)
        else:
            attempt, created = existing, False

        if not created and attempt.is_paused:
            attempt = await self._resume(attempt, now)

        questions = await self.catalog.questions_for(exam, include_answers=True)
        return {
            "attempt": attempt.model_dump(mode="json"),
            "exam": self.catalog.exam_view(exam, now, questions),
            "is_resumed": attempt.last_resumed_at is not None,
        }

    async def _create(self, user: User, exam: Exam, now: datetime) -> Tuple[ExamAttempt, bool]:
        user = await self.quota.check_and_reset(user, now)
        if not self.quota.can_attempt(user):
            logger.info(f"Weekly limit reached for user {user.user_id} (exam {exam.exam_id})")
            raise QuotaExceededError()

        attempt = ExamAttempt(
            attempt_id=new_id("attempt"),
            user_id=user.user_id,
            exam_id=exam.exam_id,
            answers=[AnswerRecord(question_id=q) for q in exam.question_ids],
            start_time=now,
            created_at=now,
        )
        on_insert = attempt.model_dump(exclude={"user_id", "exam_id"})

        doc = await self.db.exam_attempts.find_one_and_update(
            {"user_id": user.user_id, "exam_id": exam.exam_id},
            {"$setOnInsert": on_insert},
            upsert=True,
            return_document=ReturnDocument.AFTER
        )
        stored = ExamAttempt(**doc)
        if stored.attempt_id != attempt.attempt_id:
            # Another request created it first
            if stored.is_completed:
                raise InvalidStateError(ALREADY_COMPLETED)
            return stored, False

        if not await self.quota.increment(user):
            await self.db.exam_attempts.delete_one({"attempt_id": attempt.attempt_id})
            logger.warning(f"Quota race lost for user {user.user_id}; attempt {attempt.attempt_id} removed")
            raise QuotaExceededError()

        logger.info(f"Attempt {attempt.attempt_id} created for user {user.user_id} on exam {exam.exam_id}")
        return stored, True

    async def _resume(self, attempt: ExamAttempt, now: datetime) -> ExamAttempt:
        paused_seconds = 0
        if attempt.paused_at is not None:
            paused_seconds = max(0, whole_seconds_between(attempt.paused_at, now))

        doc = await self.db.exam_attempts.find_one_and_update(
            {"attempt_id": attempt.attempt_id, "is_completed": False, "is_paused": True},
            {
                "$set": {"is_paused": False, "paused_at": None, "last_resumed_at": now},
                "$inc": {"paused_duration": paused_seconds},
            },
            return_document=ReturnDocument.AFTER
        )
        if doc is None:
            # Resumed (or submitted) concurrently
            current = await self._get(attempt.attempt_id)
            if current.is_completed:
                raise InvalidStateError(ALREADY_COMPLETED)
            return current

        logger.info(f"Attempt {attempt.attempt_id} resumed after {paused_seconds}s paused")
        return ExamAttempt(**doc)

    # ============ ANSWERS / PAUSE ============

    async def save_answers(
        self,
        attempt_id: str,
        answers: List[AnswerRecord],
        user: User
    ) -> ExamAttempt:
        """Replace the full answer list (no merge)."""
        attempt = await self._get(attempt_id)
        self._guard(attempt, user)
        answers = await self._check_answers(attempt, answers)

        doc = await self.db.exam_attempts.find_one_and_update(
            {"attempt_id": attempt_id, "user_id": user.user_id, "is_completed": False, "is_paused": False},
            {"$set": {"answers": [a.model_dump() for a in answers]}, "$inc": {"answers_version": 1}},
            return_document=ReturnDocument.AFTER
        )
        if doc is None:
            self._guard(await self._get(attempt_id), user)
            raise InvalidStateError(ALREADY_SUBMITTED)

        return ExamAttempt(**doc)

    async def pause(
        self,
        attempt_id: str,
        user: User,
        answers: Optional[List[AnswerRecord]] = None,
        now: Optional[datetime] = None
    ) -> ExamAttempt:
        """Pause an active attempt, saving the supplied answers first."""
        now = now or utcnow()
        attempt = await self._get(attempt_id)
        self._guard(attempt, user, pausing=True)

        update = {"$set": {"is_paused": True, "paused_at": now}}
        if answers is not None:
            answers = await self._check_answers(attempt, answers)
            update["$set"]["answers"] = [a.model_dump() for a in answers]
            update["$inc"] = {"answers_version": 1}

        doc = await self.db.exam_attempts.find_one_and_update(
            {"attempt_id": attempt_id, "user_id": user.user_id, "is_completed": False, "is_paused": False},
            update,
            return_document=ReturnDocument.AFTER
        )
        if doc is None:
            self._guard(await self._get(attempt_id), user, pausing=True)
            raise InvalidStateError(ALREADY_SUBMITTED)

        logger.info(f"Attempt {attempt_id} paused")
        return ExamAttempt(**doc)

    # ============ SUBMIT ============

    async def submit(self, attempt_id: str, user: User, now: Optional[datetime] = None) -> AttemptResult:
        """
        Score and complete an attempt.

        ``time_taken`` is wall-clock seconds from ``start_time`` to ``now``;
        paused intervals are included (they are tracked separately in
        ``paused_duration``).
        """
        now = now or utcnow()
        attempt = await self._get(attempt_id)
        self._guard(attempt, user)

        exam = await self.catalog.get_exam(attempt.exam_id)
        questions = await self.catalog.get_questions(a.question_id for a in attempt.answers)
        summary = score_attempt(attempt.answers, questions, exam.total_marks)
        time_taken = whole_seconds_between(attempt.start_time, now)

        update = summary.as_update()
        update.update({
            "end_time": now,
            "time_taken": time_taken,
            "is_completed": True,
        })

        doc = await self.db.exam_attempts.find_one_and_update(
            {
                "attempt_id": attempt_id,
                "user_id": user.user_id,
                "is_completed": False,
                "is_paused": False,
                "answers_version": attempt.answers_version,
            },
            {"$set": update},
            return_document=ReturnDocument.AFTER
        )
        if doc is None:
            current = await self._get(attempt_id)
            self._guard(current, user)
            raise InvalidStateError("Answers changed during submission. Please submit again.")

        logger.info(
            f"Attempt {attempt_id} submitted: {summary.total_score}/{exam.total_marks} "
            f"({summary.percentage}%) in {time_taken}s"
        )
        return AttemptResult(
            attempt_id=attempt_id,
            total_score=summary.total_score,
            total_marks=exam.total_marks,
            percentage=f"{summary.percentage:.2f}",
            correct_answers=summary.correct_answers,
            incorrect_answers=summary.incorrect_answers,
            unattempted=summary.unattempted,
            time_taken=time_taken,
        )

    # ============ RESULT ============

    async def get_result(self, attempt_id: str, user: User) -> Dict[str, Any]:
        """Full attempt with the exam and each answer's question (answers and explanations included)."""
        doc = await self.db.exam_attempts.find_one({"attempt_id": attempt_id}, {"_id": 0})
        if not doc:
            raise NotFoundError("Result not found")
        attempt = ExamAttempt(**doc)
        if attempt.user_id != user.user_id:
            raise ForbiddenError()

        exam = await self.catalog.get_exam(attempt.exam_id)
        questions = await self.catalog.get_questions(a.question_id for a in attempt.answers)

        result = attempt.model_dump(mode="json")
        result["exam"] = self.catalog.exam_view(exam, utcnow())
        for answer in result["answers"]:
            question = questions.get(answer["question_id"])
            answer["question"] = question.model_dump(mode="json") if question else None
        return result

    # ============ HELPERS ============

    async def _get(self, attempt_id: str) -> ExamAttempt:
        doc = await self.db.exam_attempts.find_one({"attempt_id": attempt_id}, {"_id": 0})
        if not doc:
            raise NotFoundError("Attempt not found")
        return ExamAttempt(**doc)

    async def _find_for_exam(self, user_id: str, exam_id: str) -> Optional[ExamAttempt]:
        doc = await self.db.exam_attempts.find_one(
            {"user_id": user_id, "exam_id": exam_id},
            {"_id": 0}
        )
        return ExamAttempt(**doc) if doc else None

    @staticmethod
    def _guard(attempt: ExamAttempt, user: User, pausing: bool = False) -> None:
        """Guards in order: submitted, paused, owner."""
        if attempt.is_completed:
            raise InvalidStateError(ALREADY_SUBMITTED)
        if attempt.is_paused:
            raise InvalidStateError(ALREADY_PAUSED if pausing else RESUME_FIRST)
        if attempt.user_id != user.user_id:
            raise ForbiddenError()

    async def _check_answers(self, attempt: ExamAttempt, answers: List[AnswerRecord]) -> List[AnswerRecord]:
        """
        Validate a client answer list and lay it out in exam order.

        Every exam question gets exactly one slot; questions the client did
        not send are stored unanswered.
        """
        exam = await self.catalog.get_exam(attempt.exam_id)
        allowed = set(exam.question_ids)
        unknown = [a.question_id for a in answers if a.question_id not in allowed]
        if unknown:
            raise ValidationError(f"Questions not in this exam: {', '.join(unknown)}")

        by_question = {}
        for answer in answers:
            if answer.question_id in by_question:
                raise ValidationError(f"Duplicate answer for question {answer.question_id}")
            by_question[answer.question_id] = answer

        return [by_question.get(q) or AnswerRecord(question_id=q) for q in exam.question_ids]
