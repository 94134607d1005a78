"""Shared fixtures: an in-memory Motor database and document builders."""

from datetime import datetime, timedelta, timezone

import pytest
from mongomock_motor import AsyncMongoMockClient

from gopprep.models import Exam, Question, User
from gopprep.services import AttemptService, AvailabilityGate, CatalogService, QuotaTracker

NOW = datetime(2024, 3, 10, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def db():
    client = AsyncMongoMockClient()
    return client["gopprep_test"]


@pytest.fixture
def gate():
    return AvailabilityGate()


@pytest.fixture
def catalog(db, gate):
    return CatalogService(db, gate)


@pytest.fixture
def quota(db):
    return QuotaTracker(db, limit=3, reset_days=7)


@pytest.fixture
def attempts(db, catalog, quota, gate):
    return AttemptService(db, catalog=catalog, quota=quota, gate=gate)


def make_question(question_id, correct="A", marks=1, category="SSC", subject="Maths", language="English"):
    return Question(
        question_id=question_id,
        question_text=f"Question {question_id}?",
        options=[{"option_label": label, "option_text": f"{label} text"} for label in "ABCD"],
        correct_answer=correct,
        explanation=f"Because {correct}",
        category=category,
        subject=subject,
        marks=marks,
        difficulty="Medium",
        language=language,
        created_at=NOW - timedelta(days=30),
    )


def make_exam(exam_id, question_ids, total_marks=None, category="SSC", status="scheduled",
              scheduled_time=None, expires_at=None):
    return Exam(
        exam_id=exam_id,
        title=f"Exam {exam_id}",
        category=category,
        scheduled_time=scheduled_time or NOW - timedelta(hours=1),
        duration=60,
        question_ids=question_ids,
        total_marks=total_marks if total_marks is not None else len(question_ids),
        status=status,
        expires_at=expires_at,
        created_at=NOW - timedelta(days=1),
    )


def make_user(user_id="user_1", premium=False, attempted=0, last_reset=None, categories=("SSC",), role="user"):
    return User(
        user_id=user_id,
        phone_number="9999999999",
        name="Test User",
        exam_preparations=list(categories),
        role=role,
        subscription_status="premium" if premium else "free",
        weekly_exams_attempted=attempted,
        last_week_reset=last_reset or NOW - timedelta(days=1),
        created_at=NOW - timedelta(days=60),
    )


async def insert_question(db, question):
    await db.questions.insert_one(question.model_dump())
    return question


async def insert_exam(db, exam):
    await db.exams.insert_one(exam.model_dump())
    return exam


async def insert_user(db, user):
    await db.users.insert_one(user.model_dump())
    return user


async def load_user(db, user_id):
    doc = await db.users.find_one({"user_id": user_id}, {"_id": 0})
    return User(**doc)


@pytest.fixture
async def two_question_exam(db):
    """Q1 (A correct, 1 mark) and Q2 (C correct, 2 marks), total 3."""
    await insert_question(db, make_question("q1", correct="A"))
    await insert_question(db, make_question("q2", correct="C", marks=2))
    return await insert_exam(db, make_exam("exam_1", ["q1", "q2"], total_marks=3))
