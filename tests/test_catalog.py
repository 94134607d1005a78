"""Tests for the question and exam catalog."""

from datetime import timedelta

import pytest
from pydantic import ValidationError as PydanticValidationError

from gopprep.errors import InvalidStateError, NotFoundError, ValidationError
from gopprep.models import ExamCreate, QuestionCreate, QuestionUpdate
from gopprep.services import ExamFilter, QuestionFilter

from conftest import NOW, insert_exam, insert_question, insert_user, make_exam, make_question, make_user


def _question_data(**overrides):
    data = {
        "question_text": "What is 2 + 2?",
        "options": [
            {"option_label": "A", "option_text": "3"},
            {"option_label": "B", "option_text": "4"},
            {"option_label": "C", "option_text": "5"},
            {"option_label": "D", "option_text": "6"},
        ],
        "correct_answer": "b",
        "explanation": "Simple addition",
        "category": "SSC",
        "subject": "Maths",
        "topic": "Arithmetic",
    }
    data.update(overrides)
    return QuestionCreate(**data)


# ============ FILTERS ============

def test_question_filter_only_uses_set_fields():
    filters = QuestionFilter(category="SSC", difficulty="Hard")

    assert filters.to_query() == {"category": "SSC", "difficulty": "Hard"}


def test_exam_filter_status():
    assert ExamFilter(status="draft").to_query() == {"status": "draft"}
    assert ExamFilter(category="HSSC", status="active").to_query() == {
        "category": "HSSC",
        "status": {"$in": ["scheduled", "active"]},
    }


# ============ QUESTIONS ============

@pytest.mark.asyncio
async def test_create_question_tracks_subject_topic(db, catalog):
    question = await catalog.create_question(_question_data(), created_by="admin_1")
    await catalog.create_question(_question_data(question_text="What is 3 + 3?"))

    assert question.correct_answer == "B"
    assert question.question_id.startswith("question_")
    topics = await catalog.list_subject_topics("SSC")
    assert len(topics) == 1
    assert topics[0]["subject"] == "Maths"
    assert topics[0]["usage_count"] == 2


def test_question_needs_four_labelled_options():
    with pytest.raises(PydanticValidationError):
        _question_data(options=[{"option_label": "A", "option_text": "1"}])


@pytest.mark.asyncio
async def test_list_questions_paginates(db, catalog):
    for i in range(5):
        await insert_question(db, make_question(f"q{i}"))
    await insert_question(db, make_question("qb", category="Banking"))

    page = await catalog.list_questions(QuestionFilter(category="SSC", page=2, limit=2))

    assert page["total"] == 5
    assert page["total_pages"] == 3
    assert page["current_page"] == 2
    assert len(page["questions"]) == 2


@pytest.mark.asyncio
async def test_update_question_revalidates(db, catalog):
    await insert_question(db, make_question("q1"))

    updated = await catalog.update_question("q1", QuestionUpdate(correct_answer="D", marks=2))
    assert updated.correct_answer == "D"
    assert updated.marks == 2

    with pytest.raises(ValidationError):
        await catalog.update_question("q1", QuestionUpdate(correct_answer="E"))


@pytest.mark.asyncio
async def test_delete_question_in_published_exam_fails(db, catalog):
    await insert_question(db, make_question("q1"))
    await insert_question(db, make_question("q2"))
    await insert_exam(db, make_exam("exam_1", ["q1"]))

    with pytest.raises(InvalidStateError):
        await catalog.delete_question("q1")

    await catalog.delete_question("q2")
    with pytest.raises(NotFoundError):
        await catalog.get_question("q2")


# ============ EXAMS ============

@pytest.mark.asyncio
async def test_create_manual_exam_sums_marks(db, catalog):
    await insert_question(db, make_question("q1", marks=1))
    await insert_question(db, make_question("q2", marks=2))

    exam = await catalog.create_exam(
        ExamCreate(title="Mock 1", category="SSC", duration=30, questions=["q1", "q2", "q1"]),
        created_by="admin_1",
        now=NOW
    )

    assert exam.question_ids == ["q1", "q2"]
    assert exam.total_marks == 3
    assert exam.status == "draft"
    assert exam.scheduled_time == NOW + timedelta(hours=24)


@pytest.mark.asyncio
async def test_create_manual_exam_with_unknown_question(db, catalog):
    await insert_question(db, make_question("q1"))

    with pytest.raises(ValidationError):
        await catalog.create_exam(
            ExamCreate(title="Mock", category="SSC", duration=30, questions=["q1", "nope"]),
            now=NOW
        )


@pytest.mark.asyncio
async def test_create_auto_exam_filters_by_subject_and_language(db, catalog):
    await insert_question(db, make_question("m1", subject="Maths"))
    await insert_question(db, make_question("m2", subject="Maths", language="Both"))
    await insert_question(db, make_question("m3", subject="Maths", language="Hindi"))
    await insert_question(db, make_question("r1", subject="Reasoning"))

    exam = await catalog.create_exam(
        ExamCreate(
            title="Auto",
            category="SSC",
            duration=30,
            selection_method="auto",
            subjects=["Maths"],
            question_count=10,
            total_marks=20,
            status="scheduled",
        ),
        now=NOW
    )

    assert sorted(exam.question_ids) == ["m1", "m2"]
    assert exam.total_marks == 20
    assert exam.scheduled_time == NOW


@pytest.mark.asyncio
async def test_create_exam_rejects_expiry_before_start(db, catalog):
    await insert_question(db, make_question("q1"))

    with pytest.raises(ValidationError):
        await catalog.create_exam(
            ExamCreate(
                title="Bad",
                category="SSC",
                duration=30,
                questions=["q1"],
                status="scheduled",
                scheduled_time=NOW,
                expires_at=NOW - timedelta(hours=1),
            ),
            now=NOW
        )


@pytest.mark.asyncio
async def test_publish_and_delete_only_drafts(db, catalog):
    await insert_question(db, make_question("q1"))
    await insert_exam(db, make_exam("draft_1", ["q1"], status="draft"))
    await insert_exam(db, make_exam("draft_2", ["q1"], status="draft"))

    published = await catalog.publish_exam("draft_1")
    assert published.status == "scheduled"

    with pytest.raises(InvalidStateError):
        await catalog.publish_exam("draft_1")
    with pytest.raises(InvalidStateError):
        await catalog.delete_exam("draft_1")

    await catalog.delete_exam("draft_2")
    with pytest.raises(NotFoundError):
        await catalog.get_exam("draft_2")


@pytest.mark.asyncio
async def test_list_exams_filters_on_derived_status(db, catalog):
    await insert_question(db, make_question("q1"))
    await insert_exam(db, make_exam("running", ["q1"]))
    await insert_exam(db, make_exam("upcoming", ["q1"], scheduled_time=NOW + timedelta(days=2)))
    await insert_exam(db, make_exam("over", ["q1"], expires_at=NOW - timedelta(days=1)))

    active = await catalog.list_exams(ExamFilter(status="active"), now=NOW)
    completed = await catalog.list_exams(ExamFilter(status="completed"), now=NOW)

    assert [e["exam_id"] for e in active] == ["running"]
    assert [e["exam_id"] for e in completed] == ["over"]
    assert "question_ids" not in active[0]
    assert active[0]["question_count"] == 1


# ============ VIEWS ============

@pytest.mark.asyncio
async def test_exam_details_hide_answers(db, catalog):
    await insert_question(db, make_question("q1"))
    await insert_exam(db, make_exam("exam_1", ["q1"]))
    user = await insert_user(db, make_user())

    details = await catalog.get_exam_details("exam_1", user, include_questions=True, now=NOW)

    question = details["exam"]["questions"][0]
    assert "correct_answer" not in question
    assert "explanation" not in question
    assert details["exam"]["status"] == "active"
    assert details["attempt_status"] == {
        "is_completed": False,
        "is_paused": False,
        "completed_attempt_id": None,
        "paused_attempt_id": None,
    }


@pytest.mark.asyncio
async def test_available_exams_annotated_with_attempts(db, catalog, attempts):
    await insert_question(db, make_question("q1"))
    await insert_question(db, make_question("b1", category="Banking"))
    await insert_exam(db, make_exam("ssc_1", ["q1"]))
    await insert_exam(db, make_exam("ssc_2", ["q1"], scheduled_time=NOW - timedelta(hours=2)))
    await insert_exam(db, make_exam("ssc_later", ["q1"], scheduled_time=NOW + timedelta(hours=1)))
    await insert_exam(db, make_exam("ssc_draft", ["q1"], status="draft"))
    await insert_exam(db, make_exam("bank_1", ["b1"], category="Banking"))
    user = await insert_user(db, make_user())

    started = await attempts.start(user, "ssc_1", now=NOW)
    await attempts.pause(started["attempt"]["attempt_id"], user, now=NOW)

    exams = await catalog.list_available_exams(user, now=NOW)

    assert [e["exam_id"] for e in exams] == ["ssc_1", "ssc_2"]
    assert exams[0]["is_paused"] is True
    assert exams[0]["attempt_id"] == started["attempt"]["attempt_id"]
    assert exams[1]["is_attempted"] is False
    assert exams[1]["attempt_id"] is None
