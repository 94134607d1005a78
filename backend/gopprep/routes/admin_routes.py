"""
Admin catalog routes.

Endpoints:
- POST /api/admin/questions
- GET /api/admin/questions
- PUT /api/admin/questions/{question_id}
- DELETE /api/admin/questions/{question_id}
- POST /api/admin/questions/generate
- POST /api/admin/questions/save-ai
- GET /api/admin/subject-topics
- POST /api/admin/exams
- GET /api/admin/exams
- POST /api/admin/exams/{exam_id}/publish
- DELETE /api/admin/exams/{exam_id}
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from motor.motor_asyncio import AsyncIOMotorDatabase

from ..errors import ValidationError
from ..models import (
    Category,
    Difficulty,
    ExamCreate,
    ExamStatus,
    GenerateQuestionsRequest,
    Language,
    QuestionCreate,
    QuestionUpdate,
    SaveQuestionsRequest,
    User,
)
from ..services import CatalogService, ExamFilter, QuestionFilter, QuestionGenerator
from ..utils import utcnow
from .auth import create_auth_dependencies

logger = logging.getLogger(__name__)


def create_admin_routes(
    db: AsyncIOMotorDatabase,
    catalog: CatalogService,
    generator: QuestionGenerator
) -> APIRouter:
    """Create admin routes with database connection."""

    router = APIRouter(prefix="/api/admin", tags=["admin"])
    _, require_admin = create_auth_dependencies(db)

    # ============ QUESTIONS ============

    # Static paths first so they are not captured by /questions/{question_id}
    @router.post("/questions/generate")
    async def generate_questions(request: GenerateQuestionsRequest, admin: User = Depends(require_admin)):
        """Draft questions with the AI generator; nothing is persisted."""
        questions = await generator.generate(
            category=request.category,
            subject=request.subject,
            count=request.count,
            difficulty=request.difficulty,
            language=request.language,
            topic=request.topic,
        )
        logger.info(f"Admin {admin.user_id} generated {len(questions)} questions")
        return {
            "message": f"Generated {len(questions)} questions",
            "questions": [q.model_dump(mode="json") for q in questions],
        }

    @router.post("/questions/save-ai")
    async def save_ai_questions(request: SaveQuestionsRequest, admin: User = Depends(require_admin)):
        if not request.questions:
            raise ValidationError("No questions to save")

        saved = []
        for data in request.questions:
            data = data.model_copy(update={"is_ai_generated": True})
            question = await catalog.create_question(data, created_by=admin.user_id)
            saved.append(question.model_dump(mode="json"))

        return {"message": f"Saved {len(saved)} questions", "questions": saved}

    @router.post("/questions", status_code=201)
    async def create_question(data: QuestionCreate, admin: User = Depends(require_admin)):
        question = await catalog.create_question(data, created_by=admin.user_id)
        return {"message": "Question created successfully", "question": question.model_dump(mode="json")}

    @router.get("/questions")
    async def list_questions(
        category: Optional[Category] = None,
        subject: Optional[str] = None,
        difficulty: Optional[Difficulty] = None,
        language: Optional[Language] = None,
        page: int = Query(1, ge=1),
        limit: int = Query(50, ge=1, le=100),
        admin: User = Depends(require_admin)
    ):
        filters = QuestionFilter(
            category=category,
            subject=subject,
            difficulty=difficulty,
            language=language,
            page=page,
            limit=limit,
        )
        return await catalog.list_questions(filters)

    @router.put("/questions/{question_id}")
    async def update_question(question_id: str, update: QuestionUpdate, admin: User = Depends(require_admin)):
        question = await catalog.update_question(question_id, update)
        return {"message": "Question updated successfully", "question": question.model_dump(mode="json")}

    @router.delete("/questions/{question_id}")
    async def delete_question(question_id: str, admin: User = Depends(require_admin)):
        await catalog.delete_question(question_id)
        return {"message": "Question deleted successfully"}

    @router.get("/subject-topics")
    async def list_subject_topics(category: Optional[Category] = None, admin: User = Depends(require_admin)):
        topics = await catalog.list_subject_topics(category.value if category else None)
        return {"subject_topics": topics}

    # ============ EXAMS ============

    @router.post("/exams", status_code=201)
    async def create_exam(data: ExamCreate, admin: User = Depends(require_admin)):
        exam = await catalog.create_exam(data, created_by=admin.user_id)
        return {"message": "Exam created successfully", "exam": catalog.exam_view(exam, utcnow())}

    @router.get("/exams")
    async def list_exams(
        category: Optional[Category] = None,
        status: Optional[ExamStatus] = None,
        admin: User = Depends(require_admin)
    ):
        exams = await catalog.list_exams(ExamFilter(category=category, status=status))
        return {"exams": exams}

    @router.post("/exams/{exam_id}/publish")
    async def publish_exam(exam_id: str, admin: User = Depends(require_admin)):
        exam = await catalog.publish_exam(exam_id)
        return {"message": "Exam published successfully", "exam": catalog.exam_view(exam, utcnow())}

    @router.delete("/exams/{exam_id}")
    async def delete_exam(exam_id: str, admin: User = Depends(require_admin)):
        await catalog.delete_exam(exam_id)
        return {"message": "Exam deleted successfully"}

    return router
