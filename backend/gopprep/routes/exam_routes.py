"""
Exam taking routes.

Endpoints:
- GET /api/exams/available
- GET /api/exams/{exam_id}
- POST /api/exams/{exam_id}/start
- PUT /api/exams/attempt/{attempt_id}
- POST /api/exams/attempt/{attempt_id}/pause
- POST /api/exams/attempt/{attempt_id}/submit
- GET /api/exams/result/{attempt_id}
"""

from typing import Optional

from fastapi import APIRouter, Body, Depends
from motor.motor_asyncio import AsyncIOMotorDatabase

from ..models import PauseRequest, SaveAnswersRequest, User
from ..services import AttemptService, CatalogService
from .auth import create_auth_dependencies


def create_exam_routes(
    db: AsyncIOMotorDatabase,
    attempts: AttemptService,
    catalog: CatalogService
) -> APIRouter:
    """Create exam routes with database connection."""

    router = APIRouter(prefix="/api/exams", tags=["exams"])
    get_current_user, _ = create_auth_dependencies(db)

    # Must be registered before /{exam_id}
    @router.get("/available")
    async def get_available_exams(user: User = Depends(get_current_user)):
        """Exams the user can start now, annotated with their attempt state."""
        exams = await catalog.list_available_exams(user)
        return {"exams": exams}

    @router.get("/result/{attempt_id}")
    async def get_result(attempt_id: str, user: User = Depends(get_current_user)):
        result = await attempts.get_result(attempt_id, user)
        return {"result": result}

    @router.get("/{exam_id}")
    async def get_exam(
        exam_id: str,
        include_questions: bool = False,
        user: User = Depends(get_current_user)
    ):
        return await catalog.get_exam_details(exam_id, user, include_questions)

    @router.post("/{exam_id}/start")
    async def start_exam(exam_id: str, user: User = Depends(get_current_user)):
        """Start a new attempt, or resume the paused/active one."""
        return await attempts.start(user, exam_id)

    @router.put("/attempt/{attempt_id}")
    async def save_answers(
        attempt_id: str,
        request: SaveAnswersRequest,
        user: User = Depends(get_current_user)
    ):
        attempt = await attempts.save_answers(attempt_id, request.records(), user)
        return {"message": "Answers saved", "attempt": attempt.model_dump(mode="json")}

    @router.post("/attempt/{attempt_id}/pause")
    async def pause_exam(
        attempt_id: str,
        request: Optional[PauseRequest] = Body(None),
        user: User = Depends(get_current_user)
    ):
        answers = request.records() if request else None
        attempt = await attempts.pause(attempt_id, user, answers)
        return {"message": "Exam paused successfully", "attempt": attempt.model_dump(mode="json")}

    @router.post("/attempt/{attempt_id}/submit")
    async def submit_exam(attempt_id: str, user: User = Depends(get_current_user)):
        result = await attempts.submit(attempt_id, user)
        return {"message": "Exam submitted successfully", "result": result.model_dump()}

    return router
