"""
User profile and dashboard routes.

Endpoints:
- GET /api/user/profile
- PUT /api/user/profile
- GET /api/user/exam-history
- GET /api/user/dashboard-stats
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends
from motor.motor_asyncio import AsyncIOMotorDatabase

from ..errors import ValidationError
from ..models import ProfileUpdate, User
from ..services import CatalogService, QuotaTracker
from ..utils import utcnow
from .auth import create_auth_dependencies

logger = logging.getLogger(__name__)

DASHBOARD_EXAM_LIMIT = 10


def create_user_routes(
    db: AsyncIOMotorDatabase,
    catalog: CatalogService,
    quota: QuotaTracker
) -> APIRouter:
    """Create user routes with database connection."""

    router = APIRouter(prefix="/api/user", tags=["user"])
    get_current_user, _ = create_auth_dependencies(db)

    @router.get("/profile")
    async def get_profile(user: User = Depends(get_current_user)):
        return {"user": user.model_dump(mode="json")}

    @router.put("/profile")
    async def update_profile(update: ProfileUpdate, user: User = Depends(get_current_user)):
        changes = update.model_dump(exclude_none=True)
        if not changes:
            raise ValidationError("No profile fields to update")

        await db.users.update_one({"user_id": user.user_id}, {"$set": changes})
        logger.info(f"Profile updated for user {user.user_id}: {sorted(changes)}")

        updated = user.model_copy(update=changes)
        return {"message": "Profile updated successfully", "user": updated.model_dump(mode="json")}

    @router.get("/exam-history")
    async def get_exam_history(
        category: Optional[str] = None,
        user: User = Depends(get_current_user)
    ):
        """Completed attempts, newest first."""
        attempts = await db.exam_attempts.find(
            {"user_id": user.user_id, "is_completed": True},
            {"_id": 0, "answers": 0}
        ).sort("end_time", -1).to_list(length=None)

        exam_ids = list({a["exam_id"] for a in attempts})
        exams = await db.exams.find(
            {"exam_id": {"$in": exam_ids}},
            {"_id": 0, "exam_id": 1, "title": 1, "category": 1, "total_marks": 1}
        ).to_list(length=None)
        exams_by_id = {e["exam_id"]: e for e in exams}

        history = []
        for attempt in attempts:
            exam = exams_by_id.get(attempt["exam_id"])
            if not exam:
                continue
            if category and exam.get("category") != category:
                continue
            history.append({
                "attempt_id": attempt["attempt_id"],
                "exam_id": attempt["exam_id"],
                "exam_title": exam.get("title"),
                "exam_category": exam.get("category"),
                "total_marks": exam.get("total_marks"),
                "total_score": attempt.get("total_score", 0),
                "percentage": attempt.get("percentage", 0),
                "correct_answers": attempt.get("correct_answers", 0),
                "incorrect_answers": attempt.get("incorrect_answers", 0),
                "unattempted": attempt.get("unattempted", 0),
                "time_taken": attempt.get("time_taken", 0),
                "end_time": attempt.get("end_time"),
            })

        return {"history": history}

    @router.get("/dashboard-stats")
    async def get_dashboard_stats(user: User = Depends(get_current_user)):
        now = utcnow()
        user = await quota.check_and_reset(user, now)

        available = await catalog.list_available_exams(user, now, limit=DASHBOARD_EXAM_LIMIT)

        completed = await db.exam_attempts.find(
            {"user_id": user.user_id, "is_completed": True},
            {"_id": 0, "percentage": 1}
        ).to_list(length=None)
        total_attempts = len(completed)
        average_score = 0.0
        if total_attempts:
            average_score = round(sum(a.get("percentage", 0) for a in completed) / total_attempts, 2)

        return {
            "available_exams": available,
            "total_attempts": total_attempts,
            "average_score": average_score,
            "weekly_exams_remaining": quota.remaining(user),
            "subscription_status": user.subscription_status,
        }

    return router
