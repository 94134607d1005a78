"""
Quota tracker - rolling weekly limit on new exam attempts for free-tier users.

The window is measured from the user's last reset (not calendar weeks), in
whole days.
"""

import logging
from datetime import datetime
from typing import Union

from motor.motor_asyncio import AsyncIOMotorDatabase

from ..config.settings import settings
from ..models import User
from ..utils import whole_days_between

logger = logging.getLogger(__name__)

UNLIMITED = "Unlimited"


class QuotaTracker:
    """Tracks ``weekly_exams_attempted`` / ``last_week_reset`` on the user document."""

    def __init__(
        self,
        db: AsyncIOMotorDatabase,
        limit: int = settings.FREE_WEEKLY_EXAM_LIMIT,
        reset_days: int = settings.QUOTA_RESET_DAYS
    ):
        self.db = db
        self.limit = limit
        self.reset_days = reset_days

    async def check_and_reset(self, user: User, now: datetime) -> User:
        """
        Reset the weekly counter if the window has elapsed.

        Persists only when a reset happens. Returns the (possibly updated) user.
        """
        days_since_reset = whole_days_between(user.last_week_reset, now)
        if days_since_reset < self.reset_days:
            return user

        await self.db.users.update_one(
            {"user_id": user.user_id},
            {"$set": {"weekly_exams_attempted": 0, "last_week_reset": now}}
        )
        logger.info(
            f"Weekly quota reset for user {user.user_id} after {days_since_reset} days"
        )
        return user.model_copy(update={"weekly_exams_attempted": 0, "last_week_reset": now})

    def can_attempt(self, user: User) -> bool:
        if user.is_premium:
            return True
        return user.weekly_exams_attempted < self.limit

    async def increment(self, user: User) -> bool:
        """
        Count one newly created attempt.

        For free-tier users the increment only applies while the counter is
        below the limit; returns False when it did not apply.
        """
        query = {"user_id": user.user_id}
        if not user.is_premium:
            query["weekly_exams_attempted"] = {"$lt": self.limit}

        result = await self.db.users.update_one(query, {"$inc": {"weekly_exams_attempted": 1}})
        return result.modified_count == 1

    def remaining(self, user: User) -> Union[int, str]:
        """Display value for the dashboard."""
        if user.is_premium:
            return UNLIMITED
        return max(0, self.limit - user.weekly_exams_attempted)
