"""User and profile Pydantic models"""

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..utils import ensure_utc
from .catalog import Category


class PreferredLanguage(str, Enum):
    HINDI = "Hindi"
    ENGLISH = "English"


class User(BaseModel):
    model_config = ConfigDict(extra="ignore", use_enum_values=True, validate_default=True)
    user_id: str
    phone_number: str
    name: str
    email: Optional[str] = None
    exam_preparations: List[Category] = []
    preferred_language: PreferredLanguage = PreferredLanguage.ENGLISH
    role: str = "user"  # user or admin
    subscription_status: str = "free"  # free or premium
    subscription_expiry: Optional[datetime] = None
    weekly_exams_attempted: int = 0
    last_week_reset: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    is_verified: bool = False
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @field_validator("subscription_expiry", "last_week_reset", "created_at")
    @classmethod
    def _utc(cls, v):
        return ensure_utc(v)

    @property
    def is_premium(self) -> bool:
        return self.subscription_status == "premium"

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


class ProfileUpdate(BaseModel):
    model_config = ConfigDict(use_enum_values=True)
    name: Optional[str] = None
    email: Optional[str] = None
    exam_preparations: Optional[List[Category]] = None
    preferred_language: Optional[PreferredLanguage] = None

    @field_validator("email")
    @classmethod
    def _email(cls, v):
        return v.strip().lower() if v else v
