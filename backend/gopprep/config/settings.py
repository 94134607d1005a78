"""
Configuration settings for GopPrep.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

ROOT_DIR = Path(__file__).resolve().parents[2]
load_dotenv(ROOT_DIR / '.env')


class Settings:
    """Application settings loaded from environment."""

    # Database
    MONGODB_URL: str = os.environ.get("MONGODB_URI", "mongodb://localhost:27017")
    DATABASE_NAME: str = os.environ.get("DB_NAME", "gopprep")

    # AI question generation (optional collaborator)
    GEMINI_API_KEY: str = os.environ.get("GEMINI_API_KEY", "")
    GEMINI_MODEL: str = os.environ.get("GEMINI_MODEL", "gemini-2.0-flash")
    LLM_TEMPERATURE: float = 0.7
    MAX_AI_QUESTIONS: int = 50

    # Server
    PORT: int = int(os.environ.get("PORT", 5000))
    HOST: str = os.environ.get("HOST", "0.0.0.0")
    DEBUG: bool = os.environ.get("DEBUG", "False").lower() == "true"
    ENVIRONMENT: str = os.environ.get("ENVIRONMENT", "development")
    CORS_ORIGINS: list = os.environ.get("CORS_ORIGINS", "*").split(",")

    # Exam attempts
    FREE_WEEKLY_EXAM_LIMIT: int = 3
    QUOTA_RESET_DAYS: int = 7  # rolling, measured from last reset
    DRAFT_SCHEDULE_OFFSET_HOURS: int = 24

    # Logging
    LOG_LEVEL: str = os.environ.get("LOG_LEVEL", "INFO")

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"

    def validate(self):
        """Validate critical settings."""
        if not self.MONGODB_URL:
            raise ValueError("MONGODB_URI environment variable not set")
        if self.FREE_WEEKLY_EXAM_LIMIT < 0:
            raise ValueError("FREE_WEEKLY_EXAM_LIMIT must not be negative")
        return True


# Global settings instance
settings = Settings()
