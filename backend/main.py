"""
GopPrep Backend - Main FastAPI Application

Exam preparation API: catalog, timed exam attempts, scoring and weekly quota.
Version: 1.0
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from starlette.exceptions import HTTPException as StarletteHTTPException

from gopprep.config.settings import settings
from gopprep.errors import GopPrepError
from gopprep.routes.admin_routes import create_admin_routes
from gopprep.routes.exam_routes import create_exam_routes
from gopprep.routes.user_routes import create_user_routes
from gopprep.services import (
    AttemptService,
    AvailabilityGate,
    CatalogService,
    GeminiQuestionGenerator,
    QuestionGenerator,
    QuotaTracker,
)

VERSION = "1.0.0"

# Setup logging
logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


async def create_indexes(db: AsyncIOMotorDatabase):
    """Create database indexes; the attempt and subject-topic ones are uniqueness guarantees."""
    try:
        # Users and sessions
        await db.users.create_index("user_id", unique=True)
        await db.user_sessions.create_index("session_token", unique=True)

        # Catalog
        await db.questions.create_index("question_id", unique=True)
        await db.questions.create_index([("category", 1), ("subject", 1)])
        await db.exams.create_index("exam_id", unique=True)
        await db.exams.create_index([("category", 1), ("status", 1)])
        await db.subject_topics.create_index(
            [("subject", 1), ("topic", 1), ("category", 1)],
            unique=True
        )

        # Attempts: at most one per (user, exam)
        await db.exam_attempts.create_index("attempt_id", unique=True)
        await db.exam_attempts.create_index([("user_id", 1), ("exam_id", 1)], unique=True)

    except Exception as e:
        logger.warning(f"Index creation warning: {e}")


def _register_exception_handlers(app: FastAPI):
    @app.exception_handler(GopPrepError)
    async def gopprep_error_handler(request: Request, exc: GopPrepError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content=exc.to_response())

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(status_code=exc.status_code, content={"message": exc.detail})

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        errors = [
            {"field": ".".join(str(p) for p in err.get("loc", ())), "message": err.get("msg")}
            for err in exc.errors()
        ]
        return JSONResponse(status_code=400, content={"message": "Invalid request", "errors": errors})

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.error(f"❌ Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc)
        message = "Internal Server Error" if settings.is_production else str(exc)
        return JSONResponse(status_code=500, content={"message": message})


def create_app(
    database: Optional[AsyncIOMotorDatabase] = None,
    question_generator: Optional[QuestionGenerator] = None
) -> FastAPI:
    """
    Build the application.

    Without ``database`` a Motor client is created from settings (it connects
    lazily; the lifespan checks the connection and creates indexes).
    """
    client = None
    db = database
    if db is None:
        client = AsyncIOMotorClient(
            settings.MONGODB_URL,
            maxPoolSize=50,
            serverSelectionTimeoutMS=5000
        )
        db = client[settings.DATABASE_NAME]

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """FastAPI lifespan context manager for startup/shutdown."""
        # STARTUP
        logger.info("🚀 GopPrep Backend Starting Up...")

        try:
            settings.validate()
            logger.info("✅ Settings validated")

            if client is not None:
                await client.server_info()
                logger.info(f"✅ Connected to MongoDB: {settings.DATABASE_NAME}")

            await create_indexes(db)
            logger.info("✅ Database indexes created")

            if not generator.is_configured:
                logger.warning("⚠️ GEMINI_API_KEY not set - AI question generation disabled")

            logger.info("✅ Application startup complete")

        except Exception as e:
            logger.error(f"❌ Startup failed: {e}")
            raise

        yield

        # SHUTDOWN
        logger.info("🛑 Shutting down...")
        if client is not None:
            client.close()
            logger.info("✅ Database connection closed")

    app = FastAPI(
        title="GopPrep API",
        description="Exam preparation platform for SSC, Banking and HSSC",
        version=VERSION,
        lifespan=lifespan
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    _register_exception_handlers(app)

    # Services
    gate = AvailabilityGate()
    catalog = CatalogService(db, gate)
    quota = QuotaTracker(db)
    attempts = AttemptService(db, catalog=catalog, quota=quota, gate=gate)
    generator = question_generator or GeminiQuestionGenerator(settings.GEMINI_API_KEY)

    app.include_router(create_exam_routes(db, attempts, catalog))
    app.include_router(create_user_routes(db, catalog, quota))
    app.include_router(create_admin_routes(db, catalog, generator))

    @app.get("/api/health")
    async def health_check():
        """Health check endpoint."""
        return {
            "status": "healthy",
            "version": VERSION,
            "ai_generation": "configured" if generator.is_configured else "not configured"
        }

    @app.get("/")
    async def root():
        return {
            "app": "GopPrep",
            "version": VERSION,
            "docs": "/docs",
            "health": "/api/health"
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower()
    )
