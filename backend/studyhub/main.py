"""
StudyHub FastAPI Application Entry Point.

Run with: uvicorn studyhub.main:app --reload
"""

import asyncio
import logging
from contextlib import asynccontextmanager, suppress
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from studyhub.api.routes import (
    auth,
    connections,
    notifications,
    quizzes,
    students,
    study_logs,
    tasks,
    teachers,
)
from studyhub.config import get_settings, sanitize_error
from studyhub.db.session import AsyncSessionLocal
from studyhub.logging_config import configure_logging
from studyhub.services.errors import ServiceError
from studyhub.services.task_checker import task_checker_loop

logger = logging.getLogger(__name__)
settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager for startup/shutdown."""
    # Startup
    configure_logging()
    checker: asyncio.Task | None = None
    if settings.task_checker_enabled:
        checker = asyncio.create_task(task_checker_loop(AsyncSessionLocal))
        logger.info(
            "Task checker started (every %d minutes)", settings.task_checker_interval_minutes
        )
    yield
    # Shutdown
    if checker is not None:
        checker.cancel()
        with suppress(asyncio.CancelledError):
            await checker


app = FastAPI(
    title=settings.app_name,
    description="Teacher-student study tracking API",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s on %s %s: %s", exc.code, request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={"detail": sanitize_error(exc), "code": "INTERNAL_ERROR"},
    )


# Include routers
app.include_router(auth.router)
app.include_router(connections.router)
app.include_router(study_logs.router)
app.include_router(notifications.router)
app.include_router(tasks.router)
app.include_router(quizzes.router)
app.include_router(teachers.router)
app.include_router(students.router)


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy"}
