#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
StepHabit Scheduler - FastAPI Application
HTTP surface of the availability and conflict resolution engine

Author: StepHabit Team
Version: 1.2.0
Date: 2025-11-04
"""

import logging
import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import config
from core.database import DatabaseManager
from core.models import EngineError
from dashboard import dependencies
from dashboard.api import insights, progress, schedules, settings as settings_api
from dashboard.config import settings
from shared.models import HealthCheck

logger = logging.getLogger(__name__)

app_start_time = time.time()


def create_app(database: Optional[DatabaseManager] = None,
               start_reminders: Optional[bool] = None) -> FastAPI:
    """
    Build the application. A given `database` is used as is and left open
    on shutdown; otherwise one is created from DATABASE_URL at startup.
    """
    owns_database = database is None
    if database is not None:
        dependencies.set_database(database)
    if start_reminders is None:
        start_reminders = settings.START_REMINDERS and config.reminders.enabled

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        global app_start_time

        # Startup
        logger.info("🚀 Starting StepHabit scheduling API...")
        app_start_time = time.time()
        dependencies.get_database()
        if start_reminders:
            dependencies.get_reminder_service().start()
        logger.info(f"🌐 API listening on http://{settings.DASHBOARD_HOST}:{settings.DASHBOARD_PORT}")

        yield

        # Shutdown
        logger.info("🛑 Stopping StepHabit scheduling API...")
        await dependencies.cleanup_dependencies(dispose_database=owns_database)

    app = FastAPI(
        title=settings.APP_NAME,
        description="Availability, conflict resolution and habit progress API",
        version=settings.VERSION,
        debug=settings.DEBUG,
        docs_url=None if settings.is_production else "/api/docs",
        openapi_url="/api/openapi.json",
        lifespan=lifespan,
    )

    # ===== MIDDLEWARE =====

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=settings.ALLOW_CREDENTIALS,
        allow_methods=settings.ALLOWED_METHODS,
        allow_headers=settings.ALLOWED_HEADERS,
    )

    @app.middleware("http")
    async def logging_middleware(request: Request, call_next):
        start = time.time()
        response = await call_next(request)
        process_time = time.time() - start
        logger.info(f"{request.method} {request.url.path} - {response.status_code} - {process_time:.3f}s")
        response.headers["X-Process-Time"] = f"{process_time:.4f}"
        return response

    # ===== ERROR HANDLERS =====

    @app.exception_handler(EngineError)
    async def engine_error_handler(request: Request, exc: EngineError):
        if exc.status_code >= 500:
            logger.error(f"❌ {request.method} {request.url.path}: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        missing = []
        for error in errors:
            location = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
            if location:
                missing.append(location[0])
        message = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
        return JSONResponse(status_code=400, content={"error": message, "missing": missing})

    # ===== ROUTES =====

    app.include_router(schedules.router)
    app.include_router(insights.router)
    app.include_router(progress.router)
    app.include_router(settings_api.router)

    @app.get("/health", response_model=HealthCheck)
    def health_check():
        """Service and database status"""
        database_ok = dependencies.get_database().ping()
        return HealthCheck(
            status="healthy" if database_ok else "degraded",
            service="stephabit-scheduler",
            version=settings.VERSION,
            timestamp=time.time(),
            uptime_seconds=round(time.time() - app_start_time, 1),
            database=database_ok,
        )

    return app


app = create_app()
