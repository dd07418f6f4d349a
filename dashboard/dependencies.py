#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
StepHabit Scheduler - API Dependencies
Singleton providers for the FastAPI application

Author: StepHabit Team
Version: 1.2.0
Date: 2025-11-04
"""

import logging
from typing import Optional

from core.database import DatabaseManager, create_database_manager
from services.availability_service import AvailabilityService
from services.insights_service import InsightsService
from services.progress_service import ProgressService
from services.reminder_service import ReminderService, log_sender
from services.schedule_service import ScheduleService

logger = logging.getLogger(__name__)

# ===== GLOBALS =====

_database: Optional[DatabaseManager] = None
_reminder_service: Optional[ReminderService] = None

# ===== INITIALISATION =====

def init_database(url: Optional[str] = None) -> DatabaseManager:
    """Create the database manager once and make sure tables exist"""
    global _database

    if _database is None:
        logger.info("🔄 Initialising DatabaseManager...")
        _database = create_database_manager(url)
        logger.info("✅ DatabaseManager ready")

    return _database


def set_database(database: Optional[DatabaseManager]) -> None:
    """Swap the shared manager (tests, alternative stores)"""
    global _database
    _database = database


def init_reminder_service(sender=None) -> ReminderService:
    global _reminder_service

    if _reminder_service is None:
        _reminder_service = ReminderService(get_database(), sender or log_sender)
    return _reminder_service


async def cleanup_dependencies(dispose_database: bool = True) -> None:
    """Stop background jobs and (optionally) release the engine"""
    global _database, _reminder_service

    if _reminder_service is not None:
        _reminder_service.shutdown()
        _reminder_service = None

    if dispose_database and _database is not None:
        _database.dispose()
        _database = None
    logger.info("🧹 Dependencies released")

# ===== PROVIDERS =====

def get_database() -> DatabaseManager:
    if _database is None:
        return init_database()
    return _database


def get_schedule_service() -> ScheduleService:
    return ScheduleService(get_database())


def get_availability_service() -> AvailabilityService:
    return AvailabilityService(get_database())


def get_insights_service() -> InsightsService:
    return InsightsService(get_database())


def get_progress_service() -> ProgressService:
    return ProgressService(get_database())


def get_reminder_service() -> ReminderService:
    if _reminder_service is None:
        return init_reminder_service()
    return _reminder_service
