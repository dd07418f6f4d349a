# services/__init__.py

"""
StepHabit scheduler services.

Each service wraps the shared DatabaseManager and one slice of the domain:
event creation, availability queries, insights, the completion log and
reminder dispatch.
"""

import logging
from typing import Optional

from core.database import DatabaseManager, create_database_manager

from .availability_service import AvailabilityService
from .schedule_service import ScheduleService
from .insights_service import InsightsService
from .progress_service import ProgressService
from .reminder_service import ReminderService, log_sender

logger = logging.getLogger(__name__)

class ServiceManager:
    """
    Builds every service on top of one database manager

    Used by the command line entry point; the HTTP layer has its own
    providers in dashboard/dependencies.py.
    """

    def __init__(self):
        self.database: Optional[DatabaseManager] = None
        self.schedule_service: Optional[ScheduleService] = None
        self.availability_service: Optional[AvailabilityService] = None
        self.insights_service: Optional[InsightsService] = None
        self.progress_service: Optional[ProgressService] = None
        self.reminder_service: Optional[ReminderService] = None
        self.initialized = False

    def initialize_services(self, database_url: str = None, sender=None) -> bool:
        """Create the database manager and the services that depend on it"""
        try:
            logger.info("🔧 Initialising StepHabit services...")

            self.database = create_database_manager(database_url)

            self.schedule_service = ScheduleService(self.database)
            self.availability_service = AvailabilityService(self.database)
            self.insights_service = InsightsService(self.database)
            self.progress_service = ProgressService(self.database)
            self.reminder_service = ReminderService(self.database, sender or log_sender)

            self.initialized = True
            logger.info("✅ All services initialised")
            return True

        except Exception as e:
            logger.error(f"❌ Service initialisation failed: {e}")
            self.close_services()
            return False

    def health_check(self) -> dict:
        database_ok = bool(self.database and self.database.ping())
        return {
            "status": "healthy" if database_ok else "error",
            "initialized": self.initialized,
            "database": database_ok,
        }

    def close_services(self):
        """Close in reverse order of initialisation"""
        if self.reminder_service:
            self.reminder_service.shutdown()
        if self.database:
            self.database.dispose()

        self.schedule_service = None
        self.availability_service = None
        self.insights_service = None
        self.progress_service = None
        self.reminder_service = None
        self.database = None
        self.initialized = False
        logger.info("✅ All services closed")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close_services()


__all__ = [
    'AvailabilityService',
    'ScheduleService',
    'InsightsService',
    'ProgressService',
    'ReminderService',
    'ServiceManager',
]
