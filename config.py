#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
StepHabit Scheduler - Configuration
Centralised configuration with validation

Author: StepHabit Team
Version: 1.2.0
Date: 2025-11-04
"""

import os
import sys
from pathlib import Path
from typing import Optional, Dict, Any
from dataclasses import dataclass
from enum import Enum

import pytz


class Environment(Enum):
    """Runtime environments"""
    DEVELOPMENT = "development"
    TESTING = "testing"
    PRODUCTION = "production"


class LogLevel(Enum):
    """Logging levels"""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


@dataclass
class DatabaseConfig:
    """Relational store settings"""
    url: str
    echo: bool = False
    pool_pre_ping: bool = True


@dataclass
class SchedulingConfig:
    """Availability engine settings (all times in minutes since midnight)"""
    timezone: str = "Asia/Yerevan"
    day_start_minute: int = 6 * 60
    day_end_minute: int = 22 * 60
    default_duration_minutes: int = 45
    min_window_minutes: int = 20
    suggestion_window_minutes: int = 30
    default_horizon_days: int = 7
    max_horizon_days: int = 21
    alternative_slot_count: int = 2
    analytics_lookback_days: int = 30
    rolling_window_days: int = 7
    default_repeat: str = "daily"


@dataclass
class ReminderConfig:
    """Daily reminder dispatch settings"""
    enabled: bool = True
    interval_seconds: int = 60
    default_timezone: str = "UTC"


@dataclass
class ServerConfig:
    """HTTP server settings"""
    host: str = "0.0.0.0"
    port: int = 8000
    debug_mode: bool = False


class AppConfig:
    """Main configuration object"""

    def __init__(self):
        self.environment = Environment(os.getenv('ENVIRONMENT', 'development'))
        self._load_config()
        self._validate_config()

    def _load_config(self):
        """Load configuration from environment variables"""

        self.data_dir = Path(os.getenv('DATA_DIR', 'data'))
        self.log_dir = Path(os.getenv('LOG_DIR', 'logs'))

        self.database = DatabaseConfig(
            url=os.getenv('DATABASE_URL', f"sqlite:///{self.data_dir / 'stephabit.db'}"),
            echo=os.getenv('DATABASE_ECHO', 'false').lower() == 'true',
        )

        self.scheduling = SchedulingConfig(
            timezone=os.getenv('SCHEDULER_TIMEZONE', 'Asia/Yerevan'),
            day_start_minute=int(os.getenv('DAY_START_MINUTE', 6 * 60)),
            day_end_minute=int(os.getenv('DAY_END_MINUTE', 22 * 60)),
            default_duration_minutes=int(os.getenv('DEFAULT_SESSION_MINUTES', 45)),
            min_window_minutes=int(os.getenv('MIN_WINDOW_MINUTES', 20)),
            suggestion_window_minutes=int(os.getenv('SUGGESTION_WINDOW_MINUTES', 30)),
            default_horizon_days=int(os.getenv('DEFAULT_HORIZON_DAYS', 7)),
            max_horizon_days=int(os.getenv('MAX_HORIZON_DAYS', 21)),
        )

        self.reminders = ReminderConfig(
            enabled=os.getenv('REMINDERS_ENABLED', 'true').lower() == 'true',
            interval_seconds=int(os.getenv('REMINDER_INTERVAL_SECONDS', 60)),
            default_timezone=os.getenv('REMINDER_DEFAULT_TIMEZONE', 'UTC'),
        )

        self.server = ServerConfig(
            host=os.getenv('HOST', '0.0.0.0'),
            port=int(os.getenv('PORT', 8000)),
            debug_mode=os.getenv('DEBUG_MODE', 'false').lower() == 'true',
        )

        # Logging
        self.log_level = LogLevel(os.getenv('LOG_LEVEL', 'INFO'))
        self.log_to_file = os.getenv('LOG_TO_FILE', 'true').lower() == 'true'
        self.log_format = os.getenv(
            'LOG_FORMAT',
            '%(asctime)s [%(levelname)s] %(name)s: %(message)s'
        )

    def _validate_config(self):
        """Validate configuration values"""
        errors = []
        scheduling = self.scheduling

        if scheduling.timezone not in pytz.all_timezones_set:
            errors.append(f"Unknown SCHEDULER_TIMEZONE: {scheduling.timezone}")

        if not 0 <= scheduling.day_start_minute < scheduling.day_end_minute <= 24 * 60:
            errors.append(
                f"Day bounds {scheduling.day_start_minute}-{scheduling.day_end_minute} are invalid"
            )

        if scheduling.default_duration_minutes <= 0:
            errors.append("DEFAULT_SESSION_MINUTES must be positive")

        if scheduling.min_window_minutes < 0 or scheduling.suggestion_window_minutes < 0:
            errors.append("Window minimums must not be negative")

        if not 1 <= scheduling.default_horizon_days <= scheduling.max_horizon_days:
            errors.append("DEFAULT_HORIZON_DAYS must be between 1 and MAX_HORIZON_DAYS")

        if not 1 <= self.server.port <= 65535:
            errors.append(f"Port {self.server.port} is outside 1-65535")

        if errors:
            raise ValueError("Configuration errors:\n" + "\n".join(f"• {error}" for error in errors))

    def ensure_directories(self):
        """Create data and log directories"""
        for directory in (self.data_dir, self.log_dir):
            directory.mkdir(parents=True, exist_ok=True)

    def get_logging_config(self) -> Dict[str, Any]:
        """dictConfig-compatible logging configuration"""
        handlers = ['console']
        if self.log_to_file:
            handlers.append('file')

        return {
            'version': 1,
            'disable_existing_loggers': False,
            'formatters': {
                'default': {
                    'format': self.log_format,
                    'datefmt': '%Y-%m-%d %H:%M:%S'
                }
            },
            'handlers': {
                'console': {
                    'class': 'logging.StreamHandler',
                    'level': self.log_level.value,
                    'formatter': 'default',
                    'stream': sys.stdout
                },
                'file': {
                    'class': 'logging.handlers.RotatingFileHandler',
                    'level': self.log_level.value,
                    'formatter': 'default',
                    'filename': str(self.log_dir / f"stephabit_{self.environment.value}.log"),
                    'maxBytes': 10485760,  # 10MB
                    'backupCount': 5,
                    'encoding': 'utf-8'
                }
            },
            'loggers': {
                '': {
                    'level': self.log_level.value,
                    'handlers': handlers,
                },
                'apscheduler': {
                    'level': 'WARNING',
                },
                'sqlalchemy.engine': {
                    'level': 'WARNING',
                },
            }
        }

    def to_dict(self) -> Dict[str, Any]:
        """Serialise configuration (no secrets)"""
        return {
            'environment': self.environment.value,
            'server': {
                'host': self.server.host,
                'port': self.server.port,
                'debug_mode': self.server.debug_mode,
            },
            'scheduling': {
                'timezone': self.scheduling.timezone,
                'day_start_minute': self.scheduling.day_start_minute,
                'day_end_minute': self.scheduling.day_end_minute,
                'default_duration_minutes': self.scheduling.default_duration_minutes,
            },
            'reminders_enabled': self.reminders.enabled,
            'log_level': self.log_level.value,
        }


# Global configuration instance
config = AppConfig()


def get_timezone(name: Optional[str] = None):
    """pytz zone for the given name, defaulting to the configured one"""
    return pytz.timezone(name or config.scheduling.timezone)


__all__ = [
    'config',
    'get_timezone',
    'AppConfig',
    'Environment',
    'LogLevel',
    'DatabaseConfig',
    'SchedulingConfig',
    'ReminderConfig',
    'ServerConfig',
]
