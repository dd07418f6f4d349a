#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
StepHabit Scheduler - API Configuration
Settings of the HTTP surface, loaded from the environment and .env

Author: StepHabit Team
Version: 1.2.0
Date: 2025-11-04
"""

from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DashboardSettings(BaseSettings):
    """Settings of the StepHabit scheduling API"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # ===== BASICS =====

    APP_NAME: str = Field(
        default="StepHabit Scheduling API",
        description="Application name"
    )

    VERSION: str = Field(
        default="1.2.0",
        description="API version"
    )

    ENVIRONMENT: str = Field(
        default="development",
        description="development / testing / production"
    )

    DEBUG: bool = Field(
        default=False,
        description="Debug mode"
    )

    # ===== NETWORK =====

    DASHBOARD_HOST: str = Field(
        default="0.0.0.0",
        description="Bind host"
    )

    DASHBOARD_PORT: int = Field(
        default=8000,
        description="Bind port"
    )

    # ===== CORS =====

    ALLOWED_ORIGINS: List[str] = Field(
        default=["*"],
        description="Allowed CORS origins"
    )

    ALLOWED_METHODS: List[str] = Field(
        default=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        description="Allowed HTTP methods"
    )

    ALLOWED_HEADERS: List[str] = Field(
        default=["*"],
        description="Allowed headers"
    )

    ALLOW_CREDENTIALS: bool = Field(
        default=False,
        description="Allow cookies and auth headers"
    )

    # ===== BACKGROUND JOBS =====

    START_REMINDERS: bool = Field(
        default=True,
        description="Start the reminder scheduler with the app"
    )

    @field_validator('ENVIRONMENT')
    @classmethod
    def validate_environment(cls, v):
        allowed = ['development', 'testing', 'production']
        if v not in allowed:
            raise ValueError(f'ENVIRONMENT must be one of: {allowed}')
        return v

    @field_validator('DASHBOARD_PORT')
    @classmethod
    def validate_port(cls, v):
        if not 1 <= v <= 65535:
            raise ValueError('DASHBOARD_PORT must be between 1 and 65535')
        return v

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"


# ===== SETTINGS INSTANCE =====

settings = DashboardSettings()
