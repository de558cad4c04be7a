#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Mission Control - Dashboard Configuration
Settings of the HTTP dashboard API

Version: 1.0.0
Date: 2026-01-12
"""

from functools import lru_cache
from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DashboardSettings(BaseSettings):
    """Dashboard API settings"""

    model_config = SettingsConfigDict(
        env_prefix="DASHBOARD_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ===== GENERAL =====

    APP_NAME: str = Field(
        default="Mission Control",
        description="Application name"
    )

    VERSION: str = Field(
        default="1.0.0",
        description="API version"
    )

    DEBUG: bool = Field(
        default=False,
        description="Debug mode (enables API docs)"
    )

    # ===== NETWORK =====

    HOST: str = Field(
        default="127.0.0.1",
        description="Bind host"
    )

    PORT: int = Field(
        default=8000,
        description="Bind port"
    )

    # ===== CORS =====

    ALLOWED_ORIGINS: List[str] = Field(
        default=["*"],
        description="Allowed CORS origins"
    )

    ALLOWED_METHODS: List[str] = Field(
        default=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
        description="Allowed HTTP methods"
    )

    @field_validator("PORT")
    @classmethod
    def validate_port(cls, v):
        if not 1 <= v <= 65535:
            raise ValueError("PORT must be between 1 and 65535")
        return v

    @field_validator("ALLOWED_METHODS")
    @classmethod
    def validate_methods(cls, v):
        return [method.upper() for method in v]


@lru_cache()
def get_settings() -> DashboardSettings:
    return DashboardSettings()
