#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Mission Control - Dashboard API
FastAPI application over the task lifecycle service

Version: 1.0.0
Date: 2026-01-12
"""

import logging
import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from config import AppConfig, get_config
from dashboard.api import notifications, tasks
from dashboard.config import DashboardSettings, get_settings
from dashboard.schemas import HealthCheck
from services import ServiceManager, StoreError

logger = logging.getLogger(__name__)


def create_app(config: Optional[AppConfig] = None, settings: Optional[DashboardSettings] = None) -> FastAPI:
    """Build the dashboard app; services are created in the lifespan"""
    config = config or get_config()
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"🚀 Starting {settings.APP_NAME} dashboard...")
        app.state.started_at = time.time()

        manager = ServiceManager(config)
        manager.initialize_services()
        app.state.services = manager
        logger.info(f"📝 Loaded tasks: {len(manager.task_service.persisted_tasks)}")
        logger.info("✅ Dashboard ready")

        try:
            yield
        finally:
            logger.info("🛑 Stopping dashboard...")
            manager.close_services()
            app.state.services = None

    app = FastAPI(
        title=settings.APP_NAME,
        description="Marketing task tracker with recurring task projection",
        version=settings.VERSION,
        docs_url="/api/docs" if settings.DEBUG else None,
        redoc_url="/api/redoc" if settings.DEBUG else None,
        openapi_url="/api/openapi.json" if settings.DEBUG else None,
        lifespan=lifespan
    )

    # ===== MIDDLEWARE =====

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_methods=settings.ALLOWED_METHODS,
        allow_headers=["*"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=1000)

    # ===== ERRORS =====

    @app.exception_handler(StoreError)
    async def store_error_handler(request: Request, exc: StoreError):
        logger.error(f"❌ Store error on {request.method} {request.url.path}: {exc}")
        return JSONResponse(status_code=502, content={"detail": f"Storage failure: {exc}"})

    # ===== ROUTES =====

    app.include_router(tasks.router)
    app.include_router(notifications.router)

    @app.get("/api/health", response_model=HealthCheck)
    async def health(request: Request):
        manager = getattr(request.app.state, "services", None)
        details = manager.health_check() if manager else {"status": "error"}
        details["uptime_seconds"] = round(time.time() - getattr(request.app.state, "started_at", time.time()), 1)
        return HealthCheck(
            status=details["status"],
            service=settings.APP_NAME,
            version=settings.VERSION,
            details=details,
        )

    return app
