#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Mission Control - Dashboard Dependencies
FastAPI providers; services live on app.state, set up by the app lifespan

Version: 1.0.0
Date: 2026-01-12
"""

import logging

from fastapi import HTTPException, Request, status

from services import NotificationCenter, ServiceManager, TaskService

logger = logging.getLogger(__name__)


def get_service_manager(request: Request) -> ServiceManager:
    manager = getattr(request.app.state, "services", None)
    if manager is None or not manager.initialized:
        logger.error("❌ Services requested before initialisation")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Services are not initialised"
        )
    return manager


def get_task_service(request: Request) -> TaskService:
    return get_service_manager(request).task_service


def get_notifications(request: Request) -> NotificationCenter:
    return get_service_manager(request).notifications
