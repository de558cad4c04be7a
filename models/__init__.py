#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Mission Control - Models Package
Task data models and enums

Version: 1.0.0
Date: 2026-01-12
"""

from .enums import (
    RepeatCadence,
    TaskView,
    SortDirection
)

from .task import (
    Attachment,
    Task,
    PersistedTask,
    VirtualTask,
    TaskRecord,
    derive_completed_at,
    normalize_patch
)

__all__ = [
    # Enums
    'RepeatCadence',
    'TaskView',
    'SortDirection',

    # Task models
    'Attachment',
    'Task',
    'PersistedTask',
    'VirtualTask',
    'TaskRecord',
    'derive_completed_at',
    'normalize_patch'
]
