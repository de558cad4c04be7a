#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Mission Control - Configuration
Centralised configuration loaded from environment variables, with validation

Version: 1.0.0
Date: 2026-01-12
"""

import os
import sys
import logging
from functools import lru_cache
from pathlib import Path
from typing import Dict, Any
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
class StorageConfig:
    """Task store and blob store locations"""
    data_dir: Path
    backup_dir: Path
    blob_dir: Path
    tasks_file: str = "tasks.json"
    max_backups: int = 10

    @property
    def tasks_path(self) -> Path:
        return self.data_dir / self.tasks_file


@dataclass
class LoggingConfig:
    """Logging configuration"""
    level: LogLevel
    log_dir: Path
    to_file: bool = True
    log_format: str = '%(asctime)s [%(levelname)s] %(name)s: %(message)s'
    max_bytes: int = 10_000_000
    backup_count: int = 5


class AppConfig:
    """Main configuration class"""

    def __init__(self):
        self.environment = Environment(os.getenv('ENVIRONMENT', 'development'))
        self._load_config()
        self._validate_config()

    def _load_config(self):
        """Load configuration from environment variables"""
        data_dir = Path(os.getenv('DATA_DIR', 'data'))

        self.storage = StorageConfig(
            data_dir=data_dir,
            backup_dir=Path(os.getenv('BACKUP_DIR', 'backups')),
            blob_dir=Path(os.getenv('BLOB_DIR', str(data_dir / 'blobs'))),
            tasks_file=os.getenv('TASKS_FILE', 'tasks.json'),
            max_backups=int(os.getenv('MAX_BACKUPS', 10))
        )

        self.logging = LoggingConfig(
            level=LogLevel(os.getenv('LOG_LEVEL', 'INFO').upper()),
            log_dir=Path(os.getenv('LOG_DIR', 'logs')),
            to_file=os.getenv('LOG_TO_FILE', 'true').lower() == 'true',
            log_format=os.getenv(
                'LOG_FORMAT',
                '%(asctime)s [%(levelname)s] %(name)s: %(message)s'
            )
        )

        # Only used for "now" and "today"; due dates are plain calendar days
        self.timezone = os.getenv('TIMEZONE', 'UTC')

    def _validate_config(self):
        """Validate configuration"""
        errors = []

        try:
            pytz.timezone(self.timezone)
        except pytz.UnknownTimeZoneError:
            errors.append(f"Unknown TIMEZONE '{self.timezone}'")

        if not self.storage.tasks_file.endswith('.json'):
            errors.append("TASKS_FILE must be a .json file")

        if self.storage.max_backups < 0:
            errors.append("MAX_BACKUPS must not be negative")

        if errors:
            raise ValueError("Configuration errors:\n" + "\n".join(f"• {error}" for error in errors))

    def ensure_directories(self):
        """Create required directories"""
        directories = [
            self.storage.data_dir,
            self.storage.backup_dir,
            self.storage.blob_dir,
        ]
        if self.logging.to_file:
            directories.append(self.logging.log_dir)

        for directory in directories:
            directory.mkdir(parents=True, exist_ok=True)

    def get_logging_config(self) -> Dict[str, Any]:
        """Build a logging.config.dictConfig dictionary"""
        handlers = ['console']
        if self.logging.to_file:
            handlers.append('file')

        config = {
            'version': 1,
            'disable_existing_loggers': False,
            'formatters': {
                'default': {
                    'format': self.logging.log_format,
                    'datefmt': '%Y-%m-%d %H:%M:%S'
                }
            },
            'handlers': {
                'console': {
                    'class': 'logging.StreamHandler',
                    'level': self.logging.level.value,
                    'formatter': 'default',
                    'stream': sys.stdout
                }
            },
            'loggers': {
                '': {
                    'level': self.logging.level.value,
                    'handlers': handlers,
                    'propagate': False
                },
                'uvicorn.access': {
                    'level': 'WARNING',
                    'handlers': handlers,
                    'propagate': False
                },
                'httpx': {
                    'level': 'WARNING',
                    'handlers': handlers,
                    'propagate': False
                }
            }
        }

        if self.logging.to_file:
            config['handlers']['file'] = {
                'class': 'logging.handlers.RotatingFileHandler',
                'level': self.logging.level.value,
                'formatter': 'default',
                'filename': str(self.logging.log_dir / f"mission_control_{self.environment.value}.log"),
                'maxBytes': self.logging.max_bytes,
                'backupCount': self.logging.backup_count,
                'encoding': 'utf-8'
            }

        return config

    def is_development(self) -> bool:
        return self.environment == Environment.DEVELOPMENT

    def is_production(self) -> bool:
        return self.environment == Environment.PRODUCTION

    def __repr__(self) -> str:
        return (
            f"AppConfig(environment={self.environment.value}, "
            f"data_dir={self.storage.data_dir}, timezone={self.timezone})"
        )


@lru_cache()
def get_config() -> AppConfig:
    """Cached configuration instance"""
    config = AppConfig()
    logging.getLogger(__name__).debug(f"Configuration loaded: {config!r}")
    return config
