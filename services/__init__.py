# services/__init__.py

"""
Mission Control services

Task store, blob store, notifications, occurrence projection and the
task lifecycle manager.
"""

import logging
from typing import Optional

from config import AppConfig
from .blob_service import BlobStore, InMemoryBlobStore, LocalBlobStore
from .exceptions import BlobUploadError, MissionControlError, StoreError
from .notifications import Notice, NotificationCenter
from .recurrence import project
from .storage import InMemoryTaskStore, JsonTaskStore, TaskStore
from .task_service import DeleteResult, TaskService

logger = logging.getLogger(__name__)


class ServiceManager:
    """
    Builds and owns the services for one application instance

    Provides:
    - Construction in dependency order (stores, notifications, tasks)
    - A health summary
    - Guaranteed release of the store subscription
    """

    def __init__(self, config: AppConfig):
        self.config = config
        self.task_store: Optional[TaskStore] = None
        self.blob_store: Optional[BlobStore] = None
        self.notifications: Optional[NotificationCenter] = None
        self.task_service: Optional[TaskService] = None
        self.initialized = False

    def initialize_services(self) -> TaskService:
        """Create all services; raises if the stores cannot be opened"""
        try:
            logger.info("🔧 Initialising Mission Control services...")
            self.config.ensure_directories()

            storage = self.config.storage
            self.task_store = JsonTaskStore(
                storage.tasks_path,
                backup_dir=storage.backup_dir,
                max_backups=storage.max_backups
            )
            self.blob_store = LocalBlobStore(storage.blob_dir)
            self.notifications = NotificationCenter()

            self.task_service = TaskService(self.task_store, self.blob_store, self.notifications)
            self.task_service.start()

            self.initialized = True
            logger.info("✅ Services initialised")
            return self.task_service

        except Exception as e:
            logger.error(f"❌ Service initialisation failed: {e}")
            self.close_services()
            raise

    def health_check(self) -> dict:
        """Status of all services"""
        health = {
            "status": "healthy",
            "services": {}
        }

        if self.task_service:
            health["services"]["task_service"] = {
                "status": "healthy" if self.task_service.is_running else "error",
                "tasks": len(self.task_service.persisted_tasks),
            }
        else:
            health["services"]["task_service"] = {"status": "error"}

        if self.task_store:
            health["services"]["task_store"] = {
                "status": "healthy",
                "subscribers": self.task_store.subscriber_count,
            }

        statuses = [s.get("status", "unknown") for s in health["services"].values()]
        if "error" in statuses:
            health["status"] = "error"

        return health

    def close_services(self):
        """Release services in reverse order"""
        logger.info("🛑 Closing services...")

        if self.task_service:
            self.task_service.close()
            self.task_service = None

        self.notifications = None
        self.blob_store = None
        self.task_store = None
        self.initialized = False

    def __enter__(self):
        self.initialize_services()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close_services()


__all__ = [
    'BlobStore',
    'BlobUploadError',
    'DeleteResult',
    'InMemoryBlobStore',
    'InMemoryTaskStore',
    'JsonTaskStore',
    'LocalBlobStore',
    'MissionControlError',
    'Notice',
    'NotificationCenter',
    'ServiceManager',
    'StoreError',
    'TaskService',
    'TaskStore',
    'project'
]
