# services/storage.py

import json
import logging
import os
import threading
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional

from models.task import Task
from services.exceptions import StoreError

logger = logging.getLogger(__name__)

SnapshotCallback = Callable[[List[Task]], None]
Unsubscribe = Callable[[], None]


class TaskStore(ABC):
    """
    Persistence collaborator for tasks

    Subscribers receive the full collection (sorted by sort order) right
    after subscribing and after every change.
    """

    def __init__(self):
        self._subscribers: List[SnapshotCallback] = []
        self._lock = threading.RLock()

    # ===== SUBSCRIPTIONS =====

    def subscribe(self, on_change: SnapshotCallback) -> Unsubscribe:
        with self._lock:
            self._subscribers.append(on_change)
        on_change(self.snapshot())

        def unsubscribe():
            with self._lock:
                if on_change in self._subscribers:
                    self._subscribers.remove(on_change)

        return unsubscribe

    def _notify(self):
        tasks = self.snapshot()
        with self._lock:
            subscribers = list(self._subscribers)
        for callback in subscribers:
            try:
                callback(tasks)
            except Exception as e:
                logger.error(f"❌ Task subscriber failed: {e}")

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    # ===== ABSTRACT STORAGE =====

    @abstractmethod
    def _read_all(self) -> Dict[str, dict]:
        """Raw documents keyed by task id"""

    @abstractmethod
    def _write_all(self, documents: Dict[str, dict]):
        """Replace the whole collection"""

    def snapshot(self) -> List[Task]:
        with self._lock:
            documents = self._read_all()
        tasks = []
        for task_id, document in documents.items():
            try:
                tasks.append(Task.from_dict({**document, "id": task_id}))
            except (KeyError, TypeError, ValueError) as e:
                logger.error(f"❌ Skipping unreadable task {task_id}: {e}")
        tasks.sort(key=lambda t: t.sort_order or 0)
        return tasks

    # ===== WRITES =====

    async def upsert(self, task: Task):
        await self.batch_upsert([task])

    async def batch_upsert(self, tasks: Iterable[Task]):
        tasks = list(tasks)
        with self._lock:
            documents = self._read_all()
            for task in tasks:
                documents[task.id] = task.to_dict()
            self._write_all(documents)
        logger.debug(f"💾 Saved {len(tasks)} task(s)")
        self._notify()

    async def delete(self, task_id: str):
        with self._lock:
            documents = self._read_all()
            if documents.pop(task_id, None) is None:
                logger.debug(f"Task {task_id} already absent from store")
                return
            self._write_all(documents)
        self._notify()


class InMemoryTaskStore(TaskStore):
    """Store kept in process memory"""

    def __init__(self, tasks: Optional[Iterable[Task]] = None):
        super().__init__()
        self._documents: Dict[str, dict] = {t.id: t.to_dict() for t in tasks or []}

    def _read_all(self) -> Dict[str, dict]:
        return {task_id: dict(doc) for task_id, doc in self._documents.items()}

    def _write_all(self, documents: Dict[str, dict]):
        self._documents = documents


class JsonTaskStore(TaskStore):
    """
    Store backed by a single JSON document on disk

    - Corrupted files are moved to the backup directory and replaced
      with an empty collection
    - Writes go to a temporary file that replaces the data file
    """

    def __init__(self, path: Path, backup_dir: Optional[Path] = None, max_backups: int = 10):
        super().__init__()
        self.path = Path(path)
        self.backup_dir = Path(backup_dir) if backup_dir else self.path.parent / "backups"
        self.max_backups = max_backups
        self.path.parent.mkdir(parents=True, exist_ok=True)

        self._cache: Optional[Dict[str, dict]] = None
        logger.info(f"📂 JsonTaskStore using {self.path}")

    def _read_all(self) -> Dict[str, dict]:
        if self._cache is None:
            self._cache = self._load()
        return {task_id: dict(doc) for task_id, doc in self._cache.items()}

    def _load(self) -> Dict[str, dict]:
        if not self.path.exists():
            logger.info("📂 Tasks file not found, starting with an empty collection")
            return {}

        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            logger.error(f"❌ Tasks file is not valid JSON: {e}")
            self._backup_corrupted()
            return {}
        except OSError as e:
            raise StoreError(f"Cannot read {self.path}: {e}") from e

        if isinstance(data, list):
            data = {str(doc["id"]): doc for doc in data if isinstance(doc, dict) and "id" in doc}

        if not isinstance(data, dict):
            logger.warning("⚠️ Unexpected tasks file format")
            self._backup_corrupted()
            return {}

        logger.info(f"📂 Loaded {len(data)} tasks from {self.path}")
        return data

    def _backup_corrupted(self):
        try:
            self.backup_dir.mkdir(parents=True, exist_ok=True)
            backup_name = f"corrupted_backup_{datetime.now().strftime('%Y%m%d_%H%M%S')}.json"
            backup_path = self.backup_dir / backup_name
            self.path.replace(backup_path)
            logger.warning(f"🔄 Corrupted tasks file moved to {backup_path}")
            self._prune_backups()
        except OSError as e:
            logger.error(f"❌ Could not back up corrupted tasks file: {e}")

    def _prune_backups(self):
        backups = sorted(self.backup_dir.glob("corrupted_backup_*.json"))
        for old in backups[:-self.max_backups or None]:
            old.unlink()

    def _write_all(self, documents: Dict[str, dict]):
        temp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            with open(temp_path, 'w', encoding='utf-8') as f:
                json.dump(documents, f, ensure_ascii=False, indent=2)
                f.flush()
                os.fsync(f.fileno())
            temp_path.replace(self.path)
        except (OSError, TypeError) as e:
            raise StoreError(f"Cannot write {self.path}: {e}") from e
        self._cache = documents
