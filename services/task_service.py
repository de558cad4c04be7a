# services/task_service.py

import logging
import uuid
from dataclasses import dataclass, field, replace
from datetime import date
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from models.enums import RepeatCadence
from models.task import (
    Attachment,
    PersistedTask,
    Task,
    TaskRecord,
    VirtualTask,
    derive_completed_at,
    normalize_patch,
)
from services.blob_service import BlobStore
from services.notifications import NotificationCenter
from services.recurrence import project, split_projection
from services.storage import TaskStore, Unsubscribe
from utils.datetime_utils import now_iso, today
from utils.decorators import notify_on_failure

logger = logging.getLogger(__name__)


@dataclass
class DeleteResult:
    """Outcome of delete_task"""
    removed: List[Task] = field(default_factory=list)
    # set when a virtual occurrence was completed instead of removed
    completed: Optional[Task] = None

    @property
    def removed_ids(self) -> List[str]:
        return [t.id for t in self.removed]


class TaskService:
    """
    Task lifecycle manager

    - Keeps the latest store snapshot (the store pushes full collections)
    - Exposes the projected view: stored tasks plus virtual occurrences
    - Promotes a virtual occurrence to a stored task on its first mutation
    - Cascades template deletes to materialized occurrences

    Use as an async context manager to hold the store subscription:

        async with TaskService(store, blobs) as service:
            await service.create_task({...})
    """

    def __init__(self, store: TaskStore, blob_store: Optional[BlobStore] = None,
                 notifications: Optional[NotificationCenter] = None,
                 clock: Optional[Callable[[], str]] = None):
        self.store = store
        self.blob_store = blob_store
        self.notifications = notifications
        self._clock = clock or now_iso
        self._tasks: Dict[str, Task] = {}
        self._unsubscribe: Optional[Unsubscribe] = None

    # ===== SUBSCRIPTION =====

    def start(self):
        if self._unsubscribe is None:
            self._unsubscribe = self.store.subscribe(self._on_snapshot)
            logger.info(f"✅ TaskService subscribed, {len(self._tasks)} tasks loaded")

    def close(self):
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
            logger.info("🛑 TaskService unsubscribed")

    async def __aenter__(self) -> "TaskService":
        self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        self.close()

    @property
    def is_running(self) -> bool:
        return self._unsubscribe is not None

    def _on_snapshot(self, tasks: List[Task]):
        self._tasks = {task.id: task for task in tasks}

    # ===== READS =====

    @property
    def persisted_tasks(self) -> List[Task]:
        return sorted(self._tasks.values(), key=lambda t: t.sort_order or 0)

    def get_tasks(self) -> List[Task]:
        """Stored tasks followed by the virtual occurrences they imply"""
        return project(self.persisted_tasks, now=self._clock())

    def resolve(self, task_id: str) -> Optional[TaskRecord]:
        task = self._tasks.get(task_id)
        if task is not None:
            return PersistedTask(task)

        for candidate in split_projection(self.persisted_tasks, now=self._clock()):
            if candidate.id == task_id:
                return VirtualTask(candidate)
        return None

    def get_task(self, task_id: str) -> Optional[Task]:
        record = self.resolve(task_id)
        return record.task if record is not None else None

    def get_active_tasks(self) -> List[Task]:
        return [t for t in self.get_tasks() if not t.is_completed]

    def get_completed_tasks(self) -> List[Task]:
        return [t for t in self.get_tasks() if t.is_completed]

    def get_overdue_count(self, on: Optional[date] = None) -> int:
        reference = on or today()
        return sum(1 for t in self.get_tasks() if t.is_overdue(reference))

    # ===== MUTATIONS =====

    @notify_on_failure("create task")
    async def create_task(self, data: Mapping[str, Any]) -> Task:
        """Create a plain task or a template from user input"""
        now = self._clock()
        fields = normalize_patch(data)
        attachments = fields.pop("attachments", [])
        # A new task always starts open
        fields.pop("draft_complete", None)
        fields.pop("final_complete", None)
        fields.setdefault("sort_order", self._next_sort_order())

        task = Task(
            id=str(uuid.uuid4()),
            created_at=now,
            updated_at=now,
            **fields
        )
        task.attachments = await self._upload_pending(task.id, attachments)

        await self._persist(task)
        logger.info(f"✅ Created task {task.id}: {task.task_name} (repeat={task.repeat.value})")
        return task

    @notify_on_failure("update task")
    async def update_task(self, task_id: str, patch: Mapping[str, Any]) -> Optional[Task]:
        """Merge `patch` into a task; a virtual occurrence gets promoted"""
        record = self.resolve(task_id)
        if record is None:
            logger.warning(f"⚠️ Update of unknown task {task_id} ignored")
            return None
        return await self._apply(record, normalize_patch(patch))

    @notify_on_failure("delete task")
    async def delete_task(self, task_id: str) -> DeleteResult:
        """Delete a stored task (cascading for templates).

        A virtual occurrence is completed instead: removing it would only
        let the next projection bring it back.
        """
        record = self.resolve(task_id)

        if record is None:
            logger.warning(f"⚠️ Delete of unknown task {task_id} ignored")
            return DeleteResult()

        if isinstance(record, VirtualTask):
            completed = await self._apply(record, {"draft_complete": True, "final_complete": True})
            logger.info(f"🗑️ Occurrence {task_id} of template {completed.recurring_parent_id} completed instead of deleted")
            return DeleteResult(completed=completed)

        if not isinstance(record, PersistedTask):
            raise TypeError(f"Unexpected task record {record!r}")

        task = record.task
        removed = [task]
        if task.is_template:
            children = [t for t in self.persisted_tasks if t.recurring_parent_id == task.id]
            removed.extend(children)
        else:
            children = []

        for child in children:
            await self.store.delete(child.id)
            self._tasks.pop(child.id, None)
        await self.store.delete(task.id)
        self._tasks.pop(task.id, None)

        if children:
            logger.info(f"🗑️ Deleted template {task.id} and {len(children)} occurrence(s)")
        else:
            logger.info(f"🗑️ Deleted task {task.id}")

        if self.notifications is not None:
            self.notifications.push(
                "Task deleted",
                undo=lambda: self.restore_tasks(removed)
            )
        return DeleteResult(removed=removed)

    async def toggle_draft_complete(self, task_id: str) -> Optional[Task]:
        record = self.resolve(task_id)
        if record is None:
            return None
        return await self._toggle(record, {"draft_complete": not record.task.draft_complete})

    async def toggle_final_complete(self, task_id: str) -> Optional[Task]:
        """Finalising implies the draft is done; un-finalising leaves the draft alone"""
        record = self.resolve(task_id)
        if record is None:
            return None
        if record.task.final_complete:
            patch = {"final_complete": False}
        else:
            patch = {"final_complete": True, "draft_complete": True}
        return await self._toggle(record, patch)

    @notify_on_failure("toggle completion")
    async def _toggle(self, record: TaskRecord, patch: Dict[str, Any]) -> Task:
        return await self._apply(record, patch)

    @notify_on_failure("duplicate task")
    async def duplicate_task(self, task_id: str) -> Optional[Task]:
        """Copy any task (stored or virtual) into a plain one-off task"""
        record = self.resolve(task_id)
        if record is None:
            return None

        now = self._clock()
        source = record.task
        copy = source.copy(
            id=str(uuid.uuid4()),
            task_name=f"{source.task_name} (Copy)",
            draft_complete=False,
            final_complete=False,
            completed_at=None,
            repeat=RepeatCadence.NONE,
            is_recurring=False,
            recurring_parent_id=None,
            sort_order=self._next_sort_order(),
            created_at=now,
            updated_at=now,
        )
        await self._persist(copy)
        logger.info(f"✅ Duplicated task {task_id} as {copy.id}")
        return copy

    async def add_attachment(self, task_id: str, attachment: Attachment) -> Optional[Task]:
        """Attach a file; attaching to an occurrence promotes it"""
        record = self.resolve(task_id)
        if record is None:
            return None
        attachments = list(record.task.attachments) + [attachment]
        return await self.update_task(task_id, {"attachments": attachments})

    @notify_on_failure("restore tasks")
    async def restore_tasks(self, tasks: Iterable[Task]) -> List[Task]:
        """Put back previously deleted records (undo)"""
        tasks = list(tasks)
        await self.store.batch_upsert(tasks)
        for task in tasks:
            self._tasks[task.id] = task
        logger.info(f"↩️ Restored {len(tasks)} task(s)")
        return tasks

    @notify_on_failure("reorder tasks")
    async def update_sort_order(self, task_ids: List[str]) -> int:
        """sort_order = position + 1 for the listed stored tasks"""
        changed = []
        now = self._clock()
        for index, task_id in enumerate(task_ids):
            task = self._tasks.get(task_id)
            if task is None:
                continue
            changed.append(task.copy(sort_order=index + 1, updated_at=now))

        if changed:
            await self.store.batch_upsert(changed)
            for task in changed:
                self._tasks[task.id] = task
        return len(changed)

    # ===== INTERNALS =====

    async def _apply(self, record: TaskRecord, patch: Dict[str, Any]) -> Task:
        """Single write path for existing tasks, stored or virtual"""
        now = self._clock()
        base = record.task
        patch = dict(patch)

        if isinstance(record, VirtualTask):
            promoted = True
        elif isinstance(record, PersistedTask):
            promoted = False
        else:
            raise TypeError(f"Unexpected task record {record!r}")

        if base.is_recurring and patch.get("repeat", RepeatCadence.NONE) != RepeatCadence.NONE:
            logger.warning(f"⚠️ Occurrence {base.id} cannot repeat, ignoring repeat change")
            patch.pop("repeat")

        attachments = patch.pop("attachments", None)
        updated = base.copy(**patch)
        if attachments is not None:
            updated.attachments = await self._upload_pending(updated.id, attachments)

        updated.completed_at = derive_completed_at(base, patch, now)
        updated.updated_at = now
        if promoted:
            updated.created_at = now

        await self._persist(updated)
        if promoted:
            logger.info(
                f"🔁 Promoted occurrence {updated.id} of template {updated.recurring_parent_id} "
                f"({updated.draft_due}/{updated.final_due})"
            )
        else:
            logger.info(f"✅ Updated task {updated.id}")
        return updated

    async def _upload_pending(self, owner_id: str, attachments: Iterable[Attachment]) -> List[Attachment]:
        """Upload inline payloads; a failed upload is flagged, not raised"""
        result = []
        for attachment in attachments:
            if not attachment.is_pending:
                result.append(attachment)
                continue

            if self.blob_store is None:
                logger.warning(f"⚠️ No blob store configured, attachment {attachment.name} not uploaded")
                result.append(replace(attachment, data=None, error=True))
                continue

            try:
                result.append(await self.blob_store.upload(owner_id, attachment))
            except Exception as e:
                logger.error(f"❌ Upload of {attachment.name} for task {owner_id} failed: {e}")
                result.append(replace(attachment, data=None, error=True))
        return result

    async def _persist(self, task: Task):
        await self.store.upsert(task)
        self._tasks[task.id] = task

    def _next_sort_order(self) -> int:
        return max((t.sort_order or 0 for t in self._tasks.values()), default=0) + 1
