# models/task.py

import logging
import uuid
from dataclasses import dataclass, field, replace
from datetime import date
from typing import Any, Dict, List, Mapping, Optional, Union

from models.enums import RepeatCadence
from utils.datetime_utils import format_date, parse_date

logger = logging.getLogger(__name__)

# ===== ATTACHMENTS =====

@dataclass
class Attachment:
    """File attached to a task; `data` holds an inline data URL until uploaded"""
    id: str
    name: str
    type: str = "application/octet-stream"
    size: int = 0
    uploaded_at: Optional[str] = None
    url: Optional[str] = None
    data: Optional[str] = None
    error: bool = False

    @property
    def is_pending(self) -> bool:
        return self.data is not None and self.url is None

    def to_dict(self) -> dict:
        result = {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "size": self.size,
            "uploadedAt": self.uploaded_at,
            "url": self.url,
        }
        if self.data is not None:
            result["data"] = self.data
        if self.error:
            result["error"] = True
        return result

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Attachment":
        return cls(
            id=data.get("id") or str(uuid.uuid4()),
            name=data.get("name", ""),
            type=data.get("type", "application/octet-stream"),
            size=int(data.get("size") or 0),
            uploaded_at=data.get("uploadedAt"),
            url=data.get("url") or data.get("storageURL"),
            data=data.get("data"),
            error=bool(data.get("error", False)),
        )


# ===== TASK =====

# attribute name -> wire key used by the document store
WIRE_KEYS: Dict[str, str] = {
    "id": "id",
    "task_name": "taskName",
    "notes": "notes",
    "draft_due": "draftDue",
    "final_due": "finalDue",
    "draft_complete": "draftComplete",
    "final_complete": "finalComplete",
    "completed_at": "completedAt",
    "attachments": "attachments",
    "repeat": "repeat",
    "is_recurring": "isRecurring",
    "recurring_parent_id": "recurringParentId",
    "sort_order": "sortOrder",
    "created_at": "createdAt",
    "updated_at": "updatedAt",
}

# Never settable through a patch
PROTECTED_FIELDS = frozenset({
    "id", "completed_at", "created_at", "is_recurring", "recurring_parent_id",
})


@dataclass
class Task:
    """Task with draft/final due dates and an optional repeat cadence"""
    id: str
    task_name: str = ""
    notes: str = ""
    draft_due: Optional[date] = None
    final_due: Optional[date] = None
    draft_complete: bool = False
    final_complete: bool = False
    completed_at: Optional[str] = None
    attachments: List[Attachment] = field(default_factory=list)
    repeat: RepeatCadence = RepeatCadence.NONE
    is_recurring: bool = False
    recurring_parent_id: Optional[str] = None
    sort_order: int = 0
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @property
    def is_template(self) -> bool:
        """Anchors generated occurrences"""
        return self.repeat != RepeatCadence.NONE and not self.is_recurring

    @property
    def is_completed(self) -> bool:
        return self.completed_at is not None

    @property
    def due_dates(self) -> List[date]:
        return [d for d in (self.draft_due, self.final_due) if d is not None]

    def is_overdue(self, today: date) -> bool:
        """A due date has passed while its stage is still open"""
        if self.is_completed:
            return False
        if self.draft_due and not self.draft_complete and self.draft_due < today:
            return True
        if self.final_due and not self.final_complete and self.final_due < today:
            return True
        return False

    def copy(self, **changes) -> "Task":
        """Shallow copy with a fresh attachments list"""
        changes.setdefault("attachments", list(self.attachments))
        return replace(self, **changes)

    def to_dict(self) -> dict:
        """Serialise to the document store representation"""
        return {
            "id": self.id,
            "taskName": self.task_name,
            "notes": self.notes,
            "draftDue": format_date(self.draft_due),
            "finalDue": format_date(self.final_due),
            "draftComplete": self.draft_complete,
            "finalComplete": self.final_complete,
            "completedAt": self.completed_at,
            "attachments": [a.to_dict() for a in self.attachments],
            "repeat": self.repeat.value,
            "isRecurring": self.is_recurring,
            "recurringParentId": self.recurring_parent_id,
            "sortOrder": self.sort_order,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Task":
        """Deserialise; malformed dates become None"""
        task = cls(
            id=str(data["id"]),
            task_name=data.get("taskName") or "",
            notes=data.get("notes") or "",
            draft_due=parse_date(data.get("draftDue")),
            final_due=parse_date(data.get("finalDue")),
            draft_complete=bool(data.get("draftComplete", False)),
            final_complete=bool(data.get("finalComplete", False)),
            completed_at=data.get("completedAt"),
            repeat=RepeatCadence.parse(data.get("repeat")),
            is_recurring=bool(data.get("isRecurring", False)),
            recurring_parent_id=data.get("recurringParentId"),
            sort_order=int(data.get("sortOrder") or 0),
            created_at=data.get("createdAt"),
            updated_at=data.get("updatedAt"),
        )

        if "attachments" in data:
            task.attachments = [
                Attachment.from_dict(a) if isinstance(a, Mapping) else a
                for a in data["attachments"] or []
            ]

        return task


# ===== VIRTUAL / PERSISTED =====

@dataclass(frozen=True)
class PersistedTask:
    """Task present in the store"""
    task: Task


@dataclass(frozen=True)
class VirtualTask:
    """Projected occurrence that exists only in memory"""
    task: Task


TaskRecord = Union[PersistedTask, VirtualTask]


# ===== COMPLETION RULE =====

def derive_completed_at(prior: Task, patch: Mapping[str, Any], now: str) -> Optional[str]:
    """The only place completed_at is computed.

    Set when both stages end up complete; kept from `prior` if it was
    already complete, so re-saving a finished task keeps its timestamp.
    """
    draft_complete = bool(patch.get("draft_complete", prior.draft_complete))
    final_complete = bool(patch.get("final_complete", prior.final_complete))

    if draft_complete and final_complete:
        return prior.completed_at or now
    return None


def normalize_patch(patch: Mapping[str, Any]) -> Dict[str, Any]:
    """Drop protected and unknown fields, coerce dates and repeat values"""
    clean: Dict[str, Any] = {}
    for key, value in patch.items():
        if key in PROTECTED_FIELDS:
            logger.debug(f"Ignoring protected field '{key}' in patch")
            continue
        if key not in WIRE_KEYS:
            logger.warning(f"⚠️ Ignoring unknown task field '{key}'")
            continue

        if key in ("draft_due", "final_due"):
            value = parse_date(value)
        elif key == "repeat":
            value = RepeatCadence.parse(value)
        elif key in ("draft_complete", "final_complete"):
            value = bool(value)
        elif key in ("task_name", "notes"):
            value = value or ""
        elif key == "sort_order":
            value = int(value or 0)
        elif key == "attachments":
            value = [
                Attachment.from_dict(a) if isinstance(a, Mapping) else a
                for a in value or []
            ]

        clean[key] = value
    return clean
