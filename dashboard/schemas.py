import uuid
from datetime import date
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from models.enums import RepeatCadence
from models.task import Attachment, Task


# Request models accept the store's camelCase keys as well as snake_case
class ApiModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="forbid")


class AttachmentIn(ApiModel):
    id: Optional[str] = None
    name: str = Field(..., min_length=1, max_length=255)
    type: str = "application/octet-stream"
    size: int = Field(0, ge=0)
    data: Optional[str] = None
    url: Optional[str] = None

    @field_validator("data")
    @classmethod
    def validate_data(cls, v):
        if v is not None and not v.startswith("data:"):
            raise ValueError("data must be a data URL")
        return v

    def to_attachment(self) -> Attachment:
        return Attachment(
            id=self.id or str(uuid.uuid4()),
            name=self.name,
            type=self.type,
            size=self.size,
            data=self.data,
            url=self.url,
        )


class TaskCreate(ApiModel):
    task_name: str = Field("", alias="taskName", max_length=500)
    notes: str = ""
    draft_due: Optional[date] = Field(None, alias="draftDue")
    final_due: Optional[date] = Field(None, alias="finalDue")
    repeat: RepeatCadence = RepeatCadence.NONE
    attachments: List[AttachmentIn] = []

    def to_data(self) -> Dict[str, Any]:
        data = self.model_dump(exclude={"attachments"})
        data["attachments"] = [a.to_attachment() for a in self.attachments]
        return data


class TaskPatch(ApiModel):
    task_name: Optional[str] = Field(None, alias="taskName", max_length=500)
    notes: Optional[str] = None
    draft_due: Optional[date] = Field(None, alias="draftDue")
    final_due: Optional[date] = Field(None, alias="finalDue")
    draft_complete: Optional[bool] = Field(None, alias="draftComplete")
    final_complete: Optional[bool] = Field(None, alias="finalComplete")
    repeat: Optional[RepeatCadence] = None
    sort_order: Optional[int] = Field(None, alias="sortOrder")

    def to_patch(self) -> Dict[str, Any]:
        # explicit nulls clear dates, omitted fields stay untouched
        return self.model_dump(exclude_unset=True)


class ReorderRequest(ApiModel):
    task_ids: List[str] = Field(..., alias="taskIds", min_length=1)


class TaskOut(BaseModel):
    """Task as returned by the API (store wire format plus view flags)"""
    id: str
    taskName: str
    notes: str
    draftDue: Optional[str]
    finalDue: Optional[str]
    draftComplete: bool
    finalComplete: bool
    completedAt: Optional[str]
    attachments: List[Dict[str, Any]]
    repeat: str
    isRecurring: bool
    recurringParentId: Optional[str]
    sortOrder: int
    createdAt: Optional[str]
    updatedAt: Optional[str]
    isVirtual: bool = False

    @classmethod
    def from_task(cls, task: Task, is_virtual: bool = False) -> "TaskOut":
        data = task.to_dict()
        # inline payloads are never sent back
        data["attachments"] = [{k: v for k, v in a.items() if k != "data"} for a in data["attachments"]]
        return cls(**data, isVirtual=is_virtual)


class TaskListResponse(BaseModel):
    tasks: List[TaskOut]
    months: Dict[str, List[str]]
    total: int
    overdue: int


class DeleteResponse(BaseModel):
    removed: List[str]
    completed: Optional[TaskOut] = None


class NoticeOut(BaseModel):
    id: str
    message: str
    level: str
    createdAt: str
    canUndo: bool


class HealthCheck(BaseModel):
    status: str
    service: str
    version: str
    details: Dict[str, Any] = {}

