"""
Transient user notices (toasts) raised by task mutations
"""

import logging
import uuid
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Dict, List, Optional

from utils.datetime_utils import now_iso

logger = logging.getLogger(__name__)

UndoAction = Callable[[], Awaitable[object]]


@dataclass
class Notice:
    """A dismissable notice, optionally carrying an undo action"""
    message: str
    level: str = "info"
    notice_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: str = field(default_factory=now_iso)
    undo: Optional[UndoAction] = field(default=None, repr=False)

    @property
    def can_undo(self) -> bool:
        return self.undo is not None

    def to_dict(self) -> dict:
        return {
            "id": self.notice_id,
            "message": self.message,
            "level": self.level,
            "createdAt": self.created_at,
            "canUndo": self.can_undo,
        }


class NotificationCenter:
    """Holds pending notices until they are dismissed or undone"""

    def __init__(self, max_notices: int = 20):
        self.max_notices = max_notices
        self._notices: Dict[str, Notice] = {}

    def push(self, message: str, level: str = "info", undo: Optional[UndoAction] = None) -> Notice:
        notice = Notice(message=message, level=level, undo=undo)
        self._notices[notice.notice_id] = notice

        # Oldest notices fall off first
        while len(self._notices) > self.max_notices:
            oldest = next(iter(self._notices))
            del self._notices[oldest]

        log = logger.error if level == "error" else logger.info
        log(f"🔔 {message}")
        return notice

    def error(self, message: str) -> Notice:
        return self.push(message, level="error")

    def pending(self) -> List[Notice]:
        return list(self._notices.values())

    def get(self, notice_id: str) -> Optional[Notice]:
        return self._notices.get(notice_id)

    def dismiss(self, notice_id: str) -> bool:
        return self._notices.pop(notice_id, None) is not None

    async def undo(self, notice_id: str) -> bool:
        """Run the notice's undo action; the notice is consumed either way"""
        notice = self._notices.pop(notice_id, None)
        if notice is None or notice.undo is None:
            return False

        try:
            await notice.undo()
        except Exception as e:
            logger.error(f"❌ Undo failed for notice {notice_id}: {e}")
            self.error(f"Undo failed: {e}")
            raise
        return True

    def clear(self):
        self._notices.clear()
