# models/enums.py

import logging
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)


class RepeatCadence(str, Enum):
    """Repeat cadence of a template task"""
    NONE = "none"
    DAILY = "daily"
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"
    MONTHLY_15TH = "monthly-15th"

    @classmethod
    def parse(cls, value: Any) -> "RepeatCadence":
        """Lenient conversion for values read from storage; unknown -> NONE"""
        if isinstance(value, cls):
            return value
        if not value:
            return cls.NONE
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            logger.warning(f"⚠️ Unknown repeat value {value!r}, treating as 'none'")
            return cls.NONE


class TaskView(str, Enum):
    """Filters for the task list"""
    ALL = "all"
    ACTIVE = "active"
    COMPLETED = "completed"


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"
