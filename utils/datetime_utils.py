import calendar
from collections import OrderedDict
from datetime import date, datetime, timedelta
from typing import Dict, Iterable, List, Optional, Tuple, Union

import pytz

from config import get_config

UNSCHEDULED = "unscheduled"


def local_tz():
    return pytz.timezone(get_config().timezone)


def now_local() -> datetime:
    return datetime.now(local_tz())


def now_iso() -> str:
    return now_local().isoformat()


def today() -> date:
    return now_local().date()


def format_date(value: Optional[date], fmt: str = "%Y-%m-%d") -> Optional[str]:
    if value is None:
        return None
    return value.strftime(fmt)


def parse_date(value: Union[str, date, datetime, None]) -> Optional[date]:
    """Lenient date parsing: anything unparseable becomes None"""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip()[:10])
    except ValueError:
        return None


def month_key(value: Union[str, date, None]) -> Optional[str]:
    """'2026-01-10' -> '2026-01'"""
    parsed = parse_date(value)
    if parsed is None:
        return None
    return parsed.strftime("%Y-%m")


def parse_month_key(key: str) -> Tuple[int, int]:
    year, month = key.split("-")
    return int(year), int(month)


def month_bounds(key: str) -> Tuple[date, date]:
    """First and last calendar day of a month key"""
    year, month = parse_month_key(key)
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


def add_days(value: date, days: int) -> date:
    return value + timedelta(days=days)


def group_tasks_by_month(tasks: Iterable, field: str = "draft_due") -> "OrderedDict[str, List]":
    """Group tasks by the month of a due date field, unscheduled last"""
    groups: Dict[str, List] = {}
    for task in tasks:
        key = month_key(getattr(task, field)) or UNSCHEDULED
        groups.setdefault(key, []).append(task)

    ordered = sorted(groups, key=lambda k: (k == UNSCHEDULED, k))
    return OrderedDict((key, groups[key]) for key in ordered)
