# Sorting helpers for task lists

from functools import cmp_to_key
from typing import Any, Dict, Iterable, List

from models.enums import SortDirection

DATE_FIELDS = ("draft_due", "final_due", "completed_at", "created_at")
TEXT_FIELDS = ("task_name", "notes")


def _compare(a: Any, b: Any) -> int:
    return (a > b) - (a < b)


def compare_field(left, right, field: str, direction: SortDirection = SortDirection.ASC) -> int:
    """Compare two tasks on one field; missing dates always go last"""
    if field == "sort_order":
        return _compare(left.sort_order or 0, right.sort_order or 0)

    a = getattr(left, field)
    b = getattr(right, field)

    if field in DATE_FIELDS:
        if a is None and b is None:
            return 0
        if a is None:
            return 1
        if b is None:
            return -1
        result = _compare(a, b)
    elif field in TEXT_FIELDS:
        result = _compare((a or "").lower(), (b or "").lower())
    else:
        return 0

    return -result if direction == SortDirection.DESC else result


def multi_sort(tasks: Iterable, sort_configs: List[Dict[str, Any]]) -> List:
    """Sort by several fields: [{"field": "draft_due", "direction": "asc"}, ...]"""
    def compare(left, right) -> int:
        for config in sort_configs:
            direction = SortDirection(config.get("direction", SortDirection.ASC))
            result = compare_field(left, right, config["field"], direction)
            if result:
                return result
        return 0

    return sorted(tasks, key=cmp_to_key(compare))


def default_task_sort(tasks: Iterable) -> List:
    """Manual order first, then draft due date"""
    return multi_sort(tasks, [
        {"field": "sort_order", "direction": SortDirection.ASC},
        {"field": "draft_due", "direction": SortDirection.ASC},
    ])
