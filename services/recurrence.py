# services/recurrence.py
"""
Recurring occurrence projection.

Templates (tasks with a repeat cadence) are projected into every calendar
month that holds active, non-recurring work, except the template's own
month. Projected occurrences are virtual: they live only in the returned
list until a mutation promotes one into the store.
"""

import logging
import uuid
from datetime import date
from typing import Iterable, List, Optional, Set, Tuple

from models.enums import RepeatCadence
from models.task import Task
from utils.datetime_utils import add_days, format_date, month_bounds, month_key, now_iso

logger = logging.getLogger(__name__)

# Virtual ids are uuid5 values in this namespace, keyed by the instance key
OCCURRENCE_NAMESPACE = uuid.UUID("6f1c8a52-3d4e-4b8f-9a61-2c7e0d9b5a14")

InstanceKey = Tuple[str, Optional[str], Optional[str]]


def instance_key(parent_id: Optional[str], draft_due: Optional[date], final_due: Optional[date]) -> InstanceKey:
    """Dedup key of an occurrence: (template id, draft due, final due)"""
    return parent_id, format_date(draft_due), format_date(final_due)


def occurrence_id(key: InstanceKey) -> str:
    return str(uuid.uuid5(OCCURRENCE_NAMESPACE, "|".join(part or "" for part in key)))


def get_target_months(tasks: Iterable[Task]) -> List[str]:
    """Months that contain active, human-scheduled work"""
    months: Set[str] = set()
    for task in tasks:
        if task.is_recurring or task.is_completed:
            continue
        for due in task.due_dates:
            months.add(month_key(due))
    return sorted(months)


def get_recurring_templates(tasks: Iterable[Task]) -> List[Task]:
    """Templates that still generate occurrences (completed ones stop)"""
    return [task for task in tasks if task.is_template and not task.is_completed]


def get_next_occurrence(base: Optional[date], repeat: RepeatCadence, target_month: str) -> Optional[date]:
    """Map a template date into `target_month` according to the cadence.

    Returns None when there is no base date, the cadence does not repeat,
    or the mapped date does not land inside the target month.
    """
    if base is None:
        return None

    month_start, month_end = month_bounds(target_month)

    if repeat == RepeatCadence.DAILY:
        candidate = month_start
    elif repeat in (RepeatCadence.WEEKLY, RepeatCadence.BIWEEKLY):
        # BIWEEKLY keeps no phase across months: same weekday, once per month
        candidate = add_days(month_start, (base.weekday() - month_start.weekday()) % 7)
    elif repeat == RepeatCadence.MONTHLY:
        candidate = month_start.replace(day=min(base.day, month_end.day))
    elif repeat == RepeatCadence.MONTHLY_15TH:
        candidate = month_start.replace(day=15)
    else:
        return None

    if candidate < month_start or candidate > month_end:
        return None
    return candidate


def _native_month(template: Task) -> Optional[str]:
    return month_key(template.draft_due or template.final_due)


def _make_instance(template: Task, key: InstanceKey, draft_due: Optional[date],
                   final_due: Optional[date], timestamp: str) -> Task:
    return Task(
        id=occurrence_id(key),
        task_name=template.task_name,
        notes=template.notes,
        draft_due=draft_due,
        final_due=final_due,
        draft_complete=False,
        final_complete=False,
        completed_at=None,
        attachments=[],
        repeat=RepeatCadence.NONE,
        is_recurring=True,
        recurring_parent_id=template.id,
        sort_order=template.sort_order,
        created_at=timestamp,
        updated_at=timestamp,
    )


def generate_recurring_instances(tasks: List[Task], existing_instances: Iterable[Task] = (),
                                 now: Optional[str] = None) -> List[Task]:
    """Virtual occurrences for `tasks` that are not yet in `existing_instances`"""
    timestamp = now or now_iso()
    target_months = get_target_months(tasks)
    templates = get_recurring_templates(tasks)

    existing_keys: Set[InstanceKey] = {
        instance_key(t.recurring_parent_id, t.draft_due, t.final_due)
        for t in existing_instances
    }
    taken_ids: Set[str] = {t.id for t in tasks}
    taken_ids.update(t.id for t in existing_instances)

    new_instances: List[Task] = []

    for template in templates:
        native_month = _native_month(template)

        for target in target_months:
            if target == native_month:
                continue

            draft_due = get_next_occurrence(template.draft_due, template.repeat, target)
            final_due = get_next_occurrence(template.final_due, template.repeat, target)
            if draft_due is None and final_due is None:
                continue

            key = instance_key(template.id, draft_due, final_due)
            if key in existing_keys:
                continue

            instance = _make_instance(template, key, draft_due, final_due, timestamp)
            # A materialized occurrence whose dates were edited keeps this id
            if instance.id in taken_ids:
                continue

            new_instances.append(instance)
            existing_keys.add(key)
            taken_ids.add(instance.id)

    if new_instances:
        logger.debug(
            f"🔁 Projected {len(new_instances)} occurrences from {len(templates)} templates "
            f"into {len(target_months)} months"
        )
    return new_instances


def project(all_tasks: List[Task], now: Optional[str] = None) -> List[Task]:
    """All tasks plus the virtual occurrences they imply; input is left untouched"""
    regular = [t for t in all_tasks if not t.is_recurring]
    existing = [t for t in all_tasks if t.is_recurring]
    return list(all_tasks) + generate_recurring_instances(regular, existing, now=now)


def split_projection(all_tasks: List[Task], now: Optional[str] = None) -> List[Task]:
    """Only the virtual part of `project(all_tasks)`"""
    return project(all_tasks, now=now)[len(all_tasks):]
