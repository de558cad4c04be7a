from datetime import date

import pytest

from models.enums import RepeatCadence
from models.task import Attachment
from services.recurrence import (
    generate_recurring_instances,
    get_next_occurrence,
    get_recurring_templates,
    get_target_months,
    instance_key,
    project,
    split_projection,
)
from tests.conftest import FIXED_NOW, make_task


def virtual_part(tasks):
    return split_projection(tasks, now=FIXED_NOW)


# ===== DATE MAPPING =====

@pytest.mark.parametrize("repeat, base, month, expected", [
    (RepeatCadence.DAILY, "2026-01-10", "2026-03", "2026-03-01"),
    (RepeatCadence.WEEKLY, "2026-01-07", "2026-03", "2026-03-04"),
    (RepeatCadence.MONTHLY, "2026-01-10", "2026-03", "2026-03-10"),
    (RepeatCadence.MONTHLY, "2026-01-31", "2026-02", "2026-02-28"),
    (RepeatCadence.MONTHLY, "2026-01-31", "2028-02", "2028-02-29"),
    (RepeatCadence.MONTHLY, "2026-01-31", "2026-04", "2026-04-30"),
    (RepeatCadence.MONTHLY_15TH, "2026-01-03", "2026-04", "2026-04-15"),
    (RepeatCadence.MONTHLY_15TH, "2026-01-28", "2026-02", "2026-02-15"),
])
def test_get_next_occurrence(repeat, base, month, expected):
    assert get_next_occurrence(date.fromisoformat(base), repeat, month) == date.fromisoformat(expected)


def test_weekly_lands_on_first_matching_weekday():
    base = date(2026, 1, 5)  # Monday
    result = get_next_occurrence(base, RepeatCadence.WEEKLY, "2026-06")
    assert result == date(2026, 6, 1)
    assert result.weekday() == base.weekday()


def test_biweekly_is_approximated_as_weekly():
    # Known approximation: no every-other-week phase is tracked across months,
    # so biweekly maps exactly like weekly.
    base = date(2026, 1, 7)
    for month in ("2026-02", "2026-03", "2026-04"):
        assert get_next_occurrence(base, RepeatCadence.BIWEEKLY, month) == \
            get_next_occurrence(base, RepeatCadence.WEEKLY, month)


def test_next_occurrence_without_base_or_cadence():
    assert get_next_occurrence(None, RepeatCadence.MONTHLY, "2026-03") is None
    assert get_next_occurrence(date(2026, 1, 10), RepeatCadence.NONE, "2026-03") is None


# ===== TARGET MONTHS / TEMPLATES =====

def test_target_months_ignore_completed_and_recurring():
    tasks = [
        make_task("a", draft="2026-02-03", final="2026-04-01"),
        make_task("b", draft="2026-05-03", completed_at=FIXED_NOW, draft_complete=True, final_complete=True),
        make_task("c", draft="2026-06-03", is_recurring=True, recurring_parent_id="t"),
        make_task("d"),
    ]
    assert get_target_months(tasks) == ["2026-02", "2026-04"]


def test_completed_templates_stop_generating():
    active = make_task("t1", draft="2026-01-10", repeat=RepeatCadence.MONTHLY)
    done = make_task("t2", draft="2026-01-10", repeat=RepeatCadence.MONTHLY,
                     draft_complete=True, final_complete=True, completed_at=FIXED_NOW)
    plain = make_task("p", draft="2026-01-10")
    assert get_recurring_templates([active, done, plain]) == [active]


# ===== PROJECTION SCENARIOS =====

def test_monthly_template_projects_only_into_active_months(monthly_template, march_anchor):
    virtual = virtual_part([monthly_template, march_anchor])

    assert len(virtual) == 1
    instance = virtual[0]
    assert instance.draft_due == date(2026, 3, 10)
    assert instance.final_due is None
    assert instance.is_recurring is True
    assert instance.recurring_parent_id == "t1"
    assert instance.repeat == RepeatCadence.NONE


def test_clamps_to_short_month():
    template = make_task("t1", draft="2026-01-31", repeat=RepeatCadence.MONTHLY)
    anchor = make_task("a1", draft="2026-02-10")
    [instance] = virtual_part([template, anchor])
    assert instance.draft_due == date(2026, 2, 28)


def test_monthly_15th_ignores_template_day():
    template = make_task("t1", draft="2026-01-03", repeat=RepeatCadence.MONTHLY_15TH)
    anchor = make_task("a1", final="2026-04-29")
    [instance] = virtual_part([template, anchor])
    assert instance.draft_due == date(2026, 4, 15)


def test_final_due_is_mapped_independently():
    template = make_task("t1", draft="2026-01-10", final="2026-01-31", repeat=RepeatCadence.MONTHLY)
    anchor = make_task("a1", draft="2026-02-02")
    [instance] = virtual_part([template, anchor])
    assert instance.draft_due == date(2026, 2, 10)
    assert instance.final_due == date(2026, 2, 28)


def test_native_month_never_receives_an_instance(monthly_template):
    same_month = make_task("a1", draft="2026-01-25")
    assert virtual_part([monthly_template, same_month]) == []


def test_template_without_dates_produces_nothing(march_anchor):
    template = make_task("t1", repeat=RepeatCadence.WEEKLY)
    assert virtual_part([template, march_anchor]) == []


def test_instance_copies_template_fields_but_not_attachments(monthly_template, march_anchor):
    monthly_template.notes = "Send by noon"
    monthly_template.attachments = [Attachment(id="f1", name="brief.pdf", url="memory://t1/f1")]

    [instance] = virtual_part([monthly_template, march_anchor])
    assert instance.task_name == "Newsletter"
    assert instance.notes == "Send by noon"
    assert instance.sort_order == 3
    assert instance.attachments == []
    assert not instance.draft_complete and not instance.final_complete
    assert instance.completed_at is None
    assert instance.id not in ("t1", "a1")


def test_one_instance_per_template_and_month():
    template = make_task("t1", draft="2026-01-10", repeat=RepeatCadence.MONTHLY)
    tasks = [
        template,
        make_task("a1", draft="2026-03-01"),
        make_task("a2", draft="2026-03-28", final="2026-04-02"),
        make_task("a3", final="2026-04-15"),
    ]
    virtual = virtual_part(tasks)
    keys = [instance_key(t.recurring_parent_id, t.draft_due, t.final_due) for t in virtual]
    assert len(keys) == len(set(keys)) == 2
    assert sorted(t.draft_due for t in virtual) == [date(2026, 3, 10), date(2026, 4, 10)]


# ===== IDEMPOTENCE =====

def test_projection_is_idempotent(monthly_template, march_anchor):
    tasks = [monthly_template, march_anchor]
    first = virtual_part(tasks)
    second = virtual_part(tasks)
    assert [t.id for t in first] == [t.id for t in second]
    assert [(t.draft_due, t.final_due) for t in first] == [(t.draft_due, t.final_due) for t in second]


def test_materialized_instance_is_not_projected_again(monthly_template, march_anchor):
    [instance] = virtual_part([monthly_template, march_anchor])
    materialized = instance.copy(notes="edited")

    assert virtual_part([monthly_template, march_anchor, materialized]) == []


def test_projecting_a_projection_adds_nothing(monthly_template, march_anchor):
    once = project([monthly_template, march_anchor], now=FIXED_NOW)
    twice = project(once, now=FIXED_NOW)
    assert len(twice) == len(once)


def test_moved_occurrence_does_not_reappear_in_its_old_slot(monthly_template, march_anchor):
    [instance] = virtual_part([monthly_template, march_anchor])
    moved = instance.copy(draft_due=date(2026, 3, 12))

    assert virtual_part([monthly_template, march_anchor, moved]) == []


def test_project_does_not_mutate_input(monthly_template, march_anchor):
    tasks = [monthly_template, march_anchor]
    before = [t.to_dict() for t in tasks]

    result = project(tasks, now=FIXED_NOW)

    assert len(tasks) == 2
    assert [t.to_dict() for t in tasks] == before
    assert result[:2] == tasks


def test_generate_uses_existing_instances_for_dedup(monthly_template, march_anchor):
    existing = make_task("x", draft="2026-03-10", is_recurring=True, recurring_parent_id="t1")
    assert generate_recurring_instances([monthly_template, march_anchor], [existing], now=FIXED_NOW) == []
