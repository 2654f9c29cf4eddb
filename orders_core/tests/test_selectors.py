# orders_core/tests/test_selectors.py

import pytest

from orders_core.errors import NotFound, ValidationError
from orders_core.selectors import order_progress, order_timeline, verification_queue
from orders_core.services.results import record_result
from orders_core.services.verification import approve, reject
from orders_core.workflows.executor import apply


def _analytes(group):
    return list(group.analytes.order_by("id"))


# ===============================================================
# Progress from stored rows
# ===============================================================

@pytest.mark.django_db
@pytest.mark.parametrize("method", ["panel", "analyte"])
def test_no_results_is_all_draft(panel_order, method):
    order, _group = panel_order

    progress = order_progress(order.pk, method)

    assert progress.expected_total == 5
    assert progress.counts.as_dict() == {"draft": 5, "pending": 0, "approved": 0}
    assert progress.percent == 0


@pytest.mark.django_db
@pytest.mark.parametrize("method", ["panel", "analyte"])
def test_partial_submission(panel_order, result_factory, method):
    order, group = panel_order
    result_factory(order=order, test_group=group, analytes=_analytes(group)[:3])

    progress = order_progress(order.pk, method)

    assert progress.counts.as_dict() == {"draft": 2, "pending": 3, "approved": 0}


@pytest.mark.django_db
@pytest.mark.parametrize("method", ["panel", "analyte"])
def test_fully_verified_panel(panel_order, result_factory, method):
    order, group = panel_order
    result = result_factory(order=order, test_group=group)
    approve(result.pk)

    progress = order_progress(order.pk, method)

    assert progress.counts.approved == 5
    assert progress.percent == 100
    assert progress.by_panel[0].test_group_id == group.pk


@pytest.mark.django_db
@pytest.mark.parametrize("method", ["panel", "analyte"])
def test_rejected_submission_does_not_count_as_entered(panel_order, result_factory, method):
    order, group = panel_order
    result = result_factory(order=order, test_group=group, analytes=_analytes(group)[:3])
    reject(result.pk, "clotted")

    progress = order_progress(order.pk, method)

    assert progress.counts.as_dict() == {"draft": 5, "pending": 0, "approved": 0}


@pytest.mark.django_db
def test_both_methods_agree_on_mixed_history(panel_order, result_factory):
    order, group = panel_order
    a = _analytes(group)
    approve(result_factory(order=order, test_group=group, analytes=a[:2]).pk)
    reject(result_factory(order=order, test_group=group, analytes=a[2:4]).pk, "clotted")
    result_factory(order=order, test_group=group, analytes=a[3:], status="entered")

    panel = order_progress(order.pk, "panel")
    analyte = order_progress(order.pk, "analyte")

    assert panel.as_dict() == analyte.as_dict()
    # approved only counts once the whole panel is verified
    assert panel.counts.as_dict() == {"draft": 1, "pending": 4, "approved": 0}


@pytest.mark.django_db
def test_two_panels_roll_up(panel_order, test_group_factory, add_panel, result_factory):
    order, group = panel_order
    second = test_group_factory(analytes=3)
    add_panel(order, second)
    approve(result_factory(order=order, test_group=second).pk)

    progress = order_progress(order.pk)

    assert progress.expected_total == 8
    # 3 / 8 = 37.5% -> 38
    assert progress.percent == 38
    assert progress.counts.total == progress.expected_total


@pytest.mark.django_db
def test_progress_rejects_unknown_method(panel_order):
    order, _group = panel_order
    with pytest.raises(ValidationError):
        order_progress(order.pk, "magic")


@pytest.mark.django_db
def test_progress_unknown_order():
    with pytest.raises(NotFound):
        order_progress(424242)


# ===============================================================
# Timeline
# ===============================================================

@pytest.mark.django_db
def test_timeline_merges_order_and_result_transitions(order_factory, test_group_factory, add_panel):
    order = order_factory()
    group = test_group_factory(analytes=1)
    add_panel(order, group)

    apply(order.pk, "mark_collected", "tech")
    result = record_result(order.pk, group.pk, [{"analyte_id": _analytes(group)[0].pk, "value": "4"}])
    approve(result.pk, actor="reviewer")

    timeline = order_timeline(order.pk)

    assert [(t.kind, t.action) for t in timeline] == [("order", "mark_collected"), ("result", "approve")]


# ===============================================================
# Verification queue
# ===============================================================

@pytest.fixture
def queue(order_factory, test_group_factory, add_panel, result_factory):
    """
    Four results: one critical, one with a high value, one normal, and one
    already verified (never queued).
    """
    order = order_factory(status="In Progress", collected=True, patient_name="Nakato Sarah")
    group = test_group_factory(analytes=2, name="Liver Function")
    add_panel(order, group)
    a1 = _analytes(group)[0]

    critical = result_factory(order=order, test_group=group, critical_flag=True)
    high = record_result(order.pk, group.pk, [{"analyte_id": a1.pk, "value": "9.9"}])
    normal = result_factory(order=order, test_group=group)
    done = result_factory(order=order, test_group=group)
    approve(done.pk)

    return {"order": order, "critical": critical, "high": high, "normal": normal, "done": done}


@pytest.mark.django_db
def test_queue_stats(queue):
    qs, stats = verification_queue({})

    assert stats == {"total": 3, "pending": 3, "flagged": 2, "critical": 1}
    assert queue["done"].pk not in set(qs.values_list("pk", flat=True))


@pytest.mark.django_db
def test_queue_critical_filter(queue):
    qs, stats = verification_queue({"critical": "true"})

    assert list(qs.values_list("pk", flat=True)) == [queue["critical"].pk]
    assert stats["critical"] == stats["total"] == 1


@pytest.mark.django_db
def test_queue_search_by_patient_and_order(queue, order_factory):
    order_factory(patient_name="Someone Else")

    _qs, by_name = verification_queue({"search": "nakato"})
    _qs, by_order = verification_queue({"search": str(queue["order"].pk)})
    _qs, by_panel = verification_queue({"search": "liver"})
    _qs, nothing = verification_queue({"search": "zzz-no-match"})

    assert by_name["total"] == by_order["total"] == by_panel["total"] == 3
    assert nothing["total"] == 0


@pytest.mark.django_db
def test_queue_date_windows(queue):
    _qs, today = verification_queue({"date_filter": "today"})
    _qs, week = verification_queue({"date_filter": "last7days"})

    assert today["total"] == 3
    assert week["total"] == 3


@pytest.mark.django_db
@pytest.mark.parametrize("params", [{"date_filter": "yesterday"}, {"start_date": "not-a-date"}])
def test_queue_invalid_filters(params):
    with pytest.raises(ValidationError) as info:
        verification_queue(params)

    assert "errors" in info.value.details
