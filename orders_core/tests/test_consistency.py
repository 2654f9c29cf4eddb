# orders_core/tests/test_consistency.py

import pytest
from django.core.management import CommandError, call_command
from django.utils import timezone

from orders_core.errors import NotFound
from orders_core.models import AuditLog, Order, WorkflowTransition
from orders_core.tasks import scan_order_consistency
from orders_core.workflows.consistency import check_consistency
from orders_core.workflows.consistency_scanner import scan_inconsistent_orders
from orders_core.workflows.executor import repair_order


def _force(order, **fields):
    """Write inconsistent legacy data the status machine would never produce."""
    Order.objects.filter(pk=order.pk).update(**fields)
    order.refresh_from_db()
    return order


# ===============================================================
# Pure check
# ===============================================================

def test_collected_but_pending_is_inconsistent():
    report = check_consistency(
        {"id": 1, "status": "Pending Collection", "sample_collected_at": timezone.now(), "sample_collected_by": "x"}
    )
    assert report.is_consistent is False
    assert report.recommended_status == "Sample Collected"
    assert "collected" in report.issue.lower()


def test_in_progress_without_collection_is_inconsistent():
    report = check_consistency({"id": 2, "status": "In Progress", "sample_collected_at": None})
    assert report.is_consistent is False
    assert report.recommended_status == "Pending Collection"


@pytest.mark.parametrize(
    "status, collected",
    [
        ("Order Created", False),
        ("Sample Collected", True),
        ("Pending Approval", False),
        ("Delivered", True),
    ],
)
def test_consistent_orders_keep_their_status(status, collected):
    row = {
        "id": 3,
        "status": status,
        "sample_collected_at": timezone.now() if collected else None,
        "sample_collected_by": "x" if collected else None,
    }
    report = check_consistency(row)
    assert report.is_consistent is True
    assert report.recommended_status == status
    assert report.issue is None


def test_legacy_state_name_is_understood():
    report = check_consistency(
        {"id": 4, "status": "Sample Collection", "sample_collected_at": timezone.now(), "sample_collected_by": "x"}
    )
    assert report.is_consistent is True
    assert report.current_status == "Sample Collected"


def test_unknown_status_is_reported_never_raised():
    report = check_consistency({"id": 5, "status": "Lost in transit", "sample_collected_at": None})
    assert report.is_consistent is False
    assert "Lost in transit" in report.issue


def test_half_set_collection_fields_are_flagged():
    report = check_consistency({"id": 6, "status": "Order Created", "sample_collected_by": "x"})
    assert report.pair_violation is True


@pytest.mark.django_db
def test_check_is_idempotent(order_factory):
    order = _force(order_factory(), status="In Progress")
    assert check_consistency(order) == check_consistency(order)


# ===============================================================
# Repair
# ===============================================================

@pytest.mark.django_db
def test_repair_moves_to_recommended_status(order_factory, user_technician):
    order = _force(order_factory(collected=True), status="Pending Collection")

    result = repair_order(order.pk, user_technician)

    assert result.ok is True
    assert result.changed is True
    order.refresh_from_db()
    assert order.status == "Sample Collected"
    assert order.status_updated_by == "labtech"

    t = WorkflowTransition.objects.get(kind="order", object_id=order.pk)
    assert t.action == "repair"
    assert t.from_status == "Pending Collection"
    assert t.to_status == "Sample Collected"
    assert check_consistency(order).is_consistent is True


@pytest.mark.django_db
def test_repair_of_consistent_order_is_a_no_op(order_factory):
    order = order_factory()

    result = repair_order(order.pk, "tech")

    assert result.ok is True
    assert result.changed is False
    assert not WorkflowTransition.objects.filter(object_id=order.pk).exists()


@pytest.mark.django_db
def test_repair_unknown_order():
    result = repair_order(555555, "tech")
    assert isinstance(result.error, NotFound)


@pytest.mark.django_db
@pytest.mark.parametrize("order_id", ["abc", "0", None])
def test_repair_malformed_order_id(order_id):
    result = repair_order(order_id, "tech")
    assert not result
    assert isinstance(result.error, NotFound)
    assert not WorkflowTransition.objects.exists()


# ===============================================================
# Scan
# ===============================================================

@pytest.mark.django_db
def test_scan_reports_without_repairing(order_factory):
    good = order_factory()
    bad_pending = _force(order_factory(collected=True), status="Order Created")
    bad_processing = _force(order_factory(), status="In Progress")

    reports = scan_inconsistent_orders()

    assert {r.order_id for r in reports} == {bad_pending.pk, bad_processing.pk}
    assert good.pk not in {r.order_id for r in reports}

    bad_processing.refresh_from_db()
    assert bad_processing.status == "In Progress"

    log = AuditLog.objects.get(action="order.consistency_scan")
    assert log.details["inconsistent"] == 2


@pytest.mark.django_db
def test_scan_task_returns_count(order_factory):
    _force(order_factory(), status="Sample Collected")
    assert scan_order_consistency() == 1


@pytest.mark.django_db
def test_management_command_repair(order_factory):
    order = _force(order_factory(), status="In Progress")

    call_command("check_order_consistency", "--repair")

    order.refresh_from_db()
    assert order.status == "Pending Collection"


@pytest.mark.django_db
def test_management_command_can_fail(order_factory):
    _force(order_factory(), status="In Progress")

    with pytest.raises(CommandError):
        call_command("check_order_consistency", "--fail-on-inconsistent")
