# orders_core/tests/test_bulk_verification.py

import pytest

from orders_core.errors import StoreUnavailable
from orders_core.models import Result
from orders_core.services import verification_bulk
from orders_core.services.verification import VerificationOutcome, reject
from orders_core.services.verification_bulk import bulk_approve, bulk_reject


@pytest.fixture
def three_results(panel_order, result_factory):
    order, group = panel_order
    return [result_factory(order=order, test_group=group) for _ in range(3)]


@pytest.mark.django_db
def test_bulk_approve_skips_already_rejected(three_results):
    a, b, c = three_results
    reject(b.pk, "clotted")

    outcome = bulk_approve([a.pk, b.pk, c.pk], actor="reviewer")

    assert outcome.success is False
    assert outcome.success_count == 2
    assert outcome.failed_ids == [b.pk]
    assert outcome.errors[str(b.pk)] == "cannot approve: already rejected"

    statuses = dict(Result.objects.values_list("pk", "verification_status"))
    assert statuses[a.pk] == statuses[c.pk] == "verified"
    assert statuses[b.pk] == "rejected"


@pytest.mark.django_db
def test_bulk_approve_all_ok(three_results):
    outcome = bulk_approve([r.pk for r in three_results])

    assert outcome
    assert outcome.as_dict() == {"success": True, "success_count": 3, "failed_ids": [], "errors": {}}


def test_empty_batch_is_not_a_success():
    outcome = bulk_approve([])
    assert outcome.success is False
    assert outcome.success_count == 0
    assert outcome.failed_ids == []


@pytest.mark.django_db
def test_counts_cover_every_id(three_results):
    ids = [three_results[0].pk, "nope", three_results[1].pk, 424242]

    outcome = bulk_approve(ids)

    assert outcome.success_count + len(outcome.failed_ids) == len(ids)
    assert outcome.failed_ids == ["nope", 424242]


@pytest.mark.django_db
def test_duplicate_ids_are_attempted_twice(three_results):
    a = three_results[0]

    outcome = bulk_approve([a.pk, a.pk])

    assert outcome.success_count == 1
    assert outcome.failed_ids == [a.pk]


@pytest.mark.django_db
def test_bulk_reject_with_blank_reason_touches_nothing(three_results):
    ids = [r.pk for r in three_results]

    outcome = bulk_reject(ids, "  ")

    assert outcome.success is False
    assert outcome.failed_ids == ids
    assert set(Result.objects.values_list("verification_status", flat=True)) == {"pending_verification"}


@pytest.mark.django_db
def test_bulk_reject(three_results):
    outcome = bulk_reject([r.pk for r in three_results], "wrong tube")

    assert outcome.success_count == 3
    assert set(Result.objects.values_list("review_comment", flat=True)) == {"wrong tube"}


def test_store_error_fails_only_that_item(monkeypatch):
    def fake_approve(rid, **kwargs):
        if rid == 2:
            raise StoreUnavailable("The data store is unavailable (result approve).")
        return VerificationOutcome(ok=True, result_id=rid, action="approve")

    monkeypatch.setattr(verification_bulk, "approve", fake_approve)

    outcome = bulk_approve([1, 2, 3])

    assert outcome.success_count == 2
    assert outcome.failed_ids == [2]
    assert "unavailable" in outcome.errors["2"]
