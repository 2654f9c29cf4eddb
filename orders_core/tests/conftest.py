# orders_core/tests/conftest.py

from __future__ import annotations

import uuid
from decimal import Decimal
from typing import Any, Callable, Iterable, List, Optional

import pytest
from django.contrib.auth import get_user_model
from django.utils import timezone
from rest_framework.test import APIClient

from orders_core.models import Analyte, Order, OrderTest, Result, ResultValue, TestGroup
from orders_core.workflows import ORDER_CREATED


def _rand(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


@pytest.fixture
def user_technician(db):
    User = get_user_model()
    user, _created = User.objects.get_or_create(username="labtech")
    user.set_password("pass123")
    user.save(update_fields=["password"])
    return user


@pytest.fixture
def user_reviewer(db):
    User = get_user_model()
    user, _created = User.objects.get_or_create(username="reviewer")
    user.set_password("pass123")
    user.save(update_fields=["password"])
    return user


@pytest.fixture
def api_client(user_technician) -> APIClient:
    client = APIClient()
    client.force_authenticate(user=user_technician)
    return client


@pytest.fixture
def anon_client() -> APIClient:
    return APIClient()


@pytest.fixture
def order_factory(db) -> Callable[..., Order]:
    """
    Orders are created directly in a given state. Collected orders get both
    collection fields so the pair constraint holds.
    """

    def _factory(
        *,
        status: str = ORDER_CREATED,
        collected: bool = False,
        patient_name: Optional[str] = None,
        **extra: Any,
    ) -> Order:
        if collected:
            extra.setdefault("sample_collected_at", timezone.now())
            extra.setdefault("sample_collected_by", "collector")
        return Order.objects.create(
            patient_name=patient_name or _rand("Patient"),
            status=status,
            **extra,
        )

    return _factory


@pytest.fixture
def test_group_factory(db) -> Callable[..., TestGroup]:
    def _factory(
        *,
        analytes: int = 3,
        name: Optional[str] = None,
        reference_range: str = "3.5-5.0",
        low_critical: Optional[Decimal] = None,
        high_critical: Optional[Decimal] = None,
    ) -> TestGroup:
        group = TestGroup.objects.create(code=_rand("TG"), name=name or _rand("Panel"))
        for i in range(analytes):
            analyte = Analyte.objects.create(
                name=f"{group.code} analyte {i + 1}",
                unit="mmol/L",
                reference_range=reference_range,
                low_critical=low_critical,
                high_critical=high_critical,
            )
            group.analytes.add(analyte)
        return group

    return _factory


@pytest.fixture
def add_panel(db) -> Callable[[Order, TestGroup], OrderTest]:
    def _add(order: Order, group: TestGroup) -> OrderTest:
        return OrderTest.objects.create(order=order, test_group=group)

    return _add


@pytest.fixture
def result_factory(db) -> Callable[..., Result]:
    """
    Creates a Result with one value per given analyte, in any state.
    """

    def _factory(
        *,
        order: Order,
        test_group: TestGroup,
        analytes: Optional[Iterable[Analyte]] = None,
        status: str = Result.Status.PENDING_VERIFICATION,
        verification_status: str = Result.VerificationStatus.PENDING,
        value: str = "4.2",
        critical_flag: bool = False,
    ) -> Result:
        result = Result.objects.create(
            order=order,
            test_group=test_group,
            status=status,
            verification_status=verification_status,
            critical_flag=critical_flag,
            entered_by="labtech",
        )
        chosen: List[Analyte] = list(analytes) if analytes is not None else list(test_group.analytes.all())
        for analyte in chosen:
            ResultValue.objects.create(
                result=result,
                analyte=analyte,
                analyte_name=analyte.name,
                value=value,
                unit=analyte.unit,
                reference_range=analyte.reference_range,
            )
        return result

    return _factory


@pytest.fixture
def panel_order(order_factory, test_group_factory, add_panel):
    """A collected order with one five-analyte panel."""
    order = order_factory(status="Sample Collected", collected=True)
    group = test_group_factory(analytes=5)
    add_panel(order, group)
    return order, group
