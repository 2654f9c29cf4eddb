# orders_core/tests/test_flags.py

from decimal import Decimal

import pytest

from orders_core.flags import (
    CRITICAL,
    HIGH,
    LOW,
    NORMAL,
    ReferenceRange,
    classify,
    normalize_flag,
    parse_reference_range,
    parse_value,
)


@pytest.mark.parametrize(
    "text, expected",
    [
        ("3.5-5.0", ReferenceRange(Decimal("3.5"), Decimal("5.0"))),
        ("3.5 to 5.0", ReferenceRange(Decimal("3.5"), Decimal("5.0"))),
        ("70 - 110 mg/dL", ReferenceRange(Decimal("70"), Decimal("110"))),
        ("5.0-3.5", ReferenceRange(Decimal("3.5"), Decimal("5.0"))),
        ("<5", ReferenceRange(None, Decimal("5"))),
        ("<= 40", ReferenceRange(None, Decimal("40"))),
        (">10", ReferenceRange(Decimal("10"), None)),
        ("", None),
        (None, None),
        ("negative", None),
    ],
)
def test_parse_reference_range(text, expected):
    assert parse_reference_range(text) == expected


def test_parse_value():
    assert parse_value("4.2") == Decimal("4.2")
    assert parse_value(" <0.5 ") == Decimal("0.5")
    assert parse_value("positive") is None
    assert parse_value(None) is None


@pytest.mark.parametrize(
    "value, expected",
    [
        ("4.2", NORMAL),
        ("3.5", NORMAL),
        ("5.0", NORMAL),
        ("5.1", HIGH),
        ("3.4", LOW),
        ("trace", NORMAL),
    ],
)
def test_classify_against_range(value, expected):
    assert classify(value, "3.5-5.0") == expected


def test_critical_limits_win_over_range():
    assert classify("2.0", "3.5-5.0", low_critical="2.5") == CRITICAL
    assert classify("6.5", "3.5-5.0", high_critical=Decimal("6.5")) == CRITICAL
    assert classify("6.4", "3.5-5.0", high_critical=Decimal("6.5")) == HIGH


def test_no_range_means_normal():
    assert classify("999", "") == NORMAL


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("H", HIGH),
        ("high", HIGH),
        ("Abnormal low", LOW),
        ("L", LOW),
        ("critical", CRITICAL),
        ("HH", CRITICAL),
        ("panic value", CRITICAL),
        ("", NORMAL),
        (None, NORMAL),
        ("normal", NORMAL),
    ],
)
def test_normalize_flag(raw, expected):
    assert normalize_flag(raw) == expected
