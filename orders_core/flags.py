# orders_core/flags.py
from __future__ import annotations

"""
Default flag classifier for result values.

Flags follow the result_values.flag codes:
  ""  normal (or not classifiable)
  "H" above the reference range
  "L" below the reference range
  "C" beyond a critical limit of the analyte
"""

import re
from decimal import Decimal, InvalidOperation
from typing import Any, NamedTuple, Optional

NORMAL = ""
HIGH = "H"
LOW = "L"
CRITICAL = "C"

FLAGS = (NORMAL, HIGH, LOW, CRITICAL)

_NUMBER = r"[-+]?\d+(?:\.\d+)?"
_BETWEEN = re.compile(rf"^\s*({_NUMBER})\s*(?:-|–|—|to)\s*({_NUMBER})\s*$", re.IGNORECASE)
_UPPER = re.compile(rf"^\s*(<=|<|≤|up to)\s*({_NUMBER})\s*$", re.IGNORECASE)
_LOWER = re.compile(rf"^\s*(>=|>|≥)\s*({_NUMBER})\s*$")
_VALUE = re.compile(rf"^\s*(?:<=|>=|<|>|≤|≥)?\s*({_NUMBER})\s*$")


class ReferenceRange(NamedTuple):
    low: Optional[Decimal]
    high: Optional[Decimal]


def _decimal(raw: Any) -> Optional[Decimal]:
    if raw is None:
        return None
    try:
        return Decimal(str(raw))
    except (InvalidOperation, ValueError):
        return None


def parse_reference_range(text: Optional[str]) -> Optional[ReferenceRange]:
    """
    Parse "3.5-5.0", "3.5 to 5.0", "<5", "<= 5", ">10", "≥ 10".

    Units or trailing text are stripped before parsing. Returns None when
    nothing numeric can be recovered.
    """
    if not text:
        return None
    cleaned = re.sub(r"[A-Za-zµ/%]+\s*$", "", str(text).strip()).strip()

    m = _BETWEEN.match(cleaned)
    if m:
        low, high = Decimal(m.group(1)), Decimal(m.group(2))
        if low > high:
            low, high = high, low
        return ReferenceRange(low, high)

    m = _UPPER.match(cleaned)
    if m:
        return ReferenceRange(None, Decimal(m.group(2)))

    m = _LOWER.match(cleaned)
    if m:
        return ReferenceRange(Decimal(m.group(2)), None)

    return None


def parse_value(value: Any) -> Optional[Decimal]:
    if value is None:
        return None
    m = _VALUE.match(str(value))
    if not m:
        return None
    return Decimal(m.group(1))


def classify(
    value: Any,
    reference_range: Optional[str],
    *,
    low_critical: Any = None,
    high_critical: Any = None,
) -> str:
    """
    Classify a raw value against a reference range and optional critical
    limits. Values that are not numeric are flagged normal.
    """
    number = parse_value(value)
    if number is None:
        return NORMAL

    lo_crit = _decimal(low_critical)
    hi_crit = _decimal(high_critical)
    if (lo_crit is not None and number <= lo_crit) or (hi_crit is not None and number >= hi_crit):
        return CRITICAL

    rng = parse_reference_range(reference_range)
    if rng is None:
        return NORMAL
    if rng.low is not None and number < rng.low:
        return LOW
    if rng.high is not None and number > rng.high:
        return HIGH
    return NORMAL


def normalize_flag(raw: Any) -> str:
    """
    Map free-text flags ("high", "Critical", "abnormal low") to flag codes.
    Unknown text maps to normal.
    """
    s = str(raw or "").strip().lower()
    if not s:
        return NORMAL
    if s in ("c", "hh", "ll") or "critical" in s or "panic" in s:
        return CRITICAL
    if s in ("h", "hi") or "high" in s:
        return HIGH
    if s in ("l", "lo") or "low" in s:
        return LOW
    return NORMAL
