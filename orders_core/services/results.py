# orders_core/services/results.py

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from django.db import transaction

from orders_core import flags, notifier
from orders_core.errors import NotFound, ValidationError
from orders_core.models import Analyte, Order, OrderTest, Result, ResultValue
from orders_core.store import store_call
from orders_core.workflows import RESULT_ENTERED, RESULT_PENDING_VERIFICATION, actor_name

logger = logging.getLogger(__name__)

ENTRY_MODES = {
    "draft": RESULT_ENTERED,
    "submit": RESULT_PENDING_VERIFICATION,
}


def _clean_entries(values: Iterable[Mapping[str, Any]]) -> List[Mapping[str, Any]]:
    """Drop rows without a value; every kept row must name its analyte."""
    kept = []
    for idx, entry in enumerate(values or []):
        if not isinstance(entry, Mapping):
            raise ValidationError(f"values[{idx}] must be an object.")
        raw = entry.get("value")
        if raw is None or not str(raw).strip():
            continue
        if entry.get("analyte_id") in (None, "") and not str(entry.get("analyte_name") or "").strip():
            raise ValidationError(f"values[{idx}] needs analyte_id or analyte_name.")
        kept.append(entry)
    return kept


def record_result(
    order_id: Any,
    test_group_id: Any,
    values: Iterable[Mapping[str, Any]],
    *,
    actor: Any = None,
    mode: str = "submit",
    classifier: Optional[Callable[..., str]] = None,
) -> Result:
    """
    Store one submission of values for one panel of an order.

    mode="draft" keeps the result as `entered`; mode="submit" puts it
    straight into the verification queue. Flags not supplied by the caller
    are computed by `classifier` (flags.classify by default) using the
    analyte's reference range and critical limits.
    """
    status = ENTRY_MODES.get((mode or "").strip().lower())
    if status is None:
        raise ValidationError(f"Unknown entry mode '{mode}'.", details={"allowed": sorted(ENTRY_MODES)})

    entries = _clean_entries(values)
    if not entries:
        raise ValidationError("Enter at least one result value.")

    classify = classifier or flags.classify
    performer = actor_name(actor)

    with store_call("record result"):
        with transaction.atomic():
            if not Order.objects.filter(pk=order_id).exists():
                raise NotFound(f"Order {order_id} not found.", object_id=order_id)
            if not OrderTest.objects.filter(order_id=order_id, test_group_id=test_group_id).exists():
                raise ValidationError(
                    f"Test group {test_group_id} is not part of order {order_id}.",
                    object_id=order_id,
                )

            panel: Dict[int, Analyte] = {
                a.pk: a for a in Analyte.objects.filter(test_groups__id=test_group_id)
            }
            by_name = {a.name.strip().lower(): a for a in panel.values()}

            rows = []
            for entry in entries:
                analyte = _resolve_analyte(entry, panel, by_name)
                value = str(entry.get("value")).strip()
                reference_range = entry.get("reference_range") or (analyte.reference_range if analyte else "")

                if entry.get("flag") not in (None, ""):
                    flag = flags.normalize_flag(entry.get("flag"))
                else:
                    flag = classify(
                        value,
                        reference_range,
                        low_critical=analyte.low_critical if analyte else None,
                        high_critical=analyte.high_critical if analyte else None,
                    )

                rows.append(
                    ResultValue(
                        analyte=analyte,
                        analyte_name=(analyte.name if analyte else str(entry.get("analyte_name")).strip()),
                        value=value,
                        unit=entry.get("unit") or (analyte.unit if analyte else ""),
                        reference_range=reference_range or "",
                        flag=flag,
                    )
                )

            result = Result.objects.create(
                order_id=order_id,
                test_group_id=test_group_id,
                status=status,
                critical_flag=any(r.flag == flags.CRITICAL for r in rows),
                entered_by=performer,
            )
            for row in rows:
                row.result = result
            ResultValue.objects.bulk_create(rows)

            notifier.publish_on_commit(order_id, source="result.record")

    logger.info(
        "Recorded result %s for order %s panel %s (%d values, %s) by %s",
        result.pk,
        order_id,
        test_group_id,
        len(rows),
        status,
        performer,
    )
    return result


def _resolve_analyte(entry: Mapping[str, Any], panel: Dict[int, Analyte], by_name: Dict[str, Analyte]):
    raw_id = entry.get("analyte_id")
    if raw_id not in (None, ""):
        try:
            analyte = panel.get(int(raw_id))
        except (TypeError, ValueError):
            analyte = None
        if analyte is None:
            raise ValidationError(f"Analyte {raw_id} is not part of this test group.")
        return analyte
    return by_name.get(str(entry.get("analyte_name") or "").strip().lower())


__all__ = [
    "ENTRY_MODES",
    "record_result",
]
