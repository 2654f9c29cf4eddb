# orders_core/workflows/progress.py
from __future__ import annotations

"""
Order progress aggregation.

This module is PURE LOGIC.
- No Django imports, no I/O
- Input is a list of PanelObservation rows for one order
- Output buckets every expected analyte into draft / pending / approved

The analyte-identity path (raw result rows keyed by analyte) is an adapter:
it normalises into PanelObservation rows and then calls compute().
"""

import enum
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)


# ===============================================================
# Panel status
# ===============================================================

class PanelStatus(enum.Enum):
    NOT_STARTED = "Not started"
    PARTIAL = "Partial"
    IN_PROGRESS = "In progress"
    COMPLETE = "Complete"
    VERIFIED = "Verified"

    @classmethod
    def parse(cls, value: Any) -> "PanelStatus":
        """
        Accepts the spellings used by the progress views and older clients.

        Unknown strings map to IN_PROGRESS (entered analytes are counted as
        pending, the rest as draft) and are logged.
        """
        if isinstance(value, cls):
            return value
        token = re.sub(r"[\s_\-]+", "", str(value or "")).lower()
        status = _PANEL_STATUS_TOKENS.get(token)
        if status is None:
            logger.warning("Unrecognised panel status %r treated as in progress", value)
            return cls.IN_PROGRESS
        return status


_PANEL_STATUS_TOKENS: Dict[str, PanelStatus] = {
    "notstarted": PanelStatus.NOT_STARTED,
    "": PanelStatus.NOT_STARTED,
    "partial": PanelStatus.PARTIAL,
    "inprogress": PanelStatus.IN_PROGRESS,
    "complete": PanelStatus.COMPLETE,
    "completed": PanelStatus.COMPLETE,
    "verified": PanelStatus.VERIFIED,
}


# ===============================================================
# Input / output shapes
# ===============================================================

@dataclass(frozen=True)
class PanelObservation:
    order_test_id: Any
    test_group_id: Any
    expected_analytes: int
    entered_analytes: int
    has_results: bool
    is_verified: bool
    panel_status: PanelStatus

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "PanelObservation":
        return cls(
            order_test_id=row.get("order_test_id"),
            test_group_id=row.get("test_group_id"),
            expected_analytes=int(row.get("expected_analytes") or 0),
            entered_analytes=int(row.get("entered_analytes") or 0),
            has_results=bool(row.get("has_results")),
            is_verified=bool(row.get("is_verified")),
            panel_status=PanelStatus.parse(row.get("panel_status")),
        )


@dataclass(frozen=True)
class BucketCounts:
    draft: int = 0
    pending: int = 0
    approved: int = 0

    @property
    def total(self) -> int:
        return self.draft + self.pending + self.approved

    def __add__(self, other: "BucketCounts") -> "BucketCounts":
        return BucketCounts(
            draft=self.draft + other.draft,
            pending=self.pending + other.pending,
            approved=self.approved + other.approved,
        )

    def as_dict(self) -> Dict[str, int]:
        return {"draft": self.draft, "pending": self.pending, "approved": self.approved}


@dataclass(frozen=True)
class PanelProgress:
    order_test_id: Any
    test_group_id: Any
    expected: int
    counts: BucketCounts
    percent: int

    def as_dict(self) -> Dict[str, Any]:
        return {
            "order_test_id": self.order_test_id,
            "test_group_id": self.test_group_id,
            "expected": self.expected,
            "counts": self.counts.as_dict(),
            "percent": self.percent,
        }


@dataclass(frozen=True)
class ProgressCounts:
    expected_total: int = 0
    counts: BucketCounts = field(default_factory=BucketCounts)
    percent: int = 0
    by_panel: Tuple[PanelProgress, ...] = ()

    def as_dict(self) -> Dict[str, Any]:
        return {
            "expected_total": self.expected_total,
            "counts": self.counts.as_dict(),
            "percent": self.percent,
            "by_panel": [p.as_dict() for p in self.by_panel],
        }


# ===============================================================
# Canonical algorithm
# ===============================================================

def percent_of(part: int, whole: int) -> int:
    """Integer percentage rounded half up; 0 when whole is 0."""
    if whole <= 0:
        return 0
    return (part * 200 + whole) // (whole * 2)


def classify_panel(obs: PanelObservation) -> BucketCounts:
    expected = max(int(obs.expected_analytes), 0)
    status = obs.panel_status

    if status is PanelStatus.VERIFIED or obs.is_verified:
        return BucketCounts(approved=expected)

    if status is PanelStatus.COMPLETE:
        return BucketCounts(pending=expected)

    if status in (PanelStatus.PARTIAL, PanelStatus.IN_PROGRESS):
        pending = min(max(int(obs.entered_analytes), 0), expected)
        return BucketCounts(draft=expected - pending, pending=pending)

    if status is PanelStatus.NOT_STARTED:
        return BucketCounts(draft=expected)

    raise AssertionError(f"Unhandled panel status: {status!r}")


def compute(observations: Iterable[PanelObservation]) -> ProgressCounts:
    """
    Roll panel observations up to order-level progress.

    Zero observations yield expected_total=0 and percent=0.
    """
    by_panel: List[PanelProgress] = []
    totals = BucketCounts()
    expected_total = 0

    for obs in observations:
        counts = classify_panel(obs)
        expected = counts.total
        expected_total += expected
        totals = totals + counts
        by_panel.append(
            PanelProgress(
                order_test_id=obs.order_test_id,
                test_group_id=obs.test_group_id,
                expected=expected,
                counts=counts,
                percent=percent_of(counts.approved, expected),
            )
        )

    return ProgressCounts(
        expected_total=expected_total,
        counts=totals,
        percent=percent_of(totals.approved, expected_total),
        by_panel=tuple(by_panel),
    )


# ===============================================================
# Analyte-identity adapter
# ===============================================================

RANK_REMAINING = 0
RANK_DRAFT = 1
RANK_PENDING = 2
RANK_APPROVED = 3


def analyte_key(analyte_id: Any = None, analyte_name: Optional[str] = None) -> str:
    if analyte_id is not None and str(analyte_id) not in ("", "null", "None"):
        return f"id:{analyte_id}"
    return f"name:{(analyte_name or '').strip().lower()}"


def submission_rank(status: Optional[str], verification_status: Optional[str]) -> int:
    """
    Rank of one result submission.

    verified -> approved, rejected -> remaining (needs re-entry, same as
    the panel projection), submitted for verification -> pending, anything
    else -> draft.
    """
    v = (verification_status or "").strip().lower()
    s = (status or "").strip().lower()
    if v in ("verified", "approved"):
        return RANK_APPROVED
    if v == "rejected":
        return RANK_REMAINING
    if s in ("pending_verification", "pending_approval", "in_review"):
        return RANK_PENDING
    return RANK_DRAFT


@dataclass(frozen=True)
class PanelSubmissions:
    """
    Raw rows for one panel of an order.

    expected_keys: analyte keys from the panel definition (see analyte_key)
    submissions:   one entry per result row, with "status",
                   "verification_status" and "values" (a list of mappings
                   with "analyte_id" / "analyte_name")
    """

    order_test_id: Any
    test_group_id: Any
    expected_keys: Tuple[str, ...]
    submissions: Tuple[Mapping[str, Any], ...] = ()


def best_ranks(panel: PanelSubmissions) -> Dict[str, int]:
    expected = set(panel.expected_keys)
    best = {k: RANK_REMAINING for k in expected}

    for sub in panel.submissions:
        rank = submission_rank(sub.get("status"), sub.get("verification_status"))
        for value in sub.get("values") or ():
            key = analyte_key(value.get("analyte_id"), value.get("analyte_name"))
            if key not in expected:
                continue
            if rank > best[key]:
                best[key] = rank

    return best


def observation_from_submissions(panel: PanelSubmissions) -> PanelObservation:
    ranks = best_ranks(panel)
    expected = len(ranks)
    entered = sum(1 for r in ranks.values() if r >= RANK_DRAFT)
    verified = expected > 0 and all(r == RANK_APPROVED for r in ranks.values())

    if verified:
        status = PanelStatus.VERIFIED
    elif entered == 0:
        status = PanelStatus.NOT_STARTED
    elif entered >= expected:
        status = PanelStatus.COMPLETE
    else:
        status = PanelStatus.PARTIAL

    return PanelObservation(
        order_test_id=panel.order_test_id,
        test_group_id=panel.test_group_id,
        expected_analytes=expected,
        entered_analytes=entered,
        has_results=entered > 0,
        is_verified=verified,
        panel_status=status,
    )


def compute_from_submissions(panels: Sequence[PanelSubmissions]) -> ProgressCounts:
    return compute(observation_from_submissions(p) for p in panels)


__all__ = [
    "PanelStatus",
    "PanelObservation",
    "BucketCounts",
    "PanelProgress",
    "ProgressCounts",
    "percent_of",
    "classify_panel",
    "compute",
    "analyte_key",
    "submission_rank",
    "PanelSubmissions",
    "best_ranks",
    "observation_from_submissions",
    "compute_from_submissions",
]
