# orders_core/workflows/__init__.py
from __future__ import annotations

import re
from typing import Any, Dict, FrozenSet, List, NamedTuple, Optional


# ===============================================================
# Canonical order states
# ===============================================================

ORDER_CREATED = "Order Created"
PENDING_COLLECTION = "Pending Collection"
SAMPLE_COLLECTED = "Sample Collected"
IN_PROGRESS = "In Progress"
PENDING_APPROVAL = "Pending Approval"
COMPLETED = "Completed"
DELIVERED = "Delivered"

# Progression order. Only mark_not_collected moves backwards.
ORDER_STATES: List[str] = [
    ORDER_CREATED,
    PENDING_COLLECTION,
    SAMPLE_COLLECTED,
    IN_PROGRESS,
    PENDING_APPROVAL,
    COMPLETED,
    DELIVERED,
]

# Legacy spellings seen in stored data and older clients.
# "Sample Collection" was used both as a state and as an action name.
STATE_ALIASES: Dict[str, str] = {
    "ORDER_CREATED": ORDER_CREATED,
    "CREATED": ORDER_CREATED,
    "PENDING_COLLECTION": PENDING_COLLECTION,
    "SAMPLE_COLLECTED": SAMPLE_COLLECTED,
    "SAMPLE_COLLECTION": SAMPLE_COLLECTED,
    "COLLECTED": SAMPLE_COLLECTED,
    "IN_PROGRESS": IN_PROGRESS,
    "PROCESSING": IN_PROGRESS,
    "PENDING_APPROVAL": PENDING_APPROVAL,
    "COMPLETED": COMPLETED,
    "COMPLETE": COMPLETED,
    "DELIVERED": DELIVERED,
}


# ===============================================================
# Actions
# ===============================================================

MARK_COLLECTED = "mark_collected"
MARK_NOT_COLLECTED = "mark_not_collected"
START_PROCESSING = "start_processing"
SUBMIT_FOR_APPROVAL = "submit_for_approval"
APPROVE_RESULTS = "approve_results"
DELIVER = "deliver"
REPAIR = "repair"


class OrderAction(NamedTuple):
    name: str
    # None means the precondition is on the collection facts, not the status.
    from_states: Optional[FrozenSet[str]]
    target: str
    sets_collection: bool = False
    clears_collection: bool = False


ORDER_ACTIONS: Dict[str, OrderAction] = {
    MARK_COLLECTED: OrderAction(
        MARK_COLLECTED,
        frozenset({ORDER_CREATED, PENDING_COLLECTION}),
        SAMPLE_COLLECTED,
        sets_collection=True,
    ),
    MARK_NOT_COLLECTED: OrderAction(
        MARK_NOT_COLLECTED,
        None,
        PENDING_COLLECTION,
        clears_collection=True,
    ),
    START_PROCESSING: OrderAction(START_PROCESSING, frozenset({SAMPLE_COLLECTED}), IN_PROGRESS),
    SUBMIT_FOR_APPROVAL: OrderAction(SUBMIT_FOR_APPROVAL, frozenset({IN_PROGRESS}), PENDING_APPROVAL),
    APPROVE_RESULTS: OrderAction(APPROVE_RESULTS, frozenset({PENDING_APPROVAL}), COMPLETED),
    DELIVER: OrderAction(DELIVER, frozenset({COMPLETED}), DELIVERED),
}

ACTION_ALIASES: Dict[str, str] = {
    "MARK_COLLECTED": MARK_COLLECTED,
    "MARKCOLLECTED": MARK_COLLECTED,
    "COLLECT": MARK_COLLECTED,
    "COLLECTED": MARK_COLLECTED,
    "SAMPLE_COLLECTION": MARK_COLLECTED,
    "SAMPLE_COLLECTED": MARK_COLLECTED,
    "MARK_NOT_COLLECTED": MARK_NOT_COLLECTED,
    "MARKNOTCOLLECTED": MARK_NOT_COLLECTED,
    "UNCOLLECT": MARK_NOT_COLLECTED,
    "START_PROCESSING": START_PROCESSING,
    "STARTPROCESSING": START_PROCESSING,
    "SUBMIT_FOR_APPROVAL": SUBMIT_FOR_APPROVAL,
    "SUBMITFORAPPROVAL": SUBMIT_FOR_APPROVAL,
    "APPROVE_RESULTS": APPROVE_RESULTS,
    "APPROVERESULTS": APPROVE_RESULTS,
    "DELIVER": DELIVER,
}


# ===============================================================
# Result verification states
# ===============================================================

RESULT_ENTERED = "entered"
RESULT_PENDING_VERIFICATION = "pending_verification"

VERIFICATION_PENDING = "pending_verification"
VERIFICATION_VERIFIED = "verified"
VERIFICATION_REJECTED = "rejected"

VERIFICATION_TERMINAL: FrozenSet[str] = frozenset({VERIFICATION_VERIFIED, VERIFICATION_REJECTED})


# ===============================================================
# Normalization
# ===============================================================

def _token(value: Any) -> str:
    raw = str(value or "").strip().upper()
    raw = re.sub(r"[\s\-]+", "_", raw)
    return re.sub(r"_+", "_", raw)


def normalize_state(value: Any) -> str:
    """
    Map any known spelling of an order state to its canonical name.

    Unknown values are returned stripped but otherwise untouched so callers
    can report them.
    """
    raw = str(value or "").strip()
    if raw in ORDER_STATES:
        return raw
    return STATE_ALIASES.get(_token(raw), raw)


def normalize_action(value: Any) -> str:
    raw = str(value or "").strip()
    if raw in ORDER_ACTIONS:
        return raw
    token = _token(raw)
    return ACTION_ALIASES.get(token, ACTION_ALIASES.get(token.replace("_", ""), raw))


def is_order_state(value: Any) -> bool:
    return normalize_state(value) in ORDER_STATES


# ===============================================================
# Actors
# ===============================================================

SYSTEM_ACTOR = "system"


def actor_name(actor: Any) -> str:
    """
    Stored form of whoever performed a change. Users are recorded by
    username; blank or missing actors are recorded as "system".
    """
    if actor is None:
        return SYSTEM_ACTOR
    if hasattr(actor, "get_username"):
        return actor.get_username() or SYSTEM_ACTOR
    return str(actor).strip() or SYSTEM_ACTOR


def coerce_pk(value: Any) -> Optional[int]:
    """Integer primary key, or None when the value cannot name a row."""
    if isinstance(value, bool):
        return None
    try:
        pk = int(str(value).strip())
    except (TypeError, ValueError):
        return None
    return pk if pk > 0 else None


# ===============================================================
# Public workflow API (pure)
# ===============================================================

def action_allowed(action: str, *, status: str, sample_collected_at=None) -> bool:
    """
    True when the action's precondition holds for the given order facts.
    """
    rule = ORDER_ACTIONS.get(normalize_action(action))
    if rule is None:
        return False
    if rule.from_states is None:
        return sample_collected_at is not None
    return normalize_state(status) in rule.from_states


def allowed_actions(status: str, sample_collected_at=None) -> List[str]:
    return [
        name
        for name in ORDER_ACTIONS
        if action_allowed(name, status=status, sample_collected_at=sample_collected_at)
    ]


def target_state(action: str) -> str:
    rule = ORDER_ACTIONS.get(normalize_action(action))
    if rule is None:
        raise ValueError(f"Unknown order action: {action}")
    return rule.target


def workflow_definition() -> Dict[str, Any]:
    """
    Stable JSON-serializable definition for UI.
    """
    return {
        "kind": "order",
        "states": list(ORDER_STATES),
        "actions": {
            name: {
                "from": sorted(rule.from_states) if rule.from_states is not None else None,
                "requires_collected_sample": rule.from_states is None,
                "to": rule.target,
            }
            for name, rule in ORDER_ACTIONS.items()
        },
        "result": {
            "states": [RESULT_ENTERED, RESULT_PENDING_VERIFICATION],
            "verification_states": [VERIFICATION_PENDING, VERIFICATION_VERIFIED, VERIFICATION_REJECTED],
            "terminal": sorted(VERIFICATION_TERMINAL),
        },
    }


__all__ = [
    "ORDER_CREATED",
    "PENDING_COLLECTION",
    "SAMPLE_COLLECTED",
    "IN_PROGRESS",
    "PENDING_APPROVAL",
    "COMPLETED",
    "DELIVERED",
    "ORDER_STATES",
    "ORDER_ACTIONS",
    "OrderAction",
    "MARK_COLLECTED",
    "MARK_NOT_COLLECTED",
    "START_PROCESSING",
    "SUBMIT_FOR_APPROVAL",
    "APPROVE_RESULTS",
    "DELIVER",
    "REPAIR",
    "RESULT_ENTERED",
    "RESULT_PENDING_VERIFICATION",
    "VERIFICATION_PENDING",
    "VERIFICATION_VERIFIED",
    "VERIFICATION_REJECTED",
    "VERIFICATION_TERMINAL",
    "normalize_state",
    "normalize_action",
    "is_order_state",
    "action_allowed",
    "allowed_actions",
    "target_state",
    "workflow_definition",
    "SYSTEM_ACTOR",
    "actor_name",
    "coerce_pk",
]
