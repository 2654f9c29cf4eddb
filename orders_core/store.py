# orders_core/store.py
from __future__ import annotations

"""
Store access helpers.

Every call into the relational store made by the workflow core runs inside
store_call(), which turns driver-level failures into the typed
StoreTimeout / StoreUnavailable errors. Timeouts themselves are configured
on the connection (see DATABASES in settings). Nothing here retries.
"""

import logging
from contextlib import contextmanager
from typing import Iterator

from django.db import DatabaseError, InterfaceError, OperationalError

from orders_core.errors import StoreTimeout, StoreUnavailable

logger = logging.getLogger(__name__)

_TIMEOUT_MARKERS = (
    "timeout",
    "timed out",
    "canceling statement",
    "statement_timeout",
    "lock_timeout",
    "database is locked",
)


def _is_timeout(exc: BaseException) -> bool:
    msg = str(exc).lower()
    return any(marker in msg for marker in _TIMEOUT_MARKERS)


@contextmanager
def store_call(operation: str) -> Iterator[None]:
    """
    Wrap a unit of store work.

        with store_call("approve result"):
            ...
    """
    try:
        yield
    except (OperationalError, InterfaceError) as exc:
        if _is_timeout(exc):
            logger.error("Store timeout during %s: %s", operation, exc)
            raise StoreTimeout(f"The data store timed out during {operation}.") from exc
        logger.error("Store unavailable during %s: %s", operation, exc)
        raise StoreUnavailable(f"The data store is unavailable ({operation}).") from exc
    except DatabaseError as exc:
        if _is_timeout(exc):
            logger.error("Store timeout during %s: %s", operation, exc)
            raise StoreTimeout(f"The data store timed out during {operation}.") from exc
        raise
