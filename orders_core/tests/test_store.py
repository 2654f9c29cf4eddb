# orders_core/tests/test_store.py

import pytest
from django.db import DatabaseError, IntegrityError, OperationalError

from orders_core.errors import StoreTimeout, StoreUnavailable
from orders_core.store import store_call


@pytest.mark.parametrize(
    "message",
    [
        "canceling statement due to statement timeout",
        "database is locked",
        "timeout expired",
    ],
)
def test_timeouts_become_store_timeout(message):
    with pytest.raises(StoreTimeout) as info:
        with store_call("approve result"):
            raise OperationalError(message)

    assert info.value.http_status == 504
    assert "approve result" in info.value.message
    assert isinstance(info.value.__cause__, OperationalError)


def test_connection_failure_becomes_store_unavailable():
    with pytest.raises(StoreUnavailable) as info:
        with store_call("order progress"):
            raise OperationalError("could not connect to server: Connection refused")

    assert info.value.http_status == 503


def test_generic_database_timeout_is_mapped():
    with pytest.raises(StoreTimeout):
        with store_call("scan"):
            raise DatabaseError("lock_timeout exceeded")


def test_other_database_errors_propagate_unchanged():
    with pytest.raises(IntegrityError):
        with store_call("insert"):
            raise IntegrityError("duplicate key")


def test_clean_block_passes_through():
    with store_call("noop"):
        value = 1
    assert value == 1
