"""Tests for the Redis serving counter."""

from unittest.mock import MagicMock

import pytest
import redis

from app.core.exceptions import DownstreamUnavailableException
from app.core.redis_client import CounterStore, doctor_scope_key


def test_counter_get_missing_and_present():
    """Missing keys read as None, stored values as ints."""
    mock_redis = MagicMock()
    store = CounterStore(redis_client=mock_redis)

    mock_redis.get.return_value = None
    assert store.get("doctor:abc:current") is None
    mock_redis.get.assert_called_once_with("doctor:abc:current")

    mock_redis.reset_mock()
    mock_redis.get.return_value = "7"
    assert store.get("doctor:abc:current") == 7


def test_counter_set_and_reset():
    """reset writes 0 rather than deleting the key."""
    mock_redis = MagicMock()
    store = CounterStore(redis_client=mock_redis)

    store.set("doctor:abc:current", 4)
    mock_redis.set.assert_called_once_with("doctor:abc:current", 4)

    mock_redis.reset_mock()
    store.reset("doctor:abc:current")
    mock_redis.set.assert_called_once_with("doctor:abc:current", 0)


def test_counter_reset_pattern():
    """Every matching counter is zeroed."""
    mock_redis = MagicMock()
    store = CounterStore(redis_client=mock_redis)
    mock_redis.keys.return_value = ["doctor:a:current", "doctor:b:current"]

    assert store.reset_pattern("doctor:*:current") == 2

    mock_redis.keys.assert_called_once_with("doctor:*:current")
    assert mock_redis.set.call_count == 2


@pytest.mark.parametrize("method, args", [("get", ("k",)), ("set", ("k", 1)), ("reset_pattern", ("doctor:*",))])
def test_counter_store_errors_become_downstream_unavailable(method, args):
    """Redis failures surface as DownstreamUnavailable."""
    mock_redis = MagicMock()
    mock_redis.get.side_effect = redis.ConnectionError("down")
    mock_redis.set.side_effect = redis.ConnectionError("down")
    mock_redis.keys.side_effect = redis.ConnectionError("down")
    store = CounterStore(redis_client=mock_redis)

    with pytest.raises(DownstreamUnavailableException) as exc_info:
        getattr(store, method)(*args)

    assert exc_info.value.status_code == 503
    assert exc_info.value.kind == "DownstreamUnavailable"


def test_doctor_scope_key():
    """Counter keys are scoped per doctor."""
    assert doctor_scope_key("d1") == "doctor:d1:current"
