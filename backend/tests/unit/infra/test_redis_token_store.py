"""
Unit tests for RedisSingleUseTokenStore using fakeredis.

These tests exercise the main flows:
- insert + take (exactly once)
- NX duplicate rejection
- per-user deletion, optionally by type
"""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import UTC, datetime, timedelta

import fakeredis
import pytest

from authapi.infra.redis.redis_single_use_token_store import RedisSingleUseTokenStore
from authapi.services._shared.ports import InsertResult

EMAIL = "email-verification"
TV = "tv-login"


def _now() -> datetime:
    """Return a timezone-aware UTC "now"."""
    return datetime.now(UTC)


def _future(seconds: int = 300) -> datetime:
    return _now() + timedelta(seconds=seconds)


@pytest.fixture
def fake_redis():
    """Provide a fresh FakeRedis instance for each test."""
    r = fakeredis.FakeRedis()
    r.flushall()
    return r


@pytest.fixture
def store(fake_redis):
    return RedisSingleUseTokenStore(r=fake_redis)


def test_insert_sets_ttl_and_user_index(store, fake_redis):
    assert store.insert(code="abc", user_id=7, token_type=EMAIL, expires_at=_future(120)) is (
        InsertResult.OK
    )

    assert 0 < fake_redis.ttl("sut:abc") <= 120
    assert fake_redis.sismember("sut:u:7", "abc")
    assert store.code_is_live("abc", now=_now())


def test_duplicate_code_is_rejected(store):
    store.insert(code="abc", user_id=1, token_type=EMAIL, expires_at=_future())

    assert store.insert(code="abc", user_id=2, token_type=TV, expires_at=_future()) is (
        InsertResult.DUPLICATE
    )


def test_take_is_single_use(store, fake_redis):
    store.insert(code="tv", user_id=3, token_type=TV, expires_at=_future())

    view = store.take("tv", TV, now=_now())
    assert view is not None and view.user_id == 3
    assert store.take("tv", TV, now=_now()) is None
    assert not fake_redis.sismember("sut:u:3", "tv")


def test_take_with_wrong_type_keeps_token(store):
    store.insert(code="tv", user_id=3, token_type=TV, expires_at=_future())

    assert store.take("tv", EMAIL, now=_now()) is None
    assert store.code_is_live("tv", now=_now())


def test_take_after_logical_expiry_returns_none(store):
    store.insert(code="tv", user_id=3, token_type=TV, expires_at=_future(60))

    assert store.take("tv", TV, now=_now() + timedelta(minutes=5)) is None


def test_delete_for_user_by_type(store):
    store.insert(code="e1", user_id=9, token_type=EMAIL, expires_at=_future())
    store.insert(code="t1", user_id=9, token_type=TV, expires_at=_future())
    store.insert(code="t2", user_id=10, token_type=TV, expires_at=_future())

    assert store.delete_for_user(9, EMAIL) == 1
    assert store.code_is_live("t1", now=_now())
    assert store.delete_for_user(9) == 1
    assert store.code_is_live("t2", now=_now())
    assert store.delete_for_user(9) == 0


def test_purge_is_noop(store):
    assert store.purge_expired(now=_now()) == 0


def test_concurrent_takes_have_one_winner(store, fake_redis):
    store.insert(code="RACE2345", user_id=11, token_type=TV, expires_at=_future())
    barrier = threading.Barrier(10)

    def attempt(_):
        barrier.wait()
        return store.take("RACE2345", TV, now=_now())

    with ThreadPoolExecutor(max_workers=10) as pool:
        results = list(pool.map(attempt, range(10)))

    winners = [r for r in results if r is not None]
    assert len(winners) == 1
    assert winners[0].user_id == 11
    assert not fake_redis.exists("sut:RACE2345")
    assert not fake_redis.sismember("sut:u:11", "RACE2345")
