# tests/services/test_cache_service.py
import json
from datetime import datetime, timezone

import pytest
from unittest.mock import AsyncMock

from marketplace.core.config import settings
from marketplace.models.review_model import AdReview
from marketplace.services.cache_service import CacheKeys, CacheService

pytestmark = pytest.mark.asyncio


@pytest.fixture
def redis_mock():
    client = AsyncMock()
    client.get.return_value = None
    return client


@pytest.fixture
def cache(redis_mock, monkeypatch) -> CacheService:
    monkeypatch.setattr(settings, "CACHE_ENABLED", True)
    return CacheService(client=redis_mock, ttl=60)


async def test_set_and_get_json(cache: CacheService, redis_mock):
    await cache.set_json("k", {"a": 1})

    redis_mock.set.assert_awaited_once_with("k", json.dumps({"a": 1}), ex=60)

    redis_mock.get.return_value = json.dumps({"a": 1})
    assert await cache.get_json("k") == {"a": 1}


async def test_miss_returns_none(cache: CacheService):
    assert await cache.get_json("missing") is None


async def test_redis_failure_is_a_miss(cache: CacheService, redis_mock):
    redis_mock.get.side_effect = ConnectionError("redis down")

    assert await cache.get_json("k") is None


async def test_write_failure_is_swallowed(cache: CacheService, redis_mock):
    redis_mock.set.side_effect = ConnectionError("redis down")
    redis_mock.delete.side_effect = ConnectionError("redis down")

    await cache.set_json("k", {"a": 1})
    await cache.invalidate("k")


async def test_model_round_trip_restores_datetimes(cache: CacheService, redis_mock):
    now = datetime(2024, 5, 1, 12, 30, tzinfo=timezone.utc)
    review = AdReview(
        id=5, user_id=1, ad_id=2, rating=4, body="ok", created_at=now, updated_at=now
    )

    await cache.set_model(review)
    key, payload = redis_mock.set.await_args.args
    assert key == CacheKeys.model(AdReview, 5) == "adreview:5"

    redis_mock.get.return_value = payload
    cached = await cache.get_model(AdReview, 5)

    assert cached.rating == 4
    assert isinstance(cached.created_at, datetime)
    assert cached.created_at == now


async def test_invalidate_deletes_all_keys(cache: CacheService, redis_mock):
    await cache.invalidate(CacheKeys.ad_rating(1), CacheKeys.follow_counts(2))

    redis_mock.delete.assert_awaited_once_with("rating:ad:1", "follow_counts:user:2")


async def test_disabled_cache_never_touches_redis(redis_mock, monkeypatch):
    monkeypatch.setattr(settings, "CACHE_ENABLED", False)
    cache = CacheService(client=redis_mock)

    await cache.set_json("k", 1)
    assert await cache.get_json("k") is None
    await cache.invalidate("k")

    redis_mock.set.assert_not_awaited()
    redis_mock.get.assert_not_awaited()
    redis_mock.delete.assert_not_awaited()


async def test_set_json_with_explicit_ttl(cache: CacheService, redis_mock):
    await cache.set_json("k", {"a": 1}, ttl=5)

    redis_mock.set.assert_awaited_once_with("k", json.dumps({"a": 1}), ex=5)
