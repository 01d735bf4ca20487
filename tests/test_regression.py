"""
Regression tests for cross-cutting behaviour.

1. Every failure, including unmatched routes and FastAPI request
   validation, is rendered as ``{"message": str}``.
2. Every response carries X-Response-Time-Ms and is access-logged.
3. Cached post feeds are purged by post writes and by profile edits, so a
   stale creator name or a deleted post is never served.
"""
import fnmatch
import logging

import pytest
from httpx import AsyncClient

from blog_api.cache import PostCache, cache, feed_key
from conftest import POSTS_URL, USERS_URL, VALID_DESCRIPTION, create_post, register_and_login


class FakeRedis:
    """Just enough of redis.asyncio.Redis for PostCache."""

    def __init__(self) -> None:
        self.store: dict[str, str] = {}

    async def get(self, key):
        return self.store.get(key)

    async def set(self, key, value, ex=None):
        self.store[key] = value

    async def scan_iter(self, match=None):
        # SCAN MATCH uses glob-style patterns.
        for key in list(self.store):
            if match is None or fnmatch.fnmatchcase(key, match):
                yield key

    async def delete(self, *keys):
        for key in keys:
            self.store.pop(key, None)

    async def aclose(self):
        pass


@pytest.fixture
def fake_redis(async_client):
    fake = FakeRedis()
    cache._redis = fake
    yield fake
    cache._redis = None


# ---------------------------------------------------------------------------
# 1. Error envelope
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_unmatched_route_returns_message(async_client: AsyncClient):
    resp = await async_client.get("/no/such/route")
    assert resp.status_code == 404
    assert resp.json() == {"message": "Not found - /no/such/route"}


@pytest.mark.asyncio
async def test_request_validation_uses_message_envelope(async_client: AsyncClient):
    resp = await async_client.get(f"{POSTS_URL}/not-a-number")
    assert resp.status_code == 422
    body = resp.json()
    assert list(body) == ["message"]
    assert body["message"].startswith("post_id")


@pytest.mark.asyncio
async def test_health(async_client: AsyncClient):
    resp = await async_client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "healthy"


# ---------------------------------------------------------------------------
# 2. Diagnostic headers
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_response_time_header(async_client: AsyncClient):
    user = await register_and_login(async_client)
    await create_post(async_client, user["headers"])

    resp = await async_client.get(POSTS_URL)
    assert float(resp.headers["x-response-time-ms"]) >= 0
    assert "x-query-count" not in resp.headers

    missing = await async_client.get("/no/such/route")
    assert float(missing.headers["x-response-time-ms"]) >= 0


@pytest.mark.asyncio
async def test_access_log_levels(async_client: AsyncClient, caplog):
    with caplog.at_level(logging.DEBUG, logger="blog_api.access"):
        await async_client.get("/health")
        await async_client.get("/no/such/route")

    records = {r.getMessage().split(" -> ")[0]: r.levelno for r in caplog.records if r.name == "blog_api.access"}
    assert records["GET /health"] == logging.DEBUG
    assert records["GET /no/such/route"] == logging.WARNING


# ---------------------------------------------------------------------------
# 3. Cache invalidation
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_feed_cache_purged_on_create_and_delete(async_client: AsyncClient, fake_redis):
    user = await register_and_login(async_client)
    assert (await async_client.get(POSTS_URL)).json() == []
    assert "posts:list" in fake_redis.store

    created = (await create_post(async_client, user["headers"])).json()
    assert "posts:list" not in fake_redis.store
    assert len((await async_client.get(POSTS_URL)).json()) == 1

    await async_client.get(f"{POSTS_URL}/{created['id']}")
    assert f"posts:detail:{created['id']}" in fake_redis.store

    await async_client.delete(f"{POSTS_URL}/{created['id']}", headers=user["headers"])
    assert (await async_client.get(POSTS_URL)).json() == []
    assert (await async_client.get(f"{POSTS_URL}/{created['id']}")).status_code == 404


@pytest.mark.asyncio
async def test_feed_cache_purged_on_edit(async_client: AsyncClient, fake_redis):
    user = await register_and_login(async_client)
    created = (await create_post(async_client, user["headers"])).json()
    await async_client.get(f"{POSTS_URL}/{created['id']}")

    await async_client.patch(
        f"{POSTS_URL}/{created['id']}",
        data={"title": "Fresh", "category": "Weather", "description": VALID_DESCRIPTION},
        headers=user["headers"],
    )
    assert (await async_client.get(f"{POSTS_URL}/{created['id']}")).json()["title"] == "Fresh"


@pytest.mark.asyncio
async def test_feed_cache_purged_on_profile_edit(async_client: AsyncClient, fake_redis):
    user = await register_and_login(async_client)
    await create_post(async_client, user["headers"])
    assert (await async_client.get(POSTS_URL)).json()[0]["creator"]["name"] == "Ada"

    resp = await async_client.patch(f"{USERS_URL}/edit-user", json={
        "name": "Countess",
        "email": "ada@example.com",
        "currentPassword": "secret1",
        "newPassword": "secret1",
        "newConfirmPassword": "secret1",
    }, headers=user["headers"])
    assert resp.status_code == 200

    assert (await async_client.get(POSTS_URL)).json()[0]["creator"]["name"] == "Countess"


# ---------------------------------------------------------------------------
# 4. Post cache
# ---------------------------------------------------------------------------

def test_feed_key_namespacing():
    assert feed_key("list") == "posts:list"
    assert feed_key("category", "Weather") == "posts:category:Weather"
    assert feed_key("detail", 7) == "posts:detail:7"


@pytest.mark.asyncio
async def test_purge_only_touches_post_namespace():
    post_cache = PostCache(url="redis://unused")
    fake = FakeRedis()
    post_cache._redis = fake
    fake.store.update({
        "posts:list": "[]",
        "posts:detail:1": "{}",
        "postscript": "keep",
        "session:posts:1": "keep",
    })

    await post_cache.invalidate_posts()
    assert sorted(fake.store) == ["postscript", "session:posts:1"]


@pytest.mark.asyncio
async def test_get_or_load_caches_loader_result():
    post_cache = PostCache(url="redis://unused")
    post_cache._redis = FakeRedis()
    calls = []

    async def loader():
        calls.append(1)
        return [{"id": 1}]

    assert await post_cache.get_or_load("posts:list", loader, ttl=60) == [{"id": 1}]
    assert await post_cache.get_or_load("posts:list", loader, ttl=60) == [{"id": 1}]
    assert len(calls) == 1
    assert post_cache.stats["hits"] == 1
    assert post_cache.stats["misses"] == 1


@pytest.mark.asyncio
async def test_get_or_load_does_not_cache_failures():
    post_cache = PostCache(url="redis://unused")
    fake = FakeRedis()
    post_cache._redis = fake

    async def loader():
        raise LookupError("gone")

    with pytest.raises(LookupError):
        await post_cache.get_or_load("posts:detail:9", loader, ttl=60)
    assert fake.store == {}


@pytest.mark.asyncio
async def test_get_or_load_without_redis_always_loads():
    post_cache = PostCache(url="redis://unused")
    calls = []

    async def loader():
        calls.append(1)
        return []

    await post_cache.get_or_load("posts:list", loader, ttl=60)
    await post_cache.get_or_load("posts:list", loader, ttl=60)
    assert len(calls) == 2
    assert post_cache.stats["enabled"] is False
