"""Shared fixtures: in-memory async Redis, controllable clock and host content."""

from __future__ import annotations

from typing import Any

import pytest

from entity_webhooks.config import Settings
from entity_webhooks.entities.base import RestRoute
from entity_webhooks.service import WebhookService


class FakeRedis:
    """In-memory stand-in for the redis.asyncio commands the framework uses."""

    def __init__(self) -> None:
        self.strings: dict[str, str] = {}
        self.ttls: dict[str, int] = {}
        self.hashes: dict[str, dict[str, str]] = {}
        self.zsets: dict[str, dict[str, float]] = {}
        self.closed = False

    # Strings

    async def get(self, key: str) -> str | None:
        return self.strings.get(key)

    async def set(self, key: str, value: Any, *, nx: bool = False, ex: int | None = None) -> bool | None:
        if nx and key in self.strings:
            return None
        self.strings[key] = str(value)
        if ex is not None:
            self.ttls[key] = ex
        return True

    async def setex(self, key: str, seconds: int, value: Any) -> bool:
        self.strings[key] = str(value)
        self.ttls[key] = seconds
        return True

    async def delete(self, *keys: str) -> int:
        removed = 0
        for key in keys:
            for store in (self.strings, self.hashes, self.zsets):
                if key in store:
                    del store[key]
                    removed += 1
            self.ttls.pop(key, None)
        return removed

    async def exists(self, *keys: str) -> int:
        return sum(1 for key in keys if key in self.strings or key in self.hashes or key in self.zsets)

    # Hashes

    async def hset(self, key: str, field: str, value: Any) -> int:
        bucket = self.hashes.setdefault(key, {})
        is_new = field not in bucket
        bucket[field] = str(value)
        return int(is_new)

    async def hget(self, key: str, field: str) -> str | None:
        return self.hashes.get(key, {}).get(field)

    async def hdel(self, key: str, *fields: str) -> int:
        bucket = self.hashes.get(key, {})
        return sum(1 for field in fields if bucket.pop(field, None) is not None)

    # Sorted sets

    async def zadd(self, key: str, mapping: dict[str, float]) -> int:
        zset = self.zsets.setdefault(key, {})
        added = sum(1 for member in mapping if member not in zset)
        zset.update({member: float(score) for member, score in mapping.items()})
        return added

    async def zrem(self, key: str, *members: str) -> int:
        zset = self.zsets.get(key, {})
        return sum(1 for member in members if zset.pop(member, None) is not None)

    async def zcard(self, key: str) -> int:
        return len(self.zsets.get(key, {}))

    def _sorted(self, key: str) -> list[tuple[str, float]]:
        return sorted(self.zsets.get(key, {}).items(), key=lambda pair: (pair[1], pair[0]))

    async def zrangebyscore(
        self,
        key: str,
        min: float | str,
        max: float | str,
        start: int | None = None,
        num: int | None = None,
    ) -> list[str]:
        low = float("-inf") if min == "-inf" else float(min)
        high = float("inf") if max == "+inf" else float(max)
        members = [member for member, score in self._sorted(key) if low <= score <= high]
        if start is not None and num is not None:
            members = members[start : start + num]
        return members

    async def zrange(self, key: str, start: int, end: int, withscores: bool = False) -> list[Any]:
        items = self._sorted(key)
        stop = None if end == -1 else end + 1
        selected = items[start:stop]
        if withscores:
            return selected
        return [member for member, _ in selected]

    async def aclose(self) -> None:
        self.closed = True


class FakeClock:
    """Callable clock returning a settable epoch time."""

    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeContentSource:
    """Host content with one product post, one category term and one editor."""

    def __init__(self) -> None:
        self.post_types: dict[int, str] = {42: "product"}
        self.post_type_routes: dict[str, RestRoute] = {
            "product": RestRoute(show_in_rest=True, rest_base="products"),
            "private_note": RestRoute(show_in_rest=False),
        }
        self.taxonomies: dict[int, str] = {3: "category"}
        self.taxonomy_routes: dict[str, RestRoute] = {
            "category": RestRoute(show_in_rest=True, rest_base="categories"),
        }
        self.user_roles: dict[int, list[str]] = {7: ["editor"]}
        self.base_url = "https://site.test/wp-json/"

    def get_post_type(self, post_id: int) -> str | None:
        return self.post_types.get(post_id)

    def get_post_type_route(self, post_type: str) -> RestRoute | None:
        return self.post_type_routes.get(post_type)

    def get_term_taxonomy(self, term_id: int) -> str | None:
        return self.taxonomies.get(term_id)

    def get_taxonomy_route(self, taxonomy: str) -> RestRoute | None:
        return self.taxonomy_routes.get(taxonomy)

    def get_user_roles(self, user_id: int) -> list[str] | None:
        return self.user_roles.get(user_id)

    def rest_url(self, path: str) -> str | None:
        return self.base_url + path


@pytest.fixture
def source() -> FakeContentSource:
    """Create sample host content."""
    return FakeContentSource()


@pytest.fixture
def redis() -> FakeRedis:
    """Create an empty in-memory Redis."""
    return FakeRedis()


@pytest.fixture
def clock() -> FakeClock:
    """Create a controllable clock."""
    return FakeClock()


@pytest.fixture
def settings() -> Settings:
    """Create default test settings."""
    return Settings(KEY_PREFIX="test_webhooks")


@pytest.fixture
def service(redis, source, settings, clock) -> WebhookService:
    """Create a fully wired service over the in-memory Redis."""
    return WebhookService(redis, source=source, settings=settings, clock=clock)
