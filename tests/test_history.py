"""
Tests for the Redis-backed search history
"""
import pytest
from app.services.history import SearchHistory


@pytest.fixture
def history(fake_redis):
    return SearchHistory(client=fake_redis)


async def test_repeat_moves_to_front(history):
    await history.add("dune")
    await history.add("arrival")
    items = await history.add("dune")

    assert items == ["dune", "arrival"]


async def test_capped_at_limit(history):
    for i in range(15):
        await history.add(f"query {i}")

    items = await history.items()

    assert len(items) == 10
    assert items[0] == "query 14"
    assert items[-1] == "query 5"


async def test_blank_query_not_recorded(history):
    await history.add("dune")

    items = await history.add("   ")

    assert items == ["dune"]


async def test_query_is_trimmed(history):
    items = await history.add("  blade runner ")

    assert items == ["blade runner"]


async def test_suggestions_case_insensitive(history):
    await history.add("Dune")
    await history.add("Arrival")
    await history.add("Dune: Part Two")

    assert await history.suggestions("dune") == ["Dune: Part Two", "Dune"]
    assert await history.suggestions("RIV") == ["Arrival"]
    assert await history.suggestions("") == ["Dune: Part Two", "Arrival", "Dune"]


async def test_namespaces_are_isolated(fake_redis):
    alice = SearchHistory(client=fake_redis, namespace="alice")
    bob = SearchHistory(client=fake_redis, namespace="bob")

    await alice.add("dune")

    assert await alice.items() == ["dune"]
    assert await bob.items() == []
    assert alice.key == "search:history:alice"


async def test_clear(history):
    await history.add("dune")

    await history.clear()

    assert await history.items() == []


async def test_custom_limit(fake_redis):
    history = SearchHistory(client=fake_redis, limit=2)
    for query in ("a1", "a2", "a3"):
        await history.add(query)

    assert await history.items() == ["a3", "a2"]


async def test_redis_failure_returns_empty():
    class BrokenRedis:
        async def lrange(self, *args):
            raise ConnectionError("redis down")

    history = SearchHistory(client=BrokenRedis())

    assert await history.items() == []
