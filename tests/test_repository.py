import asyncio

import pytest

from data import NetworkError
from db import LocalStore
from domain.repository import (
    PartialInsertError,
    RecipeRepository,
    SeedResult,
    SeedStatus,
)
from models import MAX_NAME_LENGTH, Recipe
from conftest import FEED, FailingRemote, FakeRemote


class CountingStore:
    """Wraps a store and counts list calls."""

    def __init__(self, store: LocalStore) -> None:
        self.store = store
        self.lists = 0

    async def list_all(self, record_type, *, timeout=None):
        self.lists += 1
        return await self.store.list_all(record_type, timeout=timeout)

    async def count(self, record_type, *, timeout=None):
        return await self.store.count(record_type, timeout=timeout)

    async def insert_all(self, items, *, timeout=None):
        return await self.store.insert_all(items, timeout=timeout)

    def exclusive(self):
        return self.store.exclusive()


@pytest.mark.asyncio
async def test_seed_twice(store: LocalStore) -> None:
    remote = FakeRemote()
    repo = RecipeRepository(remote, store)

    first = await repo.seed_local_from_remote()
    second = await repo.seed_local_from_remote()

    assert first == SeedResult(SeedStatus.SEEDED, len(FEED))
    assert second == SeedResult(SeedStatus.ALREADY_SEEDED, 0)
    assert remote.calls == 1
    assert await store.count(Recipe) == len(FEED)


@pytest.mark.asyncio
async def test_concurrent_seed(store: LocalStore) -> None:
    remote = FakeRemote()
    repo = RecipeRepository(remote, store)

    results = await asyncio.gather(
        repo.seed_local_from_remote(),
        repo.seed_local_from_remote(),
    )

    assert sorted(r.status.value for r in results) == ["already_seeded", "seeded"]
    assert remote.calls == 1
    assert await store.count(Recipe) == len(FEED)


@pytest.mark.asyncio
async def test_concurrent_seed_through_two_repositories(store: LocalStore) -> None:
    a = RecipeRepository(FakeRemote(), store)
    b = RecipeRepository(FakeRemote(), store)

    results = await asyncio.gather(
        a.seed_local_from_remote(),
        b.seed_local_from_remote(),
    )

    assert sorted(r.status.value for r in results) == ["already_seeded", "seeded"]
    assert await store.count(Recipe) == len(FEED)


@pytest.mark.asyncio
async def test_concurrent_seed_through_two_stores(
    store: LocalStore, db_url: str
) -> None:
    other = LocalStore(db_url)
    try:
        results = await asyncio.gather(
            RecipeRepository(FakeRemote(), store).seed_local_from_remote(),
            RecipeRepository(FakeRemote(), other).seed_local_from_remote(),
            return_exceptions=True,
        )

        assert all(
            isinstance(r, (SeedResult, PartialInsertError)) for r in results
        ), results
        assert await store.count(Recipe) == len(FEED)
        got = [r.recipe_id for r in await store.list_all(Recipe)]
        assert sorted(got) == [r["recipeId"] for r in FEED]
    finally:
        await other.close()


@pytest.mark.asyncio
async def test_seed_partial_insert(store: LocalStore) -> None:
    feed = [
        *FEED,
        {
            "recipeId": 4,
            "recipeName": "x" * (MAX_NAME_LENGTH + 1),
            "recipePhotoUrl": None,
            "recipeInstructions": "",
        },
    ]
    repo = RecipeRepository(FakeRemote(feed), store)

    with pytest.raises(PartialInsertError) as e:
        await repo.seed_local_from_remote()

    assert e.value.expected == len(feed)
    assert e.value.inserted == len(FEED)
    assert await store.count(Recipe) == len(FEED)


@pytest.mark.asyncio
async def test_seed_network_failure_leaves_store_empty(store: LocalStore) -> None:
    repo = RecipeRepository(FailingRemote(), store)

    with pytest.raises(NetworkError):
        await repo.seed_local_from_remote()

    assert await store.count(Recipe) == 0


@pytest.mark.asyncio
async def test_seed_empty_feed(store: LocalStore) -> None:
    repo = RecipeRepository(FakeRemote([]), store)

    got = await repo.seed_local_from_remote()

    assert got == SeedResult(SeedStatus.SEEDED, 0)
    assert await store.count(Recipe) == 0


@pytest.mark.parametrize("online", (True, False))
@pytest.mark.asyncio
async def test_mode_selects_same_source(store: LocalStore, online: bool) -> None:
    remote = FakeRemote()
    counting = CountingStore(store)
    repo = RecipeRepository(
        remote, counting, online_mode=online  # type: ignore[arg-type]
    )

    for _ in range(3):
        await repo.get_recipes()

    assert remote.calls == (3 if online else 0)
    assert counting.lists == (0 if online else 3)


@pytest.mark.asyncio
async def test_offline_reads_seeded_rows(store: LocalStore) -> None:
    repo = RecipeRepository(FakeRemote(), store, online_mode=False)
    await repo.seed_local_from_remote()

    got = await repo.get_recipes()

    assert [r.name for r in got] == [r["recipeName"] for r in FEED]
    assert all(r.id is not None for r in got)


@pytest.mark.asyncio
async def test_offline_before_seeding_is_empty(store: LocalStore) -> None:
    repo = RecipeRepository(FakeRemote(), store, online_mode=False)
    assert await repo.get_recipes() == []


@pytest.mark.asyncio
async def test_online_failure_propagates(store: LocalStore) -> None:
    repo = RecipeRepository(FailingRemote(), store)

    with pytest.raises(NetworkError) as e:
        await repo.get_recipes()

    assert e.value.status_code == 503


@pytest.mark.asyncio
async def test_mode_flag_is_read_per_call(store: LocalStore) -> None:
    remote = FakeRemote()
    flag = {"online": True}
    reads = 0

    def online_mode() -> bool:
        nonlocal reads
        reads += 1
        return flag["online"]

    repo = RecipeRepository(remote, store, online_mode=online_mode)

    await repo.get_recipes()
    flag["online"] = False
    await repo.get_recipes()

    assert remote.calls == 1
    assert reads == 2


@pytest.mark.asyncio
async def test_per_call_override(store: LocalStore) -> None:
    remote = FakeRemote()
    repo = RecipeRepository(remote, store, online_mode=False)

    got = await repo.get_recipes(online=True)

    assert remote.calls == 1
    assert len(got) == len(FEED)
