import asyncio
import random

import pytest

from conftest import FakeCollection, addr
from holder_snapshot.errors import EmptyCollectionError
from holder_snapshot.strategies.enumeration import holders_by_enumeration, index_batches


def test_index_batches():
    batches = index_batches(120, 50)
    assert [list(b)[:1] + list(b)[-1:] for b in batches] == [[0, 49], [50, 99], [100, 119]]
    assert index_batches(0, 50) == []


@pytest.mark.asyncio
async def test_single_owner_collection(config, call, progress):
    collection = FakeCollection({i: addr(0xA) for i in range(300)})

    registry = await holders_by_enumeration(collection, config, call, progress)

    assert len(registry) == 1
    holder = registry.get(addr(0xA))
    assert holder.token_count == 300
    assert holder.token_ids == [str(i) for i in range(300)]
    assert progress.reports[-1][0] == 100


@pytest.mark.asyncio
async def test_progress_is_reported_per_batch(config, call, progress):
    collection = FakeCollection({i: addr(1) for i in range(120)})
    await holders_by_enumeration(collection, config, call, progress)

    done = [p for p, msg in progress.reports if msg.startswith("Processed")]
    assert done == [41, 83, 100]


@pytest.mark.asyncio
async def test_failed_tokens_are_skipped(config, call):
    collection = FakeCollection({i: addr(i % 3) for i in range(60)}, broken_indices={4, 55})

    registry = await holders_by_enumeration(collection, config, call)

    assert registry.total_tokens == 58
    assert registry.owner_of(4) is None
    assert registry.owner_of(55) is None
    assert registry.owner_of(5) == addr(2)


@pytest.mark.asyncio
async def test_all_lookups_failing_yields_empty_registry(config, call):
    collection = FakeCollection({i: addr(1) for i in range(10)})
    collection.owners.clear()

    registry = await holders_by_enumeration(collection, config, call, total_supply=10)
    assert not registry


@pytest.mark.asyncio
async def test_zero_supply(config, call):
    collection = FakeCollection({}, total_supply=0)
    with pytest.raises(EmptyCollectionError, match="No tokens found in this collection"):
        await holders_by_enumeration(collection, config, call)


@pytest.mark.asyncio
async def test_concurrency_is_bounded(config, call):
    collection = FakeCollection({i: addr(i % 7) for i in range(100)}, yield_calls=True)
    await holders_by_enumeration(collection, config, call)
    assert 1 < collection.peak_in_flight <= config.enumeration_concurrency


@pytest.mark.asyncio
async def test_rerun_is_idempotent_regardless_of_completion_order(config, call):
    owners = {i * 3 + 1: addr(i % 11) for i in range(150)}

    def shuffled_collection(seed):
        collection = FakeCollection(owners)
        rng = random.Random(seed)
        plain_owner_of = collection.owner_of

        async def jittered_owner_of(token_id):
            for _ in range(rng.randint(0, 4)):
                await asyncio.sleep(0)
            return await plain_owner_of(token_id)

        collection.owner_of = jittered_owner_of
        return collection

    first = await holders_by_enumeration(shuffled_collection(1), config, call)
    second = await holders_by_enumeration(shuffled_collection(2), config, call)

    def content(registry):
        return {h.address: (h.token_count, set(h.token_ids)) for h in registry}

    assert content(first) == content(second)
    assert first.total_tokens == 150
