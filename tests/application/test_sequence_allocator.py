"""Tests for SequenceAllocator."""

import asyncio

import pytest

from orderdesk.application.services import SequenceAllocator
from orderdesk.domain.exceptions import Conflict
from orderdesk.infrastructure.persistence import InMemoryDocumentStore


@pytest.mark.asyncio
async def test_first_allocation_is_one(allocator):
    assert await allocator.current() == 0
    assert await allocator.next() == 1
    assert await allocator.next() == 2
    assert await allocator.current() == 2


@pytest.mark.asyncio
async def test_continues_from_stored_counter():
    store = InMemoryDocumentStore({"counters/orders": 41})

    assert await SequenceAllocator(store).next() == 42


@pytest.mark.asyncio
async def test_concurrent_burst_gets_contiguous_values():
    store = InMemoryDocumentStore({"counters/orders": 7})
    allocator = SequenceAllocator(store)

    values = await asyncio.gather(*[allocator.next() for _ in range(12)])

    assert sorted(values) == list(range(8, 20))
    assert len(set(values)) == 12
    assert await allocator.current() == 19


@pytest.mark.asyncio
async def test_separate_allocators_share_one_sequence():
    store = InMemoryDocumentStore()
    a, b = SequenceAllocator(store), SequenceAllocator(store)

    values = await asyncio.gather(a.next(), b.next(), a.next(), b.next())

    assert sorted(values) == [1, 2, 3, 4]


@pytest.mark.asyncio
@pytest.mark.parametrize("corrupt", ["12", 3.5, -1, {"value": 1}, True])
async def test_corrupt_counter_is_a_conflict(corrupt):
    store = InMemoryDocumentStore({"counters/orders": corrupt})
    allocator = SequenceAllocator(store)

    with pytest.raises(Conflict):
        await allocator.next()
    assert await store.get("counters/orders") == corrupt


@pytest.mark.asyncio
async def test_custom_counter_path():
    store = InMemoryDocumentStore()
    allocator = SequenceAllocator(store, counter_path="counters/wholesale")

    await allocator.next()

    assert await store.get("counters/wholesale") == 1
    assert await store.get("counters/orders") is None
