"""
Tests for the in-memory ledger: atomic reserve/release and per-resource isolation.
"""

import asyncio

import pytest

from booking_engine.services.interfaces.memory_ledger import InMemoryLedger


@pytest.mark.asyncio
async def test_track_only_creates_missing_entries():
    ledger = InMemoryLedger()
    assert await ledger.track(1, capacity=10, allocated=3) is True
    assert await ledger.try_reserve(1, 2)

    # A late seed must not overwrite live reservations
    assert await ledger.track(1, capacity=10, allocated=0) is False
    assert await ledger.allocated_units(1) == 5
    assert await ledger.available_units(1) == 5


@pytest.mark.asyncio
async def test_try_reserve_rejects_without_side_effects():
    ledger = InMemoryLedger()
    await ledger.track(1, capacity=5, allocated=0)

    assert await ledger.try_reserve(1, 3)
    assert not await ledger.try_reserve(1, 3)
    assert await ledger.allocated_units(1) == 3
    assert await ledger.try_reserve(1, 2)
    assert await ledger.available_units(1) == 0


@pytest.mark.asyncio
async def test_reserve_untracked_resource_raises():
    ledger = InMemoryLedger()
    with pytest.raises(KeyError):
        await ledger.try_reserve(42, 1)
    assert await ledger.available_units(42) is None


@pytest.mark.asyncio
async def test_release_is_floored_at_zero():
    ledger = InMemoryLedger()
    await ledger.track(1, capacity=5, allocated=2)
    await ledger.release(1, 4)
    assert await ledger.allocated_units(1) == 0

    # Releasing an untracked resource is a no-op
    await ledger.release(7, 1)
    assert not await ledger.is_tracked(7)


@pytest.mark.asyncio
async def test_resize_refuses_to_drop_below_allocation():
    ledger = InMemoryLedger()
    await ledger.track(1, capacity=10, allocated=6)

    assert not await ledger.resize(1, 5)
    assert await ledger.available_units(1) == 4
    assert await ledger.resize(1, 6)
    assert await ledger.available_units(1) == 0


@pytest.mark.asyncio
async def test_forget_drops_entry():
    ledger = InMemoryLedger()
    await ledger.track(1, capacity=10, allocated=0)
    await ledger.forget(1)
    assert not await ledger.is_tracked(1)


@pytest.mark.asyncio
async def test_concurrent_reservations_never_exceed_capacity():
    """50 concurrent single-unit reservations race for 10 units."""
    ledger = InMemoryLedger()
    await ledger.track(1, capacity=10, allocated=0)
    observed = []

    async def reserve():
        await asyncio.sleep(0)
        ok = await ledger.try_reserve(1, 1)
        observed.append(await ledger.allocated_units(1))
        return ok

    results = await asyncio.gather(*(reserve() for _ in range(50)))

    assert sum(results) == 10
    assert max(observed) <= 10
    assert await ledger.allocated_units(1) == 10


@pytest.mark.asyncio
async def test_resources_are_accounted_independently():
    ledger = InMemoryLedger()
    await ledger.track(1, capacity=1, allocated=0)
    await ledger.track(2, capacity=1, allocated=0)

    assert await ledger.try_reserve(1, 1)
    assert await ledger.try_reserve(2, 1)
    assert not await ledger.try_reserve(1, 1)
    await ledger.release(2, 1)
    assert await ledger.available_units(1) == 0
    assert await ledger.available_units(2) == 1
