"""
Ledger strategy interface.
Allows swapping between a per-process and a shared (Redis) unit counter.
"""

from abc import ABC, abstractmethod
from typing import Optional


class Ledger(ABC):
    """
    Per-resource running total of allocated units.

    For a single resource every mutating call is linearizable and the
    invariant `allocated <= capacity` holds at every observable instant.
    Calls on different resources never contend with each other.

    Implementations:
    - InMemoryLedger: one asyncio.Lock per resource, single process
    - RedisLedger: Lua-scripted atomic counters shared by all workers
    """

    @abstractmethod
    async def track(self, resource_id: int, capacity: int, allocated: int) -> bool:
        """
        Start tracking a resource if it is not tracked yet.

        Returns:
            True if this call created the entry, False if it already existed
            (the existing counts are left untouched)
        """

    @abstractmethod
    async def is_tracked(self, resource_id: int) -> bool:
        pass

    @abstractmethod
    async def allocated_units(self, resource_id: int) -> Optional[int]:
        """Current allocated units, or None when the resource is not tracked."""

    @abstractmethod
    async def available_units(self, resource_id: int) -> Optional[int]:
        """
        Snapshot of `capacity - allocated`, or None when not tracked.
        May be stale by the time the caller acts on it.
        """

    @abstractmethod
    async def try_reserve(self, resource_id: int, units: int) -> bool:
        """
        Atomically add `units` if they fit within capacity.

        Returns:
            True if reserved, False if insufficient (no side effects)

        Raises:
            KeyError: the resource is not tracked
        """

    @abstractmethod
    async def release(self, resource_id: int, units: int) -> None:
        """Atomically subtract `units`, floored at zero. No-op when not tracked."""

    @abstractmethod
    async def resize(self, resource_id: int, capacity: int) -> bool:
        """
        Change capacity if the current allocation still fits.
        Returns False (and changes nothing) otherwise. No-op True when not tracked.
        """

    @abstractmethod
    async def forget(self, resource_id: int) -> None:
        """Drop a resource that can take no more bookings."""
