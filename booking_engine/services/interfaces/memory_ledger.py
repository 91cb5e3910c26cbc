"""
In-process ledger: a counter and an asyncio.Lock per resource.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Optional

from booking_engine.services.interfaces.ledger import Ledger


@dataclass
class _Entry:
    capacity: int
    allocated: int
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)


class InMemoryLedger(Ledger):
    """
    Exact only while a single process serves all bookings.

    Use when:
    - One worker process (development, tests, small deployments)
    - Redis is not available
    """

    def __init__(self):
        self._entries: dict[int, _Entry] = {}

    async def track(self, resource_id: int, capacity: int, allocated: int) -> bool:
        if resource_id in self._entries:
            return False
        self._entries[resource_id] = _Entry(capacity=capacity, allocated=max(allocated, 0))
        return True

    async def is_tracked(self, resource_id: int) -> bool:
        return resource_id in self._entries

    async def allocated_units(self, resource_id: int) -> Optional[int]:
        entry = self._entries.get(resource_id)
        return entry.allocated if entry else None

    async def available_units(self, resource_id: int) -> Optional[int]:
        entry = self._entries.get(resource_id)
        return entry.capacity - entry.allocated if entry else None

    async def try_reserve(self, resource_id: int, units: int) -> bool:
        entry = self._entries[resource_id]
        async with entry.lock:
            if entry.allocated + units > entry.capacity:
                return False
            entry.allocated += units
            return True

    async def release(self, resource_id: int, units: int) -> None:
        entry = self._entries.get(resource_id)
        if entry is None:
            return
        async with entry.lock:
            entry.allocated = max(entry.allocated - units, 0)

    async def resize(self, resource_id: int, capacity: int) -> bool:
        entry = self._entries.get(resource_id)
        if entry is None:
            return True
        async with entry.lock:
            if entry.allocated > capacity:
                return False
            entry.capacity = capacity
            return True

    async def forget(self, resource_id: int) -> None:
        self._entries.pop(resource_id, None)
