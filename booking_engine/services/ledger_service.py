"""
Redis-backed ledger shared by every worker process.

Each resource is one hash `ledger:{id}` holding `capacity` and `allocated`.
Every mutation is a Lua script, so the check and the update run as one step
on the Redis server. Distinct resources are distinct keys and never contend.

Unlike an advisory admission gate, this ledger is authoritative: a Redis
failure surfaces as Unavailable instead of failing open.
"""

import os
from typing import Optional

import redis.asyncio as redis

from booking_engine.core.exceptions import Unavailable
from booking_engine.infrastructure.redis_client import get_redis
from booking_engine.services.interfaces.ledger import Ledger

SCRIPT_DIR = os.path.join(os.path.dirname(__file__), '../infrastructure/lua')


def _load_script(name: str) -> str:
    with open(os.path.join(SCRIPT_DIR, f'{name}.lua'), 'r') as f:
        return f.read()


TRACK_SCRIPT = _load_script('track')
RESERVE_SCRIPT = _load_script('reserve')
RELEASE_SCRIPT = _load_script('release')
RESIZE_SCRIPT = _load_script('resize')


class RedisLedger(Ledger):
    """
    Use when:
    - More than one worker process serves bookings
    - Ledger state must survive a worker restart
    """

    def __init__(self, client: Optional[redis.Redis] = None, prefix: str = "ledger"):
        self._client = client
        self._prefix = prefix
        self._scripts = {}

    async def _redis(self) -> redis.Redis:
        if self._client is None:
            self._client = await get_redis()
            if self._client is None:
                raise Unavailable("Ledger store unavailable")
        return self._client

    async def _script(self, name: str, source: str):
        if name not in self._scripts:
            client = await self._redis()
            self._scripts[name] = client.register_script(source)
        return self._scripts[name]

    def _key(self, resource_id: int) -> str:
        return f"{self._prefix}:{resource_id}"

    async def track(self, resource_id: int, capacity: int, allocated: int) -> bool:
        script = await self._script('track', TRACK_SCRIPT)
        created = await script(keys=[self._key(resource_id)], args=[capacity, max(allocated, 0)])
        return bool(int(created))

    async def is_tracked(self, resource_id: int) -> bool:
        client = await self._redis()
        return bool(await client.exists(self._key(resource_id)))

    async def allocated_units(self, resource_id: int) -> Optional[int]:
        client = await self._redis()
        value = await client.hget(self._key(resource_id), 'allocated')
        return int(value) if value is not None else None

    async def available_units(self, resource_id: int) -> Optional[int]:
        client = await self._redis()
        capacity, allocated = await client.hmget(self._key(resource_id), ['capacity', 'allocated'])
        if capacity is None:
            return None
        return int(capacity) - int(allocated or 0)

    async def try_reserve(self, resource_id: int, units: int) -> bool:
        script = await self._script('reserve', RESERVE_SCRIPT)
        result = int(await script(keys=[self._key(resource_id)], args=[units]))
        if result < 0:
            raise KeyError(resource_id)
        return result == 1

    async def release(self, resource_id: int, units: int) -> None:
        script = await self._script('release', RELEASE_SCRIPT)
        await script(keys=[self._key(resource_id)], args=[units])

    async def resize(self, resource_id: int, capacity: int) -> bool:
        script = await self._script('resize', RESIZE_SCRIPT)
        return bool(int(await script(keys=[self._key(resource_id)], args=[capacity])))

    async def forget(self, resource_id: int) -> None:
        client = await self._redis()
        await client.delete(self._key(resource_id))
