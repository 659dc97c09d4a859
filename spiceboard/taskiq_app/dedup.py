"""Redis-based dedup locks for backfill enqueue and execution."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from time import monotonic

from redis.asyncio import Redis

from spiceboard.config import get_settings

# Used instead of Redis when TASKIQ_TESTING is set.
_MEMORY_LOCKS: dict[str, float] = {}


def build_dedup_key(*, scope: str, task_name: str, fingerprint: str) -> str:
    """Build a key namespaced by app, scope and task."""

    app_name = get_settings().app_name
    return f"{app_name}:dedup:{scope}:{task_name}:{fingerprint}"


def _redis_client() -> Redis:
    return Redis.from_url(
        get_settings().redis_url, encoding="utf-8", decode_responses=True
    )


def _acquire_memory_lock(key: str, ttl_seconds: int) -> bool:
    now = monotonic()
    for lock_key, expiry in list(_MEMORY_LOCKS.items()):
        if expiry <= now:
            del _MEMORY_LOCKS[lock_key]

    if key in _MEMORY_LOCKS:
        return False
    _MEMORY_LOCKS[key] = now + ttl_seconds
    return True


async def acquire_dedup_lock(key: str, ttl_seconds: int) -> bool:
    """Take the lock with SET NX EX; ``False`` when someone else holds it."""

    if get_settings().taskiq_testing:
        return _acquire_memory_lock(key, ttl_seconds)

    client = _redis_client()
    try:
        return bool(await client.set(key, "1", nx=True, ex=ttl_seconds))
    finally:
        await client.aclose()


async def release_dedup_lock(key: str) -> None:
    if get_settings().taskiq_testing:
        _MEMORY_LOCKS.pop(key, None)
        return

    client = _redis_client()
    try:
        await client.delete(key)
    finally:
        await client.aclose()


@asynccontextmanager
async def execution_lock(key: str, ttl_seconds: int) -> AsyncIterator[bool]:
    """Hold ``key`` for the duration of the block if it could be acquired.

    Yields whether the lock was taken; it is released on exit only when it was.
    """

    acquired = await acquire_dedup_lock(key, ttl_seconds)
    try:
        yield acquired
    finally:
        if acquired:
            await release_dedup_lock(key)
